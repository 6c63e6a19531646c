"""
Exceptions raised by the chat client layer.
"""

from typing import Optional


ERR_EMPTY_RESPONSE = "empty response"
ERR_NO_CHOICES = "no responses returned"
ERR_NOT_A_STRING = "response cannot be converted to a string"
ERR_NO_OUTPUT_TEXT = "no response returned"
ERR_HISTORY_TRACKING = "history tracking needs to be enabled to use this feature"
ERR_UNSUPPORTED_PROVIDER = "unsupported MCP provider"
ERR_MISSING_API_KEY = "the {provider} api key is not configured"


class ChatContextError(Exception):
    """Base class for all errors raised by this package."""


class TransportError(ChatContextError):
    """
    The transport could not complete a call.

    Attributes:
        status_code: HTTP status when the server answered with an error.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EmptyResponseError(ChatContextError):
    """The transport returned no payload at all."""

    def __init__(self, message: str = ERR_EMPTY_RESPONSE):
        super().__init__(message)


class DecodeError(ChatContextError):
    """The payload is not valid JSON for the expected envelope."""


class SemanticError(ChatContextError):
    """
    A well-formed envelope is missing the expected fields.

    Attributes:
        tokens_used: Usage total read from the envelope before the failure.
    """

    def __init__(self, message: str, tokens_used: int = 0):
        super().__init__(message)
        self.tokens_used = tokens_used


class StreamParseError(ChatContextError):
    """
    A stream chunk could not be parsed.

    Never reaches callers of the client: the stream decoder turns it into an
    ``Error: <message>`` line in the decoded output.
    """


class MediaError(ChatContextError):
    """An attachment could not be read or has an unsupported type."""


class HistoryTrackingError(ChatContextError):
    """An operation needs persistence but history is disabled."""

    def __init__(self, message: str = ERR_HISTORY_TRACKING):
        super().__init__(message)


class UnsupportedProviderError(ChatContextError):
    """The enrichment provider is not supported."""

    def __init__(self, message: str = ERR_UNSUPPORTED_PROVIDER):
        super().__init__(message)


class MissingAPIKeyError(ChatContextError):
    """The enrichment provider has no API key configured."""

    def __init__(self, provider: str):
        super().__init__(ERR_MISSING_API_KEY.format(provider=provider))
        self.provider = provider
