"""
Decoding of non-streaming chat responses.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import (
    DecodeError,
    EmptyResponseError,
    SemanticError,
    ERR_NO_CHOICES,
    ERR_NOT_A_STRING,
    ERR_NO_OUTPUT_TEXT,
)
from .models import ContentKind, Usage, content_kind

logger = logging.getLogger(__name__)

MESSAGE_TYPE = "message"
OUTPUT_TEXT_TYPE = "output_text"


@dataclass
class DecodedResponse:
    """Text of the reply and the usage reported with it."""
    text: str
    usage: Usage

    @property
    def tokens_used(self) -> int:
        return self.usage.total_tokens


def load_envelope(raw: Optional[bytes]) -> Dict[str, Any]:
    """
    Parse a JSON object envelope.

    Raises:
        EmptyResponseError: If ``raw`` is None.
        DecodeError: If ``raw`` is not a JSON object.
    """
    if raw is None:
        raise EmptyResponseError()
    try:
        envelope = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"failed to decode response: {e}") from e
    if not isinstance(envelope, dict):
        raise DecodeError(
            f"failed to decode response: expected a JSON object, got {type(envelope).__name__}"
        )
    return envelope


def _read_usage(envelope: Dict[str, Any]) -> Usage:
    try:
        return Usage.from_dict(envelope.get("usage"))
    except ValueError as e:
        raise DecodeError(f"failed to decode response: {e}") from e


def _list_field(obj: Dict[str, Any], key: str) -> List[Any]:
    """``obj[key]`` as a list; missing or null is empty."""
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(f"failed to decode response: '{key}' is not a list")
    return value


def decode_completions(raw: Optional[bytes]) -> DecodedResponse:
    """
    Decode a chat completions envelope.

    Raises:
        DecodeError: If the payload or one of its fields has the wrong type.
        SemanticError: 'no responses returned' for an empty choices list,
            'response cannot be converted to a string' for non-text content.
    """
    envelope = load_envelope(raw)
    usage = _read_usage(envelope)

    choices = _list_field(envelope, "choices")
    if not choices:
        raise SemanticError(ERR_NO_CHOICES, usage.total_tokens)

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None

    if content_kind(content) is not ContentKind.TEXT:
        raise SemanticError(ERR_NOT_A_STRING, usage.total_tokens)

    return DecodedResponse(text=content, usage=usage)


def decode_responses(raw: Optional[bytes]) -> DecodedResponse:
    """
    Decode a responses envelope.

    The first ``output_text`` part of the first ``message`` output that has
    one is the reply.

    Raises:
        DecodeError: If the payload or one of its fields has the wrong type.
        SemanticError: 'no response returned' when no output_text part exists;
            ``tokens_used`` still carries the usage total.
    """
    envelope = load_envelope(raw)
    usage = _read_usage(envelope)

    for output in _list_field(envelope, "output"):
        if not isinstance(output, dict) or output.get("type") != MESSAGE_TYPE:
            continue
        for part in _list_field(output, "content"):
            if isinstance(part, dict) and part.get("type") == OUTPUT_TEXT_TYPE:
                text = part.get("text")
                if isinstance(text, str) and text:
                    return DecodedResponse(text=text, usage=usage)

    raise SemanticError(ERR_NO_OUTPUT_TEXT, usage.total_tokens)


def decode_response(raw: Optional[bytes], uses_alternate_api: bool) -> DecodedResponse:
    """Decode ``raw`` with the branch matching the endpoint that produced it."""
    if uses_alternate_api:
        return decode_responses(raw)
    return decode_completions(raw)
