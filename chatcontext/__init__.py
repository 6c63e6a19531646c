"""
ChatContext - conversation state and wire-protocol handling for chat API clients.

This package keeps a token-budgeted conversation window, assembles requests for
the chat completions and responses wire shapes, and decodes both batch and
streamed replies.
"""

from .capabilities import CapabilityFlags, get_capabilities
from .client import ChatClient
from .config import ClientConfig
from .errors import (
    ChatContextError,
    TransportError,
    EmptyResponseError,
    DecodeError,
    SemanticError,
    StreamParseError,
    MediaError,
    HistoryTrackingError,
    UnsupportedProviderError,
    MissingAPIKeyError,
)
from .interfaces import HistoryStore, Transport
from .models import Turn, ImageContent, AudioContent, ContentKind, Usage

# History storage
from .history_backends import InMemoryHistoryStore, SQLiteHistoryStore
from .history_manager import HistoryManager

# Conversation window
from .tokenizer_interfaces import Tokenizer, TokenCountResult, TruncationResult
from .tokenizer import CharWordTokenizer
from .truncation import truncate_turns, effective_context_window
from .window import ConversationWindow

# Wire protocol
from .media import ImageAttachment, AudioAttachment
from .request_builder import RequestAssembler, SamplingParams
from .response_decoder import DecodedResponse, decode_response
from .stream_decoder import StreamDecoder, StreamDialect
from .transport import HttpTransport
from .enrichment import EnrichmentRequest

__version__ = "0.1.0"
__all__ = [
    # Client
    "ChatClient",
    "ClientConfig",
    "CapabilityFlags",
    "get_capabilities",
    # Errors
    "ChatContextError",
    "TransportError",
    "EmptyResponseError",
    "DecodeError",
    "SemanticError",
    "StreamParseError",
    "MediaError",
    "HistoryTrackingError",
    "UnsupportedProviderError",
    "MissingAPIKeyError",
    # Collaborators
    "HistoryStore",
    "Transport",
    "InMemoryHistoryStore",
    "SQLiteHistoryStore",
    "HistoryManager",
    "HttpTransport",
    # Models
    "Turn",
    "ImageContent",
    "AudioContent",
    "ContentKind",
    "Usage",
    # Conversation window
    "Tokenizer",
    "TokenCountResult",
    "TruncationResult",
    "CharWordTokenizer",
    "truncate_turns",
    "effective_context_window",
    "ConversationWindow",
    # Wire protocol
    "ImageAttachment",
    "AudioAttachment",
    "RequestAssembler",
    "SamplingParams",
    "DecodedResponse",
    "decode_response",
    "StreamDecoder",
    "StreamDialect",
    "EnrichmentRequest",
]
