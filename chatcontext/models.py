"""
Data models for conversation turns and their content.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional, Union


SYSTEM_ROLE = "system"
USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
FUNCTION_ROLE = "function"

IMAGE_URL_TYPE = "image_url"
INPUT_AUDIO_TYPE = "input_audio"


# =============================================================================
# Media Content
# =============================================================================

@dataclass
class ImageContent:
    """
    Image reference sent as part of a user turn.

    Attributes:
        url: Either an http(s) URL or a ``data:<mime>;base64,<payload>`` URI.
    """
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": IMAGE_URL_TYPE, IMAGE_URL_TYPE: {"url": self.url}}


@dataclass
class AudioContent:
    """
    Inline audio payload sent as part of a user turn.

    Attributes:
        data: Base64-encoded audio bytes.
        format: Container label detected from the file header ('wav', 'mp3', ...).
    """
    data: str
    format: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": INPUT_AUDIO_TYPE,
            INPUT_AUDIO_TYPE: {"data": self.data, "format": self.format},
        }


MediaContent = Union[ImageContent, AudioContent]
Content = Union[str, List[MediaContent]]


def media_from_dict(data: Dict[str, Any]) -> Optional[MediaContent]:
    """Rebuild a media item from its wire form, or None if it is not one."""
    if not isinstance(data, dict):
        return None
    kind = data.get("type")
    if kind == IMAGE_URL_TYPE and isinstance(data.get(IMAGE_URL_TYPE), dict):
        return ImageContent(url=data[IMAGE_URL_TYPE].get("url", ""))
    if kind == INPUT_AUDIO_TYPE and isinstance(data.get(INPUT_AUDIO_TYPE), dict):
        audio = data[INPUT_AUDIO_TYPE]
        return AudioContent(data=audio.get("data", ""), format=audio.get("format", ""))
    return None


class ContentKind(str, Enum):
    """Shape of a message ``content`` value as received from the wire."""
    TEXT = "text"
    MEDIA_LIST = "media_list"
    UNREPRESENTABLE = "unrepresentable"


def content_kind(value: Any) -> ContentKind:
    """
    Classify a decoded ``content`` value.

    Strings are TEXT, lists whose every item is a known media item are
    MEDIA_LIST, everything else (numbers, objects, null, mixed lists) is
    UNREPRESENTABLE.
    """
    if isinstance(value, str):
        return ContentKind.TEXT
    if isinstance(value, list) and value and all(
        isinstance(item, (ImageContent, AudioContent)) or media_from_dict(item) is not None
        for item in value
    ):
        return ContentKind.MEDIA_LIST
    return ContentKind.UNREPRESENTABLE


# =============================================================================
# Turn
# =============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Turn:
    """
    One message of a conversation.

    Attributes:
        role: One of 'system', 'user', 'assistant', 'function'.
        content: Plain text, or a list of media items.
        name: Optional author name (used by function turns).
        timestamp: When the turn was created.
    """
    role: str
    content: Content = ""
    name: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def text(self) -> str:
        """Text content, or an empty string for media turns."""
        return self.content if isinstance(self.content, str) else ""

    def to_message(self) -> Dict[str, Any]:
        """Wire form of the turn (no timestamp, ``name`` only when set)."""
        message: Dict[str, Any] = {"role": self.role}
        if self.name:
            message["name"] = self.name
        if isinstance(self.content, str):
            message["content"] = self.content
        else:
            message["content"] = [item.to_dict() for item in self.content]
        return message

    def to_dict(self) -> Dict[str, Any]:
        """Storage form of the turn."""
        result = self.to_message()
        result["timestamp"] = self.timestamp.isoformat()
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Turn':
        """
        Create a turn from its storage form.

        Missing timestamps default to now; list content is rebuilt into
        media items, dropping entries that are not recognized.
        """
        data_copy = copy.deepcopy(data)

        raw_timestamp = data_copy.get("timestamp")
        if isinstance(raw_timestamp, str) and raw_timestamp:
            timestamp = datetime.fromisoformat(raw_timestamp)
        elif isinstance(raw_timestamp, datetime):
            timestamp = raw_timestamp
        else:
            timestamp = _utcnow()

        content = data_copy.get("content", "")
        if isinstance(content, list):
            items = [media_from_dict(item) for item in content]
            content = [item for item in items if item is not None]
        elif content is None:
            content = ""
        elif not isinstance(content, str):
            content = str(content)

        return cls(
            role=data_copy.get("role", USER_ROLE),
            content=content,
            name=data_copy.get("name") or None,
            timestamp=timestamp,
        )


# =============================================================================
# Usage
# =============================================================================

@dataclass
class Usage:
    """Token usage reported by the service."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Usage':
        """
        Read usage from either wire shape (``prompt_tokens`` or ``input_tokens``).

        Raises:
            ValueError: If usage is not an object or a count is not an integer.
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"usage is not an object: {type(data).__name__}")
        return cls(
            prompt_tokens=_token_count(data, "prompt_tokens", "input_tokens"),
            completion_tokens=_token_count(data, "completion_tokens", "output_tokens"),
            total_tokens=_token_count(data, "total_tokens"),
        )


def _token_count(data: Dict[str, Any], *keys: str) -> int:
    """First non-zero integer among ``keys``, or 0."""
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"usage field '{key}' is not an integer: {value!r}")
        if value:
            return value
    return 0
