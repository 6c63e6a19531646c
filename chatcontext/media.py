"""
Attachment resolution: turns an image or audio reference into media content.

Image MIME types are sniffed with Pillow from the file header; audio
containers are recognized from their magic bytes.
"""

import base64
import io
import logging
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urlparse

from PIL import Image, UnidentifiedImageError

from .errors import MediaError
from .models import AudioContent, ImageContent, MediaContent

logger = logging.getLogger(__name__)

# Bytes read from a file to identify its type
SNIFF_BUFFER_SIZE = 512

DATA_URI_TEMPLATE = "data:{mime};base64,{payload}"
DEFAULT_MIME_TYPE = "application/octet-stream"
UNKNOWN_AUDIO_FORMAT = "unknown"

_M4A_BRANDS = (b"M4A ", b"isom", b"mp42")


# =============================================================================
# Attachments
# =============================================================================

@dataclass(frozen=True)
class ImageAttachment:
    """
    Image supplied for a single request.

    Attributes:
        source: An http(s) URL, a local file path, or the raw image bytes.
    """
    source: Union[str, bytes]


@dataclass(frozen=True)
class AudioAttachment:
    """
    Local audio file supplied for a single request.

    Attributes:
        path: Path to the audio file.
    """
    path: str


Attachment = Union[ImageAttachment, AudioAttachment]


# =============================================================================
# Sniffing
# =============================================================================

def is_valid_url(value: str) -> bool:
    """True if ``value`` is an absolute http or https URL."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def sniff_image_mime(data: bytes) -> str:
    """
    MIME type of an image from its leading bytes.

    Returns 'application/octet-stream' when Pillow cannot identify it.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            return Image.MIME.get(image.format or "", DEFAULT_MIME_TYPE)
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        return DEFAULT_MIME_TYPE


def detect_audio_format(header: bytes) -> str:
    """
    Container label of an audio file from its first bytes.

    Recognizes wav, mp3 (ID3 tag or MPEG frame sync), flac, ogg and the ISO
    base media family (m4a for the M4A/isom/mp42 brands, mp4 otherwise).
    Anything else is 'unknown'.
    """
    if header[0:4] == b"RIFF" and header[8:12] == b"WAVE":
        return "wav"
    if header[0:3] == b"ID3" or (len(header) > 1 and header[0] == 0xFF and (header[1] & 0xE0) == 0xE0):
        return "mp3"
    if header[0:4] == b"fLaC":
        return "flac"
    if header[0:4] == b"OggS":
        return "ogg"
    if header[4:8] == b"ftyp":
        if header[8:12] in _M4A_BRANDS:
            return "m4a"
        return "mp4"
    return UNKNOWN_AUDIO_FORMAT


def read_file(path: str) -> bytes:
    try:
        with open(path, "rb") as handle:
            return handle.read()
    except OSError as e:
        raise MediaError(f"failed to read {path}: {e}") from e


def read_header(path: str, size: int = SNIFF_BUFFER_SIZE) -> bytes:
    try:
        with open(path, "rb") as handle:
            return handle.read(size)
    except OSError as e:
        raise MediaError(f"failed to read {path}: {e}") from e


# =============================================================================
# Content Builders
# =============================================================================

def image_content_from_bytes(data: bytes) -> ImageContent:
    """Embed raw image bytes as a data URI."""
    mime = sniff_image_mime(data)
    payload = base64.b64encode(data).decode("ascii")
    return ImageContent(url=DATA_URI_TEMPLATE.format(mime=mime, payload=payload))


def image_content_from_url_or_file(reference: str) -> ImageContent:
    """URL references are passed through; local files are embedded."""
    if is_valid_url(reference):
        return ImageContent(url=reference)
    return image_content_from_bytes(read_file(reference))


def audio_content_from_file(path: str) -> AudioContent:
    """Embed a local audio file with its detected format label."""
    audio_format = detect_audio_format(read_header(path))
    if audio_format == UNKNOWN_AUDIO_FORMAT:
        logger.warning("Unrecognized audio container for %s", path)
    payload = base64.b64encode(read_file(path)).decode("ascii")
    return AudioContent(data=payload, format=audio_format)


def resolve_attachment(attachment: Optional[Attachment]) -> Optional[MediaContent]:
    """
    Build the media content for an attachment.

    Raises:
        MediaError: If a local file cannot be read.
    """
    if attachment is None:
        return None
    if isinstance(attachment, AudioAttachment):
        return audio_content_from_file(attachment.path)
    if isinstance(attachment.source, (bytes, bytearray)):
        return image_content_from_bytes(bytes(attachment.source))
    return image_content_from_url_or_file(attachment.source)
