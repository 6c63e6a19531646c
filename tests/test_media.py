"""
Tests for attachment resolution.
"""

import base64
import io

import pytest
from PIL import Image

from chatcontext.errors import MediaError
from chatcontext.media import (
    AudioAttachment,
    ImageAttachment,
    detect_audio_format,
    is_valid_url,
    resolve_attachment,
    sniff_image_mime,
)
from chatcontext.models import AudioContent, ImageContent

WAV_HEADER = b"RIFF\x24\x00\x00\x00WAVEfmt \x10\x00\x00\x00"


def image_bytes(fmt):
    buf = io.BytesIO()
    Image.new("RGB", (1, 1)).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return image_bytes("PNG")


class TestIsValidUrl:

    @pytest.mark.parametrize("value", [
        "https://example.com/cat.png",
        "http://localhost:8080/a",
    ])
    def test_valid(self, value):
        assert is_valid_url(value) is True

    @pytest.mark.parametrize("value", [
        "/tmp/cat.png",
        "cat.png",
        "ftp://example.com/cat.png",
        "https://",
        "",
    ])
    def test_invalid(self, value):
        assert is_valid_url(value) is False


class TestSniffImageMime:

    def test_png(self, png_bytes):
        assert sniff_image_mime(png_bytes) == "image/png"

    def test_jpeg(self):
        assert sniff_image_mime(image_bytes("JPEG")) == "image/jpeg"

    def test_unknown(self):
        assert sniff_image_mime(b"definitely not an image") == "application/octet-stream"

    def test_empty(self):
        assert sniff_image_mime(b"") == "application/octet-stream"


class TestDetectAudioFormat:

    @pytest.mark.parametrize("header,expected", [
        (WAV_HEADER, "wav"),
        (b"ID3\x03\x00\x00\x00\x00", "mp3"),
        (b"\xff\xfb\x90\x64", "mp3"),
        (b"fLaC\x00\x00\x00\x22", "flac"),
        (b"OggS\x00\x02", "ogg"),
        (b"\x00\x00\x00\x20ftypM4A \x00\x00", "m4a"),
        (b"\x00\x00\x00\x20ftypisom\x00\x00", "m4a"),
        (b"\x00\x00\x00\x20ftypmp42\x00\x00", "m4a"),
        (b"\x00\x00\x00\x20ftypqt  \x00\x00", "mp4"),
        (b"hello world", "unknown"),
        (b"", "unknown"),
        (b"\xff", "unknown"),
    ])
    def test_formats(self, header, expected):
        assert detect_audio_format(header) == expected


class TestResolveAttachment:

    def test_none(self):
        assert resolve_attachment(None) is None

    def test_url_passes_through(self):
        content = resolve_attachment(ImageAttachment("https://example.com/cat.png"))
        assert content == ImageContent(url="https://example.com/cat.png")

    def test_local_image_file(self, tmp_path, png_bytes):
        path = tmp_path / "cat.png"
        path.write_bytes(png_bytes)

        content = resolve_attachment(ImageAttachment(str(path)))

        assert content.url.startswith("data:image/png;base64,")
        payload = content.url.split(",", 1)[1]
        assert base64.b64decode(payload) == png_bytes

    def test_raw_image_bytes(self, png_bytes):
        content = resolve_attachment(ImageAttachment(png_bytes))
        assert content.url.startswith("data:image/png;base64,")

    def test_missing_image_file(self, tmp_path):
        with pytest.raises(MediaError, match="failed to read"):
            resolve_attachment(ImageAttachment(str(tmp_path / "missing.png")))

    def test_audio_file(self, tmp_path):
        data = WAV_HEADER + b"\x00" * 32
        path = tmp_path / "voice.wav"
        path.write_bytes(data)

        content = resolve_attachment(AudioAttachment(str(path)))

        assert isinstance(content, AudioContent)
        assert content.format == "wav"
        assert base64.b64decode(content.data) == data

    def test_unknown_audio_still_embedded(self, tmp_path):
        path = tmp_path / "voice.bin"
        path.write_bytes(b"not audio")
        content = resolve_attachment(AudioAttachment(str(path)))
        assert content.format == "unknown"

    def test_missing_audio_file(self, tmp_path):
        with pytest.raises(MediaError):
            resolve_attachment(AudioAttachment(str(tmp_path / "missing.wav")))
