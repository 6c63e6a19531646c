"""
Tests for event-stream decoding.
"""

import io
import json

import pytest
from chatcontext.stream_decoder import (
    EventTaggedStreamStrategy,
    LegacyStreamStrategy,
    StreamDecoder,
    StreamDialect,
    get_stream_strategy,
)

LEGACY_STREAM = """data: {"id":"1","object":"chat.completion.chunk","choices":[{"index":0,"delta":{"role":"assistant"}}]}

data: {"id":"1","object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":"a"}}]}

data: {"id":"1","object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":" b"}}]}

data: {"id":"1","object":"chat.completion.chunk","choices":[{"index":0,"delta":{"content":" c"}}]}

data: [DONE]
"""

EVENT_STREAM = """event: response.created
data: {"type":"response.created","response":{"id":"resp_1"}}

event: response.output_text.delta
data: {"type":"response.output_text.delta","delta":"a"}

event: response.output_text.delta
data: {"type":"response.output_text.delta","delta":" b"}

event: response.output_text.delta
data: {"type":"response.output_text.delta","delta":" c"}

event: response.output_text.done
data: {"type":"response.output_text.done","text":"a b c"}

event: response.completed
data: {"type":"response.completed","response":{"id":"resp_1"}}
"""

MALFORMED_PAYLOAD = '{"invalid":"json"'


def json_error(payload):
    with pytest.raises(json.JSONDecodeError) as exc:
        json.loads(payload)
    return str(exc.value)


class RecordingWriter:
    """Output stub that records every write."""

    def __init__(self):
        self.writes = []
        self.flushed = 0

    def write(self, text):
        self.writes.append(text)

    def flush(self):
        self.flushed += 1


async def aiter_lines(text):
    for line in text.splitlines():
        yield line


class TestStrategies:

    def test_factory(self):
        assert isinstance(get_stream_strategy(StreamDialect.LEGACY), LegacyStreamStrategy)
        assert isinstance(get_stream_strategy("event_tagged"), EventTaggedStreamStrategy)

    def test_legacy_ignores_non_data_lines(self):
        strategy = LegacyStreamStrategy()
        assert strategy.feed(": keep-alive") is False
        assert strategy.feed("") is False
        assert strategy.text == ""

    def test_legacy_done(self):
        strategy = LegacyStreamStrategy()
        assert strategy.feed("data: [DONE]") is True

    def test_event_tag_applies_to_next_data_only(self):
        strategy = EventTaggedStreamStrategy()
        strategy.feed("event: response.output_text.delta")
        strategy.feed('data: {"delta":"x"}')
        # no event line before this one
        strategy.feed('data: {"delta":"y"}')
        assert strategy.text == "x"


class TestLegacyDecoding:

    def test_accumulates_deltas(self):
        out = RecordingWriter()
        result = StreamDecoder(StreamDialect.LEGACY).decode_text(LEGACY_STREAM, out)
        assert result == "a b c\n"
        assert out.writes == ["a b c\n"]
        assert out.flushed == 1

    def test_stops_at_done(self):
        stream = LEGACY_STREAM + 'data: {"choices":[{"delta":{"content":"ignored"}}]}\n'
        assert StreamDecoder(StreamDialect.LEGACY).decode_text(stream) == "a b c\n"

    def test_malformed_chunk(self):
        out = RecordingWriter()
        stream = 'data: {"choices":[{"delta":{"content":"partial"}}]}\ndata: ' + MALFORMED_PAYLOAD + "\n"

        result = StreamDecoder(StreamDialect.LEGACY).decode_text(stream, out)

        assert result == f"Error: {json_error(MALFORMED_PAYLOAD)}\n"
        assert "partial" not in result
        assert out.writes == [result]

    def test_end_of_stream_without_done(self):
        stream = 'data: {"choices":[{"delta":{"content":"hi"}}]}\n'
        assert StreamDecoder(StreamDialect.LEGACY).decode_text(stream) == "hi\n"

    def test_empty_stream(self):
        out = io.StringIO()
        assert StreamDecoder(StreamDialect.LEGACY).decode([], out) == "\n"
        assert out.getvalue() == "\n"

    def test_crlf_lines(self):
        lines = ['data: {"choices":[{"delta":{"content":"x"}}]}\r\n', "data: [DONE]\r\n"]
        assert StreamDecoder(StreamDialect.LEGACY).decode(lines) == "x\n"

    def test_chunk_without_content(self):
        stream = 'data: {"choices":[]}\ndata: {"choices":[{"delta":{}}]}\ndata: [DONE]\n'
        assert StreamDecoder(StreamDialect.LEGACY).decode_text(stream) == "\n"


class TestEventTaggedDecoding:

    def test_accumulates_deltas(self):
        out = io.StringIO()
        result = StreamDecoder(StreamDialect.EVENT_TAGGED).decode_text(EVENT_STREAM, out)
        assert result == "a b c\n"
        assert out.getvalue() == "a b c\n"

    def test_malformed_delta(self):
        stream = "event: response.output_text.delta\ndata: " + MALFORMED_PAYLOAD + "\n"
        result = StreamDecoder(StreamDialect.EVENT_TAGGED).decode_text(stream)
        assert result == f"Error: {json_error(MALFORMED_PAYLOAD)}\n"

    def test_malformed_other_event_ignored(self):
        stream = (
            "event: response.in_progress\ndata: " + MALFORMED_PAYLOAD + "\n"
            "event: response.output_text.delta\ndata: {\"delta\":\"ok\"}\n"
            "event: response.completed\ndata: {}\n"
        )
        assert StreamDecoder(StreamDialect.EVENT_TAGGED).decode_text(stream) == "ok\n"

    def test_legacy_grammar_not_guessed(self):
        assert StreamDecoder(StreamDialect.EVENT_TAGGED).decode_text(LEGACY_STREAM) == "\n"


class TestAsyncDecoding:

    @pytest.mark.asyncio
    async def test_legacy(self):
        out = RecordingWriter()
        result = await StreamDecoder(StreamDialect.LEGACY).decode_async(aiter_lines(LEGACY_STREAM), out)
        assert result == "a b c\n"
        assert out.writes == ["a b c\n"]

    @pytest.mark.asyncio
    async def test_event_tagged(self):
        result = await StreamDecoder(StreamDialect.EVENT_TAGGED).decode_async(aiter_lines(EVENT_STREAM))
        assert result == "a b c\n"

    @pytest.mark.asyncio
    async def test_malformed(self):
        stream = "data: " + MALFORMED_PAYLOAD + "\n"
        result = await StreamDecoder(StreamDialect.LEGACY).decode_async(aiter_lines(stream))
        assert result.startswith("Error: ")
        assert result.endswith("\n")
