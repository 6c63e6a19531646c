"""
Tests for request assembly.
"""

import json

import pytest
from chatcontext.config import ClientConfig
from chatcontext.media import ImageAttachment
from chatcontext.models import Turn
from chatcontext.request_builder import RequestAssembler, SamplingParams, encode_body


def assembler_for(model, **overrides):
    config = ClientConfig(model=model, temperature=0.5, top_p=0.9, seed=7, **overrides)
    return RequestAssembler(SamplingParams.from_config(config))


@pytest.fixture
def turns():
    return [
        Turn(role="system", content="You are a test assistant."),
        Turn(role="user", content="hello"),
    ]


class TestCompletionsRequest:

    def test_classic_body(self, turns):
        body = json.loads(assembler_for("gpt-4o").build(turns, stream=False))
        assert body == {
            "model": "gpt-4o",
            "messages": [
                {"role": "system", "content": "You are a test assistant."},
                {"role": "user", "content": "hello"},
            ],
            "max_tokens": 4096,
            "frequency_penalty": 0.0,
            "presence_penalty": 0.0,
            "seed": 7,
            "stream": False,
            "temperature": 0.5,
            "top_p": 0.9,
        }

    def test_search_model_omits_sampling(self, turns):
        body = json.loads(assembler_for("gpt-4o-search-preview").build(turns, stream=False))
        assert "temperature" not in body
        assert "top_p" not in body

    def test_stream_flag(self, turns):
        body = json.loads(assembler_for("gpt-4o").build(turns, stream=True))
        assert body["stream"] is True

    def test_o1_omits_anchor(self, turns):
        body = json.loads(assembler_for("o1-mini").build(turns, stream=False))
        assert body["messages"] == [{"role": "user", "content": "hello"}]

    def test_function_turn_has_name(self, turns):
        turns.append(Turn(role="function", content="[MCP: x]", name="apify-x"))
        body = json.loads(assembler_for("gpt-4o").build(turns, stream=False))
        assert body["messages"][-1] == {"role": "function", "name": "apify-x", "content": "[MCP: x]"}


class TestResponsesRequest:

    def test_alternate_body(self, turns):
        body = json.loads(assembler_for("gpt-5").build(turns, stream=False))
        assert body == {
            "model": "gpt-5",
            "input": [
                {"role": "system", "content": "You are a test assistant."},
                {"role": "user", "content": "hello"},
            ],
            "max_output_tokens": 4096,
            "reasoning": {"effort": "low"},
            "stream": False,
            "temperature": 0.5,
            "top_p": 0.9,
        }

    def test_alternate_search_model_keeps_sampling(self, turns):
        body = json.loads(assembler_for("gpt-5-search").build(turns, stream=False))
        assert body["temperature"] == 0.5
        assert body["top_p"] == 0.9

    def test_o1_pro_keeps_anchor(self, turns):
        body = json.loads(assembler_for("o1-pro").build(turns, stream=False))
        assert len(body["input"]) == 2

    def test_effort(self, turns):
        body = json.loads(assembler_for("gpt-5", effort="high").build(turns, stream=True))
        assert body["reasoning"] == {"effort": "high"}
        assert body["stream"] is True


class TestAttachments:

    def test_image_url_appended_as_user_message(self, turns):
        assembler = assembler_for("gpt-4o")
        body = json.loads(assembler.build(turns, stream=False, attachment=ImageAttachment("https://example.com/a.png")))
        assert body["messages"][-1] == {
            "role": "user",
            "content": [{"type": "image_url", "image_url": {"url": "https://example.com/a.png"}}],
        }
        assert len(turns) == 2

    def test_media_turn_serialized_as_list(self):
        from chatcontext.models import AudioContent
        turns = [
            Turn(role="system", content="persona"),
            Turn(role="user", content=[AudioContent(data="UklGRg==", format="wav")]),
        ]
        messages = assembler_for("gpt-4o").build_messages(turns)
        assert messages[1]["content"] == [
            {"type": "input_audio", "input_audio": {"data": "UklGRg==", "format": "wav"}}
        ]


class TestEncodeBody:

    def test_compact(self):
        assert encode_body({"a": 1, "b": [1, 2]}) == b'{"a":1,"b":[1,2]}'

    def test_utf8(self):
        assert encode_body({"text": "héllo"}) == '{"text":"héllo"}'.encode("utf-8")
