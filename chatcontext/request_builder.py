"""
Request assembly for the two chat wire shapes.

Classic (chat completions) and alternate (responses) bodies are built from the
same turn list; the capability flags of the model decide the shape and which
optional fields appear.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .capabilities import CapabilityFlags, get_capabilities
from .config import ClientConfig
from .media import Attachment, resolve_attachment
from .models import Turn, USER_ROLE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplingParams:
    """Generation parameters copied from the client configuration."""
    model: str
    max_tokens: int
    temperature: float
    top_p: float
    frequency_penalty: float
    presence_penalty: float
    seed: int
    effort: str

    @classmethod
    def from_config(cls, config: ClientConfig) -> 'SamplingParams':
        return cls(
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            top_p=config.top_p,
            frequency_penalty=config.frequency_penalty,
            presence_penalty=config.presence_penalty,
            seed=config.seed,
            effort=config.effort,
        )


def encode_body(body: Dict[str, Any]) -> bytes:
    """Compact JSON encoding used for every request body."""
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class RequestAssembler:
    """
    Builds serialized request bodies from a conversation.

    Attachments are appended as one extra user message for the current
    request only; they never enter the conversation.
    """

    def __init__(self, params: SamplingParams, log: Optional[logging.Logger] = None):
        self.params = params
        self._log = log or logger

    @property
    def capabilities(self) -> CapabilityFlags:
        return get_capabilities(self.params.model)

    def build_messages(
        self,
        turns: List[Turn],
        attachment: Optional[Attachment] = None,
    ) -> List[Dict[str, Any]]:
        """
        Wire messages for ``turns``.

        The anchor turn is skipped for models that reject a leading system
        message.

        Raises:
            MediaError: If the attachment cannot be read.
        """
        caps = self.capabilities
        messages = [
            turn.to_message()
            for index, turn in enumerate(turns)
            if not (caps.omit_first_system_message and index == 0)
        ]

        media = resolve_attachment(attachment)
        if media is not None:
            messages.append({"role": USER_ROLE, "content": [media.to_dict()]})

        return messages

    def completions_request(self, messages: List[Dict[str, Any]], stream: bool) -> Dict[str, Any]:
        """Classic body. temperature/top_p are left out for models without them."""
        p = self.params
        body: Dict[str, Any] = {
            "model": p.model,
            "messages": messages,
            "max_tokens": p.max_tokens,
            "frequency_penalty": p.frequency_penalty,
            "presence_penalty": p.presence_penalty,
            "seed": p.seed,
            "stream": stream,
        }
        if self.capabilities.supports_temperature:
            body["temperature"] = p.temperature
            body["top_p"] = p.top_p
        return body

    def responses_request(self, messages: List[Dict[str, Any]], stream: bool) -> Dict[str, Any]:
        """Alternate body. temperature/top_p are always present."""
        p = self.params
        return {
            "model": p.model,
            "input": messages,
            "max_output_tokens": p.max_tokens,
            "reasoning": {"effort": p.effort},
            "stream": stream,
            "temperature": p.temperature,
            "top_p": p.top_p,
        }

    def build(
        self,
        turns: List[Turn],
        stream: bool,
        attachment: Optional[Attachment] = None,
    ) -> bytes:
        """
        Serialize the request for the current model.

        Args:
            turns: Conversation, anchor first.
            stream: Value of the ``stream`` field.
            attachment: Optional image or audio for this request only.

        Returns:
            UTF-8 JSON body.
        """
        messages = self.build_messages(turns, attachment)
        if self.capabilities.uses_alternate_api:
            body = self.responses_request(messages, stream)
        else:
            body = self.completions_request(messages, stream)

        self._log.debug("Assembled %d messages for %s", len(messages), self.params.model)
        return encode_body(body)
