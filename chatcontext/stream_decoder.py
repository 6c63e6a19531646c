"""
Event-stream decoding.

Two grammars are supported, each as its own strategy:

- legacy: ``data: <json>`` chunks carrying ``choices[0].delta.content``,
  terminated by ``data: [DONE]``
- event-tagged: ``event: <name>`` / ``data: <json>`` pairs where
  ``response.output_text.delta`` carries text and ``response.completed``
  terminates

The caller picks the grammar; the decoder never guesses it from the content.
Whatever happens, exactly one write reaches the output: the flattened text
plus a newline, or a single ``Error: <message>`` line.
"""

import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncIterable, Dict, Iterable, List, Optional, TextIO

from .errors import StreamParseError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
EVENT_PREFIX = "event:"
DONE_MARKER = "[DONE]"

OUTPUT_TEXT_DELTA_EVENT = "response.output_text.delta"
COMPLETED_EVENT = "response.completed"


class StreamDialect(str, Enum):
    """Grammar of an event stream."""
    LEGACY = "legacy"
    EVENT_TAGGED = "event_tagged"


def _parse_payload(payload: str) -> Any:
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        raise StreamParseError(str(e)) from e


# =============================================================================
# Strategies
# =============================================================================

class StreamStrategy(ABC):
    """
    Parse state for one streaming call.

    ``feed`` receives one line at a time and returns True once the stream
    reached its terminal marker.
    """

    def __init__(self):
        self._chunks: List[str] = []

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    @property
    @abstractmethod
    def dialect(self) -> StreamDialect:
        ...

    @abstractmethod
    def feed(self, line: str) -> bool:
        """
        Consume one line.

        Raises:
            StreamParseError: If a meaningful payload is not valid JSON.
        """
        ...


class LegacyStreamStrategy(StreamStrategy):
    """Chat completions chunks."""

    @property
    def dialect(self) -> StreamDialect:
        return StreamDialect.LEGACY

    def feed(self, line: str) -> bool:
        if not line.startswith(DATA_PREFIX):
            return False

        payload = line[len(DATA_PREFIX):].strip()
        if payload == DONE_MARKER:
            return True

        chunk = _parse_payload(payload)
        content = self._delta_content(chunk)
        if content:
            self._chunks.append(content)
        return False

    @staticmethod
    def _delta_content(chunk: Any) -> Optional[str]:
        if not isinstance(chunk, dict):
            return None
        choices = chunk.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta")
        if not isinstance(delta, dict):
            return None
        content = delta.get("content")
        return content if isinstance(content, str) else None


class EventTaggedStreamStrategy(StreamStrategy):
    """Responses API events."""

    def __init__(self):
        super().__init__()
        self._event: Optional[str] = None

    @property
    def dialect(self) -> StreamDialect:
        return StreamDialect.EVENT_TAGGED

    def feed(self, line: str) -> bool:
        if line.startswith(EVENT_PREFIX):
            self._event = line[len(EVENT_PREFIX):].strip()
            return False

        if not line.startswith(DATA_PREFIX):
            return False

        event, self._event = self._event, None
        if event not in (OUTPUT_TEXT_DELTA_EVENT, COMPLETED_EVENT):
            return False

        data: Dict[str, Any] = _parse_payload(line[len(DATA_PREFIX):].strip())
        if event == COMPLETED_EVENT:
            return True

        delta = data.get("delta") if isinstance(data, dict) else None
        if isinstance(delta, str):
            self._chunks.append(delta)
        return False


_STRATEGIES = {
    StreamDialect.LEGACY: LegacyStreamStrategy,
    StreamDialect.EVENT_TAGGED: EventTaggedStreamStrategy,
}


def get_stream_strategy(dialect: StreamDialect) -> StreamStrategy:
    """Fresh parse state for ``dialect``."""
    return _STRATEGIES[StreamDialect(dialect)]()


# =============================================================================
# Decoder
# =============================================================================

class StreamDecoder:
    """
    Flattens an event stream into one text write.

    A malformed payload poisons the whole response: the accumulated text is
    discarded and ``Error: <message>`` is written instead.
    """

    def __init__(self, dialect: StreamDialect, log: Optional[logging.Logger] = None):
        self.dialect = StreamDialect(dialect)
        self._log = log or logger

    def decode(self, lines: Iterable[str], out: Optional[TextIO] = None) -> str:
        """
        Decode a stream from a synchronous line source.

        Args:
            lines: Stream lines, with or without line terminators.
            out: Destination of the single terminal write.

        Returns:
            The text that was written.
        """
        strategy = get_stream_strategy(self.dialect)
        result = None
        for line in lines:
            result = self._step(strategy, line)
            if result is not None:
                break
        return self._emit(strategy, result, out)

    async def decode_async(self, lines: AsyncIterable[str], out: Optional[TextIO] = None) -> str:
        """Same as ``decode`` for an asynchronous line source."""
        strategy = get_stream_strategy(self.dialect)
        result = None
        async for line in lines:
            result = self._step(strategy, line)
            if result is not None:
                break
        return self._emit(strategy, result, out)

    def decode_text(self, body: str, out: Optional[TextIO] = None) -> str:
        return self.decode(body.splitlines(), out)

    def _step(self, strategy: StreamStrategy, line: str) -> Optional[str]:
        try:
            if strategy.feed(line.rstrip("\r\n")):
                return strategy.text + "\n"
        except StreamParseError as e:
            self._log.warning("Aborting %s stream: %s", self.dialect.value, e)
            return f"Error: {e}\n"
        return None

    def _emit(self, strategy: StreamStrategy, result: Optional[str], out: Optional[TextIO]) -> str:
        if result is None:
            # end of stream without a terminal marker
            result = strategy.text + "\n"
        if out is not None:
            out.write(result)
            if hasattr(out, "flush"):
                out.flush()
        return result
