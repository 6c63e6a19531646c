"""
Conversation window: the ordered, token-budgeted list of turns for one session.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .models import (
    Content,
    Turn,
    SYSTEM_ROLE,
    USER_ROLE,
    ASSISTANT_ROLE,
    FUNCTION_ROLE,
)
from .tokenizer import CharWordTokenizer, count_tokens
from .tokenizer_interfaces import Tokenizer, TruncationResult, MetricsCallback
from .truncation import truncate_turns

logger = logging.getLogger(__name__)

# Words per turn when splitting provided context
CONTEXT_CHUNK_WORDS = 100

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationWindow:
    """
    Ordered turns of one conversation, anchored by a persona system turn.

    Turn 0 is the anchor: it is created on initialization when nothing was
    persisted, its content is always reset to the configured persona, and
    truncation never evicts it.

    Not safe for concurrent mutation; use one window per conversation.
    """

    def __init__(
        self,
        context_window: int,
        tokenizer: Optional[Tokenizer] = None,
        clock: Optional[Clock] = None,
        metrics_callback: Optional[MetricsCallback] = None,
        log: Optional[logging.Logger] = None,
    ):
        """
        Initialize an empty window.

        Args:
            context_window: Raw context window size of the model.
            tokenizer: Cost estimator. Defaults to CharWordTokenizer.
            clock: Timestamp source for new turns.
            metrics_callback: Called with a metrics dict after each truncation pass.
            log: Logger for window events, defaults to this module's logger.
        """
        self.context_window = context_window
        self._tokenizer = tokenizer or CharWordTokenizer()
        self._clock = clock or _utcnow
        self._metrics_callback = metrics_callback
        self._log = log or logger
        self.turns: List[Turn] = []

    def __len__(self) -> int:
        return len(self.turns)

    @property
    def initialized(self) -> bool:
        return bool(self.turns)

    @property
    def anchor(self) -> Optional[Turn]:
        return self.turns[0] if self.turns else None

    def initialize(self, persisted: Optional[List[Turn]], anchor_text: str) -> None:
        """
        Materialize the window.

        Does nothing if the window already holds turns. Otherwise loads
        ``persisted`` (pass None or [] when persistence is off), creating a
        single anchor turn if nothing was loaded. The anchor content is always
        overwritten with ``anchor_text``.
        """
        if self.turns:
            return

        if persisted:
            self.turns = list(persisted)
        else:
            self.turns = [Turn(role=SYSTEM_ROLE, timestamp=self._clock())]

        self.turns[0].content = anchor_text

    def append_user(self, content: Content) -> TruncationResult:
        return self._append(Turn(role=USER_ROLE, content=content, timestamp=self._clock()))

    def append_assistant(self, content: str) -> TruncationResult:
        return self._append(Turn(role=ASSISTANT_ROLE, content=content, timestamp=self._clock()))

    def append_function(self, name: str, content: str) -> TruncationResult:
        return self._append(
            Turn(role=FUNCTION_ROLE, content=content, name=name, timestamp=self._clock())
        )

    def append_untruncated(self, turn: Turn) -> None:
        """Append without a truncation pass."""
        self.turns.append(turn)

    def provide_context(self, text: str) -> int:
        """
        Append ``text`` as user turns of at most 100 words each.

        No truncation pass runs; the next append trims the window.

        Returns:
            Number of turns added.
        """
        words = text.split()
        added = 0
        for start in range(0, len(words), CONTEXT_CHUNK_WORDS):
            chunk = " ".join(words[start:start + CONTEXT_CHUNK_WORDS])
            self.turns.append(Turn(role=USER_ROLE, content=chunk, timestamp=self._clock()))
            added += 1
        return added

    def now(self) -> datetime:
        return self._clock()

    def total_tokens(self) -> int:
        total, _ = count_tokens(self.turns, self._tokenizer)
        return total

    def truncate(self) -> TruncationResult:
        """Run one truncation pass over the window."""
        result = truncate_turns(self.turns, self.context_window, self._tokenizer, self._log)
        self.turns = result.turns

        if result.truncated:
            self._log.info(
                "Truncated conversation: dropped %d turns (%d -> %d tokens, budget %d)",
                result.dropped, result.tokens_before, result.tokens_after, result.budget,
            )
        if self._metrics_callback:
            self._metrics_callback({
                'tokens_before': result.tokens_before,
                'tokens_after': result.tokens_after,
                'budget': result.budget,
                'dropped': result.dropped,
                'turn_count': len(result.turns),
                'approximate': True,
                'metadata': result.metadata,
            })
        return result

    def _append(self, turn: Turn) -> TruncationResult:
        self.turns.append(turn)
        return self.truncate()
