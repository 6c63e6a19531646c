"""
Approximate token counting for conversation turns.

Provides:
- CharWordTokenizer: (characters + words) / 2 heuristic (no dependencies)
- count_turn_tokens(): per-turn cost, text content only
"""

import logging
from typing import List, Tuple

from .models import Turn
from .tokenizer_interfaces import Tokenizer, TokenCountResult

logger = logging.getLogger(__name__)


class CharWordTokenizer(Tokenizer):
    """
    Approximate token counter.

    Splits on whitespace and estimates ``(chars + words) // 2`` where chars is
    the number of code points in the words (whitespace excluded). This is a
    rough estimate; it does not match any model tokenizer exactly.

    Always returns approximate=True in TokenCountResult.
    """

    @property
    def name(self) -> str:
        return "char_word_average"

    def count_tokens(self, text: str) -> TokenCountResult:
        if not text:
            return TokenCountResult(count=0, approximate=True)

        words = text.split()
        char_count = sum(len(word) for word in words)

        return TokenCountResult(count=(char_count + len(words)) // 2, approximate=True)


def count_turn_tokens(turn: Turn, tokenizer: Tokenizer) -> int:
    """Cost of a single turn. Media content is not counted."""
    if not isinstance(turn.content, str):
        return 0
    return tokenizer.count_tokens(turn.content).count


def count_tokens(turns: List[Turn], tokenizer: Tokenizer) -> Tuple[int, List[int]]:
    """
    Cost of a conversation.

    Returns:
        (total, rolling) where rolling holds the per-turn costs in order.
    """
    rolling = [count_turn_tokens(turn, tokenizer) for turn in turns]
    return sum(rolling), rolling
