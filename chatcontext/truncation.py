"""
Anchored truncation for conversation windows.

The first turn (the persona anchor) is never evicted. When the conversation
costs more than the effective budget, the oldest non-anchor turns are dropped
as one contiguous block sized to cover the overflow.
"""

import logging
from typing import List, Optional

from .models import Turn
from .tokenizer import count_tokens
from .tokenizer_interfaces import Tokenizer, TruncationResult

logger = logging.getLogger(__name__)

# Share of the context window kept free for the reply
MAX_TOKEN_BUFFER_PERCENTAGE = 20


def effective_context_window(window: int, buffer_percentage: int = MAX_TOKEN_BUFFER_PERCENTAGE) -> int:
    """Token budget left after reserving ``buffer_percentage`` of the window."""
    return (window * (100 - buffer_percentage)) // 100


def truncate_turns(
    turns: List[Turn],
    context_window: int,
    tokenizer: Tokenizer,
    log: Optional[logging.Logger] = None,
) -> TruncationResult:
    """
    Evict the oldest non-anchor turns so the conversation covers its overflow.

    Costs are recomputed on every call. The scan starts at index 1 and stops
    at the first index where the running cost exceeds the overflow; turns
    ``1..cut`` are removed. When no index exceeds the overflow the cut stays
    at 0 and only turn 1 is removed. The resulting total is not re-checked.

    Args:
        turns: Conversation, anchor first.
        context_window: Raw context window size of the model.
        tokenizer: Tokenizer used to estimate costs.
        log: Logger for the pass, defaults to this module's logger.

    Returns:
        TruncationResult with the kept turns.
    """
    log = log or logger
    budget = effective_context_window(context_window)
    tokens_before, rolling = count_tokens(turns, tokenizer)

    if tokens_before <= budget:
        return TruncationResult(
            turns=list(turns),
            tokens_before=tokens_before,
            tokens_after=tokens_before,
            budget=budget,
        )

    overflow = tokens_before - budget
    cut = 0
    running = 0
    for index in range(1, len(rolling)):
        running += rolling[index]
        if running > overflow:
            cut = index
            break

    if cut == 0:
        # nothing covers the overflow: only turn 1 goes
        kept = turns[:1] + turns[2:]
        log.debug(
            "Overflow of %d exceeds all non-anchor turns; evicting only the first", overflow
        )
    else:
        kept = turns[:1] + turns[cut + 1:]
    tokens_after, _ = count_tokens(kept, tokenizer)

    return TruncationResult(
        turns=kept,
        tokens_before=tokens_before,
        tokens_after=tokens_after,
        budget=budget,
        dropped=len(turns) - len(kept),
        metadata={'overflow': overflow, 'cut_index': cut},
    )
