"""
Token accounting interfaces.

This module defines the abstract tokenizer interface and the result types
shared by the tokenizer, the truncation pass and the conversation window.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Dict, Any, Callable

from .models import Turn


# =============================================================================
# Tokenizer Interfaces
# =============================================================================

@dataclass
class TokenCountResult:
    """
    Result of a token counting operation.

    Attributes:
        count: Number of tokens counted.
        approximate: True if count is an estimate.
    """
    count: int
    approximate: bool = False


class Tokenizer(ABC):
    """
    Abstract base class for tokenizers.

    Only counting is required; the window never needs token IDs.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Tokenizer identifier."""
        ...

    @abstractmethod
    def count_tokens(self, text: str) -> TokenCountResult:
        """
        Count the number of tokens in the given text.

        Args:
            text: The text to count tokens for.

        Returns:
            TokenCountResult with count and approximate flag.
        """
        ...


# =============================================================================
# Truncation Results
# =============================================================================

@dataclass
class TruncationResult:
    """
    Result of one truncation pass over a conversation.

    Attributes:
        turns: The turns kept, anchor first.
        tokens_before: Total cost before truncation.
        tokens_after: Total cost of the kept turns.
        budget: Effective budget the pass compared against.
        dropped: Number of turns evicted.
        metadata: Pass-specific details (overflow, cut index).
    """
    turns: List[Turn]
    tokens_before: int
    tokens_after: int
    budget: int
    dropped: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def truncated(self) -> bool:
        return self.dropped > 0


# Type alias for metrics callbacks
MetricsCallback = Callable[[Dict[str, Any]], None]
