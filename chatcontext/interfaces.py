"""
Abstract interfaces for the client's collaborators.
"""

from abc import ABC, abstractmethod
from typing import Dict, List

from .models import Turn


class HistoryStore(ABC):
    """Abstract base class for conversation history storage, keyed by thread."""

    @abstractmethod
    def set_thread(self, thread: str) -> None:
        """
        Select the thread that ``read`` and ``write`` operate on.

        Args:
            thread: Thread identifier
        """
        pass

    @abstractmethod
    async def read(self) -> List[Turn]:
        """
        Read the current thread.

        Returns:
            Ordered turns, or an empty list if the thread has no history yet
        """
        pass

    @abstractmethod
    async def write(self, turns: List[Turn]) -> None:
        """
        Replace the history of the current thread.

        Args:
            turns: Ordered turns to store
        """
        pass

    @abstractmethod
    async def read_thread(self, thread: str) -> List[Turn]:
        """
        Read a specific thread.

        Args:
            thread: Thread identifier

        Raises:
            ValueError: If the thread does not exist
        """
        pass


class Transport(ABC):
    """Abstract base class for the HTTP layer."""

    @abstractmethod
    async def get(self, url: str) -> bytes:
        """GET ``url`` and return the raw body."""
        pass

    @abstractmethod
    async def post(self, url: str, body: bytes, stream: bool) -> bytes:
        """
        POST a JSON body.

        Args:
            url: Endpoint URL
            body: Serialized JSON request
            stream: When True the transport decodes the event stream itself and
                returns the flattened text it produced

        Returns:
            Raw response body, or flattened text for streams
        """
        pass

    @abstractmethod
    async def post_with_headers(self, url: str, body: bytes, headers: Dict[str, str]) -> bytes:
        """
        POST ``body`` with the given headers instead of the default auth and
        content-type headers (multipart, third-party APIs). Configured custom
        headers are still sent; the given headers win on conflict.
        """
        pass
