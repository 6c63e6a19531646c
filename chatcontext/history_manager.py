"""
Human-readable views over stored threads.
"""

from typing import List, Optional

from .interfaces import HistoryStore
from .models import Turn, SYSTEM_ROLE, USER_ROLE, ASSISTANT_ROLE, FUNCTION_ROLE

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_EMOJI = {
    SYSTEM_ROLE: "💻",
    USER_ROLE: "👤",
    FUNCTION_ROLE: "🔌",
    ASSISTANT_ROLE: "🤖",
}

_PREFIX = {
    SYSTEM_ROLE: "\n",
    USER_ROLE: "---\n",
    FUNCTION_ROLE: "---\n",
    ASSISTANT_ROLE: "\n",
}


def format_turn(turn: Turn, show_timestamp: bool = True) -> str:
    """Markdown rendering of one turn. Only user turns show a timestamp."""
    timestamp = ""
    if turn.role == USER_ROLE and show_timestamp and turn.timestamp is not None:
        timestamp = f" [{turn.timestamp.strftime(TIMESTAMP_FORMAT)}]"

    emoji = _EMOJI.get(turn.role, "")
    prefix = _PREFIX.get(turn.role, "")
    return f"{prefix}**{turn.role.upper()}** {emoji}{timestamp}:\n{turn.text}\n"


class HistoryManager:
    """Reads threads from a history store and renders them."""

    def __init__(self, store: HistoryStore):
        self.store = store

    async def parse_user_history(self, thread: str) -> List[str]:
        """Text of every user turn in ``thread``, in order."""
        turns = await self.store.read_thread(thread)
        return [turn.text for turn in turns if turn.role == USER_ROLE]

    async def print(self, thread: str) -> str:
        """
        Render ``thread`` as markdown.

        Consecutive user turns (for example context split into chunks) are
        merged into a single block stamped with the time of the turn that
        follows them.
        """
        turns = await self.store.read_thread(thread)

        result = []
        pending: Optional[str] = None
        last_role: Optional[str] = None

        for turn in turns:
            if turn.role == USER_ROLE and last_role == USER_ROLE:
                pending = (pending or "") + turn.text
            else:
                if last_role == USER_ROLE and pending:
                    result.append(format_turn(Turn(role=USER_ROLE, content=pending, timestamp=turn.timestamp)))
                    pending = None

                if turn.role == USER_ROLE:
                    pending = turn.text
                else:
                    result.append(format_turn(turn))

            last_role = turn.role

        if last_role == USER_ROLE and pending:
            result.append(format_turn(Turn(role=USER_ROLE, content=pending), show_timestamp=False))

        return "".join(result)
