"""
History store implementations.
"""

import json
import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

import aiosqlite

from .interfaces import HistoryStore
from .models import Turn

logger = logging.getLogger(__name__)

DEFAULT_THREAD = "default"


def _serialize(turns: List[Turn]) -> List[Dict[str, Any]]:
    return [turn.to_dict() for turn in turns]


def _deserialize(items: List[Dict[str, Any]]) -> List[Turn]:
    return [Turn.from_dict(item) for item in items]


class InMemoryHistoryStore(HistoryStore):
    """In-memory history store."""

    def __init__(self, thread: str = DEFAULT_THREAD):
        """Initialize in-memory storage."""
        self._store: Dict[str, List[Dict[str, Any]]] = {}
        self.thread = thread

    def set_thread(self, thread: str) -> None:
        self.thread = thread

    async def read(self) -> List[Turn]:
        """Read the current thread. Returns an empty list if it has no history."""
        return _deserialize(self._store.get(self.thread, []))

    async def write(self, turns: List[Turn]) -> None:
        """
        Replace the history of the current thread.

        Turns are stored in serialized form so later mutations of the caller's
        turns do not leak into the store.
        """
        self._store[self.thread] = _serialize(turns)

    async def read_thread(self, thread: str) -> List[Turn]:
        """
        Read a specific thread.

        Raises:
            ValueError: If the thread does not exist
        """
        if thread not in self._store:
            raise ValueError(f"Thread '{thread}' does not exist.")
        return _deserialize(self._store[thread])

    async def delete_thread(self, thread: str) -> None:
        """
        Delete a full thread.

        Raises:
            ValueError: If the thread does not exist
        """
        if thread not in self._store:
            raise ValueError(f"Thread '{thread}' does not exist.")
        del self._store[thread]

    async def list_threads(self) -> List[str]:
        return sorted(self._store)


class SQLiteHistoryStore(HistoryStore):
    """SQLite-based persistent history store, one row per thread."""

    def __init__(self, db_path: str, thread: str = DEFAULT_THREAD, create_db: bool = True):
        """
        Initialize SQLite history store.

        Args:
            db_path: Path to SQLite database file
            thread: Initial thread
            create_db: If True, create the table on first use if it doesn't exist.
                      If False, assume the table already exists.
        """
        self.db_path = db_path
        self.thread = thread
        self._create_db = create_db

    def set_thread(self, thread: str) -> None:
        self.thread = thread

    async def _init_db(self):
        """Create the tb_history table on first use."""
        if not self._create_db:
            return
        async with aiosqlite.connect(self.db_path) as conn:
            await conn.execute("""
            CREATE TABLE IF NOT EXISTS tb_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                thread TEXT UNIQUE,
                history_json TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """)
            await conn.commit()
        self._create_db = False

    async def _load(self, thread: str) -> Optional[List[Turn]]:
        await self._init_db()

        async with aiosqlite.connect(self.db_path) as conn:
            cursor = await conn.execute(
                "SELECT history_json FROM tb_history WHERE thread = ?",
                (thread,)
            )
            row = await cursor.fetchone()

        if row is None:
            return None
        if not row[0]:
            return []
        try:
            return _deserialize(json.loads(row[0]))
        except json.JSONDecodeError as e:
            logger.error("Error parsing history JSON for thread %s: %s", thread, e)
            return []

    async def read(self) -> List[Turn]:
        """Read the current thread. Returns an empty list if it has no history."""
        return await self._load(self.thread) or []

    async def write(self, turns: List[Turn]) -> None:
        """Replace the history of the current thread."""
        await self._init_db()

        json_data = json.dumps(_serialize(turns), indent=2)
        now = datetime.now(timezone.utc).isoformat()

        async with aiosqlite.connect(self.db_path) as conn:
            cursor = await conn.execute("SELECT id FROM tb_history WHERE thread = ?", (self.thread,))
            existing = await cursor.fetchone()

            if existing:
                await conn.execute(
                    "UPDATE tb_history SET history_json = ?, updated_at = ? WHERE thread = ?",
                    (json_data, now, self.thread)
                )
            else:
                await conn.execute(
                    "INSERT INTO tb_history (thread, history_json, created_at, updated_at) VALUES (?, ?, ?, ?)",
                    (self.thread, json_data, now, now)
                )

            await conn.commit()

    async def read_thread(self, thread: str) -> List[Turn]:
        """
        Read a specific thread.

        Raises:
            ValueError: If the thread does not exist
        """
        turns = await self._load(thread)
        if turns is None:
            raise ValueError(f"Thread '{thread}' does not exist.")
        return turns

    async def delete_thread(self, thread: str) -> None:
        """
        Delete a full thread.

        Raises:
            ValueError: If the thread does not exist
        """
        await self._init_db()

        async with aiosqlite.connect(self.db_path) as conn:
            cursor = await conn.execute("SELECT id FROM tb_history WHERE thread = ?", (thread,))
            existing = await cursor.fetchone()

            if not existing:
                raise ValueError(f"Thread '{thread}' does not exist.")

            await conn.execute("DELETE FROM tb_history WHERE thread = ?", (thread,))
            await conn.commit()

    async def list_threads(self) -> List[str]:
        await self._init_db()

        async with aiosqlite.connect(self.db_path) as conn:
            cursor = await conn.execute("SELECT thread FROM tb_history ORDER BY thread")
            rows = await cursor.fetchall()
        return [row[0] for row in rows]
