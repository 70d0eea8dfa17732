import aiosqlite
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Optional
import logging

from core.errors import StoreError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """
    Persistent keyed store for cache snapshots and saved sets.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self):
        self._data: Dict[str, bytes] = {}

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)


class SQLiteKeyValueStore(KeyValueStore):
    def __init__(self, path: str):
        self.path = path
        self._initialized = False

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = await aiosqlite.connect(self.path)
        await conn.execute("PRAGMA journal_mode=WAL;")
        try:
            yield conn
        finally:
            await conn.close()

    async def init_tables(self) -> None:
        """Initialize the key/value table."""
        if self._initialized:
            return
        try:
            async with self.connect() as conn:
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value BLOB NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                await conn.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to initialize store at {self.path}: {e}") from e
        self._initialized = True
        logger.info("Key/value store initialized")

    async def get(self, key: str) -> Optional[bytes]:
        await self.init_tables()
        try:
            async with self.connect() as conn:
                cursor = await conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to read '{key}': {e}") from e
        return bytes(row[0]) if row else None

    async def set(self, key: str, value: bytes) -> None:
        await self.init_tables()
        try:
            async with self.connect() as conn:
                await conn.execute(
                    """
                    INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    """,
                    (key, value, datetime.now(timezone.utc).isoformat())
                )
                await conn.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to write '{key}': {e}") from e
