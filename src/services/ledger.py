"""
Ledger - persistent set of item ids that have already been through the pipeline.

Backends only implement the raw storage operations. The base class applies
the failure policy: reads fail open (treated as "not present") and writes
are logged without propagating, so a broken store can cause a duplicate
delivery but never aborts a cycle.
"""
import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Set

from core.errors import ConfigError
from services.config import Config
from services.database import Database

logger = logging.getLogger(__name__)


class Ledger(ABC):
    name: str = "ledger"

    async def has(self, item_id: str) -> bool:
        try:
            return await self._has(item_id)
        except Exception as e:
            logger.error(f"Ledger ({self.name}) lookup failed for {item_id}, treating as new: {e}")
            return False

    async def add(self, item_id: str) -> None:
        try:
            await self._add(item_id)
        except Exception as e:
            logger.error(f"Ledger ({self.name}) write failed for {item_id}: {e}")

    async def count(self) -> int:
        return await self._count()

    async def clear(self) -> None:
        await self._clear()
        logger.info(f"Ledger ({self.name}) cleared")

    @abstractmethod
    async def _has(self, item_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def _add(self, item_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def _count(self) -> int:
        raise NotImplementedError

    @abstractmethod
    async def _clear(self) -> None:
        raise NotImplementedError


class MemoryLedger(Ledger):
    name = "memory"

    def __init__(self, initial: Set[str] = frozenset()):
        self._ids: Set[str] = set(initial)

    async def _has(self, item_id: str) -> bool:
        return item_id in self._ids

    async def _add(self, item_id: str) -> None:
        self._ids.add(item_id)

    async def _count(self) -> int:
        return len(self._ids)

    async def _clear(self) -> None:
        self._ids.clear()


class JsonFileLedger(Ledger):
    """
    Keeps the ids in memory and rewrites a JSON array file on every add.
    """
    name = "file"

    def __init__(self, path: str):
        self.path = path
        self._ids: Set[str] = self._load()
        self._write_lock = asyncio.Lock()

    def _load(self) -> Set[str]:
        if not os.path.exists(self.path):
            return set()

        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = fh.read().strip()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Could not read {self.path}, starting with an empty ledger: {e}")
            return set()
        if not data:
            return set()

        try:
            ids = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Could not parse {self.path}, starting with an empty ledger: {e}")
            return set()

        if not isinstance(ids, list):
            logger.error(f"{self.path} does not contain a JSON array, starting with an empty ledger")
            return set()
        return {str(i) for i in ids}

    def _persist(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(sorted(self._ids), fh, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    async def _has(self, item_id: str) -> bool:
        return item_id in self._ids

    async def _add(self, item_id: str) -> None:
        if item_id in self._ids:
            return
        self._ids.add(item_id)
        async with self._write_lock:
            self._persist()

    async def _count(self) -> int:
        return len(self._ids)

    async def _clear(self) -> None:
        self._ids.clear()
        async with self._write_lock:
            self._persist()


class SqliteLedger(Ledger):
    name = "sqlite"

    def __init__(self, database: Database):
        self.db = database

    async def _has(self, item_id: str) -> bool:
        row = await self.db.fetchone("SELECT 1 FROM processed_items WHERE id = ?", (item_id,))
        return row is not None

    async def _add(self, item_id: str) -> None:
        await self.db.execute("INSERT OR IGNORE INTO processed_items (id) VALUES (?)", (item_id,))

    async def _count(self) -> int:
        row = await self.db.fetchone("SELECT COUNT(*) FROM processed_items")
        return int(row[0])

    async def _clear(self) -> None:
        await self.db.execute("DELETE FROM processed_items")


def create_ledger(config: Config, database: Database) -> Ledger:
    backend = config.LEDGER.backend.lower()

    if backend == "memory":
        return MemoryLedger()
    elif backend == "file":
        return JsonFileLedger(config.LEDGER.file_path)
    elif backend == "sqlite":
        return SqliteLedger(database)
    else:
        raise ConfigError(f"Unknown ledger backend: {backend}")
