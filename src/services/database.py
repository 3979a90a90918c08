import aiosqlite
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator
import logging

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, path: str):
        self.path = path
        self._initialized = False

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = await aiosqlite.connect(self.path)
        await conn.execute("PRAGMA journal_mode=WAL;")
        conn.row_factory = aiosqlite.Row
        try:
            yield conn
        finally:
            await conn.close()

    async def execute(self, query: str, params: tuple = ()) -> int:
        await self.init_tables()
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.rowcount

    async def fetchone(self, query: str, params: tuple = ()):
        await self.init_tables()
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchone()

    async def fetchall(self, query: str, params: tuple = ()):
        await self.init_tables()
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchall()

    async def init_tables(self) -> None:
        """Initialize tables for the ledger, destinations and model config."""
        if self._initialized:
            return

        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        async with self.connect() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS processed_items (
                    id TEXT PRIMARY KEY,
                    processed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS destinations (
                    owner_scope TEXT NOT NULL,
                    destination_id TEXT NOT NULL,
                    channel TEXT NOT NULL DEFAULT 'discord',
                    address TEXT NOT NULL DEFAULT '',
                    allow_categories TEXT NOT NULL DEFAULT '[]',
                    deny_patterns TEXT NOT NULL DEFAULT '[]',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (owner_scope, destination_id)
                )
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS model_config (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    provider_id TEXT NOT NULL,
                    model TEXT NOT NULL,
                    temperature REAL NOT NULL,
                    max_output_length INTEGER NOT NULL,
                    top_p REAL NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await conn.commit()

        self._initialized = True
        logger.info(f"Database tables initialized at {self.path}")
