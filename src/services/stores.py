"""
Admin-mutable stores: destinations and the active model configuration.
"""
import json
import logging
from typing import List, Optional

from core.entities import Destination, ModelConfig
from services.database import Database

logger = logging.getLogger(__name__)


def _dump_set(values) -> str:
    return json.dumps(sorted(values), ensure_ascii=False)


def _load_set(raw: Optional[str]) -> frozenset:
    if not raw:
        return frozenset()
    return frozenset(json.loads(raw))


class DestinationStore:
    """Destination records keyed by (owner_scope, destination_id)."""

    def __init__(self, database: Database):
        self.db = database

    @staticmethod
    def _row_to_destination(row) -> Destination:
        return Destination(
            destination_id=row["destination_id"],
            owner_scope=row["owner_scope"],
            channel=row["channel"],
            address=row["address"],
            allow_categories=_load_set(row["allow_categories"]),
            deny_url_patterns=_load_set(row["deny_patterns"]),
        )

    async def save(self, destination: Destination) -> None:
        await self.db.execute(
            """
            INSERT INTO destinations
            (owner_scope, destination_id, channel, address, allow_categories, deny_patterns)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(owner_scope, destination_id) DO UPDATE SET
                channel = excluded.channel,
                address = excluded.address,
                allow_categories = excluded.allow_categories,
                deny_patterns = excluded.deny_patterns
            """,
            (
                destination.owner_scope,
                destination.destination_id,
                destination.channel,
                destination.address,
                _dump_set(destination.allow_categories),
                _dump_set(destination.deny_url_patterns),
            ),
        )

    async def get(self, owner_scope: str, destination_id: str) -> Optional[Destination]:
        row = await self.db.fetchone(
            "SELECT * FROM destinations WHERE owner_scope = ? AND destination_id = ?",
            (owner_scope, destination_id),
        )
        return self._row_to_destination(row) if row else None

    async def remove(self, owner_scope: str, destination_id: str) -> bool:
        count = await self.db.execute(
            "DELETE FROM destinations WHERE owner_scope = ? AND destination_id = ?",
            (owner_scope, destination_id),
        )
        return count > 0

    async def list(self, owner_scope: Optional[str] = None) -> List[Destination]:
        if owner_scope:
            rows = await self.db.fetchall(
                "SELECT * FROM destinations WHERE owner_scope = ? ORDER BY created_at, destination_id",
                (owner_scope,),
            )
        else:
            rows = await self.db.fetchall(
                "SELECT * FROM destinations ORDER BY owner_scope, created_at, destination_id"
            )
        return [self._row_to_destination(row) for row in rows]

    async def count(self) -> int:
        row = await self.db.fetchone("SELECT COUNT(*) FROM destinations")
        return int(row[0])


class ModelConfigStore:
    """Single global model configuration record, falling back to defaults."""

    def __init__(self, database: Database, defaults: ModelConfig = ModelConfig()):
        self.db = database
        self.defaults = defaults

    async def get(self) -> ModelConfig:
        row = await self.db.fetchone("SELECT * FROM model_config WHERE id = 1")
        if row is None:
            return self.defaults
        return ModelConfig(
            provider_id=row["provider_id"],
            model=row["model"],
            temperature=float(row["temperature"]),
            max_output_length=int(row["max_output_length"]),
            top_p=float(row["top_p"]),
        )

    async def set(self, model_config: ModelConfig) -> None:
        await self.db.execute(
            """
            INSERT OR REPLACE INTO model_config
            (id, provider_id, model, temperature, max_output_length, top_p, updated_at)
            VALUES (1, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            """,
            (
                model_config.provider_id,
                model_config.model,
                model_config.temperature,
                model_config.max_output_length,
                model_config.top_p,
            ),
        )
        logger.info(f"Active model set to {model_config.provider_id}/{model_config.model}")
