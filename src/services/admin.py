"""
Administrative operations over destinations, the model config and the ledger.
These back the admin CLI; they are plain CRUD over the stores.
"""
import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from core.categories import normalize_token
from core.entities import Destination, ModelConfig
from services.ledger import Ledger
from services.llm import ProviderRegistry
from services.stores import DestinationStore, ModelConfigStore

logger = logging.getLogger(__name__)

CHANNELS = ("discord", "telegram", "file")


class AdminError(ValueError):
    """Invalid administrative request."""


class AdminService:
    def __init__(
        self,
        destinations: DestinationStore,
        model_configs: ModelConfigStore,
        ledger: Ledger,
        providers: ProviderRegistry,
    ):
        self.destinations = destinations
        self.model_configs = model_configs
        self.ledger = ledger
        self.providers = providers

    async def _require(self, owner_scope: str, destination_id: str) -> Destination:
        destination = await self.destinations.get(owner_scope, destination_id)
        if destination is None:
            raise AdminError(f"Unknown destination {owner_scope}/{destination_id}")
        return destination

    @staticmethod
    def _tokens(values: Iterable[str]) -> frozenset:
        tokens = {normalize_token(v) for v in values}
        tokens.discard("")
        return frozenset(tokens)

    # ==================== Destinations ====================

    async def add_destination(
        self,
        owner_scope: str,
        destination_id: str,
        channel: str = "discord",
        address: str = "",
    ) -> Destination:
        if channel not in CHANNELS:
            raise AdminError(f"Unknown channel '{channel}', expected one of {', '.join(CHANNELS)}")

        existing = await self.destinations.get(owner_scope, destination_id)
        if existing is not None:
            destination = replace(existing, channel=channel, address=address)
        else:
            destination = Destination(
                destination_id=destination_id,
                owner_scope=owner_scope,
                channel=channel,
                address=address,
            )
        await self.destinations.save(destination)
        logger.info(f"Destination saved: {owner_scope}/{destination_id} ({channel})")
        return destination

    async def remove_destination(self, owner_scope: str, destination_id: str) -> bool:
        removed = await self.destinations.remove(owner_scope, destination_id)
        if removed:
            logger.info(f"Destination removed: {owner_scope}/{destination_id}")
        return removed

    async def list_destinations(self, owner_scope: Optional[str] = None) -> List[Destination]:
        return await self.destinations.list(owner_scope)

    async def set_allow_categories(self, owner_scope: str, destination_id: str, categories: Iterable[str]) -> Destination:
        destination = await self._require(owner_scope, destination_id)
        updated = destination.with_filters(allow_categories=self._tokens(categories))
        await self.destinations.save(updated)
        return updated

    async def clear_allow_categories(self, owner_scope: str, destination_id: str) -> Destination:
        destination = await self._require(owner_scope, destination_id)
        updated = destination.with_filters(allow_categories=frozenset())
        await self.destinations.save(updated)
        return updated

    async def add_deny_pattern(self, owner_scope: str, destination_id: str, pattern: str) -> Destination:
        token = normalize_token(pattern)
        if not token:
            raise AdminError("Deny pattern must not be empty")
        destination = await self._require(owner_scope, destination_id)
        updated = destination.with_filters(deny_url_patterns=destination.deny_url_patterns | {token})
        await self.destinations.save(updated)
        return updated

    async def remove_deny_pattern(self, owner_scope: str, destination_id: str, pattern: str) -> Destination:
        destination = await self._require(owner_scope, destination_id)
        updated = destination.with_filters(
            deny_url_patterns=destination.deny_url_patterns - {normalize_token(pattern)}
        )
        await self.destinations.save(updated)
        return updated

    # ==================== Model ====================

    async def get_model(self) -> ModelConfig:
        return await self.model_configs.get()

    async def set_model(
        self,
        provider_id: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_length: Optional[int] = None,
        top_p: Optional[float] = None,
    ) -> ModelConfig:
        current = await self.model_configs.get()
        updated = ModelConfig(
            provider_id=(provider_id or current.provider_id).lower(),
            model=model or current.model,
            temperature=current.temperature if temperature is None else float(temperature),
            max_output_length=current.max_output_length if max_output_length is None else int(max_output_length),
            top_p=current.top_p if top_p is None else float(top_p),
        )

        if updated.provider_id not in self.providers:
            raise AdminError(f"Unknown provider '{updated.provider_id}'")
        if not 0.0 <= updated.temperature <= 2.0:
            raise AdminError("temperature must be between 0 and 2")
        if not 0.0 < updated.top_p <= 1.0:
            raise AdminError("top_p must be in (0, 1]")
        if updated.max_output_length <= 0:
            raise AdminError("max_output_length must be positive")

        await self.model_configs.set(updated)
        return updated

    # ==================== Ledger ====================

    async def processed_count(self) -> int:
        return await self.ledger.count()

    async def clear_ledger(self) -> None:
        await self.ledger.clear()
