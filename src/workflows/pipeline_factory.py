"""
Pipeline Factory - wires the dispatcher and admin service from configuration.
"""
import logging
from dataclasses import dataclass

from core.entities import Destination
from delivery.sink import DeliverySink, create_sink
from ingestion.news_site import NewsSiteAdapter
from processing.summarizer import Summarizer
from services.admin import AdminService
from services.config import Config
from services.database import Database
from services.ledger import Ledger, create_ledger
from services.llm import ProviderRegistry
from services.stores import DestinationStore, ModelConfigStore
from workflows.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "default"


@dataclass
class NewsPipeline:
    config: Config
    database: Database
    ledger: Ledger
    destinations: DestinationStore
    model_configs: ModelConfigStore
    providers: ProviderRegistry
    sink: DeliverySink
    dispatcher: Dispatcher
    admin: AdminService


def create_pipeline(config: Config) -> NewsPipeline:
    database = Database(config.DATABASE_PATH)
    ledger = create_ledger(config, database)
    destinations = DestinationStore(database)
    model_configs = ModelConfigStore(database, defaults=config.MODEL.to_model_config())
    providers = ProviderRegistry(config)
    sink = create_sink(config)

    summarizer = Summarizer(
        providers=providers,
        model_config=model_configs.get,
        settings=config.SUMMARY,
        defaults=model_configs.defaults,
    )
    dispatcher = Dispatcher(
        source=NewsSiteAdapter(config.SOURCE),
        ledger=ledger,
        summarizer=summarizer,
        destinations=destinations,
        sink=sink,
    )
    admin = AdminService(destinations, model_configs, ledger, providers)

    logger.info(
        f"Pipeline created: ledger={ledger.name}, database={config.DATABASE_PATH}, "
        f"listings={len(config.SOURCE.listing_urls)}"
    )
    return NewsPipeline(
        config=config,
        database=database,
        ledger=ledger,
        destinations=destinations,
        model_configs=model_configs,
        providers=providers,
        sink=sink,
        dispatcher=dispatcher,
        admin=admin,
    )


async def seed_default_destination(pipeline: NewsPipeline) -> bool:
    """
    Register DISCORD_WEBHOOK_URL as the default destination when none exist.
    """
    webhook_url = pipeline.config.DISCORD_WEBHOOK_URL
    if not webhook_url:
        return False
    if await pipeline.destinations.count() > 0:
        return False

    await pipeline.destinations.save(
        Destination(
            destination_id="webhook",
            owner_scope=DEFAULT_SCOPE,
            channel="discord",
            address=webhook_url,
        )
    )
    logger.info("Seeded default Discord destination from DISCORD_WEBHOOK_URL")
    return True


async def check_active_provider(pipeline: NewsPipeline) -> bool:
    """
    Warn at startup when the active provider is unreachable. Cycles still
    run and fall back to truncated bodies until it comes back.
    """
    model_config = await pipeline.model_configs.get()
    if model_config.provider_id not in pipeline.providers:
        logger.warning(f"Active provider '{model_config.provider_id}' is not registered")
        return False

    provider = pipeline.providers.get(model_config.provider_id)
    if await provider.health_check():
        return True
    logger.warning(
        f"Provider '{model_config.provider_id}' is not reachable, summaries will use the truncated body"
    )
    return False
