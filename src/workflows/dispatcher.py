# src/workflows/dispatcher.py
import logging
from typing import List, Protocol

from core.entities import CycleReport, Destination, Item, NewsMessage
from delivery.sink import DeliverySink
from ingestion.base import SourceAdapter
from processing.router import select_destinations, should_summarize
from processing.summarizer import Summarizer
from services.ledger import Ledger

logger = logging.getLogger(__name__)


class DestinationSource(Protocol):
    async def list(self) -> List[Destination]: ...

    async def count(self) -> int: ...


class Dispatcher:
    """
    Runs one poll cycle: fetch candidates, drop those already in the ledger,
    summarize, route, deliver, then record each item in the ledger.
    Items are handled one at a time.
    """

    def __init__(
        self,
        source: SourceAdapter,
        ledger: Ledger,
        summarizer: Summarizer,
        destinations: DestinationSource,
        sink: DeliverySink,
    ):
        self.source = source
        self.ledger = ledger
        self.summarizer = summarizer
        self.destinations = destinations
        self.sink = sink

    async def _has_destinations(self) -> bool:
        try:
            return await self.destinations.count() > 0
        except Exception as e:
            logger.error(f"Could not read destinations: {e}")
            return False

    async def run_cycle(self) -> CycleReport:
        report = CycleReport()

        if not await self._has_destinations():
            logger.info("No destinations configured, skipping news check")
            report.short_circuited = True
            return report

        logger.info("Checking for new articles")

        async def already_processed(item_id: str) -> bool:
            if await self.ledger.has(item_id):
                report.skipped_seen += 1
                return True
            return False

        async for item in self.source.fetch_candidates(exclude=already_processed):
            report.candidates += 1
            try:
                await self.process_item(item, report)
            except Exception as e:
                logger.exception(f"Unexpected error while processing {item.id}: {e}")

        logger.info(
            f"News check finished: {report.candidates} new, {report.skipped_seen} already seen, "
            f"{report.summarized} summarized, {report.gated} gated, "
            f"{report.delivered} delivered, {report.failed_deliveries} failed deliveries"
        )
        return report

    async def process_item(self, item: Item, report: CycleReport) -> None:
        destinations = await self.destinations.list()

        if not should_summarize(item, destinations):
            # Nobody would receive it; record it so it is not fetched again
            report.gated += 1
            await self.ledger.add(item.id)
            return

        summary = await self.summarizer.summarize(item)
        report.summarized += 1

        targets = select_destinations(item, destinations)
        message = NewsMessage(
            title=item.title,
            body=summary,
            url=item.url,
            image_url=item.image_url,
            category=item.category,
        )

        for destination in targets:
            try:
                await self.sink.deliver(destination, message)
                report.delivered += 1
                logger.info(f"Delivered '{item.title}' to {destination.owner_scope}/{destination.destination_id}")
            except Exception as e:
                report.failed_deliveries += 1
                logger.error(
                    f"Delivery failed: item={item.id}, destination={destination.owner_scope}/"
                    f"{destination.destination_id}, channel={destination.channel}, error={e}"
                )

        await self.ledger.add(item.id)

    async def pending(self) -> List[Item]:
        """New candidates not yet in the ledger, without processing them."""
        items: List[Item] = []
        async for item in self.source.fetch_candidates(exclude=self.ledger.has):
            items.append(item)
        return items

    async def process_url(self, url: str) -> bool:
        """Run a single article through the pipeline unless it was already processed."""
        if await self.ledger.has(url):
            logger.info(f"Already processed: {url}")
            return False

        try:
            item = await self.source.fetch_item(url)
        except Exception as e:
            logger.error(f"Could not fetch {url}: {e}")
            return False

        await self.process_item(item, CycleReport(candidates=1))
        return True
