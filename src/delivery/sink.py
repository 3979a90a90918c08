"""
DeliverySink - resolves a destination's channel to the channel implementation.
"""
import logging
from typing import Dict, Iterable, List

from core.entities import Destination, NewsMessage
from core.errors import DeliveryError
from delivery.base import DeliveryChannel
from delivery.discord_webhook import DiscordWebhookDelivery
from delivery.file_delivery import FileDelivery
from services.config import Config

logger = logging.getLogger(__name__)


class DeliverySink:
    def __init__(self, channels: Iterable[DeliveryChannel]):
        self.channels: Dict[str, DeliveryChannel] = {c.name: c for c in channels}

    async def deliver(self, destination: Destination, message: NewsMessage) -> None:
        channel = self.channels.get(destination.channel)
        if channel is None:
            raise DeliveryError(
                f"No delivery channel '{destination.channel}' for destination {destination.destination_id}"
            )
        await channel.deliver(destination=destination, message=message)


def create_sink(config: Config) -> DeliverySink:
    channels: List[DeliveryChannel] = [
        DiscordWebhookDelivery(
            timeout=config.DELIVERY_TIMEOUT,
            default_webhook_url=config.DISCORD_WEBHOOK_URL,
        ),
        FileDelivery(config.OUTPUT_DIR),
    ]

    if config.TELEGRAM_BOT_TOKEN:
        from delivery.telegram_delivery import TelegramDelivery

        channels.append(TelegramDelivery(bot_token=config.TELEGRAM_BOT_TOKEN))
    else:
        logger.info("TELEGRAM_BOT_TOKEN not set, telegram destinations will fail")

    return DeliverySink(channels)
