from telegram import Bot

from core.entities import Destination, NewsMessage
from core.errors import DeliveryError
from delivery.base import DeliveryChannel, render_text

TELEGRAM_MESSAGE_LIMIT = 4096


class TelegramDelivery(DeliveryChannel):
    name = "telegram"

    def __init__(self, bot_token: str):
        self.bot = Bot(token=bot_token)

    async def deliver(
        self,
        *,
        destination: Destination,
        message: NewsMessage,
    ) -> None:
        if not destination.address:
            raise DeliveryError(f"Destination {destination.destination_id} has no chat id")

        await self.bot.send_message(
            chat_id=destination.address,
            text=render_text(message, TELEGRAM_MESSAGE_LIMIT, bold="*"),
            parse_mode="Markdown",
            disable_web_page_preview=message.image_url is None,
        )
