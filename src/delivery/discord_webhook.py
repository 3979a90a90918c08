"""
Discord webhook delivery channel
"""
from typing import Any, Dict, Optional

import httpx

from core.entities import Destination, NewsMessage
from core.errors import DeliveryError, rate_limit_from_response
from delivery.base import DeliveryChannel, render_text

DISCORD_MESSAGE_LIMIT = 2000


class DiscordWebhookDelivery(DeliveryChannel):
    name = "discord"

    def __init__(self, timeout: float = 15.0, default_webhook_url: Optional[str] = None):
        self.timeout = timeout
        self.default_webhook_url = default_webhook_url

    def build_payload(self, message: NewsMessage) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"content": render_text(message, DISCORD_MESSAGE_LIMIT)}
        if message.image_url:
            payload["embeds"] = [{"image": {"url": message.image_url}}]
        return payload

    async def deliver(
        self,
        *,
        destination: Destination,
        message: NewsMessage,
    ) -> None:
        webhook_url = destination.address or self.default_webhook_url
        if not webhook_url:
            raise DeliveryError(f"Destination {destination.destination_id} has no webhook URL")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(webhook_url, json=self.build_payload(message))

        rate_limited = rate_limit_from_response(resp)
        if rate_limited is not None:
            raise rate_limited
        if resp.status_code >= 400:
            raise DeliveryError(
                f"Discord webhook for {destination.destination_id} answered {resp.status_code}: {resp.text[:200]}"
            )
