"""
Module to contain base class for Delivery channels
"""
from abc import ABC, abstractmethod

from core.entities import Destination, NewsMessage

READ_MORE_LABEL = "Leia mais"


def render_text(message: NewsMessage, limit: int, bold: str = "**") -> str:
    """
    Title, body and link as one chat message of at most limit characters.
    The body is clipped first so the title and link always survive.
    """
    head = f"{bold}{message.title}{bold}\n"
    tail = f"\n\n{READ_MORE_LABEL}: {message.url}"
    room = limit - len(head) - len(tail)

    body = message.body.strip()
    if room <= 0:
        body = ""
    elif len(body) > room:
        body = body[: max(room - 3, 0)].rstrip() + "..."

    return f"{head}{body}{tail}"[:limit]


class DeliveryChannel(ABC):
    """
    Base interface for all delivery channels.
    """

    name: str

    @abstractmethod
    async def deliver(
        self,
        *,
        destination: Destination,
        message: NewsMessage,
    ) -> None:
        """
        Deliver one message to one destination.
        Must raise exceptions on failure (handled upstream).
        """
        raise NotImplementedError
