"""
Base classes for Ingestion
"""
from abc import ABC, abstractmethod
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

import httpx

from core.entities import Item
from core.errors import rate_limit_from_response

# Async predicate on an item id; True means "already handled, do not fetch"
ExcludeFn = Callable[[str], Awaitable[bool]]

DEFAULT_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept-Language": "pt-BR,pt;q=0.9,en;q=0.8",
}


class HtmlFetcher:
    """
    Fetches raw markup by URL.
    """

    def __init__(self, timeout: float = 15.0, headers: Optional[Dict[str, str]] = None):
        self.timeout = timeout
        self.headers = headers or DEFAULT_HEADERS

    async def fetch(self, url: str) -> str:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            follow_redirects=True,
        ) as client:
            resp = await client.get(url)

        rate_limited = rate_limit_from_response(resp)
        if rate_limited is not None:
            raise rate_limited
        resp.raise_for_status()
        return resp.text


class SourceAdapter(ABC):
    """
    Base interface for news sources.
    """

    @abstractmethod
    def fetch_candidates(self, exclude: Optional[ExcludeFn] = None) -> AsyncIterator[Item]:
        """
        Lazily yield the items currently listed by the source, each id once.
        Ids for which exclude() returns True are skipped before their body is fetched.
        Must NEVER raise uncaught exceptions.
        """
        raise NotImplementedError

    @abstractmethod
    async def fetch_item(self, url: str) -> Item:
        """
        Build a single item straight from its article page.
        """
        raise NotImplementedError
