"""
Ingestion from a news site's "latest" listing pages
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from core.categories import category_of
from core.entities import Item
from ingestion.base import ExcludeFn, HtmlFetcher, SourceAdapter
from processing.deduplicator import dedupe
from services.config import SourceConfig
from services.retry import Sleep, retry

logger = logging.getLogger(__name__)

BODY_TAGS = ["p", "h1", "h2", "h3", "h4", "h5", "h6"]
_WHITESPACE_RUN = re.compile(r"\s{2,}")
_READ_ALSO = re.compile(r"Leia também:.*?(?=\n|$)")


Markup = Union[str, BeautifulSoup]


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _soup(markup: Markup) -> BeautifulSoup:
    return markup if isinstance(markup, BeautifulSoup) else parse_html(markup)


@dataclass(frozen=True)
class ListingEntry:
    title: str
    url: str


def extract_body(markup: Markup, body_selector: str) -> str:
    """Paragraph and heading text of the article container, cleaned up."""
    container = _soup(markup).select_one(body_selector)
    if container is None:
        return ""

    text = "\n".join(el.get_text() for el in container.find_all(BODY_TAGS))
    text = _WHITESPACE_RUN.sub(" ", text)
    text = _READ_ALSO.sub("", text)
    return text.strip()


def extract_image(markup: Markup) -> Optional[str]:
    meta = _soup(markup).find("meta", attrs={"property": "og:image"})
    if meta and meta.get("content"):
        return meta["content"].strip()
    return None


def extract_title(markup: Markup, title_selector: str) -> str:
    soup = _soup(markup)
    heading = soup.select_one(title_selector)
    if heading is not None and heading.get_text(strip=True):
        return heading.get_text(strip=True)
    meta = soup.find("meta", attrs={"property": "og:title"})
    if meta and meta.get("content"):
        return meta["content"].strip()
    return soup.title.get_text(strip=True) if soup.title else ""


def extract_listing(html: str, base_url: str, item_selector: str, link_selector: str) -> List[ListingEntry]:
    soup = parse_html(html)
    entries: List[ListingEntry] = []

    for element in soup.select(item_selector):
        link = element.select_one(link_selector)
        if link is None:
            continue
        href = (link.get("href") or "").strip()
        if not href:
            continue
        entries.append(ListingEntry(title=link.get_text(strip=True), url=urljoin(base_url, href)))

    return entries


class NewsSiteAdapter(SourceAdapter):
    def __init__(
        self,
        config: SourceConfig,
        fetcher: Optional[HtmlFetcher] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.fetcher = fetcher or HtmlFetcher(timeout=config.fetch_timeout)
        self._sleep = sleep

    async def _fetch(self, url: str) -> str:
        return await retry(
            lambda: self.fetcher.fetch(url),
            max_attempts=self.config.max_attempts,
            initial_delay=self.config.retry_delay,
            sleep=self._sleep,
            label=f"fetch {url}",
        )

    async def list_entries(self) -> List[ListingEntry]:
        """Entries from every listing page, first occurrence of each URL kept."""
        entries: List[ListingEntry] = []

        for listing_url in self.config.listing_urls:
            try:
                html = await self._fetch(listing_url)
            except Exception as e:
                logger.error(f"Failed to fetch listing {listing_url}: {e}")
                continue

            entries.extend(
                extract_listing(html, listing_url, self.config.item_selector, self.config.link_selector)
            )

        entries = dedupe(entries, key=lambda entry: entry.url)
        logger.info(f"Found {len(entries)} entries across {len(self.config.listing_urls)} listing(s)")
        return entries

    async def _fetch_article(self, url: str) -> tuple[str, Optional[str]]:
        """Body and image for an article; an empty body when the page cannot be fetched."""
        try:
            html = await self._fetch(url)
        except Exception as e:
            logger.warning(f"Could not fetch article body for {url}: {e}")
            return "", None
        soup = parse_html(html)
        return extract_body(soup, self.config.body_selector), extract_image(soup)

    async def fetch_candidates(self, exclude: Optional[ExcludeFn] = None) -> AsyncIterator[Item]:
        for entry in await self.list_entries():
            if exclude is not None and await exclude(entry.url):
                continue

            body, image_url = await self._fetch_article(entry.url)
            yield Item(
                id=entry.url,
                title=entry.title,
                body=body,
                image_url=image_url,
                category=category_of(entry.url),
            )

    async def fetch_item(self, url: str) -> Item:
        soup = parse_html(await self._fetch(url))
        return Item(
            id=url,
            title=extract_title(soup, self.config.title_selector),
            body=extract_body(soup, self.config.body_selector),
            image_url=extract_image(soup),
            category=category_of(url),
        )
