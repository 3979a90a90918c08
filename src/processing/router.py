"""
Per-destination routing rules.

A non-empty allow-list is authoritative for its destination and the deny
patterns are then ignored. Otherwise deny patterns are matched against the
item's URL path segments.
"""
import logging
from typing import Iterable, List, Set

from core.categories import matches_path_pattern, normalize_token
from core.entities import Destination, Item

logger = logging.getLogger(__name__)


def accepts(destination: Destination, item: Item) -> bool:
    if destination.allow_categories:
        if not item.category:
            return False
        allowed = {normalize_token(c) for c in destination.allow_categories}
        return normalize_token(item.category) in allowed

    return not any(
        matches_path_pattern(item.id, pattern)
        for pattern in destination.deny_url_patterns
    )


def route(item: Item, destinations: Iterable[Destination]) -> Set[str]:
    """Destination ids that should receive item."""
    return {d.destination_id for d in destinations if accepts(d, item)}


def select_destinations(item: Item, destinations: Iterable[Destination]) -> List[Destination]:
    """Same decision as route(), keeping the Destination records in order."""
    return [d for d in destinations if accepts(d, item)]


def should_summarize(item: Item, destinations: Iterable[Destination]) -> bool:
    """
    Global gate evaluated before paying for a model call.

    Destinations without filters always pass, so the gate only closes when
    every destination is filtered and every one of them rejects the item.
    """
    destinations = list(destinations)
    if any(not d.has_filters for d in destinations):
        return True

    if any(accepts(d, item) for d in destinations):
        return True

    logger.info(f"No destination accepts {item.id} (category={item.category}), skipping summary")
    return False
