import logging
from typing import Callable, Hashable, Iterable, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def dedupe(items: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """
    Drop repeated keys within one poll; the first occurrence wins.
    """
    unique: List[T] = []
    seen = set()

    for item in items:
        k = key(item)
        if k in seen:
            logger.debug(f"Skipping batch duplicate: {k}")
            continue
        seen.add(k)
        unique.append(item)

    return unique
