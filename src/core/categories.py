"""
URL helpers used for category derivation and deny-pattern matching.
"""
from typing import List, Optional
from urllib.parse import urlparse


def path_segments(url: str) -> List[str]:
    path = urlparse(url).path if "://" in url else url.split("?", 1)[0]
    return [segment for segment in path.split("/") if segment]


def category_of(url: str) -> Optional[str]:
    """
    Category of an article: the first path segment of its URL, lower-cased.
    """
    segments = path_segments(url)
    if not segments:
        return None
    return segments[0].lower()


def normalize_token(value: str) -> str:
    """Normalise a category or deny pattern for storage and comparison."""
    return value.strip().strip("/").lower()


def matches_path_pattern(url: str, pattern: str) -> bool:
    """
    True when pattern covers one or more whole path segments of url.
    "feminino" matches /futebol/feminino/x but not /femininos/x.
    """
    token = normalize_token(pattern)
    if not token:
        return False
    path = "/" + "/".join(segment.lower() for segment in path_segments(url)) + "/"
    return f"/{token}/" in path
