from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class Item:
    """
    One discovered news article. The canonical URL is the natural key.
    """
    id: str
    title: str
    body: str = ""
    image_url: Optional[str] = None
    category: Optional[str] = None

    @property
    def url(self) -> str:
        return self.id


@dataclass(frozen=True)
class Destination:
    """
    A delivery target together with its filter configuration.
    """
    destination_id: str
    owner_scope: str
    channel: str = "discord"
    address: str = ""
    allow_categories: FrozenSet[str] = field(default_factory=frozenset)
    deny_url_patterns: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def has_filters(self) -> bool:
        return bool(self.allow_categories or self.deny_url_patterns)

    def with_filters(
        self,
        *,
        allow_categories: Optional[FrozenSet[str]] = None,
        deny_url_patterns: Optional[FrozenSet[str]] = None,
    ) -> "Destination":
        return replace(
            self,
            allow_categories=self.allow_categories if allow_categories is None else frozenset(allow_categories),
            deny_url_patterns=self.deny_url_patterns if deny_url_patterns is None else frozenset(deny_url_patterns),
        )


@dataclass(frozen=True)
class ModelConfig:
    """
    Process-wide summarization settings. Exactly one is active at a time.
    """
    provider_id: str = "ollama"
    model: str = "llama3:8b"
    temperature: float = 0.7
    max_output_length: int = 1700
    top_p: float = 0.9


@dataclass(frozen=True)
class NewsMessage:
    """
    Rendered payload handed to a delivery channel.
    """
    title: str
    body: str
    url: str
    image_url: Optional[str] = None
    category: Optional[str] = None


class CycleState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class CycleReport:
    """
    Counters describing one dispatcher cycle.
    """
    candidates: int = 0
    skipped_seen: int = 0
    summarized: int = 0
    gated: int = 0
    delivered: int = 0
    failed_deliveries: int = 0
    short_circuited: bool = False
