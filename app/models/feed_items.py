from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union


@dataclass(frozen=True)
class RawItem:
    """One feed entry exactly as rendered on the page."""

    title: str
    age_text: str  # e.g. "5 minutes ago"
    age_iso: Optional[str] = None  # e.g. "2025-01-05T13:45:00 1736084700"


@dataclass(frozen=True)
class Parsed:
    at: datetime  # always timezone-aware


class Unparsable:
    """Marker for an item whose age could not be turned into an instant."""

    _instance: Optional["Unparsable"] = None

    def __new__(cls) -> "Unparsable":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNPARSABLE"


UNPARSABLE = Unparsable()

Instant = Union[Parsed, Unparsable]


@dataclass(frozen=True)
class NormalizedItem:
    position: int  # 1-based rank in collection order
    title: str
    age_text: str
    age_iso: Optional[str]
    instant: Instant

    @property
    def is_parsable(self) -> bool:
        return isinstance(self.instant, Parsed)


@dataclass(frozen=True)
class ValidationOutcome:
    passed: bool
    problems: List[str] = field(default_factory=list)


class StopReason(str, Enum):
    TARGET_REACHED = "target_reached"
    FEED_EXHAUSTED = "feed_exhausted"
    NAVIGATION_FAILED = "navigation_failed"
    PAGE_LIMIT = "page_limit"
    READ_FAILED = "read_failed"


@dataclass
class CollectionResult:
    items: List[RawItem]
    pages_visited: int
    stop_reason: StopReason
