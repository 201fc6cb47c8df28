from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from app.models.feed_items import (
    Instant,
    NormalizedItem,
    Parsed,
    RawItem,
    UNPARSABLE,
)

_RELATIVE_AGE_RE = re.compile(r"(\d+)\s+(\w+)")
_TRAILING_EPOCH_RE = re.compile(r"^(?P<iso>.+?)\s+(?P<epoch>\d+)$")

# Unit prefix → seconds. Coarser units (weeks, months, years) are deliberately
# left out: they are too imprecise to compare against minute-level ages.
_UNIT_SECONDS = (
    ("second", 1),
    ("minute", 60),
    ("hour", 60 * 60),
    ("day", 24 * 60 * 60),
)


def _from_iso(text: str) -> Optional[datetime]:
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_iso_hint(value: Optional[str]) -> Optional[datetime]:
    """
    Parse the absolute time hint attached to an age link.

    The feed renders it as an ISO date-time, optionally followed by the Unix
    epoch ("2025-01-05T13:45:00 1736084700"). Naive values are taken as UTC.
    The ISO part wins; the epoch is only used when the ISO part is broken.
    """
    if not value:
        return None
    text = value.strip()
    if not text:
        return None

    parsed = _from_iso(text)
    if parsed is not None:
        return parsed

    match = _TRAILING_EPOCH_RE.match(text)
    if not match:
        return None

    parsed = _from_iso(match.group("iso").strip())
    if parsed is not None:
        return parsed
    try:
        return datetime.fromtimestamp(int(match.group("epoch")), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_relative_age(age_text: Optional[str], now: datetime) -> Optional[datetime]:
    """Turn "5 minutes ago" into now - 5 minutes; None for anything else."""
    if not age_text:
        return None
    match = _RELATIVE_AGE_RE.search(age_text)
    if not match:
        return None

    try:
        value = int(match.group(1))
    except ValueError:
        return None
    unit = match.group(2).lower()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    for prefix, seconds in _UNIT_SECONDS:
        if unit.startswith(prefix):
            # Absurdly large ages fall outside what datetime can represent.
            try:
                return now - timedelta(seconds=value * seconds)
            except (OverflowError, ValueError):
                return None
    return None


def normalize(item: RawItem, now: datetime) -> Instant:
    """
    Resolve an item's age to a single instant.

    The absolute hint wins whenever it parses; the relative text is only a
    fallback. Never raises: anything unusable becomes UNPARSABLE.
    """
    from_iso = parse_iso_hint(item.age_iso)
    if from_iso is not None:
        return Parsed(from_iso)

    from_relative = parse_relative_age(item.age_text, now)
    if from_relative is not None:
        return Parsed(from_relative)

    return UNPARSABLE


def normalize_items(items: Iterable[RawItem], now: datetime) -> List[NormalizedItem]:
    # One shared `now` for the whole batch keeps relative ages comparable.
    return [
        NormalizedItem(
            position=index,
            title=item.title,
            age_text=item.age_text,
            age_iso=item.age_iso,
            instant=normalize(item, now),
        )
        for index, item in enumerate(items, start=1)
    ]
