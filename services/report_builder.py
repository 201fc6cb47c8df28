from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from app.models.feed_items import NormalizedItem, Parsed, StopReason, ValidationOutcome
from app.models.feed_report import (
    Report,
    ReportMeta,
    SampleItem,
    SampleItems,
    Statistics,
    ValidationSection,
)

SAMPLE_FIRST = 5
SAMPLE_LAST = 3


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def compute_statistics(items: Sequence[NormalizedItem]) -> Optional[Statistics]:
    """Span and counts over parsable instants; None when there are none."""
    instants = [item.instant.at for item in items if isinstance(item.instant, Parsed)]
    if not instants:
        return None

    newest = max(instants)
    oldest = min(instants)
    return Statistics(
        newest_timestamp=_iso(newest),
        oldest_timestamp=_iso(oldest),
        time_span_hours=round((newest - oldest).total_seconds() / 3600, 2),
        unparsable_count=len(items) - len(instants),
    )


def sample_items(
    items: Sequence[NormalizedItem],
    *,
    first: int = SAMPLE_FIRST,
    last: int = SAMPLE_LAST,
) -> SampleItems:
    def _entry(item: NormalizedItem) -> SampleItem:
        return SampleItem(position=item.position, title=item.title, age=item.age_text)

    head: List[SampleItem] = [_entry(item) for item in items[:first]]
    tail: List[SampleItem] = [_entry(item) for item in items[-last:]] if last > 0 and items else []
    return SampleItems(first=head, last=tail)


def build(
    items: Sequence[NormalizedItem],
    outcome: ValidationOutcome,
    started_at: datetime,
    finished_at: datetime,
    *,
    expected_count: int,
    pages_visited: int = 0,
    stop_reason: Optional[StopReason] = None,
    fatal_error: Optional[str] = None,
    run_id: Optional[str] = None,
) -> Report:
    duration_ms = int((finished_at - started_at).total_seconds() * 1000)

    return Report(
        meta=ReportMeta(
            started_at=_iso(started_at),
            finished_at=_iso(finished_at),
            duration_ms=duration_ms,
            duration_seconds=round(duration_ms / 1000, 2),
            expected_count=expected_count,
            actual_count=len(items),
            shortfall=len(items) != expected_count,
            pages_visited=pages_visited,
            stop_reason=stop_reason.value if stop_reason else None,
            fatal_error=fatal_error,
            run_id=run_id,
        ),
        validation=ValidationSection(
            passed=outcome.passed,
            is_sorted=outcome.passed,
            problem_count=len(outcome.problems),
            problems=list(outcome.problems),
        ),
        statistics=compute_statistics(items),
        sample_items=sample_items(items),
    )
