from __future__ import annotations

from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from app.core.logging import get_logger
from app.core.request_id import get_run_id
from app.models.feed_items import NormalizedItem, StopReason, ValidationOutcome
from app.models.feed_report import Report
from services import report_builder
from services.base_browser_service import FeedCheckError
from services.order_validator import validate
from services.page_collector import PageAdvancer, PageCollector, PageReader
from services.time_normalizer import normalize_items

logger = get_logger().bind(module="validation_pipeline")


class NoItemsCollectedError(FeedCheckError):
    """Nothing came back from the feed, so there is nothing to validate."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValidationPipeline:
    """
    Collect → normalize → validate → report.

    `run()` always returns a Report. Fatal conditions (start page unreachable,
    zero items, unexpected collaborator errors) end up in `meta.fatal_error`
    instead of propagating, so the record of the attempt survives.
    """

    def __init__(
        self,
        page_reader: PageReader,
        page_advancer: PageAdvancer,
        *,
        max_pages: int = 10,
        nav_retry_attempts: int = 2,
        nav_retry_delay_s: float = 2.0,
        start_page_opener: Optional[Callable[[], Awaitable[None]]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.collector = PageCollector(
            page_reader,
            page_advancer,
            max_pages=max_pages,
            nav_retry_attempts=nav_retry_attempts,
            nav_retry_delay_s=nav_retry_delay_s,
        )
        self.start_page_opener = start_page_opener
        self.clock = clock

    async def run(self, target: int, now: Optional[datetime] = None) -> Report:
        started_at = self.clock()
        items: List[NormalizedItem] = []
        outcome = ValidationOutcome(passed=False)
        pages_visited = 0
        stop_reason: Optional[StopReason] = None
        fatal_error: Optional[str] = None

        try:
            if self.start_page_opener is not None:
                await self.start_page_opener()

            collection = await self.collector.collect(target)
            pages_visited = collection.pages_visited
            stop_reason = collection.stop_reason

            if len(collection.items) != target:
                logger.warning(
                    "feed_collection_shortfall",
                    expected=target,
                    collected=len(collection.items),
                    stop_reason=stop_reason.value,
                )
            if not collection.items:
                raise NoItemsCollectedError("No items were collected. Cannot proceed with validation.")

            # A single reference time for the whole batch.
            batch_now = now if now is not None else self.clock()
            items = normalize_items(collection.items, batch_now)
            outcome = validate(items)

            if outcome.passed:
                logger.info("feed_order_valid", validated=len(items))
            else:
                logger.error(
                    "feed_order_invalid",
                    validated=len(items),
                    problem_count=len(outcome.problems),
                    problems=outcome.problems,
                )
        except Exception as exc:
            fatal_error = f"{type(exc).__name__}: {exc}"
            logger.error(
                "feed_validation_fatal",
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )

        return report_builder.build(
            items,
            outcome,
            started_at,
            self.clock(),
            expected_count=target,
            pages_visited=pages_visited,
            stop_reason=stop_reason,
            fatal_error=fatal_error,
            run_id=get_run_id(),
        )
