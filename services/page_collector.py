from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from app.core.logging import get_logger
from app.models.feed_items import CollectionResult, RawItem, StopReason
from services.base_browser_service import RetryExhaustedError, with_retry

logger = get_logger().bind(module="page_collector")

PageReader = Callable[[], Awaitable[Sequence[RawItem]]]
PageAdvancer = Callable[[], Awaitable[None]]


class CollectorState(str, Enum):
    READING = "reading"
    ADVANCING = "advancing"
    DONE = "done"
    STOPPED = "stopped"


_TERMINAL_STATES = (CollectorState.DONE, CollectorState.STOPPED)


@dataclass
class _Accumulator:
    """Owned by a single collect() call; never shared between runs."""

    items: List[RawItem] = field(default_factory=list)
    pages_visited: int = 0
    stop_reason: Optional[StopReason] = None


class PageCollector:
    """
    Assemble up to `target` items from a paginated feed.

    Pages are read strictly one after another. Each exit cause is a distinct
    StopReason: the target was reached, a page came back empty, navigation
    failed after its retries, a later page could not be read, or the page
    limit was hit. None of those raise;
    the caller gets whatever was accumulated, capped at `target`.
    """

    def __init__(
        self,
        page_reader: PageReader,
        page_advancer: PageAdvancer,
        *,
        max_pages: int = 10,
        nav_retry_attempts: int = 2,
        nav_retry_delay_s: float = 2.0,
    ) -> None:
        self.page_reader = page_reader
        self.page_advancer = page_advancer
        self.max_pages = max(1, max_pages)
        self.nav_retry_attempts = max(1, nav_retry_attempts)
        self.nav_retry_delay_s = nav_retry_delay_s

    async def collect(self, target: int) -> CollectionResult:
        acc = _Accumulator()
        if target <= 0:
            acc.stop_reason = StopReason.TARGET_REACHED
            state = CollectorState.DONE
        else:
            state = CollectorState.READING

        while state not in _TERMINAL_STATES:
            if state is CollectorState.READING:
                state = await self._read_page(acc, target)
            else:
                state = await self._advance(acc)

        logger.info(
            "feed_collection_finished",
            collected=min(len(acc.items), max(target, 0)),
            target=target,
            pages_visited=acc.pages_visited,
            stop_reason=acc.stop_reason.value if acc.stop_reason else None,
        )
        assert acc.stop_reason is not None
        return CollectionResult(
            items=acc.items[: max(target, 0)],
            pages_visited=acc.pages_visited,
            stop_reason=acc.stop_reason,
        )

    async def _read_page(self, acc: _Accumulator, target: int) -> CollectorState:
        acc.pages_visited += 1
        page_no = acc.pages_visited
        started = time.perf_counter()

        try:
            page_items = list(await self.page_reader())
        except Exception as exc:
            # Failing to read the start page is fatal; later pages keep what we have.
            if page_no == 1:
                raise
            logger.warning(
                "feed_page_read_failed_stopping",
                page=page_no,
                collected=len(acc.items),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            acc.stop_reason = StopReason.READ_FAILED
            return CollectorState.STOPPED
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        if not page_items:
            logger.warning("feed_page_empty_stopping", page=page_no, elapsed_ms=elapsed_ms)
            acc.stop_reason = StopReason.FEED_EXHAUSTED
            return CollectorState.STOPPED

        acc.items.extend(page_items)
        logger.info(
            "feed_page_read",
            page=page_no,
            found=len(page_items),
            total=len(acc.items),
            elapsed_ms=elapsed_ms,
        )

        if len(acc.items) >= target:
            acc.stop_reason = StopReason.TARGET_REACHED
            return CollectorState.DONE
        return CollectorState.ADVANCING

    async def _advance(self, acc: _Accumulator) -> CollectorState:
        if acc.pages_visited >= self.max_pages:
            logger.warning(
                "feed_page_limit_reached",
                pages_visited=acc.pages_visited,
                max_pages=self.max_pages,
                collected=len(acc.items),
            )
            acc.stop_reason = StopReason.PAGE_LIMIT
            return CollectorState.STOPPED

        logger.debug("feed_page_advancing", from_page=acc.pages_visited)
        try:
            await with_retry(
                self.page_advancer,
                attempts=self.nav_retry_attempts,
                delay_s=self.nav_retry_delay_s,
                label="pagination navigation",
            )
        except RetryExhaustedError as exc:
            logger.warning(
                "feed_pagination_failed_stopping",
                pages_visited=acc.pages_visited,
                collected=len(acc.items),
                error=str(exc.last_error),
                error_type=type(exc.last_error).__name__,
            )
            acc.stop_reason = StopReason.NAVIGATION_FAILED
            return CollectorState.STOPPED

        return CollectorState.READING
