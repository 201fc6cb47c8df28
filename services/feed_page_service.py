"""
Hacker News "newest" page collaborator.

Drives one Chromium page through the feed:

1. **Start page**: `open_start_page()` loads the feed URL, retrying flaky loads.
2. **Rows**: `read_current_page_items()` waits for story rows to render, then
   parses the page HTML with BeautifulSoup into `RawItem`s.
3. **Pagination**: `advance_to_next_page()` clicks the dedicated "More" link
   (`a.morelink`) and waits for the URL to change.

Row markup (one story = two table rows):

    <tr class="athing"> ... <span class="titleline"><a>Title</a></span> ... </tr>
    <tr> ... <span class="age" title="2025-01-05T13:45:00 1736084700">
              <a href="item?id=1">5 minutes ago</a></span> ... </tr>
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from bs4 import BeautifulSoup
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from app.config import Settings
from app.core.logging import get_logger
from app.models.feed_items import RawItem
from services.base_browser_service import (
    BaseBrowserService,
    NavigationError,
    RetryExhaustedError,
    StartPageUnreachableError,
    with_retry,
)

logger = get_logger().bind(module="feed_page_service")

ROW_SELECTOR = "tr.athing"
MORE_LINK_SELECTOR = "a.morelink"


def _clean_text(value: str) -> str:
    return " ".join(value.split())


def parse_feed_rows(html: str) -> List[RawItem]:
    """Extract (title, relative age, absolute hint) for every story row."""
    soup = BeautifulSoup(html or "", "html.parser")
    items: List[RawItem] = []

    for row in soup.select(ROW_SELECTOR):
        title_link = row.select_one(".titleline a")
        title = _clean_text(title_link.get_text(" ")) if title_link else ""

        subtext_row = row.find_next_sibling("tr")
        age_span = subtext_row.select_one("span.age") if subtext_row else None
        age_link = age_span.select_one("a") if age_span else None

        age_text = _clean_text(age_link.get_text(" ")) if age_link else ""
        # Older markup put the hint on the link, current markup on the span.
        age_iso: Optional[str] = None
        if age_link is not None:
            age_iso = age_link.get("title") or (age_span.get("title") if age_span else None)

        items.append(RawItem(title=title, age_text=age_text, age_iso=age_iso))

    return items


class FeedPageService(BaseBrowserService):
    """Reads and paginates the Hacker News "newest" feed in a headless browser."""

    def __init__(
        self,
        *,
        feed_url: str,
        headless: bool = True,
        page_load_timeout_ms: int = 60_000,
        selector_timeout_ms: int = 45_000,
        start_retry_attempts: int = 3,
        start_retry_delay_s: float = 2.0,
        nav_settle_delay_s: float = 0.5,
        start_settle_delay_s: float = 1.0,
    ) -> None:
        super().__init__(headless=headless, default_timeout_ms=page_load_timeout_ms)
        self.feed_url = feed_url
        self.page_load_timeout_ms = page_load_timeout_ms
        self.selector_timeout_ms = selector_timeout_ms
        self.start_retry_attempts = start_retry_attempts
        self.start_retry_delay_s = start_retry_delay_s
        self.nav_settle_delay_s = nav_settle_delay_s
        self.start_settle_delay_s = start_settle_delay_s

    @classmethod
    def from_settings(
        cls,
        cfg: Settings,
        *,
        feed_url: Optional[str] = None,
        headless: Optional[bool] = None,
    ) -> "FeedPageService":
        return cls(
            feed_url=feed_url or cfg.FEED_URL,
            headless=cfg.HEADLESS if headless is None else headless,
            page_load_timeout_ms=cfg.PAGE_LOAD_TIMEOUT_MS,
            selector_timeout_ms=cfg.SELECTOR_TIMEOUT_MS,
            start_retry_attempts=cfg.START_RETRY_ATTEMPTS,
            start_retry_delay_s=cfg.START_RETRY_DELAY_S,
            nav_settle_delay_s=cfg.NAV_SETTLE_DELAY_S,
            start_settle_delay_s=cfg.START_SETTLE_DELAY_S,
        )

    async def open_start_page(self) -> None:
        """
        Load the feed start page.

        Raises:
            StartPageUnreachableError: If every attempt fails
        """
        async def _goto() -> None:
            response = await self.page.goto(
                self.feed_url,
                wait_until="domcontentloaded",
                timeout=self.page_load_timeout_ms,
            )
            if response is not None and not response.ok:
                raise NavigationError(f"{self.feed_url} answered HTTP {response.status}")

        logger.info("feed_start_page_opening", url=self.feed_url)
        try:
            await with_retry(
                _goto,
                attempts=self.start_retry_attempts,
                delay_s=self.start_retry_delay_s,
                label="initial navigation",
            )
        except RetryExhaustedError as exc:
            raise StartPageUnreachableError(str(exc)) from exc

        await asyncio.sleep(self.start_settle_delay_s)

    async def read_current_page_items(self) -> List[RawItem]:
        """Rows on the current page; [] if none render within the wait budget."""
        try:
            await self.page.wait_for_selector(ROW_SELECTOR, timeout=self.selector_timeout_ms)
        except PlaywrightTimeoutError:
            logger.warning(
                "feed_rows_wait_timed_out",
                url=self.page.url,
                timeout_ms=self.selector_timeout_ms,
            )
            return []

        html = await self.page.content()
        return parse_feed_rows(html)

    async def advance_to_next_page(self) -> None:
        """
        Click the pagination "More" link and wait for the URL to change.

        Raises:
            NavigationError: If there is no "More" link or the URL never changes
        """
        more_link = await self.page.query_selector(MORE_LINK_SELECTOR)
        if more_link is None:
            raise NavigationError('Could not find "More" link for pagination.')

        current_url = self.page.url
        await more_link.click()
        try:
            # Resolves immediately if the click already finished navigating.
            await self.page.wait_for_url(
                lambda url: url != current_url,
                timeout=self.page_load_timeout_ms,
            )
        except PlaywrightTimeoutError as exc:
            raise NavigationError(f"URL did not change from {current_url}") from exc

        logger.debug("feed_page_advanced", url=self.page.url)
        await asyncio.sleep(self.nav_settle_delay_s)
