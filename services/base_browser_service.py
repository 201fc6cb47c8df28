from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from playwright.async_api import Browser, Page, Playwright, async_playwright

from app.core.logging import get_logger

logger = get_logger().bind(module="base_browser_service")

T = TypeVar("T")


class FeedCheckError(Exception):
    """Base class for failures that stop a feed check."""


class RetryExhaustedError(FeedCheckError):
    def __init__(self, label: str, attempts: int, last_error: BaseException):
        super().__init__(f"{label} failed after {attempts} attempts: {last_error}")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


class NavigationError(FeedCheckError):
    """Pagination control missing or navigation did not complete."""


class StartPageUnreachableError(FeedCheckError):
    """The feed start page could not be opened at all."""


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    delay_s: float = 0.5,
    label: str = "operation",
) -> T:
    """
    Run `fn` up to `attempts` times with a fixed delay between attempts.

    Raises:
        RetryExhaustedError: If every attempt fails (wraps the last error)
    """
    attempts = max(1, attempts)
    attempt = 0
    last_exc: Optional[BaseException] = None

    while attempt < attempts:
        attempt += 1
        try:
            return await fn()
        except Exception as exc:
            last_exc = exc
            logger.warning(
                "retry_attempt_failed",
                label=label,
                attempt=attempt,
                attempts=attempts,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            if attempt < attempts:
                await asyncio.sleep(delay_s)

    assert last_exc is not None
    raise RetryExhaustedError(label, attempts, last_exc)


class BaseBrowserService:
    """
    Shared base class for browser-driven scraping services.

    Owns the Playwright driver, one Chromium browser and one page for the
    lifetime of the context manager.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        default_timeout_ms: int = 60_000,
    ) -> None:
        """
        Args:
            headless: Run Chromium without a visible window
            default_timeout_ms: Default timeout for every page operation
        """
        self.headless = headless
        self.default_timeout_ms = default_timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "BaseBrowserService":
        """Launch the browser and open a page on context entry."""
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-setuid-sandbox"],  # For CI/CD environments
            )
            self._page = await self._browser.new_page()
            self._page.set_default_timeout(self.default_timeout_ms)
        except BaseException:
            # __aexit__ is not called when __aenter__ raises.
            await self.__aexit__(None, None, None)
            raise
        logger.debug("browser_started", headless=self.headless)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        """Close browser and driver on context exit."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        self._page = None
        logger.debug("browser_closed")

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError(f"{self.__class__.__name__} browser not initialized")
        return self._page

    async def capture_screenshot(self, path: str) -> bool:
        """Full-page screenshot; failures are logged, never raised."""
        try:
            await self.page.screenshot(path=path, full_page=True)
        except Exception as exc:
            logger.warning(
                "screenshot_failed",
                path=path,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False
        logger.info("screenshot_captured", path=path)
        return True
