from __future__ import annotations

import pytest

from services.base_browser_service import (
    BaseBrowserService,
    RetryExhaustedError,
    with_retry,
)


@pytest.mark.asyncio
async def test_with_retry_returns_first_success():
    calls = []

    async def op():
        calls.append(1)
        return "ok"

    assert await with_retry(op, attempts=3, delay_s=0) == "ok"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_with_retry_recovers_after_failures():
    calls = []

    async def op():
        calls.append(1)
        if len(calls) < 3:
            raise RuntimeError("flaky")
        return "done"

    assert await with_retry(op, attempts=3, delay_s=0, label="flaky op") == "done"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_with_retry_exhausted_wraps_last_error():
    calls = []

    async def op():
        calls.append(1)
        raise ValueError(f"boom {len(calls)}")

    with pytest.raises(RetryExhaustedError) as excinfo:
        await with_retry(op, attempts=2, delay_s=0, label="pagination navigation")

    assert len(calls) == 2
    assert excinfo.value.attempts == 2
    assert isinstance(excinfo.value.last_error, ValueError)
    assert "boom 2" in str(excinfo.value)
    assert "pagination navigation" in str(excinfo.value)


@pytest.mark.asyncio
async def test_with_retry_uses_fixed_delay(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("services.base_browser_service.asyncio.sleep", fake_sleep)

    async def op():
        raise RuntimeError("down")

    with pytest.raises(RetryExhaustedError):
        await with_retry(op, attempts=3, delay_s=2.0)

    # No sleep after the final attempt.
    assert delays == [2.0, 2.0]


def test_page_requires_context():
    service = BaseBrowserService()
    with pytest.raises(RuntimeError, match="not initialized"):
        service.page


@pytest.mark.asyncio
async def test_capture_screenshot_never_raises():
    service = BaseBrowserService()
    assert await service.capture_screenshot("/tmp/never.png") is False


@pytest.mark.asyncio
async def test_capture_screenshot_full_page(tmp_path):
    taken = {}

    class _Page:
        async def screenshot(self, path, full_page):
            taken["path"] = path
            taken["full_page"] = full_page

    service = BaseBrowserService()
    service._page = _Page()

    target = str(tmp_path / "shot.png")
    assert await service.capture_screenshot(target) is True
    assert taken == {"path": target, "full_page": True}


class _FakeChromium:
    async def launch(self, headless, args):
        raise RuntimeError("Executable doesn't exist at /ms-playwright/chromium")


class _FakePlaywright:
    def __init__(self) -> None:
        self.chromium = _FakeChromium()
        self.stopped = 0

    async def stop(self) -> None:
        self.stopped += 1


@pytest.mark.asyncio
async def test_failed_launch_stops_the_driver(monkeypatch):
    driver = _FakePlaywright()

    class _Starter:
        async def start(self):
            return driver

    monkeypatch.setattr("services.base_browser_service.async_playwright", lambda: _Starter())

    service = BaseBrowserService()
    with pytest.raises(RuntimeError, match="Executable doesn't exist"):
        async with service:
            pass

    assert driver.stopped == 1
    assert service._playwright is None
    with pytest.raises(RuntimeError, match="not initialized"):
        service.page
