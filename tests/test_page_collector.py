from __future__ import annotations

import pytest

from app.models.feed_items import StopReason
from services.page_collector import PageCollector
from tests.fixtures import FakeFeed, make_page


def _collector(feed: FakeFeed, *, max_pages: int = 10) -> PageCollector:
    return PageCollector(
        feed.read,
        feed.advance,
        max_pages=max_pages,
        nav_retry_attempts=2,
        nav_retry_delay_s=0,
    )


@pytest.mark.asyncio
async def test_collect_truncates_to_target():
    feed = FakeFeed([make_page(4, label="a"), make_page(4, label="b"), make_page(4, label="c")])

    result = await _collector(feed).collect(10)

    assert len(result.items) == 10
    assert result.pages_visited == 3
    assert result.stop_reason is StopReason.TARGET_REACHED
    assert result.items[0].title == "a-0"
    assert result.items[-1].title == "c-1"
    # Target reached on page 3: no further navigation.
    assert feed.advance_calls == 2


@pytest.mark.asyncio
async def test_collect_stops_when_feed_is_exhausted():
    feed = FakeFeed([make_page(4), make_page(4), make_page(4)])

    result = await _collector(feed).collect(20)

    assert len(result.items) == 12
    assert result.pages_visited == 4  # the empty page counts as visited
    assert result.stop_reason is StopReason.FEED_EXHAUSTED


@pytest.mark.asyncio
async def test_empty_first_page_returns_nothing():
    feed = FakeFeed([])

    result = await _collector(feed).collect(5)

    assert result.items == []
    assert result.pages_visited == 1
    assert result.stop_reason is StopReason.FEED_EXHAUSTED
    assert feed.advance_calls == 0


@pytest.mark.asyncio
async def test_collect_stops_gracefully_when_navigation_keeps_failing():
    feed = FakeFeed([make_page(4), make_page(4)], advance_always_fails=True)

    result = await _collector(feed).collect(10)

    assert len(result.items) == 4
    assert result.pages_visited == 1
    assert result.stop_reason is StopReason.NAVIGATION_FAILED
    assert feed.advance_calls == 2  # both retry attempts used


@pytest.mark.asyncio
async def test_single_navigation_failure_is_retried():
    feed = FakeFeed([make_page(4, label="a"), make_page(4, label="b")], fail_advances=1)

    result = await _collector(feed).collect(8)

    assert len(result.items) == 8
    assert result.items[4].title == "b-0"
    assert result.stop_reason is StopReason.TARGET_REACHED
    assert feed.advance_calls == 2


@pytest.mark.asyncio
async def test_page_limit_caps_collection():
    feed = FakeFeed([make_page(4) for _ in range(5)])

    result = await _collector(feed, max_pages=2).collect(100)

    assert len(result.items) == 8
    assert result.pages_visited == 2
    assert result.stop_reason is StopReason.PAGE_LIMIT
    assert feed.advance_calls == 1


@pytest.mark.asyncio
async def test_zero_target_reads_nothing():
    feed = FakeFeed([make_page(4)])

    result = await _collector(feed).collect(0)

    assert result.items == []
    assert result.pages_visited == 0
    assert feed.read_calls == 0


@pytest.mark.asyncio
async def test_start_page_read_errors_propagate():
    async def broken_reader():
        raise RuntimeError("browser crashed")

    async def advancer():
        return None

    collector = PageCollector(broken_reader, advancer, nav_retry_delay_s=0)
    with pytest.raises(RuntimeError, match="browser crashed"):
        await collector.collect(3)


@pytest.mark.asyncio
async def test_later_page_read_error_keeps_collected_items():
    feed = FakeFeed([make_page(4), make_page(4, start_minute=5)], read_fails_on_page=2)

    result = await _collector(feed).collect(10)

    assert len(result.items) == 4
    assert result.pages_visited == 2
    assert result.stop_reason is StopReason.READ_FAILED
    assert feed.advance_calls == 1


@pytest.mark.asyncio
async def test_each_collect_call_starts_fresh():
    feed = FakeFeed([make_page(3)])
    collector = _collector(feed)

    first = await collector.collect(3)
    second = await collector.collect(3)

    assert len(first.items) == 3
    assert len(second.items) == 3
    assert first.items is not second.items
