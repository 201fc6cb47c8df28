# tests/fixtures/__init__.py
"""
Test fixtures for the feed order check.

Factory functions and fakes:
- make_raw_item()
- make_page()
- FakeFeed (async reader/advancer pair over canned pages)
"""

from typing import List, Optional, Sequence

from app.models.feed_items import RawItem


def make_raw_item(
    title: str = "Test Story",
    age_text: str = "1 minute ago",
    age_iso: Optional[str] = None,
) -> RawItem:
    """Factory function to create a RawItem."""
    return RawItem(title=title, age_text=age_text, age_iso=age_iso)


def make_page(count: int, *, start_minute: int = 1, label: str = "p") -> List[RawItem]:
    """A page of `count` items, each one minute older than the previous."""
    return [
        make_raw_item(
            title=f"{label}-{i}",
            age_text=f"{start_minute + i} minutes ago",
        )
        for i in range(count)
    ]


class FakeFeed:
    """
    Serves canned pages. `advance()` fails for the first `fail_advances`
    calls, or always once `advance_always_fails` is set. Reading page
    `read_fails_on_page` (1-based) raises.
    """

    def __init__(
        self,
        pages: Sequence[Sequence[RawItem]],
        *,
        fail_advances: int = 0,
        advance_always_fails: bool = False,
        read_fails_on_page: Optional[int] = None,
    ) -> None:
        self.pages = [list(p) for p in pages]
        self.index = 0
        self.read_calls = 0
        self.advance_calls = 0
        self.fail_advances = fail_advances
        self.advance_always_fails = advance_always_fails
        self.read_fails_on_page = read_fails_on_page

    async def read(self) -> List[RawItem]:
        self.read_calls += 1
        if self.read_fails_on_page == self.index + 1:
            raise RuntimeError("Target page, context or browser has been closed")
        if self.index >= len(self.pages):
            return []
        return list(self.pages[self.index])

    async def advance(self) -> None:
        self.advance_calls += 1
        if self.advance_always_fails or self.advance_calls <= self.fail_advances:
            raise RuntimeError("more link not found")
        self.index += 1
