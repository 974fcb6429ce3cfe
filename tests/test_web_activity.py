"""Tests for the page-visit and search counter."""

import pytest

from carbon_tracker.services.storage import WEB_GLOBAL_STATS, WEB_PERIOD_STATS
from carbon_tracker.services.web_activity import WebActivityTracker, is_search_url


@pytest.mark.parametrize("url, expected", [
    ("https://www.google.com/search?q=trees", True),
    ("https://www.bing.com/search?q=trees", True),
    ("https://duckduckgo.com/?q=trees", True),
    ("https://en.wikipedia.org/wiki/Tree", False),
    (None, False),
])
def test_is_search_url(url, expected):
    assert is_search_url(url) is expected


class TestWebActivityTracker:

    async def test_page_load_counts_visit(self, store, clock):
        tracker = WebActivityTracker(store, clock=clock)
        stats = await tracker.record_page_load("https://en.wikipedia.org/wiki/Tree")

        assert stats["totalVisits"] == 1
        assert stats["totalSearches"] == 0
        assert stats["totalCarbonEmissions"] == pytest.approx(0.6)

    async def test_search_page_load_is_not_a_visit(self, store, clock):
        tracker = WebActivityTracker(store, clock=clock)
        assert await tracker.record_page_load("https://www.google.com/search?q=x") is None
        assert await store.get(WEB_GLOBAL_STATS) is None

    async def test_navigation_counts_search(self, store, clock):
        tracker = WebActivityTracker(store, clock=clock)
        assert await tracker.record_navigation("https://en.wikipedia.org/") is None
        stats = await tracker.record_navigation("https://www.bing.com/search?q=x")
        assert stats["totalSearches"] == 1
        assert stats["totalCarbonEmissions"] == pytest.approx(0.2)

    async def test_events_accumulate_in_period_buckets(self, store, clock):
        tracker = WebActivityTracker(store, clock=clock)
        await tracker.record_visit()
        await tracker.record_visit()
        await tracker.record_search()

        daily = (await store.get(WEB_PERIOD_STATS["daily"]))["2024-03-15"]
        weekly = (await store.get(WEB_PERIOD_STATS["weekly"]))["2024-W11"]
        monthly = (await store.get(WEB_PERIOD_STATS["monthly"]))["2024-03"]
        for bucket in (daily, weekly, monthly):
            assert bucket["totalVisits"] == 2
            assert bucket["totalSearches"] == 1
            assert bucket["totalCarbonEmissions"] == pytest.approx(1.4)

    async def test_storage_failure_is_contained(self, flaky_store, clock):
        flaky_store.failing = True
        tracker = WebActivityTracker(flaky_store, clock=clock)
        assert await tracker.record_visit() is None
