"""
Tests for CatalogCache.

Covers:
1. Lazy first load and freshness window
2. Reload after the TTL expires
3. Stale snapshot served when a refresh fails
4. Empty cache with a failing source
"""

import logging

import pytest

from app.catalog.cache import CatalogCache
from app.catalog.errors import SourceUnavailable
from app.catalog.loader import CatalogSnapshot


class FlakySource:
    """Returns a new snapshot per load, or fails while ``failing`` is set."""

    def __init__(self):
        self.loads = 0
        self.failing = False

    def load(self):
        self.loads += 1
        if self.failing:
            raise SourceUnavailable("disk on fire")
        return CatalogSnapshot(platforms={"load": self.loads})


@pytest.fixture
def flaky():
    return FlakySource()


@pytest.fixture
def flaky_cache(flaky, clock):
    return CatalogCache(flaky, ttl_seconds=300, clock=clock)


class TestFreshness:
    def test_first_read_loads(self, flaky, flaky_cache):
        assert not flaky_cache.loaded
        assert flaky_cache.age is None
        flaky_cache.snapshot()
        assert flaky.loads == 1
        assert flaky_cache.loaded

    def test_reads_within_ttl_share_snapshot(self, flaky, flaky_cache, clock):
        first = flaky_cache.snapshot()
        clock.advance(299)
        assert flaky_cache.snapshot() is first
        assert flaky.loads == 1

    def test_reload_after_ttl(self, flaky, flaky_cache, clock):
        first = flaky_cache.snapshot()
        clock.advance(300)
        second = flaky_cache.snapshot()
        assert second is not first
        assert second.platforms == {"load": 2}
        assert flaky_cache.age == 0

    def test_zero_ttl_reloads_every_read(self, flaky, clock):
        cache = CatalogCache(flaky, ttl_seconds=0, clock=clock)
        cache.snapshot()
        cache.snapshot()
        assert flaky.loads == 2

    def test_explicit_refresh(self, flaky, flaky_cache):
        flaky_cache.snapshot()
        flaky_cache.refresh()
        assert flaky.loads == 2


class TestFailures:
    def test_empty_cache_raises(self, flaky, flaky_cache):
        flaky.failing = True
        with pytest.raises(SourceUnavailable):
            flaky_cache.snapshot()
        assert not flaky_cache.loaded
        assert isinstance(flaky_cache.last_error, SourceUnavailable)

    def test_stale_snapshot_served_on_failure(self, flaky, flaky_cache, clock, caplog):
        first = flaky_cache.snapshot()
        clock.advance(301)
        flaky.failing = True
        with caplog.at_level(logging.ERROR, logger="app.catalog.cache"):
            assert flaky_cache.snapshot() is first
        assert "keeping stale snapshot" in caplog.text
        assert flaky_cache.last_error is not None

    def test_failed_refresh_keeps_previous(self, flaky, flaky_cache):
        first = flaky_cache.snapshot()
        flaky.failing = True
        with pytest.raises(SourceUnavailable):
            flaky_cache.refresh()
        assert flaky_cache.snapshot() is first

    def test_failed_refresh_keeps_timestamp(self, flaky, flaky_cache, clock):
        first = flaky_cache.snapshot()
        clock.advance(301)
        flaky.failing = True
        assert flaky_cache.snapshot() is first
        assert flaky_cache.age == 301
        assert not flaky_cache.is_fresh

    def test_recovers_after_failure(self, flaky, flaky_cache, clock):
        flaky_cache.snapshot()
        clock.advance(301)
        flaky.failing = True
        flaky_cache.snapshot()
        flaky.failing = False
        recovered = flaky_cache.snapshot()
        assert recovered.platforms == {"load": 3}
        assert flaky_cache.last_error is None

    def test_warm_reports_failure(self, flaky, flaky_cache):
        flaky.failing = True
        assert flaky_cache.warm() is False
        flaky.failing = False
        assert flaky_cache.warm() is True


class TestCollections:
    def test_get_by_name(self, cache):
        assert len(cache.get("works")) == 6
        assert len(cache.get("recordings")) == 4
        assert set(cache.get("categories")) == {"bach", "mozart"}

    def test_unknown_collection(self, cache):
        with pytest.raises(KeyError):
            cache.get("albums")
