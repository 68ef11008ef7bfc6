"""Tests for overlap deduplication."""

from datetime import timedelta

from logtail.dedup import Deduplicator, RecentEventCache

from .helpers import at, make_event


class TestRecentEventCache:
    def test_expire_removes_only_older_entries(self):
        cache = RecentEventCache()
        cache.add("old", at(0))
        cache.add("edge", at(10))
        cache.add("new", at(20))
        assert cache.expire(at(10)) == 1
        assert "old" not in cache
        assert "edge" in cache
        assert len(cache) == 2


class TestDeduplicator:
    def test_filters_seen_ids_preserving_order(self):
        dedup = Deduplicator(timedelta(seconds=10))
        first = dedup.filter([make_event("a", 1), make_event("b", 2)], at(5))
        assert [e.id for e in first] == ["a", "b"]

        second = dedup.filter([make_event("b", 2), make_event("c", 3), make_event("a", 1)], at(6))
        assert [e.id for e in second] == ["c"]
        assert dedup.dropped == 2

    def test_duplicates_within_one_batch(self):
        dedup = Deduplicator(timedelta(seconds=10))
        fresh = dedup.filter([make_event("a", 1), make_event("a", 1)], at(5))
        assert len(fresh) == 1
        assert dedup.dropped == 1

    def test_events_without_timestamp_use_observation_time(self):
        dedup = Deduplicator(timedelta(seconds=10))
        dedup.filter([make_event("a")], at(100))
        assert dedup.expire(at(100), at(95)) == 0
        assert "a" in dedup.cache

    def test_expiry_never_passes_next_window_start(self):
        dedup = Deduplicator(timedelta(seconds=10))
        dedup.filter([make_event("a", 50)], at(60))
        # horizon would allow expiring up to at(80), the window still covers at(40)
        assert dedup.expire(at(100), at(40)) == 0
        assert "a" in dedup.cache

    def test_expires_ids_older_than_horizon(self):
        dedup = Deduplicator(timedelta(seconds=10))
        dedup.filter([make_event("a", 10), make_event("b", 95)], at(100))
        assert dedup.expire(at(100), at(100)) == 1
        assert "a" not in dedup.cache
        assert "b" in dedup.cache

    def test_horizon_grows_with_poll_gap(self):
        dedup = Deduplicator(timedelta(seconds=1))
        dedup.filter([make_event("a", 70)], at(70))
        dedup.expire(at(0), at(0))
        # a 100s gap between polls keeps ids for 200s
        assert dedup.expire(at(100), at(100)) == 0
        assert "a" in dedup.cache
