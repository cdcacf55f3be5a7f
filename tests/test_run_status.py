# ==============================================================================
# Tests for Run Status Tracking
# ==============================================================================
"""
Tests for RunStatusTracker and the ValkeyCache list operations it relies on,
backed by fakeredis.
"""

from webanalytics.infrastructure.run_status import (
    CURRENT_RUN_KEY,
    LAST_RUN_KEY,
    RUN_HISTORY_KEY,
    RUN_HISTORY_MAX_ITEMS,
    RunStatusTracker,
)

# ==============================================================================
# ValkeyCache
# ==============================================================================


class TestValkeyCache:
    """Tests for the JSON key-value and capped list operations."""

    def test_set_get_delete(self, fake_cache):
        fake_cache.set("k", {"a": 1})
        assert fake_cache.get("k") == {"a": 1}
        assert fake_cache.delete("k") is True
        assert fake_cache.get("k") is None

    def test_ttl_is_set(self, fake_cache, fake_redis):
        fake_cache.set("k", {"a": 1}, ttl_seconds=60)
        assert 0 < fake_redis.ttl("k") <= 60

    def test_undecodable_value_returns_none(self, fake_cache, fake_redis):
        fake_redis.set("k", "not json")
        assert fake_cache.get("k") is None

    def test_push_recent_caps_and_orders(self, fake_cache, fake_redis):
        for i in range(5):
            fake_cache.push_recent("list", {"i": i}, max_items=3, ttl_seconds=60)

        assert fake_redis.llen("list") == 3
        assert [item["i"] for item in fake_cache.recent("list", 10)] == [4, 3, 2]
        assert fake_cache.recent("list", 0) == []

    def test_ping(self, fake_cache):
        assert fake_cache.ping() is True


# ==============================================================================
# RunStatusTracker
# ==============================================================================


class TestRunStatusTracker:
    """Tests for current run, last run and history."""

    def test_mark_and_clear_running(self, tracker, fake_redis):
        tracker.mark_running("scheduled", "2026-03-15T01:00:00+00:00", "2026-03-14")

        assert tracker.current_run() == {
            "trigger": "scheduled",
            "started_at": "2026-03-15T01:00:00+00:00",
            "target_day": "2026-03-14",
        }
        assert fake_redis.ttl(CURRENT_RUN_KEY) > 0

        tracker.clear_running()
        assert tracker.current_run() is None

    def test_record_run(self, tracker, fake_redis):
        tracker.record_run({"target_day": "2026-03-14", "succeeded": True})

        assert tracker.last_run() == {"target_day": "2026-03-14", "succeeded": True}
        assert tracker.history() == [{"target_day": "2026-03-14", "succeeded": True}]
        assert fake_redis.ttl(LAST_RUN_KEY) > 0
        assert fake_redis.ttl(RUN_HISTORY_KEY) > 0

    def test_history_newest_first_and_capped(self, tracker, fake_redis):
        for day in range(1, RUN_HISTORY_MAX_ITEMS + 6):
            tracker.record_run({"target_day": f"day-{day}"})

        history = tracker.history(3)
        assert [r["target_day"] for r in history] == ["day-55", "day-54", "day-53"]
        assert fake_redis.llen(RUN_HISTORY_KEY) == RUN_HISTORY_MAX_ITEMS

    def test_ttl_hours(self, fake_cache, fake_redis):
        RunStatusTracker(cache=fake_cache, ttl_hours=1).record_run({"target_day": "d"})
        assert 0 < fake_redis.ttl(LAST_RUN_KEY) <= 3600

    def test_empty(self, tracker):
        assert tracker.last_run() is None
        assert tracker.history() == []
