# ==============================================================================
# Tests for Daily Rollups
# ==============================================================================
"""
Tests for the pure rollup computation and the AggregationEngine around it.
"""

from collections import Counter
from datetime import UTC, date, datetime, timedelta

from webanalytics.core.aggregator import (
    calculate_bounce_rate,
    compute_daily_stat,
    day_bounds,
    most_frequent,
)
from webanalytics.pipeline.aggregation import AggregationEngine

DAY = date(2026, 3, 14)


# ==============================================================================
# Helpers
# ==============================================================================


class TestHelpers:
    """Tests for day_bounds, calculate_bounce_rate and most_frequent."""

    def test_day_bounds_inclusive(self):
        start, end = day_bounds(DAY)
        assert start == datetime(2026, 3, 14, tzinfo=UTC)
        assert end == datetime(2026, 3, 14, 23, 59, 59, 999999, tzinfo=UTC)

    def test_bounce_rate_no_sessions(self):
        assert calculate_bounce_rate({}) == 0

    def test_bounce_rate_rounds_half_up(self):
        # 1 of 8 sessions bounced: 12.5% -> 13
        assert calculate_bounce_rate({f"s{i}": 1 if i == 0 else 2 for i in range(8)}) == 13

    def test_bounce_rate_all_bounced(self):
        assert calculate_bounce_rate({"a": 1, "b": 1}) == 100

    def test_most_frequent_first_wins_ties(self):
        assert most_frequent(Counter(["/b", "/a", "/a", "/b"])) == "/b"

    def test_most_frequent_empty(self):
        assert most_frequent(Counter()) == ""


# ==============================================================================
# compute_daily_stat
# ==============================================================================


class TestComputeDailyStat:
    """Tests for the metric definitions."""

    def _events(self, make_event):
        t = datetime(2026, 3, 14, 9, 0, tzinfo=UTC)
        return [
            make_event(
                session_id="s1",
                url="https://x.com/",
                duration=10,
                referrer="https://www.google.com/search?q=a",
                device={"type": "desktop", "browser": "Firefox"},
                timestamp=t,
            ),
            make_event(
                session_id="s1",
                url="https://x.com/pricing",
                duration=20,
                device={"type": "desktop", "browser": "Firefox"},
                timestamp=t + timedelta(minutes=1),
            ),
            make_event(
                session_id="s1",
                event_type="click",
                url="https://x.com/pricing",
                device={"type": "desktop", "browser": "Firefox"},
                timestamp=t + timedelta(minutes=2),
            ),
            make_event(
                session_id="s2",
                url="https://x.com/",
                duration=30,
                referrer="https://www.google.com/",
                device={"type": "mobile", "browser": "Safari"},
                timestamp=t + timedelta(minutes=3),
            ),
            make_event(
                session_id="s3",
                event_type="scroll",
                url="https://x.com/blog",
                referrer="https://news.ycombinator.com/",
                timestamp=t + timedelta(minutes=4),
            ),
        ]

    def test_metrics(self, make_event):
        stat = compute_daily_stat("web_test", DAY, self._events(make_event))

        assert stat.website_id == "web_test"
        assert stat.date == DAY
        assert stat.total_visits == 3
        assert stat.unique_visitors == 3
        assert stat.page_views == 5  # every event, not only page_view
        assert stat.avg_duration == 20.0
        assert stat.bounce_rate == 50  # s2 bounced, s1 did not; s3 had no page_view
        assert stat.top_page == "https://x.com/"
        assert stat.top_referrer == "www.google.com"
        assert stat.device_stats == {"desktop": 3, "mobile": 1, "unknown": 1}
        assert stat.browser_stats == {"Firefox": 3, "Safari": 1, "unknown": 1}

    def test_no_page_views(self, make_event):
        stat = compute_daily_stat("web_test", DAY, [make_event(event_type="click")])

        assert stat.total_visits == 0
        assert stat.avg_duration == 0.0
        assert stat.bounce_rate == 0
        assert stat.top_page == ""
        assert stat.page_views == 1

    def test_no_events(self):
        assert compute_daily_stat("web_test", DAY, []) is None

    def test_deterministic(self, make_event):
        events = self._events(make_event)
        assert compute_daily_stat("web_test", DAY, events) == compute_daily_stat(
            "web_test", DAY, events
        )


# ==============================================================================
# AggregationEngine
# ==============================================================================


class TestAggregationEngine:
    """Tests for loading, computing and upserting a day."""

    def test_upserts_stat(self, stores, make_event):
        stores.events.save(make_event(id="e1", timestamp=datetime(2026, 3, 14, 0, 0, tzinfo=UTC)))
        stores.events.save(
            make_event(id="e2", timestamp=datetime(2026, 3, 14, 23, 59, 59, 999999, tzinfo=UTC))
        )
        stores.events.save(make_event(id="e3", timestamp=datetime(2026, 3, 15, 0, 0, tzinfo=UTC)))
        engine = AggregationEngine(stores.events, stores.stats)

        stat = engine.aggregate("web_test", DAY)

        assert stat.page_views == 2
        assert stores.stats.get("web_test", DAY) == stat

    def test_day_edges(self, stores, make_event):
        stores.events.save(
            make_event(id="last", timestamp=datetime(2026, 3, 14, 23, 59, 59, 999999, tzinfo=UTC))
        )
        stores.events.save(make_event(id="next", timestamp=datetime(2026, 3, 15, 0, 0, tzinfo=UTC)))
        engine = AggregationEngine(stores.events, stores.stats)

        assert engine.aggregate("web_test", DAY).page_views == 1
        assert engine.aggregate("web_test", date(2026, 3, 15)).page_views == 1

    def test_rerun_replaces_not_accumulates(self, stores, make_event):
        stores.events.save(make_event(id="e1"))
        engine = AggregationEngine(stores.events, stores.stats)

        first = engine.aggregate("web_test", DAY)
        second = engine.aggregate("web_test", DAY)

        assert first == second
        assert stores.stats.get("web_test", DAY).page_views == 1

    def test_no_events_writes_nothing(self, stores):
        engine = AggregationEngine(stores.events, stores.stats)

        assert engine.aggregate("web_test", DAY) is None
        assert stores.stats.get("web_test", DAY) is None
