# ==============================================================================
# Daily Rollup Computation - Pure Domain Logic
# ==============================================================================
"""
Pure computation of per-website, per-day statistics from raw events.

No store or cache access happens here: the aggregation engine in
webanalytics.pipeline.aggregation loads the events and persists the result.
Given the same events in the same order, compute_daily_stat always returns an
identical DailyStat.

Metric definitions:
- total_visits: number of page_view events
- unique_visitors: distinct session ids over all events
- page_views: number of events of any type
- avg_duration: page_view duration sum divided by total_visits
- bounce_rate: percentage of page_view sessions with exactly one page_view
- top_page / top_referrer: most frequent value, first encountered wins ties
- device_stats / browser_stats: frequency of device type and browser
"""

import math
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta

from webanalytics.core.models import DailyStat, Event, EventType
from webanalytics.core.urls import extract_domain


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """
    Inclusive UTC bounds of a calendar day.

    Returns:
        (day 00:00:00.000000, day 23:59:59.999999), both UTC
    """
    start = datetime.combine(day, time.min, tzinfo=UTC)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    return start, end


def calculate_bounce_rate(session_page_views: dict[str, int]) -> int:
    """
    Percentage of sessions that viewed exactly one page, rounded half up.

    Args:
        session_page_views: page_view count per session

    Returns:
        Integer percentage, 0 when there are no sessions
    """
    total = len(session_page_views)
    if total == 0:
        return 0
    bounced = sum(1 for count in session_page_views.values() if count == 1)
    return math.floor(bounced * 100 / total + 0.5)


def most_frequent(counts: Counter) -> str:
    """Key with the highest count; the first inserted key wins ties."""
    if not counts:
        return ""
    # max() keeps the first maximal element and Counter preserves insertion order
    return max(counts, key=counts.__getitem__)


def compute_daily_stat(
    website_id: str, day: date, events: Iterable[Event]
) -> DailyStat | None:
    """
    Roll one day of a website's events into a DailyStat.

    Args:
        website_id: Website the events belong to
        day: UTC calendar day being summarized
        events: Events of that website and day, in store order

    Returns:
        The computed DailyStat, or None if there are no events
    """
    event_count = 0
    sessions: set[str] = set()
    session_page_views: dict[str, int] = {}
    pages: Counter = Counter()
    referrers: Counter = Counter()
    devices: Counter = Counter()
    browsers: Counter = Counter()
    page_view_count = 0
    page_view_duration = 0.0

    for event in events:
        event_count += 1
        sessions.add(event.session_id)
        devices[event.device.type or "unknown"] += 1
        browsers[event.device.browser or "unknown"] += 1

        if event.referrer:
            referrers[extract_domain(event.referrer)] += 1

        if event.event_type == EventType.PAGE_VIEW:
            page_view_count += 1
            page_view_duration += event.duration_seconds
            pages[event.url] += 1
            session_page_views[event.session_id] = (
                session_page_views.get(event.session_id, 0) + 1
            )

    if event_count == 0:
        return None

    avg_duration = page_view_duration / page_view_count if page_view_count else 0.0

    return DailyStat(
        website_id=website_id,
        date=day,
        total_visits=page_view_count,
        unique_visitors=len(sessions),
        page_views=event_count,
        avg_duration=avg_duration,
        bounce_rate=calculate_bounce_rate(session_page_views),
        top_page=most_frequent(pages),
        top_referrer=most_frequent(referrers),
        device_stats=dict(devices),
        browser_stats=dict(browsers),
    )
