# ==============================================================================
# Aggregation Engine
# ==============================================================================
"""
Loads a website's events for one UTC day, rolls them up and upserts the
DailyStat. Recomputing a day replaces the stored row; nothing accumulates.
"""

import logging
from datetime import date

from webanalytics.base.repositories import EventStore, StatStore
from webanalytics.core.aggregator import compute_daily_stat, day_bounds
from webanalytics.core.models import DailyStat

logger = logging.getLogger(__name__)


class AggregationEngine:
    """Computes and persists daily rollups."""

    def __init__(self, events: EventStore, stats: StatStore):
        self._events = events
        self._stats = stats

    def aggregate(self, website_id: str, day: date) -> DailyStat | None:
        """
        Recompute the rollup of one website and day.

        Args:
            website_id: Website to aggregate
            day: UTC calendar day

        Returns:
            The stored DailyStat, or None (nothing written) if the website
            has no events that day
        """
        start, end = day_bounds(day)
        events = self._events.find_between(website_id, start, end)

        stat = compute_daily_stat(website_id, day, events)
        if stat is None:
            logger.debug("No events for %s on %s, skipping", website_id, day)
            return None

        self._stats.upsert(stat)
        logger.info(
            "Aggregated %s on %s: %d events, %d visits, %d visitors",
            website_id,
            day,
            stat.page_views,
            stat.total_visits,
            stat.unique_visitors,
        )
        return stat
