# ==============================================================================
# Scheduler Run Status Tracking
# ==============================================================================
"""
Persistence of scheduler run reports.

The orchestrator's running flag only lives inside its own process. This
tracker mirrors run state to Valkey so `webanalytics status` (a separate
process) can show the current run, the last report and recent history.

All keys expire after the configured run history TTL.
"""

import logging

from webanalytics.base.cache import Cache
from webanalytics.infrastructure.cache import ValkeyCache

logger = logging.getLogger(__name__)


# ==============================================================================
# Key Prefixes and TTLs
# ==============================================================================

CURRENT_RUN_KEY = "webanalytics:runs:current"
LAST_RUN_KEY = "webanalytics:runs:last"
RUN_HISTORY_KEY = "webanalytics:runs:history"
RUN_HISTORY_MAX_ITEMS = 50
CURRENT_RUN_TTL_SECONDS = 6 * 3600  # a crashed run stops showing after 6 hours


class RunStatusTracker:
    """
    Run status manager using a Cache for storage.

    Tracks:
    - The run in progress (if any)
    - The most recent completed run report
    - A capped newest-first history of run reports
    """

    def __init__(self, cache: Cache | None = None, ttl_hours: int = 24 * 7):
        """
        Initialize the tracker.

        Args:
            cache: Cache instance. If None, creates a ValkeyCache.
            ttl_hours: Expiry of stored reports in hours
        """
        self._cache = cache or ValkeyCache()
        self._ttl_seconds = ttl_hours * 3600

    def mark_running(self, trigger: str, started_at: str, target_day: str) -> None:
        """Record that a run has started."""
        self._cache.set(
            CURRENT_RUN_KEY,
            {"trigger": trigger, "started_at": started_at, "target_day": target_day},
            ttl_seconds=CURRENT_RUN_TTL_SECONDS,
        )

    def clear_running(self) -> None:
        """Forget the run in progress."""
        self._cache.delete(CURRENT_RUN_KEY)

    def current_run(self) -> dict | None:
        """The run in progress, or None."""
        return self._cache.get(CURRENT_RUN_KEY)

    def record_run(self, report: dict) -> None:
        """
        Store a finished run report.

        Args:
            report: JSON-serializable run report
        """
        self._cache.set(LAST_RUN_KEY, report, ttl_seconds=self._ttl_seconds)
        self._cache.push_recent(
            RUN_HISTORY_KEY,
            report,
            max_items=RUN_HISTORY_MAX_ITEMS,
            ttl_seconds=self._ttl_seconds,
        )
        logger.debug("Recorded run report for %s", report.get("target_day"))

    def last_run(self) -> dict | None:
        """The most recent run report, or None."""
        return self._cache.get(LAST_RUN_KEY)

    def history(self, count: int = 10) -> list[dict]:
        """
        Recent run reports.

        Args:
            count: Maximum number of reports

        Returns:
            Reports, newest first
        """
        return self._cache.recent(RUN_HISTORY_KEY, count)
