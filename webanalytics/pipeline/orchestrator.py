# ==============================================================================
# Aggregation Run Orchestrator
# ==============================================================================
"""
Drives the daily aggregation run and the goal catch-up sweep.

State machine: IDLE -> RUNNING -> IDLE. The state belongs to the Orchestrator
instance and is guarded by a non-blocking lock: a trigger that arrives while
a run is in progress is skipped, never queued.

A run:
    1. picks the target day (default: yesterday, UTC)
    2. lists websites with events that day
    3. aggregates each website; a failure is logged and the batch continues
    4. runs the goal catch-up sweep
    5. purges events older than the retention window
    6. records the run report in the run-status tracker

There is no cancellation and no automatic retry. A failed website is picked
up again by the next run or by a manual refresh.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum

from webanalytics.base.repositories import EventStore, WebsiteStore
from webanalytics.core.aggregator import day_bounds
from webanalytics.core.errors import NotFoundError
from webanalytics.core.models import DailyStat, utc_now
from webanalytics.infrastructure.run_status import RunStatusTracker
from webanalytics.pipeline.aggregation import AggregationEngine
from webanalytics.pipeline.sweep import GoalSweep, SweepResult

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Orchestrator run state."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass
class RunReport:
    """Summary of one aggregation run."""

    trigger: str
    target_day: date
    started_at: datetime
    finished_at: datetime | None = None
    websites: list[str] = field(default_factory=list)
    aggregated: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    sweep: SweepResult | None = None
    purged: int | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """True when every step completed for every website."""
        sweep_ok = self.sweep is None or not self.sweep.failures
        return not self.failures and not self.errors and sweep_ok

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        """JSON-serializable form stored by the run-status tracker."""
        return {
            "trigger": self.trigger,
            "target_day": self.target_day.isoformat(),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "websites": list(self.websites),
            "aggregated": list(self.aggregated),
            "failures": dict(self.failures),
            "sweep": self.sweep.to_dict() if self.sweep else None,
            "purged": self.purged,
            "errors": list(self.errors),
            "succeeded": self.succeeded,
        }


class Orchestrator:
    """
    Singleton-per-process driver of aggregation runs.

    Collaborators are injected; the sweep and the run-status tracker are
    optional.
    """

    def __init__(
        self,
        events: EventStore,
        engine: AggregationEngine,
        sweep: GoalSweep | None = None,
        tracker: RunStatusTracker | None = None,
        retention_days: int | None = 90,
        clock: Callable[[], datetime] = utc_now,
        websites: WebsiteStore | None = None,
    ):
        self._events = events
        self._websites = websites
        self._engine = engine
        self._sweep = sweep
        self._tracker = tracker
        self._retention_days = retention_days
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def state(self) -> RunState:
        """Current run state."""
        return RunState.RUNNING if self._lock.locked() else RunState.IDLE

    def run(self, day: date | None = None, trigger: str = "manual") -> RunReport | None:
        """
        Run aggregation + sweep unless a run is already in progress.

        Args:
            day: Day to aggregate (default: yesterday, UTC)
            trigger: Label recorded in the report ("scheduled", "startup", ...)

        Returns:
            The RunReport, or None if the trigger was skipped
        """
        if not self._lock.acquire(blocking=False):
            logger.info("Aggregation run already in progress, skipping %s trigger", trigger)
            return None
        try:
            return self._execute(day, trigger)
        finally:
            self._lock.release()

    def refresh(
        self, website_id: str, day: date | None = None, owner_id: int | None = None
    ) -> list[DailyStat]:
        """
        Recompute rollups for one website right now.

        Not gated by the run lock. Errors propagate to the caller.

        Args:
            website_id: Website to refresh
            day: Day to recompute (default: today and yesterday, UTC)
            owner_id: Caller; when given, the website must belong to them

        Returns:
            The DailyStats written (days without events are omitted)

        Raises:
            NotFoundError: Unknown (or not owned) website
        """
        if self._websites is not None:
            website = self._websites.get(website_id)
            if website is None or (owner_id is not None and website.owner_id != owner_id):
                raise NotFoundError("Website not found or access denied")

        if day is not None:
            days = [day]
        else:
            today = self._clock().date()
            days = [today, today - timedelta(days=1)]

        stats = []
        for target in days:
            stat = self._engine.aggregate(website_id, target)
            if stat is not None:
                stats.append(stat)
        logger.info("Refreshed %s for %s", website_id, ", ".join(str(d) for d in days))
        return stats

    # ==========================================================================
    # Run Steps
    # ==========================================================================

    def _execute(self, day: date | None, trigger: str) -> RunReport:
        started_at = self._clock()
        target_day = day or (started_at.date() - timedelta(days=1))
        report = RunReport(trigger=trigger, target_day=target_day, started_at=started_at)

        logger.info("Aggregation run started (%s) for %s", trigger, target_day)
        self._track(
            "mark_running", trigger, started_at.isoformat(), target_day.isoformat()
        )

        try:
            self._aggregate_all(report)
            self._run_sweep(report, started_at)
            self._purge(report, started_at)
        finally:
            report.finished_at = self._clock()
            self._track("clear_running")

        logger.info(
            "Aggregation run finished for %s in %.2fs: %d/%d websites aggregated, "
            "%d failures, %s new conversions",
            target_day,
            report.duration_seconds,
            len(report.aggregated),
            len(report.websites),
            len(report.failures),
            report.sweep.conversions_recorded if report.sweep else 0,
        )
        self._track("record_run", report.to_dict())
        return report

    def _aggregate_all(self, report: RunReport) -> None:
        start, end = day_bounds(report.target_day)
        try:
            report.websites = self._events.websites_with_events(start, end)
        except Exception as e:
            logger.exception("Could not list websites with events for %s", report.target_day)
            report.errors.append(f"list websites: {e}")
            return

        for website_id in report.websites:
            try:
                if self._engine.aggregate(website_id, report.target_day) is not None:
                    report.aggregated.append(website_id)
            except Exception as e:
                logger.exception("Aggregation failed for website %s", website_id)
                report.failures[website_id] = str(e)

    def _run_sweep(self, report: RunReport, now: datetime) -> None:
        if self._sweep is None:
            return
        try:
            report.sweep = self._sweep.run(now=now)
        except Exception as e:
            logger.exception("Goal sweep failed")
            report.errors.append(f"sweep: {e}")

    def _purge(self, report: RunReport, now: datetime) -> None:
        if not self._retention_days:
            return
        cutoff = now - timedelta(days=self._retention_days)
        try:
            report.purged = self._events.purge_before(cutoff)
        except Exception as e:
            logger.exception("Event purge failed")
            report.errors.append(f"purge: {e}")

    def _track(self, method: str, *args) -> None:
        """Forward to the run-status tracker; tracker outages never fail a run."""
        if self._tracker is None:
            return
        try:
            getattr(self._tracker, method)(*args)
        except Exception as e:
            logger.warning("Run status update (%s) failed: %s", method, e)
