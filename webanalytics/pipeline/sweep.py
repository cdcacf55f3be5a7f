# ==============================================================================
# Goal Catch-Up Sweep
# ==============================================================================
"""
Re-evaluates recent events against active goals.

Conversions missed at ingestion time (a goal created after the event, an
event that arrived out of order, a failed ingestion-time match) are picked up
here. Events already converted for a goal are skipped by the recorder, so a
sweep can be repeated any number of times.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from webanalytics.base.repositories import EventStore, GoalStore
from webanalytics.core.matcher import evaluate_all
from webanalytics.core.models import utc_now
from webanalytics.pipeline.recorder import ConversionRecorder

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Totals of one sweep pass."""

    websites: int = 0
    events_scanned: int = 0
    conversions_recorded: int = 0
    failures: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "websites": self.websites,
            "events_scanned": self.events_scanned,
            "conversions_recorded": self.conversions_recorded,
            "failures": dict(self.failures),
        }


class GoalSweep:
    """Catch-up pass of matcher + recorder over recent events."""

    def __init__(
        self,
        events: EventStore,
        goals: GoalStore,
        recorder: ConversionRecorder,
        lookback_hours: int = 24,
    ):
        self._events = events
        self._goals = goals
        self._recorder = recorder
        self._lookback = timedelta(hours=lookback_hours)

    def run(self, now: datetime | None = None) -> SweepResult:
        """
        Sweep every website that has active goals.

        A failure on one website is logged and recorded in the result; the
        remaining websites are still swept.

        Args:
            now: End of the lookback window (default: current UTC time)

        Returns:
            SweepResult with per-pass totals
        """
        end = now or utc_now()
        start = end - self._lookback
        result = SweepResult()

        for website_id in self._goals.websites_with_active_goals():
            result.websites += 1
            try:
                scanned, recorded = self.sweep_website(website_id, start, end)
            except Exception as e:
                logger.exception("Goal sweep failed for website %s", website_id)
                result.failures[website_id] = str(e)
                continue
            result.events_scanned += scanned
            result.conversions_recorded += recorded

        logger.info(
            "Goal sweep complete: %d websites, %d events scanned, %d new conversions, %d failures",
            result.websites,
            result.events_scanned,
            result.conversions_recorded,
            len(result.failures),
        )
        return result

    def sweep_website(self, website_id: str, start: datetime, end: datetime) -> tuple[int, int]:
        """
        Sweep one website's events within [start, end].

        Goals are fetched once, fresh from the store, at the start of the
        website's pass.

        Returns:
            (events scanned, conversions recorded)
        """
        goals = self._goals.find_active(website_id)
        if not goals:
            return 0, 0

        events = self._events.find_between(website_id, start, end)
        recorded = 0
        for event in events:
            for goal in evaluate_all(goals, event):
                if self._recorder.record_if_new(goal, event).recorded:
                    recorded += 1

        logger.debug(
            "Swept %s: %d events, %d goals, %d new conversions",
            website_id,
            len(events),
            len(goals),
            recorded,
        )
        return len(events), recorded
