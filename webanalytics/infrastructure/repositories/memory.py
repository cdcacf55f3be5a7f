# ==============================================================================
# In-Memory Store Implementations
# ==============================================================================
"""
Thread-safe in-memory implementations of the store interfaces.

Used by the test suite and by STORAGE_BACKEND=memory for local runs. Each
store guards its state with a lock; the conversion store enforces the same
(goal_id, session_id, event_id) uniqueness as the PostgreSQL table.
"""

import itertools
import logging
import threading
from collections import OrderedDict
from datetime import date, datetime

from webanalytics.base.repositories import (
    ConversionStore,
    EventStore,
    GoalStore,
    StatStore,
    WebsiteStore,
)
from webanalytics.core.errors import StorageConflict
from webanalytics.core.models import (
    Conversion,
    ConversionDayStat,
    DailyStat,
    Event,
    Goal,
    Website,
    as_utc,
)

logger = logging.getLogger(__name__)


def _in_range(value: datetime, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and value < as_utc(start):
        return False
    if end is not None and value > as_utc(end):
        return False
    return True


class InMemoryStore:
    """Lock and no-op connection lifecycle shared by the in-memory stores."""

    def __init__(self):
        self._lock = threading.Lock()

    def connect(self) -> None:
        """Nothing to connect to."""

    def close(self) -> None:
        """Nothing to release."""


class InMemoryEventStore(InMemoryStore, EventStore):
    """Events kept in insertion order, keyed by id."""

    def __init__(self):
        super().__init__()
        self._events: OrderedDict[str, Event] = OrderedDict()

    def save(self, event: Event) -> bool:
        with self._lock:
            if event.id in self._events:
                return False
            self._events[event.id] = event
        return True

    def get(self, event_id: str) -> Event | None:
        with self._lock:
            return self._events.get(event_id)

    def find_between(self, website_id: str, start: datetime, end: datetime) -> list[Event]:
        with self._lock:
            events = [
                e
                for e in self._events.values()
                if e.website_id == website_id and _in_range(e.timestamp, start, end)
            ]
        # sorted() is stable, ties keep insertion order
        return sorted(events, key=lambda e: e.timestamp)

    def websites_with_events(self, start: datetime, end: datetime) -> list[str]:
        with self._lock:
            websites = {
                e.website_id for e in self._events.values() if _in_range(e.timestamp, start, end)
            }
        return sorted(websites)

    def count_sessions(
        self, website_id: str, start: datetime | None = None, end: datetime | None = None
    ) -> int:
        with self._lock:
            return len(
                {
                    e.session_id
                    for e in self._events.values()
                    if e.website_id == website_id and _in_range(e.timestamp, start, end)
                }
            )

    def purge_before(self, cutoff: datetime) -> int:
        cutoff = as_utc(cutoff)
        with self._lock:
            expired = [event_id for event_id, e in self._events.items() if e.timestamp < cutoff]
            for event_id in expired:
                del self._events[event_id]
        logger.info("Purged %d events older than %s", len(expired), cutoff.isoformat())
        return len(expired)


class InMemoryGoalStore(InMemoryStore, GoalStore):
    """Goals keyed by an auto-incremented id."""

    def __init__(self):
        super().__init__()
        self._goals: dict[int, Goal] = {}
        self._ids = itertools.count(1)

    def add(self, goal: Goal) -> Goal:
        with self._lock:
            stored = goal.model_copy(update={"id": next(self._ids)})
            self._goals[stored.id] = stored
        return stored

    def get(self, goal_id: int) -> Goal | None:
        with self._lock:
            goal = self._goals.get(goal_id)
        if goal is None or goal.deleted_at is not None:
            return None
        return goal

    def update(self, goal: Goal) -> Goal:
        with self._lock:
            self._goals[goal.id] = goal
        return goal

    def list_for_website(self, website_id: str) -> list[Goal]:
        with self._lock:
            return [
                g
                for g in self._goals.values()
                if g.website_id == website_id and g.deleted_at is None
            ]

    def find_active(self, website_id: str) -> list[Goal]:
        return [g for g in self.list_for_website(website_id) if g.is_active]

    def websites_with_active_goals(self) -> list[str]:
        with self._lock:
            websites = {
                g.website_id
                for g in self._goals.values()
                if g.is_active and g.deleted_at is None
            }
        return sorted(websites)


class InMemoryConversionStore(InMemoryStore, ConversionStore):
    """Conversions keyed by (goal_id, session_id, event_id)."""

    def __init__(self):
        super().__init__()
        self._conversions: dict[tuple[int, str, str], Conversion] = {}
        self._ids = itertools.count(1)

    def exists(self, goal_id: int, session_id: str, event_id: str) -> bool:
        with self._lock:
            return (goal_id, session_id, event_id) in self._conversions

    def insert(self, conversion: Conversion) -> Conversion:
        with self._lock:
            if conversion.key in self._conversions:
                raise StorageConflict(
                    "Conversion already recorded for goal %s, session %s, event %s"
                    % conversion.key
                )
            stored = conversion.model_copy(update={"id": next(self._ids)})
            self._conversions[stored.key] = stored
        return stored

    def _matching(
        self, goal_id: int, start: datetime | None, end: datetime | None
    ) -> list[Conversion]:
        with self._lock:
            return [
                c
                for c in self._conversions.values()
                if c.goal_id == goal_id and _in_range(c.converted_at, start, end)
            ]

    def find(
        self,
        goal_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Conversion]:
        conversions = sorted(
            self._matching(goal_id, start, end),
            key=lambda c: (c.converted_at, c.id),
            reverse=True,
        )
        return conversions[offset : offset + limit]

    def daily_summary(
        self, goal_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> list[ConversionDayStat]:
        by_day: dict[date, list[Conversion]] = {}
        for conversion in self._matching(goal_id, start, end):
            by_day.setdefault(conversion.converted_at.date(), []).append(conversion)

        summary = []
        for day in sorted(by_day, reverse=True):
            conversions = by_day[day]
            total_value = sum(c.value for c in conversions)
            summary.append(
                ConversionDayStat(
                    conversion_date=day,
                    total_conversions=len(conversions),
                    total_value=total_value,
                    avg_value=total_value / len(conversions),
                    unique_sessions=len({c.session_id for c in conversions}),
                )
            )
        return summary

    def totals(
        self, goal_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> tuple[int, int, float]:
        conversions = self._matching(goal_id, start, end)
        return (
            len(conversions),
            len({c.session_id for c in conversions}),
            float(sum(c.value for c in conversions)),
        )

    def count(self) -> int:
        """Number of stored conversions."""
        with self._lock:
            return len(self._conversions)


class InMemoryStatStore(InMemoryStore, StatStore):
    """Daily rollups keyed by (website_id, date)."""

    def __init__(self):
        super().__init__()
        self._stats: dict[tuple[str, date], DailyStat] = {}

    def upsert(self, stat: DailyStat) -> None:
        with self._lock:
            self._stats[(stat.website_id, stat.date)] = stat.model_copy()

    def get(self, website_id: str, day: date) -> DailyStat | None:
        with self._lock:
            return self._stats.get((website_id, day))

    def find_range(self, website_id: str, start: date, end: date) -> list[DailyStat]:
        with self._lock:
            stats = [
                s
                for (site, day), s in self._stats.items()
                if site == website_id and start <= day <= end
            ]
        return sorted(stats, key=lambda s: s.date)


class InMemoryWebsiteStore(InMemoryStore, WebsiteStore):
    """Websites keyed by id."""

    def __init__(self):
        super().__init__()
        self._websites: dict[str, Website] = {}

    def add(self, website: Website) -> None:
        with self._lock:
            self._websites.setdefault(website.id, website)

    def get(self, website_id: str) -> Website | None:
        with self._lock:
            return self._websites.get(website_id)
