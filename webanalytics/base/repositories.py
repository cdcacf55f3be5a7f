# ==============================================================================
# Store Abstract Base Classes
# ==============================================================================
"""
Store ABCs for data persistence.

These define the "what" (find events, insert a conversion) not the "how"
(SQL, in-memory dicts). Concrete implementations in infrastructure/ handle
the specifics and are injected into the pipeline services.

Includes:
- EventStore: append-only raw events
- GoalStore: goal configuration
- ConversionStore: insert-only conversions, unique per (goal, session, event)
- StatStore: daily rollups, unique per (website, date)
- WebsiteStore: tracked websites and their owners
"""

from abc import ABC, abstractmethod
from datetime import date, datetime

from webanalytics.core.models import (
    Conversion,
    ConversionDayStat,
    DailyStat,
    Event,
    Goal,
    Website,
)


class Store(ABC):
    """Connection lifecycle shared by every store."""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data store."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close connection and release resources."""
        ...


class EventStore(Store):
    """Store for raw behavioral events."""

    @abstractmethod
    def save(self, event: Event) -> bool:
        """
        Append an event. Stored events are never overwritten.

        Args:
            event: Validated event

        Returns:
            True if inserted, False if an event with the same id already exists
        """
        ...

    @abstractmethod
    def get(self, event_id: str) -> Event | None:
        """Fetch one event by id."""
        ...

    @abstractmethod
    def find_between(self, website_id: str, start: datetime, end: datetime) -> list[Event]:
        """
        Events of a website within [start, end], both inclusive.

        Returns:
            Events ordered by timestamp, oldest first
        """
        ...

    @abstractmethod
    def websites_with_events(self, start: datetime, end: datetime) -> list[str]:
        """Distinct website ids having at least one event within [start, end]."""
        ...

    @abstractmethod
    def count_sessions(
        self, website_id: str, start: datetime | None = None, end: datetime | None = None
    ) -> int:
        """Distinct session ids of a website, optionally within [start, end]."""
        ...

    @abstractmethod
    def purge_before(self, cutoff: datetime) -> int:
        """
        Delete events older than cutoff.

        Returns:
            Count of events deleted
        """
        ...


class GoalStore(Store):
    """Store for goal configuration."""

    @abstractmethod
    def add(self, goal: Goal) -> Goal:
        """
        Persist a new goal.

        Returns:
            The goal with its assigned id
        """
        ...

    @abstractmethod
    def get(self, goal_id: int) -> Goal | None:
        """Fetch a goal by id, soft-deleted goals excluded."""
        ...

    @abstractmethod
    def update(self, goal: Goal) -> Goal:
        """Replace a stored goal's fields."""
        ...

    @abstractmethod
    def list_for_website(self, website_id: str) -> list[Goal]:
        """All goals of a website that are not soft-deleted, oldest first."""
        ...

    @abstractmethod
    def find_active(self, website_id: str) -> list[Goal]:
        """Active goals of a website, oldest first."""
        ...

    @abstractmethod
    def websites_with_active_goals(self) -> list[str]:
        """Distinct website ids having at least one active goal."""
        ...


class ConversionStore(Store):
    """
    Store for conversions.

    Implementations enforce uniqueness of (goal_id, session_id, event_id);
    this constraint is the only guard against duplicate conversions.
    """

    @abstractmethod
    def exists(self, goal_id: int, session_id: str, event_id: str) -> bool:
        """Whether a conversion is already recorded for the triple."""
        ...

    @abstractmethod
    def insert(self, conversion: Conversion) -> Conversion:
        """
        Insert a conversion.

        Returns:
            The stored conversion with its assigned id

        Raises:
            StorageConflict: If the (goal, session, event) triple already exists
        """
        ...

    @abstractmethod
    def find(
        self,
        goal_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Conversion]:
        """Conversions of a goal, newest first."""
        ...

    @abstractmethod
    def daily_summary(
        self, goal_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> list[ConversionDayStat]:
        """Conversions of a goal grouped by UTC day, newest day first."""
        ...

    @abstractmethod
    def totals(
        self, goal_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> tuple[int, int, float]:
        """
        Aggregate counts of a goal's conversions.

        Returns:
            (conversions, distinct converting sessions, total value)
        """
        ...


class StatStore(Store):
    """Store for daily rollups."""

    @abstractmethod
    def upsert(self, stat: DailyStat) -> None:
        """Insert or fully replace the rollup for (website_id, date)."""
        ...

    @abstractmethod
    def get(self, website_id: str, day: date) -> DailyStat | None:
        """Rollup of one website and day."""
        ...

    @abstractmethod
    def find_range(self, website_id: str, start: date, end: date) -> list[DailyStat]:
        """Rollups of a website between two days (inclusive), oldest first."""
        ...


class WebsiteStore(Store):
    """Store for tracked websites."""

    @abstractmethod
    def add(self, website: Website) -> None:
        """Register a website (no-op if it already exists)."""
        ...

    @abstractmethod
    def get(self, website_id: str) -> Website | None:
        """Fetch a website by id."""
        ...

    def exists(self, website_id: str) -> bool:
        """Whether the website is registered."""
        return self.get(website_id) is not None
