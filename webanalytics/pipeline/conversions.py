# ==============================================================================
# Conversion Query Service
# ==============================================================================
"""
Read side of conversions: paginated listings with per-day summaries, and
per-goal conversion rates for a website.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from webanalytics.base.repositories import ConversionStore, EventStore, GoalStore, WebsiteStore
from webanalytics.core.errors import NotFoundError, ValidationError
from webanalytics.core.models import Conversion, ConversionDayStat, Goal, GoalConversionRate

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000
DEFAULT_PAGE_SIZE = 100


@dataclass
class ConversionPage:
    """One page of a goal's conversions plus its per-day summary."""

    goal: Goal
    conversions: list[Conversion] = field(default_factory=list)
    stats: list[ConversionDayStat] = field(default_factory=list)
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0

    @property
    def has_more(self) -> bool:
        """A full page was returned, so another may follow."""
        return len(self.conversions) == self.limit

    def to_dict(self) -> dict:
        return {
            "goal": self.goal.model_dump(mode="json"),
            "conversions": [c.model_dump(mode="json") for c in self.conversions],
            "stats": [s.model_dump(mode="json") for s in self.stats],
            "pagination": {
                "limit": self.limit,
                "offset": self.offset,
                "has_more": self.has_more,
            },
        }


class ConversionQueryService:
    """Queries over recorded conversions."""

    def __init__(
        self,
        goals: GoalStore,
        conversions: ConversionStore,
        events: EventStore,
        websites: WebsiteStore,
    ):
        self._goals = goals
        self._conversions = conversions
        self._events = events
        self._websites = websites

    def query(
        self,
        goal_id: int,
        owner_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> ConversionPage:
        """
        Page through a goal's conversions, newest first.

        Args:
            goal_id: Goal to query
            owner_id: Caller; when given, the goal must belong to them
            start: Earliest converted_at (inclusive)
            end: Latest converted_at (inclusive)
            limit: Page size, 1 to 1000
            offset: Conversions to skip, >= 0

        Raises:
            ValidationError: limit or offset out of range
            NotFoundError: Unknown (or not owned) goal
        """
        errors = []
        if not 1 <= limit <= MAX_PAGE_SIZE:
            errors.append(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            errors.append("offset must be 0 or greater")
        if errors:
            raise ValidationError("Validation failed", errors)

        goal = self._goals.get(goal_id)
        if goal is None or (owner_id is not None and goal.owner_id != owner_id):
            raise NotFoundError("Goal not found or access denied")

        return ConversionPage(
            goal=goal,
            conversions=self._conversions.find(goal_id, start, end, limit, offset),
            stats=self._conversions.daily_summary(goal_id, start, end),
            limit=limit,
            offset=offset,
        )

    def conversion_rates(
        self,
        website_id: str,
        owner_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[GoalConversionRate]:
        """
        Conversion rate of every active goal of a website.

        The rate is converting sessions divided by the website's distinct
        sessions in the same window, as a percentage with two decimals.

        Returns:
            Rates sorted by conversion count, highest first
        """
        website = self._websites.get(website_id)
        if website is None or (owner_id is not None and website.owner_id != owner_id):
            raise NotFoundError("Website not found or access denied")

        total_sessions = self._events.count_sessions(website_id, start, end)
        rates = []
        for goal in self._goals.find_active(website_id):
            conversions, sessions, total_value = self._conversions.totals(goal.id, start, end)
            rate = round(sessions / total_sessions * 100, 2) if total_sessions else 0.0
            rates.append(
                GoalConversionRate(
                    goal_id=goal.id,
                    goal_name=goal.name,
                    conversions=conversions,
                    converting_sessions=sessions,
                    total_value=total_value,
                    conversion_rate=rate,
                    total_sessions=total_sessions,
                )
            )

        rates.sort(key=lambda r: r.conversions, reverse=True)
        return rates
