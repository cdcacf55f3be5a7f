# ==============================================================================
# Stats Query Service
# ==============================================================================
"""
Read side of the daily rollups: window totals, top pages and the per-day
chart series of one website.

The window covers the last `days` days up to and including today (so
days + 1 calendar days), read from the stored rollups only. Days that were
never aggregated are simply absent.
"""

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from webanalytics.base.repositories import StatStore, WebsiteStore
from webanalytics.core.errors import NotFoundError, ValidationError
from webanalytics.core.models import DailyStat, utc_now

logger = logging.getLogger(__name__)

MIN_DAYS = 1
MAX_DAYS = 365
DEFAULT_DAYS = 30
TOP_PAGES_LIMIT = 10


@dataclass
class StatsOverview:
    """Rollup totals of one website over a window of days."""

    website_id: str
    start: date
    end: date
    total_visits: int = 0
    unique_visitors: int = 0
    total_page_views: int = 0
    avg_duration: float = 0.0
    avg_bounce_rate: float = 0.0
    days_with_data: int = 0
    top_pages: list[tuple[str, int]] = field(default_factory=list)
    chart: list[DailyStat] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "website_id": self.website_id,
            "period": {"start": self.start.isoformat(), "end": self.end.isoformat()},
            "overview": {
                "total_visits": self.total_visits,
                "unique_visitors": self.unique_visitors,
                "total_page_views": self.total_page_views,
                "avg_duration": self.avg_duration,
                "avg_bounce_rate": self.avg_bounce_rate,
                "days_with_data": self.days_with_data,
            },
            "top_pages": [{"page": page, "visits": visits} for page, visits in self.top_pages],
            "chart": [
                {
                    "date": s.date.isoformat(),
                    "total_visits": s.total_visits,
                    "unique_visitors": s.unique_visitors,
                    "page_views": s.page_views,
                    "avg_duration": s.avg_duration,
                    "bounce_rate": s.bounce_rate,
                }
                for s in self.chart
            ],
        }


def summarize(website_id: str, start: date, end: date, stats: list[DailyStat]) -> StatsOverview:
    """
    Fold daily rollups into an overview.

    Sums are over every row; the duration and bounce-rate averages are plain
    means of the daily values, rounded to two decimals. Top pages group the
    rows by their top page and rank by summed visits.
    """
    overview = StatsOverview(website_id=website_id, start=start, end=end, chart=list(stats))
    if not stats:
        return overview

    overview.total_visits = sum(s.total_visits for s in stats)
    overview.unique_visitors = sum(s.unique_visitors for s in stats)
    overview.total_page_views = sum(s.page_views for s in stats)
    overview.avg_duration = round(sum(s.avg_duration for s in stats) / len(stats), 2)
    overview.avg_bounce_rate = round(sum(s.bounce_rate for s in stats) / len(stats), 2)
    overview.days_with_data = len(stats)

    pages = Counter()
    for s in stats:
        if s.top_page:
            pages[s.top_page] += s.total_visits
    ranked = sorted(pages.items(), key=lambda item: (-item[1], item[0]))
    overview.top_pages = ranked[:TOP_PAGES_LIMIT]
    return overview


class StatsQueryService:
    """Dashboard queries over stored daily rollups."""

    def __init__(
        self,
        stats: StatStore,
        websites: WebsiteStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._stats = stats
        self._websites = websites
        self._clock = clock

    def overview(
        self,
        website_id: str,
        owner_id: int | None = None,
        days: int = DEFAULT_DAYS,
        today: date | None = None,
    ) -> StatsOverview:
        """
        Totals, top pages and chart rows of a website's recent rollups.

        Args:
            website_id: Website to report on
            owner_id: Caller; when given, the website must belong to them
            days: Window length, 1 to 365
            today: Last day of the window (default: today, UTC)

        Raises:
            ValidationError: days out of range
            NotFoundError: Unknown (or not owned) website
        """
        if isinstance(days, bool) or not isinstance(days, int) or not MIN_DAYS <= days <= MAX_DAYS:
            raise ValidationError(
                "Validation failed", [f"days: Days must be between {MIN_DAYS} and {MAX_DAYS}"]
            )

        website = self._websites.get(website_id)
        if website is None or (owner_id is not None and website.owner_id != owner_id):
            raise NotFoundError("Website not found or access denied")

        end = today or self._clock().date()
        start = end - timedelta(days=days)
        stats = self._stats.find_range(website_id, start, end)
        logger.debug("Read %d rollups of %s between %s and %s", len(stats), website_id, start, end)
        return summarize(website_id, start, end, stats)
