# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Pure domain logic with no external dependencies.

This module contains:
- Domain models (Event, Goal, Conversion, DailyStat)
- Goal condition validation and matching
- Daily rollup computation

All code here is store-agnostic and easily unit-testable.
"""

from webanalytics.core.aggregator import compute_daily_stat, day_bounds
from webanalytics.core.errors import (
    AnalyticsError,
    MatcherError,
    NotFoundError,
    StorageConflict,
    TransientStoreError,
    ValidationError,
)
from webanalytics.core.matcher import evaluate, evaluate_all
from webanalytics.core.models import (
    Conversion,
    DailyStat,
    Event,
    EventType,
    Goal,
    GoalType,
    MatchType,
)
from webanalytics.core.validation import validate_goal_conditions

__all__ = [
    "AnalyticsError",
    "Conversion",
    "DailyStat",
    "Event",
    "EventType",
    "Goal",
    "GoalType",
    "MatchType",
    "MatcherError",
    "NotFoundError",
    "StorageConflict",
    "TransientStoreError",
    "ValidationError",
    "compute_daily_stat",
    "day_bounds",
    "evaluate",
    "evaluate_all",
    "validate_goal_conditions",
]
