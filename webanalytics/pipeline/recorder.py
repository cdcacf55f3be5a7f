# ==============================================================================
# Conversion Recorder
# ==============================================================================
"""
Deduplicating writer for conversions.

record_if_new() checks whether a conversion already exists for the
(goal, session, event) triple and inserts one if not. The ingestion path and
the catch-up sweep may race on the same event; the store's uniqueness
constraint settles that race, and a rejected insert is reported as
"not recorded" rather than as an error.
"""

import logging
from dataclasses import dataclass
from typing import Any

from webanalytics.base.repositories import ConversionStore
from webanalytics.core.errors import StorageConflict
from webanalytics.core.models import Conversion, Event, Goal

logger = logging.getLogger(__name__)

CONVERSION_VALUE_KEY = "conversion_value"


@dataclass
class RecordResult:
    """Outcome of one record_if_new() call."""

    recorded: bool
    conversion: Conversion | None = None


def resolve_value(goal: Goal, event: Event, value: float | None = None) -> float:
    """
    Monetary value of a conversion.

    Resolution order: explicit value, numeric custom_data["conversion_value"]
    on the event, then the goal's configured value.
    """
    if value is not None:
        return float(value)
    event_value: Any = event.custom_data.get(CONVERSION_VALUE_KEY)
    if isinstance(event_value, (int, float)) and not isinstance(event_value, bool):
        return float(event_value)
    return goal.value


class ConversionRecorder:
    """
    Records conversions at most once per (goal_id, session_id, event_id).

    The recorder holds no state besides its store, so one instance can be
    shared by the ingestion service and the sweep.
    """

    def __init__(self, conversions: ConversionStore):
        self._conversions = conversions

    def record_if_new(
        self, goal: Goal, event: Event, value: float | None = None
    ) -> RecordResult:
        """
        Record a conversion for goal and event unless one already exists.

        Args:
            goal: Matched goal (must have an id)
            event: Event that satisfied the goal
            value: Optional explicit conversion value

        Returns:
            RecordResult with recorded=True and the stored conversion, or
            recorded=False when the triple was already converted
        """
        if goal.id is None:
            raise ValueError("Cannot record a conversion for an unsaved goal")

        if self._conversions.exists(goal.id, event.session_id, event.id):
            logger.debug(
                "Conversion exists for goal %s, session %s, event %s",
                goal.id,
                event.session_id,
                event.id,
            )
            return RecordResult(recorded=False)

        conversion = Conversion(
            goal_id=goal.id,
            website_id=event.website_id,
            session_id=event.session_id,
            event_id=event.id,
            user_agent=event.user_agent,
            ip_address=event.ip_address,
            referrer=event.referrer,
            page_url=event.url,
            value=resolve_value(goal, event, value),
            custom_data=event.custom_data,
        )

        try:
            stored = self._conversions.insert(conversion)
        except StorageConflict:
            # Lost the race against a concurrent writer for the same triple
            logger.debug("Duplicate conversion ignored for key %s", conversion.key)
            return RecordResult(recorded=False)

        logger.info(
            "Goal conversion recorded: goal=%s (%s) session=%s event=%s value=%.2f",
            goal.id,
            goal.name,
            event.session_id,
            event.id,
            stored.value,
        )
        return RecordResult(recorded=True, conversion=stored)
