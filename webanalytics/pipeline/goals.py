# ==============================================================================
# Goal Management Service
# ==============================================================================
"""
Create, read, update and soft-delete goals on behalf of a website owner.

Every operation checks ownership: a goal or website the caller does not own
is reported exactly like a missing one. Conditions are validated before any
write.
"""

import logging
from typing import Any
from urllib.parse import urlsplit
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from webanalytics.base.repositories import GoalStore, WebsiteStore
from webanalytics.core.errors import NotFoundError, ValidationError
from webanalytics.core.models import Conversion, Event, EventType, Goal, GoalType, Website, utc_now
from webanalytics.core.validation import validate_goal_conditions
from webanalytics.pipeline.recorder import ConversionRecorder

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {"name", "description", "goal_type", "conditions", "value", "is_active"}
)

# Event id prefix of conversions tracked without a collected event
MANUAL_EVENT_PREFIX = "manual_"


class GoalService:
    """Owner-scoped goal CRUD and manual conversion tracking."""

    def __init__(
        self,
        goals: GoalStore,
        websites: WebsiteStore,
        recorder: ConversionRecorder | None = None,
    ):
        self._goals = goals
        self._websites = websites
        self._recorder = recorder

    def _owned_website(self, website_id: str, owner_id: int) -> Website:
        website = self._websites.get(website_id)
        if website is None or website.owner_id != owner_id:
            raise NotFoundError("Website not found or access denied")
        return website

    def get(self, goal_id: int, owner_id: int) -> Goal:
        """
        Fetch a goal owned by owner_id.

        Raises:
            NotFoundError: Goal missing, deleted, or owned by someone else
        """
        goal = self._goals.get(goal_id)
        if goal is None or goal.owner_id != owner_id:
            raise NotFoundError("Goal not found or access denied")
        return goal

    def list_for_website(self, website_id: str, owner_id: int) -> list[Goal]:
        """All non-deleted goals of an owned website."""
        self._owned_website(website_id, owner_id)
        return self._goals.list_for_website(website_id)

    def create(
        self,
        owner_id: int,
        website_id: str,
        name: str,
        goal_type: GoalType | str,
        conditions: dict[str, Any],
        value: float = 0.0,
        description: str = "",
    ) -> Goal:
        """
        Create an active goal on an owned website.

        Raises:
            NotFoundError: Website missing or not owned
            ValidationError: Invalid conditions or fields
        """
        self._owned_website(website_id, owner_id)
        validate_goal_conditions(goal_type, conditions)

        try:
            goal = Goal(
                website_id=website_id,
                owner_id=owner_id,
                name=name,
                description=description,
                goal_type=goal_type,
                conditions=conditions,
                value=value,
            )
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from None

        stored = self._goals.add(goal)
        logger.info("Goal %s created: %s (%s)", stored.id, stored.name, stored.goal_type.value)
        return stored

    def update(self, goal_id: int, owner_id: int, **changes: Any) -> Goal:
        """
        Apply field changes to an owned goal.

        Args:
            goal_id: Goal to update
            owner_id: Caller
            **changes: Any of name, description, goal_type, conditions,
                value, is_active

        Raises:
            NotFoundError: Goal missing or not owned
            ValidationError: Unknown field or invalid new values
        """
        unknown = sorted(set(changes) - UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                "Validation failed", [f"{name}: field cannot be updated" for name in unknown]
            )

        goal = self.get(goal_id, owner_id)
        if "goal_type" in changes or "conditions" in changes:
            validate_goal_conditions(
                changes.get("goal_type", goal.goal_type),
                changes.get("conditions", goal.conditions),
            )

        data = goal.model_dump()
        data.update(changes)
        data["updated_at"] = utc_now()
        try:
            updated = Goal.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from None

        self._goals.update(updated)
        logger.info("Goal %s updated: %s", goal_id, ", ".join(sorted(changes)) or "no changes")
        return updated

    def delete(self, goal_id: int, owner_id: int) -> Goal:
        """
        Soft-delete an owned goal: it stops matching, its conversions stay.

        Raises:
            NotFoundError: Goal missing or not owned
        """
        goal = self.get(goal_id, owner_id)
        now = utc_now()
        deleted = goal.model_copy(update={"is_active": False, "deleted_at": now, "updated_at": now})
        self._goals.update(deleted)
        logger.info("Goal %s deleted", goal_id)
        return deleted

    def track_conversion(
        self,
        goal_id: int,
        owner_id: int,
        session_id: str,
        page_url: str,
        value: float | None = None,
        custom_data: dict[str, Any] | None = None,
        user_agent: str = "",
        ip_address: str = "",
        referrer: str = "",
    ) -> Conversion:
        """
        Record a conversion reported directly, without a collected event.

        Each call records a new conversion under a generated event id
        (manual_<hex>); no event is stored. The value resolves like an
        automatic conversion: explicit value, custom_data["conversion_value"],
        then the goal's value.

        Args:
            goal_id: Goal that was reached
            owner_id: Caller; the goal must belong to them
            session_id: Visitor session token
            page_url: Absolute http(s) URL of the converting page
            value: Optional conversion value, >= 0
            custom_data: Optional object stored with the conversion

        Returns:
            The stored conversion

        Raises:
            ValidationError: Invalid session_id, page_url, value or custom_data
            NotFoundError: Goal missing or not owned
        """
        errors = []
        if not isinstance(session_id, str) or not session_id.strip():
            errors.append("session_id: Session ID is required")
        if not _is_http_url(page_url):
            errors.append("page_url: Valid page URL is required")
        if value is not None and (
            isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0
        ):
            errors.append("conversion_value: Conversion value must be a positive number")
        if custom_data is not None and not isinstance(custom_data, dict):
            errors.append("custom_data: Custom data must be an object")
        if errors:
            raise ValidationError("Validation failed", errors)

        goal = self.get(goal_id, owner_id)
        if self._recorder is None:
            raise RuntimeError("Conversion tracking needs a ConversionRecorder")

        try:
            event = Event(
                id=f"{MANUAL_EVENT_PREFIX}{uuid4().hex}",
                website_id=goal.website_id,
                event_type=EventType.CUSTOM,
                url=page_url,
                referrer=referrer,
                session_id=session_id.strip(),
                custom_data=custom_data or {},
                user_agent=user_agent,
                ip_address=ip_address,
            )
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from None

        conversion = self._recorder.record_if_new(goal, event, value=value).conversion
        logger.info("Manual conversion tracked for goal %s, session %s", goal_id, event.session_id)
        return conversion


def _is_http_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)
