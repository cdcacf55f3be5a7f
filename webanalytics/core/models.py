# ==============================================================================
# Web Analytics Domain Models
# ==============================================================================
"""
Pydantic models for websites, events, goals, conversions and daily rollups.

These models are used for:
- Validating event payloads at ingestion
- Carrying goal configuration into the matcher
- Converting to and from store records
- Type safety throughout the application

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

import json
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationInfo, field_validator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class EventType(str, Enum):
    """Behavioral event types emitted by the tracking script."""

    PAGE_VIEW = "page_view"
    CLICK = "click"
    SCROLL = "scroll"
    FORM_SUBMIT = "form_submit"
    DOWNLOAD = "download"
    CUSTOM = "custom"


class GoalType(str, Enum):
    """Kinds of conversion rules a goal can express."""

    URL_DESTINATION = "url_destination"
    EVENT = "event"
    PAGE_DURATION = "page_duration"
    CLICK = "click"
    DOWNLOAD = "download"
    FORM_SUBMIT = "form_submit"


class MatchType(str, Enum):
    """String comparison modes used by goal conditions."""

    EXACT = "exact"
    CONTAINS = "contains"
    REGEX = "regex"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


class DeviceInfo(BaseModel):
    """Device block of an event. Missing values are stored as 'unknown'."""

    model_config = {"frozen": True}

    type: str = "unknown"
    os: str = "unknown"
    browser: str = "unknown"

    @field_validator("type", "os", "browser", mode="before")
    @classmethod
    def _default_unknown(cls, value: Any) -> Any:
        return value or "unknown"


class Viewport(BaseModel):
    """Browser viewport size in CSS pixels."""

    model_config = {"frozen": True}

    width: int = 0
    height: int = 0


class Event(BaseModel):
    """
    A single recorded visitor action.

    Events are immutable once created. ``duration_seconds`` accepts the
    tracking script's ``duration`` key as an alias.

    Attributes:
        id: Event identifier (generated when not supplied)
        website_id: Tracked website identifier
        event_type: One of EventType
        url: Page URL where the event happened
        referrer: Referrer URL, empty for direct entries
        session_id: Visitor session token
        user_id: Optional authenticated user identifier
        duration_seconds: Time spent on the page in seconds
        device: Device type, OS and browser
        custom_data: Arbitrary key-value payload (href, text, fileName, ...)
        timestamp: When the event happened (UTC)
    """

    model_config = {"frozen": True, "populate_by_name": True}

    id: str = Field(default_factory=lambda: uuid4().hex, description="Event identifier")
    website_id: str = Field(..., min_length=1, description="Website identifier")
    event_type: EventType = Field(default=EventType.PAGE_VIEW, description="Event type")
    url: str = Field(..., min_length=1, description="Page URL")
    referrer: str = Field(default="", description="Referrer URL")
    session_id: str = Field(..., min_length=1, description="Session token")
    user_id: str | None = Field(default=None, description="Authenticated user ID")
    duration_seconds: float = Field(
        default=0.0, ge=0, alias="duration", description="Time on page in seconds"
    )
    device: DeviceInfo = Field(default_factory=DeviceInfo)
    custom_data: dict[str, Any] = Field(default_factory=dict)
    user_agent: str = Field(default="", description="Raw User-Agent header")
    ip_address: str = Field(default="", description="Client IP address")
    viewport: Viewport = Field(default_factory=Viewport)
    timestamp: datetime = Field(default_factory=utc_now, description="Event time (UTC)")

    @field_validator("referrer", "user_agent", "ip_address", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("device", "viewport", "custom_data", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return {}
        if isinstance(value, str) and info.field_name == "custom_data":
            return json.loads(value) if value else {}
        return value

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def day(self) -> date:
        """UTC calendar day of the event."""
        return self.timestamp.date()

    def to_db_record(self) -> dict:
        """Convert event to database record format."""
        return {
            "id": self.id,
            "website_id": self.website_id,
            "event_type": self.event_type.value,
            "url": self.url,
            "referrer": self.referrer,
            "session_id": self.session_id,
            "user_id": self.user_id,
            "duration_seconds": self.duration_seconds,
            "device_type": self.device.type,
            "device_os": self.device.os,
            "device_browser": self.device.browser,
            "custom_data": json.dumps(self.custom_data),
            "user_agent": self.user_agent,
            "ip_address": self.ip_address,
            "viewport_width": self.viewport.width,
            "viewport_height": self.viewport.height,
            "event_time": self.timestamp,
        }

    @classmethod
    def from_db_record(cls, row: dict) -> "Event":
        """Build an event from a database row."""
        return cls(
            id=row["id"],
            website_id=row["website_id"],
            event_type=row["event_type"],
            url=row["url"],
            referrer=row.get("referrer"),
            session_id=row["session_id"],
            user_id=row.get("user_id"),
            duration_seconds=row.get("duration_seconds") or 0,
            device={
                "type": row.get("device_type"),
                "os": row.get("device_os"),
                "browser": row.get("device_browser"),
            },
            custom_data=row.get("custom_data"),
            user_agent=row.get("user_agent"),
            ip_address=row.get("ip_address"),
            viewport={
                "width": row.get("viewport_width") or 0,
                "height": row.get("viewport_height") or 0,
            },
            timestamp=row["event_time"],
        )


class Goal(BaseModel):
    """
    A configured conversion rule for one website.

    ``conditions`` is a type-specific map, see core.validation for the keys
    each goal type requires.
    """

    id: int | None = Field(default=None, description="Assigned by the goal store")
    website_id: str = Field(..., min_length=1)
    owner_id: int = Field(..., description="Owning user")
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=1000)
    goal_type: GoalType = Field(default=GoalType.URL_DESTINATION)
    conditions: dict[str, Any] = Field(default_factory=dict)
    value: float = Field(default=0.0, ge=0, description="Monetary value per conversion")
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    deleted_at: datetime | None = None

    @field_validator("conditions", mode="before")
    @classmethod
    def _decode_conditions(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            return json.loads(value) if value else {}
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _decimal_value(cls, value: Any) -> Any:
        return 0.0 if value is None else float(value)


class Conversion(BaseModel):
    """
    A goal satisfied by a specific event.

    At most one conversion exists per (goal_id, session_id, event_id).
    """

    model_config = {"frozen": True}

    id: int | None = None
    goal_id: int
    website_id: str
    session_id: str
    event_id: str
    user_agent: str = ""
    ip_address: str = ""
    referrer: str = ""
    page_url: str
    value: float = 0.0
    custom_data: dict[str, Any] = Field(default_factory=dict)
    converted_at: datetime = Field(default_factory=utc_now)

    @field_validator("custom_data", mode="before")
    @classmethod
    def _decode_custom_data(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            return json.loads(value) if value else {}
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _decimal_value(cls, value: Any) -> Any:
        return 0.0 if value is None else float(value)

    @field_validator("converted_at")
    @classmethod
    def _converted_at_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def key(self) -> tuple[int, str, str]:
        """Uniqueness key of the conversion."""
        return (self.goal_id, self.session_id, self.event_id)

    def to_db_record(self) -> dict:
        """Convert conversion to database record format."""
        return {
            "goal_id": self.goal_id,
            "website_id": self.website_id,
            "session_id": self.session_id,
            "event_id": self.event_id,
            "user_agent": self.user_agent,
            "ip_address": self.ip_address,
            "referrer": self.referrer,
            "page_url": self.page_url,
            "conversion_value": self.value,
            "custom_data": json.dumps(self.custom_data),
            "converted_at": self.converted_at,
        }


class DailyStat(BaseModel):
    """
    Per-website, per-day rollup of raw events.

    One row per (website_id, date); recomputing replaces every field.
    """

    website_id: str
    date: date
    total_visits: int = 0
    unique_visitors: int = 0
    page_views: int = 0
    avg_duration: float = 0.0
    bounce_rate: int = 0
    top_page: str = ""
    top_referrer: str = ""
    device_stats: dict[str, int] = Field(default_factory=dict)
    browser_stats: dict[str, int] = Field(default_factory=dict)

    @field_validator("device_stats", "browser_stats", mode="before")
    @classmethod
    def _decode_stats(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            return json.loads(value) if value else {}
        return value

    def to_db_record(self) -> dict:
        """Convert daily stat to database record format."""
        return {
            "website_id": self.website_id,
            "date": self.date,
            "total_visits": self.total_visits,
            "unique_visitors": self.unique_visitors,
            "page_views": self.page_views,
            "avg_duration": self.avg_duration,
            "bounce_rate": self.bounce_rate,
            "top_page": self.top_page,
            "top_referrer": self.top_referrer,
            "device_stats": json.dumps(self.device_stats),
            "browser_stats": json.dumps(self.browser_stats),
        }


class ConversionDayStat(BaseModel):
    """Conversions of one goal grouped by UTC day."""

    conversion_date: date
    total_conversions: int
    total_value: float
    avg_value: float
    unique_sessions: int


class GoalConversionRate(BaseModel):
    """Share of a website's sessions that converted on a goal."""

    goal_id: int
    goal_name: str
    conversions: int
    converting_sessions: int
    total_value: float
    conversion_rate: float
    total_sessions: int


class Website(BaseModel):
    """A tracked website and the user that owns it."""

    id: str = Field(..., min_length=1)
    owner_id: int
    name: str = ""
    domain: str = ""
    created_at: datetime = Field(default_factory=utc_now)
