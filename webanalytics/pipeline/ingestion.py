# ==============================================================================
# Event Ingestion Service
# ==============================================================================
"""
Collects events and evaluates goals synchronously.

Ingesting one event:
    1. validate the payload into an Event (ValidationError on bad input)
    2. generate a session id if the client sent none
    3. strip sensitive query parameters from the URL; without a device
       block, derive device type, OS and browser from the User-Agent
    4. check the website exists (NotFoundError)
    5. save the event (store errors propagate: the event was not collected);
       an id that is already stored leaves the stored event untouched and
       the payload is reported as not recorded, without goal matching
    6. match active goals and record conversions

Step 6 runs in a guarded block. A failure there is logged and the event is
still reported as collected; the next catch-up sweep retries the match.

Payload keys may be snake_case or the tracking script's camelCase
(websiteId, eventType, sessionId, customData, ...).
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from webanalytics.base.repositories import EventStore, GoalStore, WebsiteStore
from webanalytics.core.errors import NotFoundError, ValidationError
from webanalytics.core.identifiers import generate_session_id
from webanalytics.core.matcher import evaluate_all
from webanalytics.core.models import Event
from webanalytics.core.urls import sanitize_url
from webanalytics.pipeline.recorder import ConversionRecorder
from webanalytics.utils.user_agent import parse_device

logger = logging.getLogger(__name__)

# Tracking script field names
CAMEL_CASE_KEYS = {
    "websiteId": "website_id",
    "eventType": "event_type",
    "sessionId": "session_id",
    "userId": "user_id",
    "userAgent": "user_agent",
    "ipAddress": "ip_address",
    "customData": "custom_data",
    "eventId": "id",
}


@dataclass
class IngestResult:
    """Outcome of ingesting one event."""

    recorded: bool
    event_id: str
    session_id: str
    matched_goals: list[int] = field(default_factory=list)
    conversions_recorded: int = 0

    def to_dict(self) -> dict:
        return {
            "recorded": self.recorded,
            "event_id": self.event_id,
            "session_id": self.session_id,
            "matched_goals": list(self.matched_goals),
            "conversions_recorded": self.conversions_recorded,
        }


@dataclass
class BatchResult:
    """Outcome of a batch: one entry per item, split by success."""

    processed: list[IngestResult] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.processed) + len(self.failed)

    def to_dict(self) -> dict:
        return {
            "processed": [r.to_dict() for r in self.processed],
            "failed": list(self.failed),
            "stats": {
                "total": self.total,
                "successful": len(self.processed),
                "failed": len(self.failed),
            },
        }


def normalize_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Map tracking-script camelCase keys to field names; snake_case wins."""
    normalized = {}
    for key, value in payload.items():
        name = CAMEL_CASE_KEYS.get(key, key)
        if name != key and name in payload:
            continue
        normalized[name] = value
    return normalized


class IngestionService:
    """Validates, stores and goal-matches incoming events."""

    def __init__(
        self,
        events: EventStore,
        goals: GoalStore,
        websites: WebsiteStore,
        recorder: ConversionRecorder,
        batch_max_size: int = 100,
    ):
        self._events = events
        self._goals = goals
        self._websites = websites
        self._recorder = recorder
        self._batch_max_size = batch_max_size

    def build_event(self, payload: dict[str, Any]) -> Event:
        """
        Validate a payload into an Event.

        Raises:
            ValidationError: With one entry per invalid field
        """
        if not isinstance(payload, dict):
            raise ValidationError("Validation failed", ["event must be an object"])

        data = normalize_payload(payload)
        if not data.get("session_id"):
            data["session_id"] = generate_session_id()
        if isinstance(data.get("url"), str):
            data["url"] = sanitize_url(data["url"])
        if not data.get("device") and isinstance(data.get("user_agent"), str):
            data["device"] = parse_device(data["user_agent"])

        try:
            return Event.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from None

    def ingest(self, payload: dict[str, Any]) -> IngestResult:
        """
        Collect one event and record any conversions it completes.

        Args:
            payload: Event fields as sent by the client

        Returns:
            IngestResult; recorded is True once the event is stored, False
            when an event with the same id was already collected

        Raises:
            ValidationError: Payload rejected
            NotFoundError: Unknown website
        """
        event = self.build_event(payload)

        if not self._websites.exists(event.website_id):
            raise NotFoundError(f"Website not found: {event.website_id}")

        if not self._events.save(event):
            # Stored events are immutable: a reused id is not matched again
            logger.info("Event %s already collected, payload ignored", event.id)
            return IngestResult(recorded=False, event_id=event.id, session_id=event.session_id)

        result = IngestResult(recorded=True, event_id=event.id, session_id=event.session_id)

        try:
            goals = self._goals.find_active(event.website_id)
            for goal in evaluate_all(goals, event):
                result.matched_goals.append(goal.id)
                if self._recorder.record_if_new(goal, event).recorded:
                    result.conversions_recorded += 1
        except Exception:
            # The event is stored; the catch-up sweep retries the match
            logger.exception("Goal checking failed for event %s", event.id)

        return result

    def ingest_batch(self, payloads: list[dict[str, Any]]) -> BatchResult:
        """
        Collect events one by one, independently.

        Args:
            payloads: 1 to batch_max_size event payloads

        Returns:
            BatchResult with successes in processed and failures (payload and
            error message) in failed

        Raises:
            ValidationError: Batch empty or larger than batch_max_size
        """
        if not isinstance(payloads, list) or not payloads:
            raise ValidationError("Validation failed", ["events must be a non-empty array"])
        if len(payloads) > self._batch_max_size:
            raise ValidationError(
                "Validation failed",
                [f"a batch holds at most {self._batch_max_size} events, got {len(payloads)}"],
            )

        result = BatchResult()
        for payload in payloads:
            try:
                result.processed.append(self.ingest(payload))
            except Exception as e:
                logger.warning("Batch item rejected: %s", e)
                result.failed.append({"event": payload, "error": str(e)})

        logger.info(
            "Batch ingested: %d processed, %d failed", len(result.processed), len(result.failed)
        )
        return result
