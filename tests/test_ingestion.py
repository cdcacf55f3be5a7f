# ==============================================================================
# Tests for Event Ingestion
# ==============================================================================
"""
Tests for IngestionService: validation, synchronous goal matching, failure
containment, batch independence, and the ingestion/sweep race.
"""

from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from webanalytics.core.errors import NotFoundError, ValidationError
from webanalytics.core.models import Goal
from webanalytics.pipeline.ingestion import IngestionService, normalize_payload
from webanalytics.pipeline.recorder import ConversionRecorder

# ==============================================================================
# Helpers
# ==============================================================================


def _payload(**fields) -> dict:
    data = {
        "website_id": "web_test",
        "event_type": "page_view",
        "url": "https://x.com/thanks",
        "session_id": "sess_1",
        "timestamp": "2026-03-14T12:00:00Z",
    }
    data.update(fields)
    return data


def _thanks_goal(stores) -> Goal:
    return stores.goals.add(
        Goal(
            website_id="web_test",
            owner_id=1,
            name="Thanks",
            conditions={"url": "/thanks", "match_type": "contains"},
            value=10,
        )
    )


# ==============================================================================
# Single event
# ==============================================================================


class TestIngest:
    """Tests for ingest()."""

    def test_stores_event_and_records_conversion(self, pipeline, stores):
        goal = _thanks_goal(stores)

        result = pipeline.ingestion.ingest(_payload(id="evt_1"))

        assert result.recorded is True
        assert result.event_id == "evt_1"
        assert result.matched_goals == [goal.id]
        assert result.conversions_recorded == 1
        assert stores.events.get("evt_1") is not None
        assert stores.conversions.count() == 1

    def test_no_goals_still_recorded(self, pipeline):
        result = pipeline.ingestion.ingest(_payload())

        assert result.recorded is True
        assert result.matched_goals == []

    def test_generates_session_id(self, pipeline, stores):
        payload = _payload()
        del payload["session_id"]

        result = pipeline.ingestion.ingest(payload)

        assert result.session_id.startswith("sess_")
        assert stores.events.get(result.event_id).session_id == result.session_id

    def test_strips_sensitive_query_parameters(self, pipeline, stores):
        result = pipeline.ingestion.ingest(
            _payload(url="https://x.com/account?tab=2&token=abc&password=hunter2")
        )

        assert stores.events.get(result.event_id).url == "https://x.com/account?tab=2"

    def test_accepts_camel_case_payload(self, pipeline, stores):
        result = pipeline.ingestion.ingest(
            {
                "websiteId": "web_test",
                "eventType": "click",
                "url": "https://x.com/",
                "sessionId": "sess_9",
                "customData": {"text": "Buy"},
            }
        )

        event = stores.events.get(result.event_id)
        assert event.session_id == "sess_9"
        assert event.event_type.value == "click"
        assert event.custom_data == {"text": "Buy"}

    def test_duration_alias(self, pipeline, stores):
        result = pipeline.ingestion.ingest(_payload(duration=42))
        assert stores.events.get(result.event_id).duration_seconds == 42

    def test_invalid_payload_rejected(self, pipeline):
        with pytest.raises(ValidationError) as exc:
            pipeline.ingestion.ingest(_payload(url="", event_type="hover"))
        assert len(exc.value.errors) == 2

    def test_unknown_website(self, pipeline):
        with pytest.raises(NotFoundError):
            pipeline.ingestion.ingest(_payload(website_id="web_missing"))


class TestDeviceFromUserAgent:
    """Device type, OS and browser derived from the User-Agent header."""

    CHROME_WINDOWS = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    SAFARI_IPHONE = (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 16_5 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/16.5 Mobile/15E148 Safari/604.1"
    )

    def test_parsed_when_device_missing(self, pipeline, stores):
        result = pipeline.ingestion.ingest(_payload(userAgent=self.SAFARI_IPHONE))

        device = stores.events.get(result.event_id).device
        assert (device.type, device.os, device.browser) == ("mobile", "iOS", "Mobile Safari")

    def test_client_device_block_kept(self, pipeline, stores):
        result = pipeline.ingestion.ingest(
            _payload(
                user_agent=self.SAFARI_IPHONE,
                device={"type": "tv", "os": "Tizen", "browser": "Samsung Internet"},
            )
        )

        assert stores.events.get(result.event_id).device.type == "tv"

    def test_rollup_device_and_browser_stats(self, pipeline, stores):
        pipeline.ingestion.ingest(_payload(id="e1", session_id="s1", user_agent=self.CHROME_WINDOWS))
        pipeline.ingestion.ingest(_payload(id="e2", session_id="s2", user_agent=self.CHROME_WINDOWS))
        pipeline.ingestion.ingest(_payload(id="e3", session_id="s3", user_agent=self.SAFARI_IPHONE))
        pipeline.ingestion.ingest(_payload(id="e4", session_id="s4"))

        stat = pipeline.engine.aggregate("web_test", date(2026, 3, 14))

        assert stat.device_stats == {"desktop": 2, "mobile": 1, "unknown": 1}
        assert stat.browser_stats == {"Chrome": 2, "Mobile Safari": 1, "unknown": 1}


class TestDuplicateEventId:
    """A payload reusing a stored event id neither overwrites nor converts."""

    def test_reused_id_not_matched(self, pipeline, stores):
        pipeline.ingestion.ingest(_payload(id="e1", url="https://x.com/a"))
        _thanks_goal(stores)

        result = pipeline.ingestion.ingest(_payload(id="e1", url="https://x.com/thanks"))

        assert result.recorded is False
        assert result.matched_goals == []
        assert result.conversions_recorded == 0
        assert stores.events.get("e1").url == "https://x.com/a"
        assert stores.conversions.count() == 0

    def test_retry_of_same_payload_converts_once(self, pipeline, stores):
        _thanks_goal(stores)

        first = pipeline.ingestion.ingest(_payload(id="e1"))
        second = pipeline.ingestion.ingest(_payload(id="e1"))

        assert first.recorded is True
        assert second.recorded is False
        assert stores.conversions.count() == 1

    def test_camel_case_event_id(self, pipeline, stores):
        pipeline.ingestion.ingest(_payload(eventId="e7", url="https://x.com/a"))

        result = pipeline.ingestion.ingest(_payload(eventId="e7", url="https://x.com/b"))

        assert result.recorded is False
        assert stores.events.get("e7").url == "https://x.com/a"

    def test_memory_store_reports_insert(self, stores, make_event):
        assert stores.events.save(make_event(id="e1")) is True
        assert stores.events.save(make_event(id="e1", url="https://x.com/other")) is False
        assert stores.events.get("e1").url == "https://x.com/"


class TestMatchFailureContained:
    """A failure while matching or recording never fails ingestion."""

    def test_goal_store_failure_swallowed(self, stores, caplog):
        goals = MagicMock()
        goals.find_active.side_effect = RuntimeError("goal store down")
        service = IngestionService(
            stores.events, goals, stores.websites, ConversionRecorder(stores.conversions)
        )

        result = service.ingest(_payload(id="evt_1"))

        assert result.recorded is True
        assert result.conversions_recorded == 0
        assert stores.events.get("evt_1") is not None
        assert "Goal checking failed" in caplog.text

    def test_recorder_failure_swallowed(self, stores):
        _thanks_goal(stores)
        recorder = MagicMock()
        recorder.record_if_new.side_effect = RuntimeError("conversion store down")
        service = IngestionService(stores.events, stores.goals, stores.websites, recorder)

        result = service.ingest(_payload())

        assert result.recorded is True
        assert result.conversions_recorded == 0


# ==============================================================================
# Batch
# ==============================================================================


class TestIngestBatch:
    """Tests for ingest_batch()."""

    def test_items_are_independent(self, pipeline):
        payloads = [
            _payload(id="e1"),
            _payload(id="e2", url=""),
            _payload(id="e3", website_id="web_missing"),
            _payload(id="e4"),
        ]

        result = pipeline.ingestion.ingest_batch(payloads)

        assert [r.event_id for r in result.processed] == ["e1", "e4"]
        assert [f["event"]["id"] for f in result.failed] == ["e2", "e3"]
        assert "Website not found" in result.failed[1]["error"]
        assert result.to_dict()["stats"] == {"total": 4, "successful": 2, "failed": 2}

    def test_empty_batch_rejected(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.ingestion.ingest_batch([])

    def test_oversized_batch_rejected(self, stores):
        service = IngestionService(
            stores.events,
            stores.goals,
            stores.websites,
            ConversionRecorder(stores.conversions),
            batch_max_size=2,
        )
        with pytest.raises(ValidationError):
            service.ingest_batch([_payload(), _payload(), _payload()])


# ==============================================================================
# Ingestion and sweep on the same event
# ==============================================================================


class TestIngestionSweepRace:
    """The synchronous match and the catch-up sweep yield one conversion."""

    def test_single_conversion_row(self, pipeline, stores):
        _thanks_goal(stores)
        result = pipeline.ingestion.ingest(_payload(id="evt_1"))
        event = stores.events.get(result.event_id)

        sweep = pipeline.sweep.run(now=event.timestamp + timedelta(hours=1))

        assert result.conversions_recorded == 1
        assert sweep.events_scanned == 1
        assert sweep.conversions_recorded == 0
        assert stores.conversions.count() == 1

    def test_sweep_catches_missed_match(self, stores, pipeline):
        _thanks_goal(stores)
        goals = MagicMock()
        goals.find_active.side_effect = RuntimeError("goal store down")
        flaky = IngestionService(
            stores.events, goals, stores.websites, ConversionRecorder(stores.conversions)
        )
        result = flaky.ingest(_payload(id="evt_1"))
        event = stores.events.get(result.event_id)

        sweep = pipeline.sweep.run(now=event.timestamp + timedelta(hours=1))

        assert sweep.conversions_recorded == 1
        assert stores.conversions.count() == 1


class TestNormalizePayload:
    """Tests for camelCase key mapping."""

    def test_snake_case_wins(self):
        assert normalize_payload({"sessionId": "a", "session_id": "b"}) == {"session_id": "b"}
