# ==============================================================================
# Tests for the Goal Condition Matcher
# ==============================================================================
"""
Tests for evaluate() / evaluate_all() and the per-type evaluators.
"""

import logging

import pytest

from webanalytics.core.errors import MatcherError
from webanalytics.core.matcher import (
    EVALUATORS,
    evaluate,
    evaluate_all,
    match_value,
    strict_equals,
)
from webanalytics.core.models import GoalType, MatchType

# ==============================================================================
# match_value
# ==============================================================================


class TestMatchValue:
    """Tests for the string comparison modes."""

    def test_exact(self):
        assert match_value("/thanks", "/thanks", MatchType.EXACT)
        assert not match_value("/thanks/", "/thanks", MatchType.EXACT)

    def test_contains(self):
        assert match_value("https://x.com/thanks?ref=1", "/thanks", MatchType.CONTAINS)

    def test_regex_searches_anywhere(self):
        assert match_value("https://x.com/order/123/done", r"/order/\d+/done", MatchType.REGEX)

    def test_starts_and_ends_with(self):
        assert match_value("https://x.com/a", "https://", MatchType.STARTS_WITH)
        assert match_value("report.pdf", ".pdf", MatchType.ENDS_WITH)

    def test_ignore_case(self):
        assert match_value("Download Resume", "download", MatchType.CONTAINS, ignore_case=True)
        assert not match_value("Download Resume", "download", MatchType.CONTAINS)

    def test_bad_regex_raises_matcher_error(self):
        with pytest.raises(MatcherError):
            match_value("abc", "([", MatchType.REGEX)


# ==============================================================================
# url_destination
# ==============================================================================


class TestUrlDestination:
    """Tests for url_destination goals."""

    def test_contains_matches_url_with_query(self, make_goal, make_event):
        goal = make_goal("url_destination", {"url": "/thanks", "match_type": "contains"})
        assert evaluate(goal, make_event(url="https://x.com/thanks?ref=1")) is True

    def test_contains_rejects_other_page(self, make_goal, make_event):
        goal = make_goal("url_destination", {"url": "/thanks", "match_type": "contains"})
        assert evaluate(goal, make_event(url="https://x.com/other")) is False

    def test_missing_match_type_never_matches(self, make_goal, make_event):
        goal = make_goal("url_destination", {"url": "/thanks"})
        assert evaluate(goal, make_event(url="https://x.com/thanks")) is False

    def test_exact_is_case_sensitive(self, make_goal, make_event):
        goal = make_goal("url_destination", {"url": "https://x.com/Thanks", "match_type": "exact"})
        assert evaluate(goal, make_event(url="https://x.com/thanks")) is False


# ==============================================================================
# event
# ==============================================================================


class TestEventGoal:
    """Tests for event goals."""

    def test_event_type_only(self, make_goal, make_event):
        goal = make_goal("event", {"event_type": "custom"})
        assert evaluate(goal, make_event(event_type="custom"))
        assert not evaluate(goal, make_event(event_type="page_view"))

    def test_custom_data_all_keys_must_match(self, make_goal, make_event):
        goal = make_goal(
            "event", {"event_type": "custom", "custom_data": {"plan": "pro", "step": 3}}
        )
        assert evaluate(goal, make_event(event_type="custom", custom_data={"plan": "pro", "step": 3, "x": 1}))
        assert not evaluate(goal, make_event(event_type="custom", custom_data={"plan": "pro"}))
        assert not evaluate(goal, make_event(event_type="custom", custom_data={"plan": "pro", "step": 4}))

    @pytest.mark.parametrize(
        "expected, actual",
        [(1, True), (True, 1), (1, 1.0), (0, False), ("1", 1), (None, 0)],
    )
    def test_custom_data_no_type_coercion(self, make_goal, make_event, expected, actual):
        goal = make_goal("event", {"event_type": "custom", "custom_data": {"flag": expected}})
        event = make_event(event_type="custom", custom_data={"flag": actual})
        assert evaluate(goal, event) is False

    def test_custom_data_same_type_matches(self, make_goal, make_event):
        goal = make_goal(
            "event",
            {"event_type": "custom", "custom_data": {"trial": True, "items": [1, "a"], "price": 9.5}},
        )
        event = make_event(
            event_type="custom", custom_data={"trial": True, "items": [1, "a"], "price": 9.5}
        )
        assert evaluate(goal, event) is True

    def test_strict_equals_nested(self):
        assert strict_equals({"a": [1, {"b": True}]}, {"a": [1, {"b": True}]})
        assert not strict_equals({"a": [1, {"b": 1}]}, {"a": [1, {"b": True}]})
        assert not strict_equals([1, 2], [1, 2, 3])
        assert not strict_equals({"a": 1, "b": 2}, {"a": 1})


# ==============================================================================
# page_duration
# ==============================================================================


class TestPageDuration:
    """Tests for page_duration goals."""

    def test_threshold_is_inclusive(self, make_goal, make_event):
        goal = make_goal("page_duration", {"duration": 30})
        assert evaluate(goal, make_event(duration=29)) is False
        assert evaluate(goal, make_event(duration=30)) is True

    def test_zero_threshold_never_matches(self, make_goal, make_event):
        goal = make_goal("page_duration", {"duration": 0})
        assert evaluate(goal, make_event(duration=100)) is False


# ==============================================================================
# click
# ==============================================================================


class TestClick:
    """Tests for click goals."""

    def test_text_contains_ignores_case(self, make_goal, make_event):
        goal = make_goal("click", {"text": "Download", "match_type": "contains"})
        event = make_event(event_type="click", custom_data={"text": "download resume"})
        assert evaluate(goal, event) is True

    def test_default_match_type_is_contains(self, make_goal, make_event):
        goal = make_goal("click", {"href": "/pricing"})
        event = make_event(event_type="click", custom_data={"href": "https://x.com/pricing#top"})
        assert evaluate(goal, event) is True

    def test_href_keeps_case(self, make_goal, make_event):
        goal = make_goal("click", {"href": "/Pricing"})
        event = make_event(event_type="click", custom_data={"href": "https://x.com/pricing"})
        assert evaluate(goal, event) is False

    def test_href_and_text_both_required(self, make_goal, make_event):
        goal = make_goal("click", {"href": "/signup", "text": "join"})
        both = make_event(event_type="click", custom_data={"href": "/signup", "text": "Join now"})
        href_only = make_event(event_type="click", custom_data={"href": "/signup", "text": "Later"})
        assert evaluate(goal, both) is True
        assert evaluate(goal, href_only) is False

    def test_non_click_event_never_matches(self, make_goal, make_event):
        goal = make_goal("click", {"text": "Download"})
        event = make_event(event_type="custom", custom_data={"text": "Download"})
        assert evaluate(goal, event) is False


# ==============================================================================
# download
# ==============================================================================


class TestDownload:
    """Tests for download goals."""

    def test_no_conditions_matches_any_download(self, make_goal, make_event):
        goal = make_goal("download", {})
        assert evaluate(goal, make_event(event_type="download")) is True
        assert evaluate(goal, make_event(event_type="download", custom_data={"fileName": "a.zip"}))

    def test_no_conditions_rejects_other_event_types(self, make_goal, make_event):
        goal = make_goal("download", {})
        assert evaluate(goal, make_event(event_type="click")) is False

    def test_any_sub_condition_matches(self, make_goal, make_event):
        goal = make_goal("download", {"fileName": "brochure", "fileType": "pdf"})
        by_type = make_event(event_type="download", custom_data={"fileName": "x", "fileType": "PDF"})
        by_name = make_event(event_type="download", custom_data={"fileName": "Brochure-2026.zip"})
        neither = make_event(event_type="download", custom_data={"fileName": "x", "fileType": "zip"})
        assert evaluate(goal, by_type) is True
        assert evaluate(goal, by_name) is True
        assert evaluate(goal, neither) is False

    def test_file_type_is_exact(self, make_goal, make_event):
        goal = make_goal("download", {"fileType": "pdf"})
        event = make_event(event_type="download", custom_data={"fileType": "pdfx"})
        assert evaluate(goal, event) is False


# ==============================================================================
# evaluate / evaluate_all
# ==============================================================================


class TestEvaluate:
    """Tests for dispatch, purity and failure handling."""

    def test_every_type_but_form_submit_is_registered(self):
        assert set(EVALUATORS) == set(GoalType) - {GoalType.FORM_SUBMIT}

    def test_form_submit_never_matches(self, make_goal, make_event):
        goal = make_goal("form_submit", {})
        assert evaluate(goal, make_event(event_type="form_submit")) is False

    def test_pure_and_does_not_mutate(self, make_goal, make_event):
        conditions = {"event_type": "custom", "custom_data": {"plan": "pro"}}
        goal = make_goal("event", conditions)
        event = make_event(event_type="custom", custom_data={"plan": "pro"})
        goal_before, event_before = goal.model_dump(), event.model_dump()

        assert evaluate(goal, event) == evaluate(goal, event)
        assert goal.model_dump() == goal_before
        assert event.model_dump() == event_before

    def test_bad_regex_does_not_match_and_logs(self, make_goal, make_event, caplog):
        goal = make_goal("url_destination", {"url": "([", "match_type": "regex"})
        with caplog.at_level(logging.WARNING, logger="webanalytics.core.matcher"):
            assert evaluate(goal, make_event()) is False
        assert "could not be evaluated" in caplog.text

    def test_evaluate_all_keeps_order_and_skips_broken(self, make_goal, make_event):
        broken = make_goal("url_destination", {"url": "([", "match_type": "regex"}, id=1)
        second = make_goal("url_destination", {"url": "/", "match_type": "contains"}, id=2)
        first = make_goal("download", {}, id=3)
        event = make_event(event_type="download")

        matched = evaluate_all([second, broken, first], event)
        assert [g.id for g in matched] == [2, 3]

    def test_evaluate_all_skips_inactive_and_foreign_goals(self, make_goal, make_event):
        inactive = make_goal("download", {}, id=1, is_active=False)
        foreign = make_goal("download", {}, id=2, website_id="web_other")
        active = make_goal("download", {}, id=3)

        matched = evaluate_all([inactive, foreign, active], make_event(event_type="download"))
        assert [g.id for g in matched] == [3]
