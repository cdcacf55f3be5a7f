# ==============================================================================
# Tests for Goal Condition Validation
# ==============================================================================
"""
Tests for validate_goal_conditions().
"""

import pytest

from webanalytics.core.errors import ValidationError
from webanalytics.core.validation import validate_goal_conditions


class TestValidateGoalConditions:
    """Accepted and rejected condition maps per goal type."""

    @pytest.mark.parametrize(
        "goal_type, conditions",
        [
            ("url_destination", {"url": "/thanks", "match_type": "contains"}),
            ("url_destination", {"url": r"^/order/\d+$", "match_type": "regex"}),
            ("event", {"event_type": "custom", "custom_data": {"plan": "pro"}}),
            ("page_duration", {"duration": 30}),
            ("click", {"text": "Buy"}),
            ("click", {"href": "/signup", "match_type": "exact"}),
            ("download", {}),
            ("download", {"fileType": "pdf"}),
            ("form_submit", {}),
        ],
    )
    def test_valid(self, goal_type, conditions):
        validate_goal_conditions(goal_type, conditions)

    def test_url_requires_url_and_match_type(self):
        with pytest.raises(ValidationError) as exc:
            validate_goal_conditions("url_destination", {})
        assert len(exc.value.errors) == 2

    def test_url_rejects_unknown_match_type(self):
        with pytest.raises(ValidationError):
            validate_goal_conditions("url_destination", {"url": "/x", "match_type": "fuzzy"})

    def test_bad_regex_rejected_up_front(self):
        with pytest.raises(ValidationError) as exc:
            validate_goal_conditions("url_destination", {"url": "([", "match_type": "regex"})
        assert "regular expression" in str(exc.value)

    def test_event_requires_event_type(self):
        with pytest.raises(ValidationError):
            validate_goal_conditions("event", {"custom_data": {}})

    def test_event_custom_data_must_be_object(self):
        with pytest.raises(ValidationError):
            validate_goal_conditions("event", {"event_type": "custom", "custom_data": [1]})

    @pytest.mark.parametrize("duration", [None, 0, -5, "30", True])
    def test_page_duration_needs_positive_number(self, duration):
        with pytest.raises(ValidationError):
            validate_goal_conditions("page_duration", {"duration": duration})

    def test_click_needs_href_or_text(self):
        with pytest.raises(ValidationError):
            validate_goal_conditions("click", {"match_type": "contains"})

    def test_click_rejects_starts_with(self):
        with pytest.raises(ValidationError):
            validate_goal_conditions("click", {"text": "Buy", "match_type": "starts_with"})

    def test_unknown_goal_type(self):
        with pytest.raises(ValidationError) as exc:
            validate_goal_conditions("pageview", {})
        assert "Invalid goal type" in str(exc.value)

    def test_conditions_must_be_object(self):
        with pytest.raises(ValidationError):
            validate_goal_conditions("download", ["fileType"])
