# ==============================================================================
# Goal Condition Validation
# ==============================================================================
"""
Validation of goal conditions before a goal is written.

Required keys per goal type:
- url_destination: url, match_type (exact, contains, regex, starts_with, ends_with)
- event: event_type, optional custom_data map
- page_duration: duration (positive number of seconds)
- click: href and/or text, optional match_type (exact, contains, regex)
- download: optional fileUrl / fileName / fileType, optional match_type
- form_submit: no required keys
"""

import re
from typing import Any

from webanalytics.core.errors import ValidationError
from webanalytics.core.models import GoalType, MatchType

URL_MATCH_TYPES = frozenset(m.value for m in MatchType)
ELEMENT_MATCH_TYPES = frozenset(
    {MatchType.EXACT.value, MatchType.CONTAINS.value, MatchType.REGEX.value}
)


def _check_regex(pattern: Any, field: str, errors: list[str]) -> None:
    try:
        re.compile(str(pattern))
    except re.error as e:
        errors.append(f"{field} is not a valid regular expression: {e}")


def validate_goal_conditions(goal_type: GoalType | str, conditions: dict[str, Any]) -> None:
    """
    Validate the conditions map of a goal.

    Args:
        goal_type: Goal type the conditions belong to
        conditions: Type-specific conditions

    Raises:
        ValidationError: With one entry per problem found
    """
    errors: list[str] = []

    if not isinstance(conditions, dict):
        raise ValidationError("Invalid goal conditions", ["conditions must be an object"])

    try:
        goal_type = GoalType(goal_type)
    except ValueError:
        raise ValidationError(
            "Invalid goal conditions", [f"Invalid goal type: {goal_type}"]
        ) from None

    match_type = conditions.get("match_type")

    if goal_type == GoalType.URL_DESTINATION:
        if not conditions.get("url"):
            errors.append("url is required for url_destination goals")
        if match_type not in URL_MATCH_TYPES:
            errors.append("match_type must be one of: " + ", ".join(sorted(URL_MATCH_TYPES)))
        elif match_type == MatchType.REGEX.value and conditions.get("url"):
            _check_regex(conditions["url"], "url", errors)

    elif goal_type == GoalType.EVENT:
        if not conditions.get("event_type"):
            errors.append("event_type is required for event goals")
        custom_data = conditions.get("custom_data")
        if custom_data is not None and not isinstance(custom_data, dict):
            errors.append("custom_data must be an object")

    elif goal_type == GoalType.PAGE_DURATION:
        duration = conditions.get("duration")
        if isinstance(duration, bool) or not isinstance(duration, (int, float)) or duration <= 0:
            errors.append("duration (in seconds) is required for page_duration goals")

    elif goal_type == GoalType.CLICK:
        if not conditions.get("href") and not conditions.get("text"):
            errors.append("href or text is required for click goals")
        _check_element_match_type(conditions, ("href", "text"), errors)

    elif goal_type == GoalType.DOWNLOAD:
        _check_element_match_type(conditions, ("fileUrl", "fileName"), errors)

    if errors:
        raise ValidationError("Invalid goal conditions", errors)


def _check_element_match_type(
    conditions: dict[str, Any], fields: tuple[str, ...], errors: list[str]
) -> None:
    match_type = conditions.get("match_type")
    if match_type is None:
        return
    if match_type not in ELEMENT_MATCH_TYPES:
        errors.append("match_type must be one of: " + ", ".join(sorted(ELEMENT_MATCH_TYPES)))
        return
    if match_type == MatchType.REGEX.value:
        for field in fields:
            if conditions.get(field):
                _check_regex(conditions[field], field, errors)
