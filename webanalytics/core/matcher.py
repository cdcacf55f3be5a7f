# ==============================================================================
# Goal Condition Matcher - Pure Domain Logic
# ==============================================================================
"""
Decides whether an event satisfies a goal.

Each goal type has one evaluator function registered in EVALUATORS. An
evaluator receives the goal's conditions map and the event and returns a
boolean; it never mutates either. Goal types without an evaluator never match.

A condition that cannot be evaluated (for example a malformed regex) raises
MatcherError inside the evaluator. evaluate() logs it and treats that goal as
not matching, so one broken goal never aborts an evaluation pass.
"""

import logging
import re
from collections.abc import Callable, Iterable
from functools import lru_cache
from typing import Any

from webanalytics.core.errors import MatcherError
from webanalytics.core.models import Event, EventType, Goal, GoalType, MatchType

logger = logging.getLogger(__name__)

Evaluator = Callable[[dict[str, Any], Event], bool]

EVALUATORS: dict[GoalType, Evaluator] = {}


def register_evaluator(goal_type: GoalType) -> Callable[[Evaluator], Evaluator]:
    """Register the decorated function as the evaluator for goal_type."""

    def decorator(func: Evaluator) -> Evaluator:
        EVALUATORS[goal_type] = func
        return func

    return decorator


# ==============================================================================
# String Matching
# ==============================================================================


@lru_cache(maxsize=256)
def _compile(pattern: str, ignore_case: bool) -> re.Pattern:
    try:
        return re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    except re.error as e:
        raise MatcherError(f"invalid regular expression {pattern!r}: {e}") from e


def match_value(
    value: str, expected: str, match_type: MatchType, ignore_case: bool = False
) -> bool:
    """
    Compare a field value against a condition value.

    Args:
        value: Value taken from the event
        expected: Value configured on the goal
        match_type: Comparison mode
        ignore_case: Compare case-insensitively

    Returns:
        True if the value satisfies the condition

    Raises:
        MatcherError: If expected is a malformed regex
    """
    if match_type == MatchType.REGEX:
        return _compile(expected, ignore_case).search(value) is not None

    if ignore_case:
        value, expected = value.lower(), expected.lower()

    if match_type == MatchType.EXACT:
        return value == expected
    if match_type == MatchType.CONTAINS:
        return expected in value
    if match_type == MatchType.STARTS_WITH:
        return value.startswith(expected)
    if match_type == MatchType.ENDS_WITH:
        return value.endswith(expected)
    raise MatcherError(f"unsupported match_type {match_type!r}")


def _parse_match_type(raw: Any, default: MatchType | None) -> MatchType | None:
    if raw is None:
        return default
    try:
        return MatchType(raw)
    except ValueError:
        return default


def strict_equals(actual: Any, expected: Any) -> bool:
    """
    Equality without cross-type coercion: True never equals 1 and 1.0 never
    equals 1. Lists and objects are compared element by element.
    """
    if type(actual) is not type(expected):
        return False
    if isinstance(expected, dict):
        return actual.keys() == expected.keys() and all(
            strict_equals(actual[key], value) for key, value in expected.items()
        )
    if isinstance(expected, list):
        return len(actual) == len(expected) and all(
            strict_equals(a, e) for a, e in zip(actual, expected)
        )
    return actual == expected


def _field_matches(
    actual: Any, expected: Any, match_type: MatchType, ignore_case: bool
) -> bool:
    if actual is None or actual == "":
        return False
    return match_value(str(actual), str(expected), match_type, ignore_case)


# ==============================================================================
# Evaluators
# ==============================================================================


@register_evaluator(GoalType.URL_DESTINATION)
def evaluate_url_destination(conditions: dict[str, Any], event: Event) -> bool:
    """Event URL compared with conditions['url'] using conditions['match_type']."""
    expected = conditions.get("url")
    if not expected or not event.url:
        return False
    # No default mode: a url goal without a usable match_type never matches
    match_type = _parse_match_type(conditions.get("match_type"), default=None)
    if match_type is None:
        return False
    return match_value(event.url, str(expected), match_type)


@register_evaluator(GoalType.EVENT)
def evaluate_event(conditions: dict[str, Any], event: Event) -> bool:
    """Event type equality plus AND over the optional custom_data pairs."""
    expected = conditions.get("event_type")
    if not expected or event.event_type.value != expected:
        return False

    required = conditions.get("custom_data") or {}
    if not isinstance(required, dict):
        raise MatcherError("custom_data condition must be an object")
    return all(
        key in event.custom_data and strict_equals(event.custom_data[key], value)
        for key, value in required.items()
    )


@register_evaluator(GoalType.PAGE_DURATION)
def evaluate_page_duration(conditions: dict[str, Any], event: Event) -> bool:
    """Time on page at least conditions['duration'] seconds."""
    threshold = conditions.get("duration")
    if isinstance(threshold, bool) or not threshold:
        return False
    try:
        threshold = float(threshold)
    except (TypeError, ValueError):
        raise MatcherError(f"duration condition is not a number: {threshold!r}") from None
    if threshold <= 0:
        return False
    return event.duration_seconds >= threshold


@register_evaluator(GoalType.CLICK)
def evaluate_click(conditions: dict[str, Any], event: Event) -> bool:
    """
    Click on an element matching href and/or text.

    Every sub-condition that is configured must match. Text is compared
    case-insensitively; href keeps its case.
    """
    if event.event_type != EventType.CLICK:
        return False

    href = conditions.get("href")
    text = conditions.get("text")
    if not href and not text:
        return False

    match_type = _parse_match_type(conditions.get("match_type"), default=MatchType.CONTAINS)
    data = event.custom_data

    if href and not _field_matches(data.get("href"), href, match_type, ignore_case=False):
        return False
    if text and not _field_matches(data.get("text"), text, match_type, ignore_case=True):
        return False
    return True


@register_evaluator(GoalType.DOWNLOAD)
def evaluate_download(conditions: dict[str, Any], event: Event) -> bool:
    """
    Download of a file matching any configured fileUrl/fileName/fileType.

    With no file conditions at all, every download matches.
    """
    if event.event_type != EventType.DOWNLOAD:
        return False

    file_url = conditions.get("fileUrl")
    file_name = conditions.get("fileName")
    file_type = conditions.get("fileType")
    if not file_url and not file_name and not file_type:
        return True

    match_type = _parse_match_type(conditions.get("match_type"), default=MatchType.CONTAINS)
    data = event.custom_data

    if file_url and _field_matches(data.get("fileUrl"), file_url, match_type, ignore_case=False):
        return True
    # fileName: exact keeps case, contains/regex ignore it
    if file_name and _field_matches(
        data.get("fileName"),
        file_name,
        match_type,
        ignore_case=match_type != MatchType.EXACT,
    ):
        return True
    if file_type and _field_matches(
        data.get("fileType"), file_type, MatchType.EXACT, ignore_case=True
    ):
        return True
    return False


# ==============================================================================
# Public API
# ==============================================================================


def evaluate(goal: Goal, event: Event) -> bool:
    """
    Check whether an event satisfies a goal.

    Args:
        goal: Goal with type and conditions
        event: Event to test

    Returns:
        True if the goal's evaluator matches. False for unregistered goal
        types and for conditions that cannot be evaluated.
    """
    evaluator = EVALUATORS.get(goal.goal_type)
    if evaluator is None:
        return False
    try:
        return evaluator(goal.conditions, event)
    except MatcherError as e:
        logger.warning(
            "Goal %s (%s) skipped, conditions could not be evaluated: %s",
            goal.id,
            goal.goal_type.value,
            e,
        )
        return False


def evaluate_all(goals: Iterable[Goal], event: Event) -> list[Goal]:
    """
    Evaluate every active goal of the event's website.

    Args:
        goals: Candidate goals, typically the website's active goals
        event: Event to test

    Returns:
        Matching goals, in the order given
    """
    matched = []
    for goal in goals:
        if not goal.is_active or goal.website_id != event.website_id:
            continue
        if evaluate(goal, event):
            matched.append(goal)
        else:
            logger.debug("Goal %s not matched by event %s", goal.id, event.id)
    return matched
