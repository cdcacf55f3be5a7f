# ==============================================================================
# User-Agent Parsing
# ==============================================================================
"""
Device type, OS and browser from a raw User-Agent header.

Used at ingestion when the client sends no device block. Parsing is done by
the user-agents library (ua-parser regexes underneath).
"""

import logging

from user_agents import parse

from webanalytics.core.models import DeviceInfo

logger = logging.getLogger(__name__)

# ua-parser's family for anything it cannot identify
UNIDENTIFIED_FAMILY = "Other"


def _family(name: str | None) -> str:
    if not name or name == UNIDENTIFIED_FAMILY:
        return "unknown"
    return name


def device_type(user_agent) -> str:
    """mobile, tablet or desktop (anything that is neither)."""
    if user_agent.is_tablet:
        return "tablet"
    if user_agent.is_mobile:
        return "mobile"
    return "desktop"


def parse_device(user_agent_string: str) -> DeviceInfo:
    """
    Parse a User-Agent header into a DeviceInfo.

    An empty header yields the all-"unknown" DeviceInfo.
    """
    if not user_agent_string:
        return DeviceInfo()

    user_agent = parse(user_agent_string)
    device = DeviceInfo(
        type=device_type(user_agent),
        os=_family(user_agent.os.family),
        browser=_family(user_agent.browser.family),
    )
    logger.debug("Parsed user agent %r as %s", user_agent_string, device)
    return device
