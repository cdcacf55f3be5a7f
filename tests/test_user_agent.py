# ==============================================================================
# Tests for User-Agent Parsing
# ==============================================================================
"""
Tests for parse_device: device type mapping, OS and browser families.
"""

import pytest

from webanalytics.core.models import DeviceInfo
from webanalytics.utils.user_agent import parse_device

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_5 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.5 Mobile/15E148 Safari/604.1"
)
SAFARI_IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 16_5 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.5 Mobile/15E148 Safari/604.1"
)


class TestParseDevice:
    """Tests for parse_device()."""

    def test_desktop(self):
        device = parse_device(CHROME_WINDOWS)

        assert device.type == "desktop"
        assert device.os == "Windows"
        assert device.browser == "Chrome"

    def test_mobile(self):
        device = parse_device(SAFARI_IPHONE)

        assert device.type == "mobile"
        assert device.os == "iOS"
        assert device.browser == "Mobile Safari"

    def test_tablet(self):
        assert parse_device(SAFARI_IPAD).type == "tablet"

    def test_empty_header(self):
        assert parse_device("") == DeviceInfo()

    @pytest.mark.parametrize("header", ["???", "-"])
    def test_unidentified_families_are_unknown(self, header):
        device = parse_device(header)

        assert device.os == "unknown"
        assert device.browser == "unknown"
        assert device.type == "desktop"
