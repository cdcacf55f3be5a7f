# ==============================================================================
# Identifier Generation
# ==============================================================================
"""
Session and website identifiers: a prefix, the current time in base36
milliseconds, then random base36 characters.
"""

import secrets
import string
import time

_BASE36 = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    """Non-negative integer in lowercase base36."""
    if number < 0:
        raise ValueError("number must be non-negative")
    digits = []
    while True:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
        if number == 0:
            return "".join(reversed(digits))


def _random_suffix(length: int = 11) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_session_id() -> str:
    """New session token, e.g. ``sess_lx2k9c1q4f8zt0mbq2ha``."""
    return f"sess_{to_base36(time.time_ns() // 1_000_000)}{_random_suffix()}"


def generate_website_id() -> str:
    """New website identifier, e.g. ``web_lx2k9c1q4f8zt0mbq2ha``."""
    return f"web_{to_base36(time.time_ns() // 1_000_000)}{_random_suffix()}"
