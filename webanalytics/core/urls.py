# ==============================================================================
# URL Helpers
# ==============================================================================
"""
URL helpers used at ingestion and during aggregation.

- sanitize_url: strip credentials-like query parameters before storage
- extract_domain: hostname of a referrer, used for top_referrer
"""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

# Query parameters that must never be persisted
SENSITIVE_PARAMS = frozenset({"token", "key", "password", "secret", "auth"})


def sanitize_url(url: str) -> str:
    """
    Remove sensitive query parameters from a URL.

    URLs that cannot be parsed as absolute URLs are returned unchanged.

    Args:
        url: URL reported by the client

    Returns:
        The URL without token/key/password/secret/auth parameters
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc or not parts.query:
        return url

    query = [
        (name, value)
        for name, value in parse_qsl(parts.query, keep_blank_values=True)
        if name not in SENSITIVE_PARAMS
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


def extract_domain(url: str) -> str:
    """
    Extract the hostname from a URL.

    Args:
        url: Absolute URL (typically a referrer)

    Returns:
        Hostname, or the input unchanged if it has none
    """
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return url
    return hostname or url
