"""URL validation for configured node endpoints."""

from __future__ import annotations

from urllib.parse import urlparse

from nodepool.middleware.error_handler import ValidationError

_ALLOWED_SCHEMES = {"http", "https"}


def is_valid_endpoint_url(url: str) -> bool:
    """Return True if *url* is an absolute http(s) URL with a hostname.

    Node endpoints are operator-configured, so private and loopback
    addresses are accepted.
    """
    try:
        parsed = urlparse(url)
        if parsed.scheme not in _ALLOWED_SCHEMES:
            return False
        if not parsed.hostname:
            return False
        # Raises ValueError for an out-of-range port
        _ = parsed.port
        return True
    except (TypeError, ValueError, AttributeError):
        return False


def validate_endpoint_url(url: str) -> str:
    """Return *url* unchanged, or raise ``ValidationError`` if it is malformed."""
    if not isinstance(url, str) or not is_valid_endpoint_url(url):
        raise ValidationError(f"Invalid node endpoint URL: {url!r}", endpoint=url)
    return url
