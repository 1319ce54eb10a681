"""Refresh scheduling from HTTP caching headers.

See https://developer.mozilla.org/en-US/docs/Web/HTTP/Caching
"""

import re
from typing import Any, Mapping, Optional

from ..errors import CacheControlError

MAX_AGE_RE = re.compile(r"max-age=(\d+)", re.IGNORECASE)
DEFAULT_AGE = 0


def get_header(headers: Mapping[str, Any], name: str) -> Optional[str]:
    """Look up a header by case-insensitive name.

    Multi-valued headers given as lists yield their first value.
    """
    name = name.lower()
    for key, value in headers.items():
        if key.lower() != name:
            continue
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        return value
    return None


def max_age(headers: Mapping[str, Any]) -> int:
    """Extract ``max-age`` (seconds) from the Cache-Control header.

    Directives are case-insensitive and may appear anywhere in the
    comma-separated list.

    Raises:
        CacheControlError: If the header or the directive is missing
    """
    cache_control = get_header(headers, "cache-control")
    if not cache_control or not isinstance(cache_control, str):
        raise CacheControlError("cache-control header not found")

    match = MAX_AGE_RE.search(cache_control)
    if not match:
        raise CacheControlError("max-age not found in cache-control header")
    return int(match.group(1))


def age(headers: Mapping[str, Any]) -> int:
    """Read the Age header, defaulting to 0 when absent or non-numeric."""
    value = get_header(headers, "age")
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_AGE


def refresh_interval(headers: Mapping[str, Any]) -> int:
    """Seconds until the response goes stale: ``max(max-age - age, 0)``.

    Args:
        headers: Response headers

    Returns:
        Refresh interval in seconds

    Raises:
        CacheControlError: If no usable Cache-Control max-age is present
    """
    return max(max_age(headers) - age(headers), 0)
