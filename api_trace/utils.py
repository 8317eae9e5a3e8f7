"""
Utility functions for API call tracing.
"""

import json
import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote


def utc_now_iso() -> str:
    """
    Get the current UTC time as an ISO 8601 string.

    Returns:
        Timestamp string (e.g., "2025-02-04T10:30:00.123456+00:00")
    """
    return datetime.now(timezone.utc).isoformat()


def round_half_up(value: float) -> int:
    """
    Round a value to the nearest integer, rounding .5 away from zero.

    Python's round() uses banker's rounding, which would report an
    average of 2.5ms as 2ms.

    Args:
        value: Value to round

    Returns:
        Rounded integer
    """
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


def format_duration(ms: Optional[int]) -> str:
    """
    Format a duration in milliseconds to a human-readable string.

    Args:
        ms: Duration in milliseconds

    Returns:
        Formatted string (e.g., "2.3s", "150ms", "1m 30s")
    """
    if ms is None:
        return "N/A"

    if ms < 1000:
        return f"{ms}ms"

    seconds = ms / 1000.0
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes = int(seconds // 60)
    remaining_seconds = seconds % 60
    return f"{minutes}m {remaining_seconds:.1f}s"


def truncate_string(s: str, max_length: int = 80, suffix: str = "...") -> str:
    """
    Truncate a string to a maximum length.

    Args:
        s: String to truncate
        max_length: Maximum length
        suffix: Suffix to add when truncated

    Returns:
        Truncated string
    """
    if len(s) <= max_length:
        return s
    return s[:max_length - len(suffix)] + suffix


def anchor_id(name: str) -> str:
    """
    Encode a test name for use as an HTML anchor.

    Matches JavaScript's encodeURIComponent so links written by older
    reports keep working.

    Args:
        name: Group label

    Returns:
        URL-encoded string
    """
    return quote(name, safe="-_.!~*'()")


def unserializable_placeholder(value: Any) -> str:
    """Placeholder text for a value that cannot be rendered as JSON."""
    return f"<unserializable {type(value).__name__}>"


def json_default(obj: Any) -> Any:
    """
    Fallback for json.dumps on values the json module cannot encode.

    Args:
        obj: Object json could not serialize

    Returns:
        A JSON-compatible substitute
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).decode("utf-8", errors="replace")
    return unserializable_placeholder(obj)


def safe_json_dumps(value: Any, indent: Optional[int] = 2) -> str:
    """
    Serialize a value to JSON without ever raising.

    Args:
        value: Value to serialize
        indent: Indentation passed to json.dumps

    Returns:
        JSON text, or a placeholder string if the value cannot be encoded
        (e.g. circular references)
    """
    try:
        return json.dumps(value, indent=indent, default=json_default, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        return json.dumps(unserializable_placeholder(value))
