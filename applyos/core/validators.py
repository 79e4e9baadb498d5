"""
Input Validators - Sanitization and validation utilities.

Small helpers shared by the API layer and the services:
- free-text sanitization
- UUID and URL checks
- enum membership checks for status/priority/type values
"""
import re
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple, Union
from urllib.parse import urlparse

from applyos.core.exceptions import ValidationError

TIME_RANGES = ("7d", "30d", "90d", "all")


def sanitize_text(value: Optional[str], max_length: int = 10000, collapse_whitespace: bool = False) -> str:
    """
    Sanitize user supplied text.

    - Removes null bytes
    - Strips leading/trailing whitespace
    - Optionally collapses runs of whitespace
    - Truncates to max_length
    """
    if not value:
        return ""

    cleaned = value.replace("\x00", "").strip()
    if collapse_whitespace:
        cleaned = re.sub(r"\s+", " ", cleaned)

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length]

    return cleaned


def is_valid_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
        return True
    except ValueError:
        return False


def validate_uuid(value: str, field: str = "id") -> str:
    """Raise ValidationError unless value parses as a UUID."""
    if not value or not is_valid_uuid(value):
        raise ValidationError(f"Invalid {field} format (must be UUID)", field=field)
    return str(value)


def is_http_url(value: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(value.strip())
    except (AttributeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_http_url(value: str, field: str = "url") -> str:
    if not value or not is_http_url(value):
        raise ValidationError("Invalid URL format", field=field)
    return value.strip()


def validate_choice(value: str, choices: Iterable[str], field: str) -> Tuple[bool, Optional[str]]:
    """
    Check value against an allowed set.

    Returns:
        Tuple of (is_valid, error_message)
    """
    allowed = list(choices)
    if value in allowed:
        return True, None
    return False, f'Invalid {field} "{value}". Must be one of: {", ".join(allowed)}'


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (trailing Z allowed) into a naive UTC datetime.

    Datetimes pass through, aware ones are converted to naive UTC.
    Raises ValueError on malformed strings.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def validate_time_range(value: Optional[str]) -> str:
    """Default to all; reject anything outside TIME_RANGES."""
    if not value:
        return "all"
    if value not in TIME_RANGES:
        raise ValidationError(
            f"Invalid time range. Must be one of: {', '.join(TIME_RANGES)}",
            field="timeRange",
        )
    return value
