"""
Timestamp helpers for capture events.

Capture timestamps are ISO-8601 instants. Treblle expects a plain
``YYYY-MM-DD HH:MM:SS`` UTC rendering and a load time in microseconds.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from .exceptions import TimestampParseError

logger = structlog.get_logger(__name__)

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"

_ONE_MILLISECOND = timedelta(milliseconds=1)


def parse_instant(value: Optional[str]) -> datetime:
    """
    Parse an ISO-8601 instant.

    The value must carry a zone designator (``Z`` or an explicit offset);
    local date-times are rejected because they do not name an instant.

    Raises:
        TimestampParseError: if the value is empty, malformed or naive
    """
    if not isinstance(value, str) or not value.strip():
        raise TimestampParseError(value)

    text = value.strip()
    if text[-1] in ("z", "Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise TimestampParseError(value) from e

    if parsed.tzinfo is None or "T" not in text.upper():
        raise TimestampParseError(value)

    return parsed


def format_instant(instant: datetime) -> str:
    """Render an instant as ``YYYY-MM-DD HH:MM:SS`` in UTC (display only)."""
    return instant.astimezone(timezone.utc).strftime(DISPLAY_FORMAT)


def format_timestamp(value: Optional[str]) -> str:
    """
    Reformat a raw capture timestamp for display.

    Empty input gives an empty string; anything unparseable is passed
    through untouched.
    """
    if not value or not value.strip():
        return ""

    try:
        return format_instant(parse_instant(value))
    except TimestampParseError:
        logger.debug("Timestamp left unformatted", timestamp=value)
        return value


def elapsed_micros(start_iso: Optional[str], end_iso: Optional[str]) -> int:
    """
    Time between two instants, in microseconds at millisecond precision.

    The difference is floored to whole milliseconds and multiplied by 1000.
    Returns 0 when either value fails to parse, so callers must read 0 as
    "unknown".
    """
    try:
        start = parse_instant(start_iso)
        end = parse_instant(end_iso)
    except TimestampParseError:
        return 0

    return ((end - start) // _ONE_MILLISECOND) * 1000
