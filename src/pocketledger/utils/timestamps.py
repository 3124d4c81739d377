"""Timestamp normalization.

The document store may hand back instants in several shapes: native
``datetime`` objects, calendar dates, structured seconds-based values
(``{"seconds": ..., "nanoseconds": ...}`` or objects exposing ``.seconds``),
epoch milliseconds, or ISO 8601 strings. Everything is normalized to an
aware UTC ``datetime`` before ordering or replay logic runs.
"""

from collections.abc import Mapping
from datetime import UTC, date, datetime, time, timedelta
from typing import Any, Optional

from dateutil import parser as date_parser

# Sorts before every real instant; used for undated events.
EPOCH_FLOOR = datetime.min.replace(tzinfo=UTC)


def _from_seconds(seconds: Any, nanoseconds: Any = 0) -> Optional[datetime]:
    try:
        whole = int(seconds)
        nanos = int(nanoseconds or 0)
    except (TypeError, ValueError):
        return None
    try:
        return datetime.fromtimestamp(whole, UTC) + timedelta(microseconds=nanos // 1000)
    except (OverflowError, OSError, ValueError):
        return None


def normalize_instant(value: Any) -> Optional[datetime]:
    """Convert a stored timestamp into an aware UTC datetime.

    Args:
        value: Timestamp in any supported representation

    Returns:
        Aware UTC datetime, or None if the value is missing or unrecognized
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if isinstance(value, Mapping):
        if "seconds" in value:
            return _from_seconds(value.get("seconds"), value.get("nanoseconds", 0))
        return None
    if hasattr(value, "seconds") and not isinstance(value, (int, float, str)):
        return _from_seconds(value.seconds, getattr(value, "nanoseconds", 0))
    if isinstance(value, (int, float)):
        # Epoch milliseconds, as written by browser clients.
        try:
            return datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return normalize_instant(date_parser.isoparse(value.strip()))
        except (ValueError, OverflowError):
            return None
    return None


def normalize_date(value: Any) -> Optional[date]:
    """Convert a stored calendar date (string, date or instant) into a date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            instant = normalize_instant(value)
            return instant.date() if instant is not None else None
    instant = normalize_instant(value)
    return instant.date() if instant is not None else None


def instant_to_storage(value: Optional[datetime]) -> Optional[str]:
    """Serialize an instant as an ISO 8601 UTC string."""
    if value is None:
        return None
    return normalize_instant(value).isoformat()


def utc_now() -> datetime:
    return datetime.now(UTC)
