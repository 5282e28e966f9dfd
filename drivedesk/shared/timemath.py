"""Calendar arithmetic for lesson slots.

Every function here is pure: times are passed in, nothing reads the system
clock. Stored timestamps are UTC; day offsets are applied on the local
calendar of an explicit IANA timezone so that a weekly 09:00 lesson keeps its
wall-clock time across daylight-saving changes.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from drivedesk.shared.exceptions import ValidationException
from drivedesk.shared.utils import ensure_utc

MINUTES_PER_HOUR = Decimal(60)


def resolve_timezone(name: str) -> ZoneInfo:
    """Return ZoneInfo for an IANA name or raise a validation error."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationException(f"Unknown timezone: {name}") from exc


def add_days(start: datetime, days: int, tz: ZoneInfo) -> datetime:
    """Shift ``start`` by whole calendar days in ``tz`` and return UTC."""
    if days == 0:
        return ensure_utc(start)
    local_start = ensure_utc(start).astimezone(tz)
    # Same-tzinfo arithmetic is wall-clock; the offset is recomputed on conversion.
    return ensure_utc(local_start + timedelta(days=days))


def end_time_for(start: datetime, duration_minutes: int) -> datetime:
    """Return the absolute end of a slot that lasts ``duration_minutes``."""
    if duration_minutes <= 0:
        raise ValidationException("Lesson duration must be positive")
    return ensure_utc(start) + timedelta(minutes=duration_minutes)


def duration_minutes(start: datetime, end: datetime) -> int:
    """Return whole minutes between two instants, requiring end > start."""
    start_utc = ensure_utc(start)
    end_utc = ensure_utc(end)
    if end_utc <= start_utc:
        raise ValidationException("Booking end must be after start")
    return int((end_utc - start_utc).total_seconds() // 60)


def duration_hours(start: datetime, end: datetime) -> Decimal:
    """Return slot length in hours as an exact two-place decimal."""
    minutes = duration_minutes(start, end)
    return (Decimal(minutes) / MINUTES_PER_HOUR).quantize(Decimal("0.01"))
