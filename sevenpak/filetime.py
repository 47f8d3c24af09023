from __future__ import annotations

from datetime import datetime, timedelta, timezone

from .constants import (
    FILETIME_EPOCH_OFFSET_TICKS,
    MAX_FILETIME,
    NANOSECONDS_PER_TICK,
)


_FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)


def _check_ticks(ticks: int) -> int:
    if ticks < 0 or ticks > MAX_FILETIME:
        raise ValueError(f"FILETIME out of range: {ticks}")
    return ticks


def filetime_to_unix_ns(ticks: int) -> int:
    """Convert FILETIME ticks (100ns since 1601-01-01 UTC) to Unix nanoseconds."""
    _check_ticks(ticks)
    return (ticks - FILETIME_EPOCH_OFFSET_TICKS) * NANOSECONDS_PER_TICK


def unix_ns_to_filetime(ns: int) -> int:
    """Convert Unix nanoseconds to FILETIME ticks. Sub-tick precision is floored."""
    return _check_ticks(ns // NANOSECONDS_PER_TICK + FILETIME_EPOCH_OFFSET_TICKS)


def filetime_to_datetime(ticks: int) -> datetime:
    """Return an aware UTC datetime. Precision is limited to microseconds.

    Raises OverflowError for tick counts past datetime.max.
    """
    _check_ticks(ticks)
    return _FILETIME_EPOCH + timedelta(microseconds=ticks // 10)


def datetime_to_filetime(dt: datetime) -> int:
    """Convert a datetime to FILETIME ticks. Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = dt - _FILETIME_EPOCH
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return _check_ticks(micros * 10)
