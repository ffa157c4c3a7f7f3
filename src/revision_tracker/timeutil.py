"""Conversions between nanosecond timestamps and local calendar days.

Timestamps are integer nanoseconds since the Unix epoch. Every function that
buckets by day takes an optional ``tz``; ``None`` means the host's local zone.
"""
import time
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from revision_tracker.errors import InvalidArgument

NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MICRO = 1_000


def now_ns() -> int:
    return time.time_ns()


def to_datetime(ns: int, tz: Optional[tzinfo] = None) -> datetime:
    seconds, rem = divmod(ns, NANOS_PER_SECOND)
    return datetime.fromtimestamp(seconds, tz) + timedelta(microseconds=rem // NANOS_PER_MICRO)


def to_ns(dt: datetime) -> int:
    """Inverse of to_datetime down to the microsecond. Naive datetimes are read as local time."""
    whole = int(dt.replace(microsecond=0).timestamp())
    return whole * NANOS_PER_SECOND + dt.microsecond * NANOS_PER_MICRO


def date_key(ns: int, tz: Optional[tzinfo] = None) -> date:
    return to_datetime(ns, tz).date()


def _midnight(day: date, tz: Optional[tzinfo]) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=tz)


def start_of_day(day: date, tz: Optional[tzinfo] = None) -> int:
    return to_ns(_midnight(day, tz))


def end_of_day(day: date, tz: Optional[tzinfo] = None) -> int:
    """Last nanosecond of ``day``."""
    return start_of_day(day + timedelta(days=1), tz) - 1


def add_days(ns: int, days: int, tz: Optional[tzinfo] = None) -> int:
    """Add calendar days, keeping the local wall-clock time.

    datetime stops at microseconds, so the nanosecond remainder is carried
    over separately.
    """
    nanos = ns % NANOS_PER_MICRO
    try:
        return to_ns(to_datetime(ns - nanos, tz) + timedelta(days=days)) + nanos
    except (OverflowError, ValueError) as e:
        raise InvalidArgument(f"Revision date out of range ({days} days after the study date)") from e


def days_between(earlier: date, later: date) -> int:
    return (later - earlier).days


def format_day(ns: int, tz: Optional[tzinfo] = None) -> str:
    return to_datetime(ns, tz).strftime("%a %Y-%m-%d")
