"""
Clock capability and date parsing.

Anything that needs "now" or "today" receives a `Clock` instead of reading the
system time inline, so tests can pin the date with `fixed_clock`.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def zoned_clock(tz_name: str) -> Clock:
    """Clock reporting the current time in `tz_name` (decides the local "today")."""
    tz = ZoneInfo(tz_name)

    def _now() -> datetime:
        return datetime.now(tz)

    return _now


def fixed_clock(moment: datetime) -> Clock:
    """Clock that always returns `moment` (naive values are treated as UTC)."""
    pinned = ensure_tz(moment, "UTC")
    return lambda: pinned


def ensure_tz(dt: datetime, tz_name: str) -> datetime:
    """Ensure `dt` has tzinfo; attach `tz_name` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(tz_name))
    return dt


def today(clock: Clock) -> date:
    return clock().date()


def parse_day(value: str) -> date:
    """Parse a calendar day from `YYYY-MM-DD` or a full ISO-8601 timestamp.

    Notes:
    - Accepts a trailing `Z` (UTC) and converts it to `+00:00` for `fromisoformat`.
    - Timestamps keep their own calendar day (no timezone conversion).
    """
    value = value.strip()
    if len(value) == 10:
        return date.fromisoformat(value)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value).date()


def day_from_epoch_ms(value: int | str) -> date:
    """UTC calendar day of a millisecond epoch timestamp (ValueError when out of range)."""
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc).date()
    except (OverflowError, OSError) as e:
        raise ValueError(f"timestamp out of range: {value!r}") from e
