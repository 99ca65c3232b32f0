from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r} (expected YYYY-MM-DD)")


def parse_hhmm(value: str) -> time:
    v = (value or "").strip()
    try:
        return datetime.strptime(v, "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Invalid time {value!r} (expected HH:MM)")


def resolve_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone {name!r}")


def local_to_utc(day: date, at: time, zone: ZoneInfo) -> datetime:
    """Combine a local wall-clock time on ``day`` and convert to UTC."""
    return datetime.combine(day, at, tzinfo=zone).astimezone(timezone.utc)


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def month_start(day: date) -> date:
    return day.replace(day=1)


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    """Timezone-aware wall clock.

    Note: Injected everywhere time is read so tests can drive it.
    """

    def __init__(self, zone: ZoneInfo | None = None):
        self._zone = zone

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        return current.astimezone(self._zone) if self._zone else current

    def today(self) -> date:
        return self.now().date()
