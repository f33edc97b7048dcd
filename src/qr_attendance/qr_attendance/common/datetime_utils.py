from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterator
from zoneinfo import ZoneInfo

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def parse_hhmm(value: str, field_name: str = "time") -> time:
    """Parse a wall-clock "HH:MM" string."""
    try:
        return datetime.strptime((value or "").strip(), "%H:%M").time()
    except ValueError:
        raise ValidationError(f"{field_name} must be HH:MM, got {value!r}")


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def resolve_timezone(name: str) -> tzinfo:
    if not name or name.upper() in {"UTC", "Z"}:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (KeyError, ValueError):
        raise ValidationError(f"Unknown timezone: {name!r}")


def now_utc() -> datetime:
    """Current instant (timezone-aware).

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc)


def local_date(instant: datetime, tz: tzinfo) -> date:
    """Calendar day of ``instant`` in ``tz``."""
    return ensure_aware(instant).astimezone(tz).date()


def ensure_aware(instant: datetime) -> datetime:
    # Naive datetimes coming back from MySQL DATETIME columns are stored as UTC.
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def to_naive_utc(instant: datetime | None) -> datetime | None:
    if instant is None:
        return None
    return ensure_aware(instant).astimezone(timezone.utc).replace(tzinfo=None)


def at_wall_clock(day: date, clock: time, tz: tzinfo) -> datetime:
    return datetime.combine(day, clock, tzinfo=tz)


def minutes_between(start: time, end: time) -> int:
    anchor = date(2000, 1, 3)
    return int((datetime.combine(anchor, end) - datetime.combine(anchor, start)).total_seconds() // 60)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Inclusive day range."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def epoch_millis(instant: datetime) -> int:
    return int(ensure_aware(instant).timestamp() * 1000)


def from_epoch_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
