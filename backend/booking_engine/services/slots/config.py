# backend/booking_engine/services/slots/config.py
"""
Booking engine constants and civil-time helpers.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class BookingConfig:
    """
    Fixed policy of the booking engine.

    Attributes:
        slot_step_minutes: Stride between candidate slot starts
        deposit_threshold_cents: Totals up to this amount need no deposit
        deposit_percent: Deposit share of the total, in percent
        cancellation_threshold_hours: Minimum notice for a refunded cancellation
        max_duration_minutes: Longest total duration a slot query may ask for
    """
    slot_step_minutes: int = 30
    deposit_threshold_cents: int = 2500
    deposit_percent: int = 30
    cancellation_threshold_hours: int = 48
    max_duration_minutes: int = 24 * 60

    def __post_init__(self):
        if self.slot_step_minutes <= 0:
            raise ValueError(f"slot_step_minutes must be > 0, got {self.slot_step_minutes}")

    @property
    def cancellation_threshold(self) -> timedelta:
        return timedelta(hours=self.cancellation_threshold_hours)


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton)."""
    return BookingConfig()


# ── Civil time helpers ───────────────────────────────────────────────────

_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)
_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_DATE_MARGIN = timedelta(days=2)


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def format_slot_label(value: time) -> str:
    """Human-readable en-US label: 9:00 AM, 12:30 PM."""
    suffix = "AM" if value.hour < 12 else "PM"
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {suffix}"


def parse_start_time(raw: str) -> time:
    """
    Parse a slot start as sent by clients.

    Accepts the labels produced by format_slot_label ("10:00 AM") as well
    as 24h "HH:MM" / "HH:MM:SS". Raises ValueError on anything else.
    """
    value = raw.strip()

    m = _TIME_12H.match(value)
    if m:
        hh, mm, ap = int(m.group(1)), int(m.group(2)), m.group(3).upper()
        if not 1 <= hh <= 12 or mm > 59:
            raise ValueError(f"Invalid time: {raw}")
        if ap == "AM" and hh == 12:
            hh = 0
        if ap == "PM" and hh != 12:
            hh += 12
        return time(hh, mm)

    m = _TIME_24H.match(value)
    if m:
        hh, mm = int(m.group(1)), int(m.group(2))
        if hh > 23 or mm > 59:
            raise ValueError(f"Invalid time: {raw}")
        return time(hh, mm)

    raise ValueError(f"Invalid time: {raw}")


def parse_civil_date(raw: str) -> date:
    """
    Parse a YYYY-MM-DD civil date.

    Days next to either end of the calendar are rejected: a slot query or
    booking on them would run past the datetime range. Raises ValueError.
    """
    day = date.fromisoformat(raw.strip())
    if not date.min + _DATE_MARGIN <= day <= date.max - _DATE_MARGIN:
        raise ValueError(f"Date out of range: {raw}")
    return day


def local_to_utc(day: date, value: time, tz: ZoneInfo) -> datetime:
    """Civil date + wall-clock time in the business zone → aware UTC."""
    return datetime.combine(day, value, tzinfo=tz).astimezone(timezone.utc)


def day_bounds_utc(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """[start, end) of a civil day in the business zone, as aware UTC."""
    start = local_to_utc(day, time(0, 0), tz)
    end = local_to_utc(day + timedelta(days=1), time(0, 0), tz)
    return start, end


def as_utc(value: datetime) -> datetime:
    """Normalise a stored timestamp; SQLite hands back naive UTC values."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
