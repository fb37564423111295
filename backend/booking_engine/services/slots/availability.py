# backend/booking_engine/services/slots/availability.py
"""
Bookable start times for a provider on a specific day.

Takes into account:
- Effective working window (override > weekly rule, see resolver.py)
- Active bookings of the provider (pending_payment / confirmed)
- Requested duration

A candidate start s is kept iff no active booking [b0, b1) satisfies
b0 < s + duration and b1 > s (half-open: touching endpoints are fine).
The computation holds no locks; results may be stale by the time a booking
is attempted, which the booking guard reports as a conflict.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ...config import settings
from ...models.generated import Bookings
from ..booking_status import ACTIVE_STATUS_VALUES
from .config import (
    BookingConfig,
    as_utc,
    day_bounds_utc,
    format_slot_label,
    get_booking_config,
    local_to_utc,
    minutes_to_time,
    time_to_minutes,
)
from .resolver import ScheduleResolution, resolve_schedule


@dataclass(frozen=True)
class Slot:
    start: datetime  # aware UTC
    label: str
    squeeze: bool = False

    def as_dict(self) -> dict:
        return {"time": self.label, "squeeze": self.squeeze}


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap: [a_start, a_end) ∩ [b_start, b_end) ≠ ∅."""
    return a_start < b_end and b_start < a_end


def iter_slots(
    window: ScheduleResolution,
    target_date: date,
    duration_minutes: int,
    booked: Iterable[tuple[datetime, datetime]],
    tz: ZoneInfo,
    config: BookingConfig | None = None,
) -> Iterator[Slot]:
    """
    Lazily yield bookable slots, in order.

    Candidates run from the window's open time to its latest start
    (inclusive) at config.slot_step_minutes. Closed / no-schedule windows
    yield nothing. Pure: no I/O, safe to call concurrently.
    """
    if duration_minutes <= 0:
        raise ValueError(f"duration_minutes must be > 0, got {duration_minutes}")
    if not window.is_open:
        return

    config = config or get_booking_config()
    ranges = [(as_utc(b_start), as_utc(b_end)) for b_start, b_end in booked]
    duration = timedelta(minutes=duration_minutes)

    minute = time_to_minutes(window.start_of_day)
    latest = time_to_minutes(window.latest_start)

    while minute <= latest:
        wall = minutes_to_time(minute)
        start = local_to_utc(target_date, wall, tz)
        end = start + duration

        if not any(overlaps(start, end, b_start, b_end) for b_start, b_end in ranges):
            yield Slot(start=start, label=format_slot_label(wall))

        minute += config.slot_step_minutes


def calculate_availability(
    db: Session,
    provider_id: int,
    target_date: date,
    duration_minutes: int,
    config: BookingConfig | None = None,
    tz: ZoneInfo | None = None,
) -> dict:
    """
    Available slots for a provider on target_date.

    Returns:
        Dict with "slots" (list of {"time", "squeeze"}) plus the schedule
        resolution and booked ranges used (for the debug view).
    """
    config = config or get_booking_config()
    tz = tz or settings.tz

    window = resolve_schedule(db, provider_id, target_date)
    if not window.is_open:
        return {"slots": [], "window": window, "booked": []}

    # Bookings that can touch any candidate [s, s + duration) of this day
    day_start, day_end = day_bounds_utc(target_date, tz)
    booked = _get_active_bookings(
        db,
        provider_id,
        day_start,
        day_end + timedelta(minutes=duration_minutes),
    )

    slots = iter_slots(window, target_date, duration_minutes, booked, tz, config)
    return {
        "slots": [slot.as_dict() for slot in slots],
        "window": window,
        "booked": booked,
    }


# ── Database helpers ─────────────────────────────────────────────────────


def _get_active_bookings(
    db: Session,
    provider_id: int,
    range_start: datetime,
    range_end: datetime,
) -> list[tuple[datetime, datetime]]:
    """(start, end) of active bookings overlapping [range_start, range_end)."""
    rows = (
        db.query(Bookings.start_at, Bookings.end_at)
        .filter(
            Bookings.provider_id == provider_id,
            Bookings.status.in_(ACTIVE_STATUS_VALUES),
            Bookings.start_at < range_end,
            Bookings.end_at > range_start,
        )
        .order_by(Bookings.start_at)
        .all()
    )
    return [(as_utc(start), as_utc(end)) for start, end in rows]
