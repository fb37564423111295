# backend/booking_engine/services/slots/resolver.py
"""
Schedule resolution: the effective working window of a provider on a date.

Two tiers:
✓ provider_schedule_overrides row for the exact date (wins, incl. is_closed)
✓ provider_schedules weekly row for the date's day-of-week

Result is tagged: OPEN (with window), CLOSED, or NO_SCHEDULE. NO_SCHEDULE
yields zero slots like CLOSED, but stays distinguishable for diagnostics.
"""

from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from ...models.generated import ProviderScheduleOverrides, ProviderSchedules


class WindowKind(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    NO_SCHEDULE = "no_schedule"


class ScheduleSource(str, Enum):
    OVERRIDE = "override"
    WEEKLY = "weekly"


@dataclass(frozen=True)
class ScheduleResolution:
    kind: WindowKind
    source: Optional[ScheduleSource] = None
    start_of_day: Optional[time] = None
    latest_start: Optional[time] = None
    end_of_day: Optional[time] = None

    @property
    def is_open(self) -> bool:
        return self.kind is WindowKind.OPEN

    def as_debug(self) -> dict:
        return {
            "kind": self.kind.value,
            "source": self.source.value if self.source else None,
            "startOfDay": self.start_of_day.isoformat() if self.start_of_day else None,
            "latestStart": self.latest_start.isoformat() if self.latest_start else None,
            "endOfDay": self.end_of_day.isoformat() if self.end_of_day else None,
        }


NO_SCHEDULE = ScheduleResolution(kind=WindowKind.NO_SCHEDULE)


def day_of_week(day: date) -> int:
    """
    Day-of-week of a civil date, 0 = Sunday ... 6 = Saturday.

    Derived from the calendar date alone, so it never shifts with the
    process timezone.
    """
    return (day.weekday() + 1) % 7


def resolve_schedule(db: Session, provider_id: int, target_date: date) -> ScheduleResolution:
    """Resolve the working window of a provider on target_date."""
    override = _get_override(db, provider_id, target_date)
    if override is not None:
        return _to_resolution(override, ScheduleSource.OVERRIDE)

    weekly = _get_weekly_rule(db, provider_id, day_of_week(target_date))
    if weekly is not None:
        return _to_resolution(weekly, ScheduleSource.WEEKLY)

    return NO_SCHEDULE


def _to_resolution(rule, source: ScheduleSource) -> ScheduleResolution:
    if rule.is_closed:
        return ScheduleResolution(kind=WindowKind.CLOSED, source=source)

    start = rule.start_time
    latest = rule.latest_start_time
    if start is None or latest is None or latest < start:
        # Open rule without a usable window cannot produce any slot
        return ScheduleResolution(kind=WindowKind.CLOSED, source=source)

    return ScheduleResolution(
        kind=WindowKind.OPEN,
        source=source,
        start_of_day=start,
        latest_start=latest,
        end_of_day=rule.end_time,
    )


# ── Database helpers ─────────────────────────────────────────────────────


def _get_override(db: Session, provider_id: int, target_date: date):
    return (
        db.query(ProviderScheduleOverrides)
        .filter(
            ProviderScheduleOverrides.provider_id == provider_id,
            ProviderScheduleOverrides.day_date == target_date,
        )
        .first()
    )


def _get_weekly_rule(db: Session, provider_id: int, dow: int):
    return (
        db.query(ProviderSchedules)
        .filter(
            ProviderSchedules.provider_id == provider_id,
            ProviderSchedules.day_of_week == dow,
        )
        .first()
    )
