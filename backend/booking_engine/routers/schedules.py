# backend/booking_engine/routers/schedules.py
# Weekly rules: PUT upserts by day_of_week, days not sent are left untouched

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import NotFoundError, ValidationError
from ..models.generated import (
    Providers as DBProviders,
    ProviderSchedules as DBProviderSchedules,
)
from ..schemas.schedules import ScheduleRuleRead, ScheduleRuleWrite

router = APIRouter(prefix="/providers", tags=["schedules"])


@router.get("/{provider_id}/schedules", response_model=list[ScheduleRuleRead])
def list_schedules(provider_id: int, db: Session = Depends(get_db)):
    get_provider_or_404(db, provider_id)
    return (
        db.query(DBProviderSchedules)
        .filter(DBProviderSchedules.provider_id == provider_id)
        .order_by(DBProviderSchedules.day_of_week)
        .all()
    )


@router.put("/{provider_id}/schedules", response_model=list[ScheduleRuleRead])
def put_schedules(
    provider_id: int,
    data: list[ScheduleRuleWrite],
    db: Session = Depends(get_db),
):
    get_provider_or_404(db, provider_id)

    days = [rule.day_of_week for rule in data]
    if len(days) != len(set(days)):
        raise ValidationError(
            "Each dayOfWeek may appear only once",
            details={"invalid": ["dayOfWeek"]},
        )

    existing = {
        row.day_of_week: row
        for row in db.query(DBProviderSchedules)
        .filter(DBProviderSchedules.provider_id == provider_id)
        .all()
    }

    for rule in data:
        obj = existing.get(rule.day_of_week)
        if obj is None:
            obj = DBProviderSchedules(provider_id=provider_id, day_of_week=rule.day_of_week)
            db.add(obj)
        obj.is_closed = 1 if rule.is_closed else 0
        obj.start_time = rule.start_time
        obj.end_time = rule.end_time
        obj.latest_start_time = rule.latest_start_time

    db.commit()
    return list_schedules(provider_id, db)


def get_provider_or_404(db: Session, provider_id: int) -> DBProviders:
    obj = db.get(DBProviders, provider_id)
    if not obj:
        raise NotFoundError("Provider not found", details={"providerId": provider_id})
    return obj
