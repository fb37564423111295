# backend/booking_engine/routers/schedule_overrides.py
# PATCH = not exposed, DELETE = ALLOWED (hard)

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import ConflictError, NotFoundError
from ..models.generated import ProviderScheduleOverrides as DBScheduleOverrides
from ..schemas.schedules import ScheduleOverrideCreate, ScheduleOverrideRead
from .schedules import get_provider_or_404

router = APIRouter(prefix="/providers", tags=["schedule_overrides"])


@router.get("/{provider_id}/schedule-overrides", response_model=list[ScheduleOverrideRead])
def list_schedule_overrides(provider_id: int, db: Session = Depends(get_db)):
    get_provider_or_404(db, provider_id)
    return (
        db.query(DBScheduleOverrides)
        .filter(DBScheduleOverrides.provider_id == provider_id)
        .order_by(DBScheduleOverrides.day_date)
        .all()
    )


@router.post(
    "/{provider_id}/schedule-overrides",
    response_model=ScheduleOverrideRead,
    status_code=status.HTTP_201_CREATED,
)
def create_schedule_override(
    provider_id: int,
    data: ScheduleOverrideCreate,
    db: Session = Depends(get_db),
):
    get_provider_or_404(db, provider_id)

    obj = DBScheduleOverrides(
        provider_id=provider_id,
        day_date=data.day_date,
        is_closed=1 if data.is_closed else 0,
        start_time=data.start_time,
        end_time=data.end_time,
        latest_start_time=data.latest_start_time,
        reason=data.reason,
    )
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(
            "An override already exists for this date",
            details={"providerId": provider_id, "date": data.day_date.isoformat()},
        ) from e
    db.refresh(obj)
    return obj


@router.delete(
    "/{provider_id}/schedule-overrides/{override_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_schedule_override(provider_id: int, override_id: int, db: Session = Depends(get_db)):
    obj = db.get(DBScheduleOverrides, override_id)
    if not obj or obj.provider_id != provider_id:
        raise NotFoundError("Override not found", details={"overrideId": override_id})
    db.delete(obj)
    db.commit()
