# backend/booking_engine/routers/bookings.py
# PATCH / DELETE are not exposed: status changes go through cancel

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import NotFoundError
from ..models.generated import Bookings as DBBookings
from ..schemas.bookings import (
    BookingCancel,
    BookingCreate,
    BookingRead,
    CancellationRead,
)
from ..services.booking_guard import BookingRequest, create_booking
from ..services.cancellation import cancel_booking
from ..services.payments import PaymentGateway, get_payment_gateway
from ..services.provider_locks import LockRegistry, get_provider_locks

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking_endpoint(
    data: BookingCreate,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    locks: LockRegistry = Depends(get_provider_locks),
):
    request = BookingRequest(
        provider_id=data.provider_id,
        service_id=data.primary_service_id,
        day_date=data.date,
        start_time=data.start_time,
        addon_service_ids=data.addon_service_ids,
        payment_intent_id=data.payment_intent_id,
        client_name=data.client_name,
        client_email=data.client_email,
        client_phone=data.client_phone,
        notes=data.notes,
    )
    return create_booking(db, request, gateway, locks)


@router.post("/cancel", response_model=CancellationRead)
def cancel_booking_endpoint(
    data: BookingCancel,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    locks: LockRegistry = Depends(get_provider_locks),
):
    result = cancel_booking(db, data.booking_id, data.reason, gateway, locks)
    return CancellationRead(
        booking=BookingRead.model_validate(result.booking),
        refund=result.refund.as_dict(),
        already_final=result.already_final,
        is_48_plus=result.is_48_plus,
    )


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBBookings, id)
    if not obj:
        raise NotFoundError("Booking not found", details={"bookingId": id})
    return obj
