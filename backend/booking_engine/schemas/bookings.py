# backend/booking_engine/schemas/bookings.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..services.slots.config import as_utc, parse_civil_date, parse_start_time

_CAMEL = {"from_attributes": True, "populate_by_name": True}


class BookingCreate(BaseModel):
    provider_id: int = Field(alias="providerId", gt=0)
    primary_service_id: int = Field(alias="primaryServiceId", gt=0)
    addon_service_ids: list[int] = Field(default_factory=list, alias="addonServiceIds")

    date: str = Field(description="Civil date in YYYY-MM-DD format")
    start_time: str = Field(alias="startTime", description="e.g. 10:00 AM or 10:00")

    client_name: Optional[str] = Field(None, alias="clientName")
    client_email: Optional[str] = Field(None, alias="clientEmail")
    client_phone: Optional[str] = Field(None, alias="clientPhone")
    notes: Optional[str] = None

    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")

    model_config = _CAMEL

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        """Validate date format."""
        try:
            parse_civil_date(v)
        except ValueError:
            raise ValueError("Date must be a YYYY-MM-DD calendar date")
        return v

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v: str) -> str:
        try:
            parse_start_time(v)
        except ValueError:
            raise ValueError("Start time must look like 10:00 AM or 10:00")
        return v.strip()


class BookingCancel(BaseModel):
    booking_id: int = Field(alias="bookingId", gt=0)
    reason: Optional[str] = None

    model_config = _CAMEL


class BookingRead(BaseModel):
    id: int

    provider_id: int = Field(alias="providerId")
    primary_service_id: int = Field(alias="primaryServiceId")
    addon_service_ids: list[int] = Field(default_factory=list, alias="addonServiceIds")
    service_summary: Optional[str] = Field(None, alias="serviceSummary")

    start_at: datetime = Field(alias="startAt")
    end_at: datetime = Field(alias="endAt")

    status: str
    total_cents: int = Field(alias="totalCents")
    deposit_cents: int = Field(alias="depositCents")
    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")
    payment_status: Optional[str] = Field(None, alias="paymentStatus")

    client_name: Optional[str] = Field(None, alias="clientName")
    client_email: Optional[str] = Field(None, alias="clientEmail")
    client_phone: Optional[str] = Field(None, alias="clientPhone")
    notes: Optional[str] = None

    cancelled_at: Optional[datetime] = Field(None, alias="cancelledAt")
    cancellation_reason: Optional[str] = Field(None, alias="cancellationReason")

    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = _CAMEL

    @field_validator("start_at", "end_at", "cancelled_at", "created_at", "updated_at")
    @classmethod
    def normalize_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # SQLite returns naive UTC
        return as_utc(v) if v is not None else None


class RefundRead(BaseModel):
    refunded: bool
    refund_id: Optional[str] = Field(None, alias="refundId")
    reason: Optional[str] = None
    error: Optional[str] = None

    model_config = _CAMEL


class CancellationRead(BaseModel):
    booking: BookingRead
    refund: RefundRead
    already_final: bool = Field(alias="alreadyFinal")
    is_48_plus: bool = Field(alias="is48Plus")

    model_config = _CAMEL
