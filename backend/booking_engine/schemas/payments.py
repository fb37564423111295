# backend/booking_engine/schemas/payments.py

from typing import Optional

from pydantic import BaseModel, Field


class DepositIntentCreate(BaseModel):
    provider_id: int = Field(alias="providerId", gt=0)
    service_id: int = Field(alias="serviceId", gt=0)
    addon_service_ids: list[int] = Field(default_factory=list, alias="addonServiceIds")

    # Echoed into the intent metadata only
    date: Optional[str] = None
    start_time: Optional[str] = Field(None, alias="startTime")

    model_config = {"from_attributes": True, "populate_by_name": True}


class DepositIntentRead(BaseModel):
    deposit_cents: int = Field(alias="depositCents")
    price_cents: int = Field(alias="priceCents")
    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")
    client_secret: Optional[str] = Field(None, alias="clientSecret")
    note: Optional[str] = None

    model_config = {"from_attributes": True, "populate_by_name": True}
