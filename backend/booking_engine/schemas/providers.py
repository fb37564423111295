# backend/booking_engine/schemas/providers.py

from typing import Optional

from pydantic import BaseModel, Field


class ProviderRead(BaseModel):
    id: int
    display_name: str = Field(alias="displayName")
    bio: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoUrl")
    is_active: bool = Field(alias="isActive")

    model_config = {"from_attributes": True, "populate_by_name": True}


class ProviderServiceRead(BaseModel):
    """A service as offered by one provider (price + effective duration)."""
    service_id: int = Field(alias="serviceId")
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: int = Field(alias="durationMinutes")
    price_cents: int = Field(alias="priceCents")

    model_config = {"from_attributes": True, "populate_by_name": True}
