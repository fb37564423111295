# backend/booking_engine/schemas/schedules.py

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, model_validator

_CAMEL = {"from_attributes": True, "populate_by_name": True}


class _WindowFields(BaseModel):
    is_closed: bool = Field(False, alias="isClosed")
    start_time: Optional[time] = Field(None, alias="startTime")
    end_time: Optional[time] = Field(None, alias="endTime")
    latest_start_time: Optional[time] = Field(None, alias="latestStartTime")

    model_config = _CAMEL

    @model_validator(mode="after")
    def check_window(self):
        """An open day needs start and latest start, latest not before start."""
        if self.is_closed:
            return self
        if self.start_time is None or self.latest_start_time is None:
            raise ValueError("startTime and latestStartTime are required unless isClosed")
        if self.latest_start_time < self.start_time:
            raise ValueError("latestStartTime must not be before startTime")
        if self.end_time is not None and self.end_time < self.latest_start_time:
            raise ValueError("endTime must not be before latestStartTime")
        return self


class ScheduleRuleWrite(_WindowFields):
    day_of_week: int = Field(alias="dayOfWeek", ge=0, le=6, description="0 = Sunday")


class ScheduleRuleRead(BaseModel):
    id: int
    provider_id: int = Field(alias="providerId")
    day_of_week: int = Field(alias="dayOfWeek")
    is_closed: bool = Field(alias="isClosed")
    start_time: Optional[time] = Field(None, alias="startTime")
    end_time: Optional[time] = Field(None, alias="endTime")
    latest_start_time: Optional[time] = Field(None, alias="latestStartTime")

    model_config = _CAMEL


class ScheduleOverrideCreate(_WindowFields):
    day_date: date = Field(alias="date")
    reason: Optional[str] = None


class ScheduleOverrideRead(BaseModel):
    id: int
    provider_id: int = Field(alias="providerId")
    day_date: date = Field(alias="date")
    is_closed: bool = Field(alias="isClosed")
    start_time: Optional[time] = Field(None, alias="startTime")
    end_time: Optional[time] = Field(None, alias="endTime")
    latest_start_time: Optional[time] = Field(None, alias="latestStartTime")
    reason: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    model_config = _CAMEL
