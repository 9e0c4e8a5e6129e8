from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ClinicScheduleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    start_date: date
    end_date: date
    room_count: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _date_order(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ClinicScheduleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    name: str
    start_date: date
    end_date: date
    room_count: int
    is_active: bool
    created_at: datetime


class DayOfWeekOverrideIn(BaseModel):
    schedule_id: int
    day_of_week: str
    room_number: Optional[int] = None
    practitioner_id: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_unavailable: bool
    reason: Optional[str] = Field(default=None, max_length=255)


class ScheduleOverrideOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    schedule_id: int
    date: date
    room_number: Optional[int] = None
    practitioner_id: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_unavailable: bool
    reason: Optional[str] = None


class DayOfWeekOverrideResult(BaseModel):
    message: str
    dates: list[date]
    overrides: list[ScheduleOverrideOut]
