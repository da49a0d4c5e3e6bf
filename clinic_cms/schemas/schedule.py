from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator
from datetime import datetime, time
from typing import List, Optional
from uuid import UUID

from clinic_cms.core.config import settings
from clinic_cms.domain.intervals import Weekday, format_time_of_day, parse_time_of_day

def _to_time(value):
    if isinstance(value, time):
        return value
    return parse_time_of_day(value)

class ScheduleEntryCreate(BaseModel):
    schedule_id: UUID
    doctor_id: UUID
    day_of_week: Weekday
    start_time: time
    end_time: time
    notes: Optional[str] = Field(default=None, max_length=settings.SCHEDULE_NOTES_MAX_LENGTH)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, value):
        return _to_time(value)

class ScheduleEntryUpdate(BaseModel):
    doctor_id: Optional[UUID] = None
    day_of_week: Optional[Weekday] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    notes: Optional[str] = Field(default=None, max_length=settings.SCHEDULE_NOTES_MAX_LENGTH)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, value):
        if value is None:
            return value
        return _to_time(value)

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        # Only notes may be cleared; the other fields can be omitted but not nulled.
        for name in ("doctor_id", "day_of_week", "start_time", "end_time"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

class DoctorSummary(BaseModel):
    id: UUID
    name: str
    specialty: Optional[str] = None

    class Config:
        from_attributes = True

class ScheduleEntryRead(BaseModel):
    id: UUID
    schedule_id: UUID
    doctor_id: UUID
    day_of_week: Weekday
    start_time: time
    end_time: time
    notes: Optional[str] = None
    doctor: Optional[DoctorSummary] = None

    class Config:
        from_attributes = True

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: time) -> str:
        return format_time_of_day(value)

class DoctorScheduleEntryRead(ScheduleEntryRead):
    branch_id: UUID
    branch_name: str

class ScheduleRead(BaseModel):
    id: UUID
    branch_id: UUID
    created_at: datetime
    updated_at: datetime
    updated_by_id: Optional[UUID] = None
    entries: List[ScheduleEntryRead] = []

class EntryCreatedResponse(BaseModel):
    ok: bool = True
    id: UUID

class OkResponse(BaseModel):
    ok: bool = True

class ScheduleStats(BaseModel):
    schedules: int
    entries: int
