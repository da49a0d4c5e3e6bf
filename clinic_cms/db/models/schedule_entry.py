from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime, time
from uuid import UUID, uuid4
from sqlalchemy import DDL, Column, Enum as SAEnum, Index, event

from clinic_cms.db.types import UTCDateTime, utcnow
from clinic_cms.domain.intervals import Weekday

if TYPE_CHECKING:
    from .schedule import Schedule
    from .doctor import Doctor

NO_OVERLAP_CONSTRAINT = "schedule_entries_no_overlap"

class ScheduleEntry(SQLModel, table=True):
    __tablename__ = "schedule_entries"
    __table_args__ = (
        Index("ix_schedule_entries_doctor_day", "doctor_id", "day_of_week"),
    )
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    schedule_id: UUID = Field(foreign_key="schedules.id", index=True)
    doctor_id: UUID = Field(foreign_key="doctors.id")
    day_of_week: Weekday = Field(
        sa_column=Column(SAEnum(Weekday, native_enum=False, length=16), nullable=False)
    )
    start_time: time
    end_time: time
    notes: Optional[str] = Field(default=None, max_length=200)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(timezone=True), nullable=False)
    )

    schedule: "Schedule" = Relationship(back_populates="entries")
    doctor: "Doctor" = Relationship(back_populates="schedule_entries")


# PostgreSQL backstop for concurrent writers: no two rows of one doctor may
# share a weekday with overlapping [start, end) ranges.
event.listen(
    ScheduleEntry.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    ScheduleEntry.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE schedule_entries ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist ("
        "doctor_id WITH =, "
        "day_of_week WITH =, "
        "int4range(date_part('epoch', start_time)::int, date_part('epoch', end_time)::int) WITH &&"
        ")"
    ).execute_if(dialect="postgresql"),
)
