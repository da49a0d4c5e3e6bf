from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Column

from clinic_cms.db.types import UTCDateTime, utcnow

if TYPE_CHECKING:
    from .schedule_entry import ScheduleEntry

class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str
    specialty: Optional[str] = None
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(timezone=True), nullable=False)
    )

    schedule_entries: List["ScheduleEntry"] = Relationship(back_populates="doctor")
