from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Column

from clinic_cms.db.types import UTCDateTime, utcnow

if TYPE_CHECKING:
    from .branch import Branch
    from .schedule_entry import ScheduleEntry

class Schedule(SQLModel, table=True):
    """Weekly doctor roster of one branch."""
    __tablename__ = "schedules"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    branch_id: UUID = Field(foreign_key="branches.id", unique=True, index=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(timezone=True), nullable=False)
    )
    updated_by_id: Optional[UUID] = Field(default=None, foreign_key="users.id")

    branch: "Branch" = Relationship(back_populates="schedule")
    entries: List["ScheduleEntry"] = Relationship(
        back_populates="schedule",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
