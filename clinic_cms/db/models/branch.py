from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Column

from clinic_cms.db.types import UTCDateTime, utcnow

if TYPE_CHECKING:
    from .schedule import Schedule

class Branch(SQLModel, table=True):
    __tablename__ = "branches"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    key: str = Field(unique=True, index=True)
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(timezone=True), nullable=False)
    )

    schedule: Optional["Schedule"] = Relationship(
        back_populates="branch", sa_relationship_kwargs={"uselist": False}
    )
