from pydantic import BaseModel
from typing import Optional
from uuid import UUID

class DoctorRead(BaseModel):
    id: UUID
    name: str
    specialty: Optional[str] = None
    is_active: bool = True

    class Config:
        from_attributes = True
