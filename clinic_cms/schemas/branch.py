from pydantic import BaseModel
from typing import Optional
from uuid import UUID

class BranchRead(BaseModel):
    id: UUID
    key: str
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True
