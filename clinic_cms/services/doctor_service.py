from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from clinic_cms.core.exceptions import NotFoundError
from clinic_cms.db.models import Branch, Doctor

class DoctorService:
    """Read-only doctor directory used by the schedule screens."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_doctors(self, active_only: bool = True) -> List[Doctor]:
        query = select(Doctor)
        if active_only:
            query = query.where(Doctor.is_active == True)
        query = query.order_by(Doctor.name)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_doctor(self, doctor_id: UUID) -> Doctor:
        doctor = await self.session.get(Doctor, doctor_id)
        if not doctor:
            raise NotFoundError("Doctor", doctor_id)
        return doctor

class BranchService:
    """Read-only branch directory."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_branches(self) -> List[Branch]:
        result = await self.session.execute(select(Branch).order_by(Branch.name))
        return result.scalars().all()

    async def get_branch(self, branch_id: UUID) -> Branch:
        branch = await self.session.get(Branch, branch_id)
        if not branch:
            raise NotFoundError("Branch", branch_id)
        return branch
