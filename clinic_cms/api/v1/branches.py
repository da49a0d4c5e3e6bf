from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from clinic_cms.api.deps import require_cms_access
from clinic_cms.db.session import get_session
from clinic_cms.schemas.branch import BranchRead
from clinic_cms.services.doctor_service import BranchService

router = APIRouter(dependencies=[Depends(require_cms_access)])

@router.get("/", response_model=List[BranchRead])
async def read_branches(session: AsyncSession = Depends(get_session)):
    service = BranchService(session)
    return await service.get_branches()

@router.get("/{branch_id}", response_model=BranchRead)
async def read_branch(branch_id: UUID, session: AsyncSession = Depends(get_session)):
    service = BranchService(session)
    return await service.get_branch(branch_id)
