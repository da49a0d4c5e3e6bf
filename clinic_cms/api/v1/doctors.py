from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from clinic_cms.api.deps import require_cms_access
from clinic_cms.db.session import get_session
from clinic_cms.schemas.doctor import DoctorRead
from clinic_cms.services.doctor_service import DoctorService

router = APIRouter(dependencies=[Depends(require_cms_access)])

@router.get("/", response_model=List[DoctorRead])
async def read_doctors(
    include_inactive: bool = False,
    session: AsyncSession = Depends(get_session)
):
    service = DoctorService(session)
    return await service.get_doctors(active_only=not include_inactive)
