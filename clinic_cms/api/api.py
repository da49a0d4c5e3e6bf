from fastapi import APIRouter
from clinic_cms.api.v1 import branches, doctors, schedules

api_router = APIRouter()

api_router.include_router(schedules.router, prefix="/schedules", tags=["schedules"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["doctors"])
api_router.include_router(branches.router, prefix="/branches", tags=["branches"])
