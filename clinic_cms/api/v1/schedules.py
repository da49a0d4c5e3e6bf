from fastapi import APIRouter, Depends, status
from typing import List
from uuid import UUID

from clinic_cms.api.deps import get_schedule_service
from clinic_cms.schemas.schedule import (
    DoctorScheduleEntryRead,
    EntryCreatedResponse,
    OkResponse,
    ScheduleEntryCreate,
    ScheduleEntryUpdate,
    ScheduleRead,
    ScheduleStats,
)
from clinic_cms.services.schedule_service import ScheduleService

router = APIRouter()

@router.get("/", response_model=ScheduleRead)
async def read_schedule(
    branch_id: UUID,
    service: ScheduleService = Depends(get_schedule_service)
):
    """Weekly schedule of a branch, created empty on first access."""
    return await service.get_schedule(branch_id)

@router.get("/stats", response_model=ScheduleStats)
async def read_schedule_stats(service: ScheduleService = Depends(get_schedule_service)):
    return await service.get_stats()

@router.get("/doctors/{doctor_id}/entries", response_model=List[DoctorScheduleEntryRead])
async def read_doctor_entries(
    doctor_id: UUID,
    service: ScheduleService = Depends(get_schedule_service)
):
    return await service.list_doctor_entries(doctor_id)

@router.post("/entries", response_model=EntryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    body: ScheduleEntryCreate,
    service: ScheduleService = Depends(get_schedule_service)
):
    entry_id = await service.add_entry(
        schedule_id=body.schedule_id,
        doctor_id=body.doctor_id,
        day_of_week=body.day_of_week,
        start_time=body.start_time,
        end_time=body.end_time,
        notes=body.notes,
    )
    return EntryCreatedResponse(id=entry_id)

@router.patch("/entries/{entry_id}", response_model=OkResponse)
async def update_entry(
    entry_id: UUID,
    body: ScheduleEntryUpdate,
    service: ScheduleService = Depends(get_schedule_service)
):
    await service.update_entry(entry_id, body.model_dump(exclude_unset=True))
    return OkResponse()

@router.delete("/entries/{entry_id}", response_model=OkResponse)
async def delete_entry(
    entry_id: UUID,
    service: ScheduleService = Depends(get_schedule_service)
):
    await service.delete_entry(entry_id)
    return OkResponse()
