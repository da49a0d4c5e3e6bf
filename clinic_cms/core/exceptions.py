from datetime import time
from typing import Optional
from uuid import UUID


class ScheduleError(Exception):
    """Base class for errors returned to the caller of a schedule operation."""

    status_code: int = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(ScheduleError):
    status_code = 400


class NotFoundError(ScheduleError):
    status_code = 404

    def __init__(self, resource: str, resource_id: Optional[UUID] = None):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(ScheduleError):
    """The doctor is already booked in an overlapping window on the same weekday."""

    status_code = 409

    def __init__(
        self,
        message: str,
        doctor_name: Optional[str] = None,
        branch_name: Optional[str] = None,
        weekday: Optional[str] = None,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        entry_id: Optional[UUID] = None,
    ):
        super().__init__(message)
        self.doctor_name = doctor_name
        self.branch_name = branch_name
        self.weekday = weekday
        self.start_time = start_time
        self.end_time = end_time
        self.entry_id = entry_id


class StorageError(ScheduleError):
    status_code = 500

    def __init__(self, detail: str = "Storage failure"):
        super().__init__(detail)
