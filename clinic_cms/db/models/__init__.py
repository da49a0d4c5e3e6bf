from sqlmodel import SQLModel
from .user import User
from .branch import Branch
from .doctor import Doctor
from .schedule import Schedule
from .schedule_entry import ScheduleEntry
from .audit_log import AuditLog

__all__ = [
    "SQLModel",
    "User",
    "Branch",
    "Doctor",
    "Schedule",
    "ScheduleEntry",
    "AuditLog",
]
