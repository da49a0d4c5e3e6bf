"""Doctor-global overlap lookup behind every shift write."""
from dataclasses import dataclass
from datetime import time
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from clinic_cms.core.exceptions import ConflictError
from clinic_cms.db.models import Branch, Doctor, Schedule, ScheduleEntry
from clinic_cms.domain.intervals import Weekday, format_time_of_day


@dataclass
class Conflict:
    """An existing shift that blocks a write, with the names shown to the editor."""

    entry: ScheduleEntry
    branch_name: str
    doctor_name: str

    @property
    def message(self) -> str:
        weekday = Weekday(self.entry.day_of_week).value
        return (
            f"{self.doctor_name} already has a shift at branch '{self.branch_name}' on "
            f"{weekday} {format_time_of_day(self.entry.start_time)}–{format_time_of_day(self.entry.end_time)}"
        )

    def to_error(self) -> ConflictError:
        return ConflictError(
            self.message,
            doctor_name=self.doctor_name,
            branch_name=self.branch_name,
            weekday=Weekday(self.entry.day_of_week).value,
            start_time=self.entry.start_time,
            end_time=self.entry.end_time,
            entry_id=self.entry.id,
        )


class ConflictChecker:
    """Finds an existing shift of a doctor that overlaps a candidate window.

    The scan covers every branch: a doctor cannot be in two places at once.
    When several entries overlap, the one with the earliest start (then
    earliest end, then id) is reported.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_conflict(
        self,
        doctor_id: UUID,
        weekday: Weekday,
        start: time,
        end: time,
        exclude_entry_id: Optional[UUID] = None,
    ) -> Optional[Conflict]:
        stmt = (
            select(ScheduleEntry, Branch.name, Doctor.name)
            .join(Schedule, ScheduleEntry.schedule_id == Schedule.id)
            .join(Branch, Schedule.branch_id == Branch.id)
            .join(Doctor, ScheduleEntry.doctor_id == Doctor.id)
            .where(
                ScheduleEntry.doctor_id == doctor_id,
                ScheduleEntry.day_of_week == Weekday(weekday),
                ScheduleEntry.start_time < end,
                ScheduleEntry.end_time > start,
            )
            .order_by(ScheduleEntry.start_time, ScheduleEntry.end_time, ScheduleEntry.id)
            .limit(1)
        )
        if exclude_entry_id is not None:
            stmt = stmt.where(ScheduleEntry.id != exclude_entry_id)

        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        entry, branch_name, doctor_name = row
        return Conflict(entry=entry, branch_name=branch_name, doctor_name=doctor_name)
