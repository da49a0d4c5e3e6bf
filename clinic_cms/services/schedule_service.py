import contextlib
from datetime import time
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel import delete, func, select

from clinic_cms.core.config import settings
from clinic_cms.core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from clinic_cms.core.logger import get_logger
from clinic_cms.db.models import Branch, Doctor, Schedule, ScheduleEntry, User
from clinic_cms.db.models.schedule_entry import NO_OVERLAP_CONSTRAINT
from clinic_cms.db.types import utcnow
from clinic_cms.domain.intervals import EntryCandidate, Weekday
from clinic_cms.schemas.schedule import (
    DoctorScheduleEntryRead,
    DoctorSummary,
    ScheduleEntryRead,
    ScheduleRead,
    ScheduleStats,
)
from clinic_cms.services.audit_service import AuditService
from clinic_cms.services.conflict_checker import ConflictChecker
from clinic_cms.services.doctor_service import DoctorService
from clinic_cms.services.locks import DoctorLockRegistry, doctor_locks

logger = get_logger("schedule")

EXCLUSION_VIOLATION = "23P01"
UPDATE_LOCK_ATTEMPTS = 3


def is_overlap_violation(exc: IntegrityError) -> bool:
    """True when the database rejected a write through the no-overlap constraint."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == EXCLUSION_VIOLATION or NO_OVERLAP_CONSTRAINT in str(orig)


def _entry_sort_key(entry: ScheduleEntry):
    return (Weekday(entry.day_of_week).order, entry.start_time, entry.end_time)


class ScheduleService:
    """Branch weekly schedules and the doctor shifts they hold.

    Every write of a shift runs the conflict check first and, on success,
    refreshes the owning schedule's ``updated_at``/``updated_by_id`` in the
    same commit. Check and write for one doctor are serialized by a
    per-doctor lock (in process) and a ``FOR UPDATE`` read of the doctor row
    (across processes).
    """

    def __init__(
        self,
        session: AsyncSession,
        actor: Optional[User] = None,
        locks: DoctorLockRegistry = doctor_locks,
        serialize_writes: Optional[bool] = None,
        checker: Optional[ConflictChecker] = None,
        audit: Optional[AuditService] = None,
    ):
        self.session = session
        self.actor_id = actor.id if actor else None
        self.locks = locks
        self.serialize_writes = (
            settings.SCHEDULE_SERIALIZE_WRITES if serialize_writes is None else serialize_writes
        )
        self.checker = checker or ConflictChecker(session)
        self.audit = audit or AuditService(session)

    # Schedules

    async def get_or_create_schedule(self, branch_id: UUID) -> Schedule:
        schedule = await self._get_schedule_by_branch(branch_id)
        if schedule:
            return schedule

        branch = await self.session.get(Branch, branch_id)
        if not branch:
            raise NotFoundError("Branch", branch_id)

        schedule = Schedule(branch_id=branch_id, updated_by_id=self.actor_id)
        self.session.add(schedule)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            # Another request created it first; branch_id is unique.
            await self.session.rollback()
            logger.info(f"Schedule for branch {branch_id} created concurrently, reusing it")
            schedule = await self._get_schedule_by_branch(branch_id)
            if schedule is None:
                logger.exception(f"Could not create schedule for branch {branch_id}")
                raise StorageError() from exc
            return schedule

        await self.session.refresh(schedule)
        logger.info(f"Created weekly schedule {schedule.id} for branch {branch_id}")
        return schedule

    async def get_schedule(self, branch_id: UUID) -> ScheduleRead:
        schedule = await self.get_or_create_schedule(branch_id)
        stmt = (
            select(ScheduleEntry)
            .where(ScheduleEntry.schedule_id == schedule.id)
            .options(selectinload(ScheduleEntry.doctor))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        entries = sorted(result.scalars().all(), key=_entry_sort_key)

        return ScheduleRead(
            id=schedule.id,
            branch_id=schedule.branch_id,
            created_at=schedule.created_at,
            updated_at=schedule.updated_at,
            updated_by_id=schedule.updated_by_id,
            entries=[ScheduleEntryRead.model_validate(entry) for entry in entries],
        )

    async def list_doctor_entries(self, doctor_id: UUID) -> List[DoctorScheduleEntryRead]:
        doctor = await DoctorService(self.session).get_doctor(doctor_id)

        stmt = (
            select(ScheduleEntry, Schedule.branch_id, Branch.name)
            .join(Schedule, ScheduleEntry.schedule_id == Schedule.id)
            .join(Branch, Schedule.branch_id == Branch.id)
            .where(ScheduleEntry.doctor_id == doctor_id)
        )
        result = await self.session.execute(stmt)
        rows = sorted(result.all(), key=lambda row: _entry_sort_key(row[0]))

        summary = DoctorSummary.model_validate(doctor)
        return [
            DoctorScheduleEntryRead(
                id=entry.id,
                schedule_id=entry.schedule_id,
                doctor_id=entry.doctor_id,
                day_of_week=entry.day_of_week,
                start_time=entry.start_time,
                end_time=entry.end_time,
                notes=entry.notes,
                doctor=summary,
                branch_id=branch_id,
                branch_name=branch_name,
            )
            for entry, branch_id, branch_name in rows
        ]

    async def get_stats(self) -> ScheduleStats:
        schedules = await self.session.execute(select(func.count()).select_from(Schedule))
        entries = await self.session.execute(select(func.count()).select_from(ScheduleEntry))
        return ScheduleStats(schedules=schedules.scalar() or 0, entries=entries.scalar() or 0)

    # Entries

    async def add_entry(
        self,
        schedule_id: UUID,
        doctor_id: UUID,
        day_of_week: Weekday,
        start_time: time,
        end_time: time,
        notes: Optional[str] = None,
    ) -> UUID:
        candidate = EntryCandidate(
            doctor_id=doctor_id,
            day_of_week=Weekday(day_of_week),
            start_time=start_time,
            end_time=end_time,
            notes=notes,
        )
        self._validate(candidate)

        schedule = await self.session.get(Schedule, schedule_id)
        if not schedule:
            raise NotFoundError("Schedule", schedule_id)

        async with self._doctor_guard(candidate.doctor_id):
            await self._lock_doctor(candidate.doctor_id)
            await self._ensure_no_conflict(candidate)

            entry = ScheduleEntry(
                schedule_id=schedule_id,
                doctor_id=candidate.doctor_id,
                day_of_week=candidate.day_of_week,
                start_time=candidate.start_time,
                end_time=candidate.end_time,
                notes=candidate.notes,
            )
            self.session.add(entry)
            self._touch(schedule)
            await self._commit(candidate)

        # A failed audit write rolls the session back and expires the entry.
        entry_id = entry.id
        logger.info(
            f"Added shift {entry_id} for doctor {candidate.doctor_id} to schedule {schedule_id}: "
            f"{candidate.interval}"
        )
        await self.audit.record(
            actor_id=self.actor_id,
            action="CMS_SCHEDULE_ENTRY_CREATE",
            target_id=entry_id,
            meta={"schedule_id": str(schedule_id), "doctor_id": str(doctor_id)},
        )
        return entry_id

    async def update_entry(self, entry_id: UUID, patch: Dict[str, Any]) -> ScheduleEntry:
        entry = await self._get_entry(entry_id)
        doctor_id = patch.get("doctor_id") or entry.doctor_id

        for _ in range(UPDATE_LOCK_ATTEMPTS):
            async with self._doctor_guard(doctor_id):
                await self._lock_doctor(doctor_id)
                # Re-read under the lock so the merge starts from the committed row.
                entry = await self._get_entry(entry_id, for_update=True)
                candidate = EntryCandidate.from_entry(entry).with_patch(patch)

                if candidate.doctor_id != doctor_id:
                    # Reassigned since the first read; the lock held is the wrong doctor's.
                    logger.info(
                        f"Shift {entry_id} moved to doctor {candidate.doctor_id} while waiting "
                        f"for doctor {doctor_id}'s lock, retrying"
                    )
                    await self.session.rollback()
                    doctor_id = candidate.doctor_id
                    continue

                self._validate(candidate)
                await self._ensure_no_conflict(candidate, exclude_entry_id=entry.id)

                schedule = await self.session.get(Schedule, entry.schedule_id)
                for key, value in patch.items():
                    setattr(entry, key, value)
                self.session.add(entry)
                self._touch(schedule)
                await self._commit(candidate, exclude_entry_id=entry.id)
                break
        else:
            raise ConflictError(f"Schedule entry {entry_id} kept changing doctor, try again")

        logger.info(f"Updated shift {entry_id}: {candidate.interval} ({', '.join(sorted(patch)) or 'no changes'})")
        await self.audit.record(
            actor_id=self.actor_id,
            action="CMS_SCHEDULE_ENTRY_UPDATE",
            target_id=entry_id,
            meta={"changed": sorted(patch)},
        )
        return entry

    async def delete_entry(self, entry_id: UUID) -> None:
        entry = await self._get_entry(entry_id)
        schedule_id = entry.schedule_id

        stmt = (
            delete(ScheduleEntry)
            .where(ScheduleEntry.id == entry_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            # Removed by someone else between lookup and delete.
            await self.session.rollback()
            raise NotFoundError("Schedule entry", entry_id)
        self.session.expunge(entry)

        schedule = await self.session.get(Schedule, schedule_id)
        self._touch(schedule)
        await self._commit()

        logger.info(f"Deleted shift {entry_id} from schedule {schedule_id}")
        await self.audit.record(
            actor_id=self.actor_id,
            action="CMS_SCHEDULE_ENTRY_DELETE",
            target_id=entry_id,
        )

    # Helpers

    def _validate(self, candidate: EntryCandidate) -> None:
        candidate.interval.validate()
        if candidate.notes and len(candidate.notes) > settings.SCHEDULE_NOTES_MAX_LENGTH:
            raise ValidationError(
                f"Notes must be at most {settings.SCHEDULE_NOTES_MAX_LENGTH} characters"
            )

    def _doctor_guard(self, doctor_id: UUID):
        if not self.serialize_writes:
            return contextlib.nullcontext()
        return self.locks.lock_for(doctor_id)

    async def _lock_doctor(self, doctor_id: UUID) -> Doctor:
        stmt = select(Doctor).where(Doctor.id == doctor_id).with_for_update()
        result = await self.session.execute(stmt)
        doctor = result.scalars().first()
        if not doctor:
            raise NotFoundError("Doctor", doctor_id)
        return doctor

    async def _get_schedule_by_branch(self, branch_id: UUID) -> Optional[Schedule]:
        stmt = select(Schedule).where(Schedule.branch_id == branch_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def _get_entry(self, entry_id: UUID, for_update: bool = False) -> ScheduleEntry:
        stmt = select(ScheduleEntry).where(ScheduleEntry.id == entry_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        entry = result.scalars().first()
        if not entry:
            raise NotFoundError("Schedule entry", entry_id)
        return entry

    async def _ensure_no_conflict(
        self, candidate: EntryCandidate, exclude_entry_id: Optional[UUID] = None
    ) -> None:
        conflict = await self.checker.find_conflict(
            candidate.doctor_id,
            candidate.day_of_week,
            candidate.start_time,
            candidate.end_time,
            exclude_entry_id=exclude_entry_id,
        )
        if conflict:
            logger.info(f"Rejected shift for doctor {candidate.doctor_id}: {conflict.message}")
            raise conflict.to_error()

    def _touch(self, schedule: Optional[Schedule]) -> None:
        if schedule is None:
            return
        schedule.updated_at = utcnow()
        schedule.updated_by_id = self.actor_id
        self.session.add(schedule)

    async def _commit(
        self, candidate: Optional[EntryCandidate] = None, exclude_entry_id: Optional[UUID] = None
    ) -> None:
        try:
            await self.session.commit()
        except StaleDataError as exc:
            await self.session.rollback()
            raise NotFoundError("Schedule entry", exclude_entry_id) from exc
        except IntegrityError as exc:
            await self.session.rollback()
            if candidate is not None and is_overlap_violation(exc):
                raise await self._conflict_from_violation(candidate, exclude_entry_id) from exc
            logger.exception("Integrity error while writing schedule")
            raise StorageError() from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Database error while writing schedule")
            raise StorageError() from exc

    async def _conflict_from_violation(
        self, candidate: EntryCandidate, exclude_entry_id: Optional[UUID]
    ) -> ConflictError:
        # The competing row is committed now, so the checker can name it.
        conflict = await self.checker.find_conflict(
            candidate.doctor_id,
            candidate.day_of_week,
            candidate.start_time,
            candidate.end_time,
            exclude_entry_id=exclude_entry_id,
        )
        if conflict:
            logger.info(f"Concurrent shift rejected by database: {conflict.message}")
            return conflict.to_error()
        logger.warning(f"Overlap constraint fired for doctor {candidate.doctor_id} without a visible conflict")
        return ConflictError(f"Doctor already has an overlapping shift on {candidate.interval}")
