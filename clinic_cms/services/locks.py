"""In-process serialization of schedule writes, one lock per doctor."""
import asyncio
import weakref
from uuid import UUID


class DoctorLockRegistry:
    """One ``asyncio.Lock`` per doctor, created on first use.

    Serializes the conflict-check-then-write sequence for a doctor within a
    single worker process. Cross-process writers are serialized by the row
    lock taken on the doctor and by the database exclusion constraint.

    Locks are held weakly: once no request holds or awaits a doctor's lock it
    is dropped, so the registry stays as small as the set of doctors being
    written right now, and a lock never outlives the event loop it ran on.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, doctor_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(doctor_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[doctor_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


doctor_locks = DoctorLockRegistry()
