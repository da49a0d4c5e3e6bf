from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_cms.core.logger import get_logger
from clinic_cms.db.models import AuditLog

logger = get_logger("audit")

class AuditService:
    """Fire-and-forget audit trail. A failed write never fails the caller."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        *,
        actor_id: Optional[UUID],
        action: str,
        target_id: Optional[UUID] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        entry = AuditLog(actor_id=actor_id, action=action, target_id=target_id, meta=meta)
        self.session.add(entry)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception(f"Failed to record audit action {action} for target {target_id}")
            return None
        return entry
