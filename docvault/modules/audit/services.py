"""Audit trail recording and retrieval."""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.logging import get_logger
from ..common.exceptions import ResourceNotFoundError
from ..permission import Caller, can_access_resource, resolve_effective_owner_filter
from .models import AuditAction, AuditLog, EntityType
from .schemas import AuditLogCreate, AuditLogRead

logger = get_logger(__name__)


class AuditService:
    """Records user activity.

    Recording is best-effort: a failure to write an entry is logged and never
    propagates into the business operation that triggered it. The entry is
    written in the session of that operation, after its own commit.
    """

    async def log(self, entry: AuditLogCreate, db: AsyncSession) -> Optional[AuditLogRead]:
        """Persist one audit entry.

        Returns:
            The stored entry, or None if it could not be written
        """
        audit_log = AuditLog(
            user_id=entry.user_id,
            action=entry.action.value,
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            extra_metadata=entry.metadata or None,
        )
        try:
            db.add(audit_log)
            await db.commit()
            await db.refresh(audit_log)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception(f"Failed to write audit entry {entry.action.value} for user {entry.user_id}: {e}")
            return None

        return _to_read(audit_log)

    async def log_document_upload(
        self, user_id: str, document_id: int, filename: str, db: AsyncSession
    ) -> Optional[AuditLogRead]:
        return await self.log(
            AuditLogCreate(
                user_id=user_id,
                action=AuditAction.DOCUMENT_UPLOAD,
                entity_type=EntityType.DOCUMENT,
                entity_id=str(document_id),
                metadata={"filename": filename},
            ),
            db,
        )

    async def log_document_delete(self, user_id: str, document_id: int, db: AsyncSession) -> Optional[AuditLogRead]:
        return await self.log(
            AuditLogCreate(
                user_id=user_id,
                action=AuditAction.DOCUMENT_DELETE,
                entity_type=EntityType.DOCUMENT,
                entity_id=str(document_id),
            ),
            db,
        )

    async def log_tag_create(self, user_id: str, tag_id: int, name: str, db: AsyncSession) -> Optional[AuditLogRead]:
        return await self.log(
            AuditLogCreate(
                user_id=user_id,
                action=AuditAction.TAG_CREATE,
                entity_type=EntityType.TAG,
                entity_id=str(tag_id),
                metadata={"name": name},
            ),
            db,
        )

    async def log_tag_delete(self, user_id: str, tag_id: int, db: AsyncSession) -> Optional[AuditLogRead]:
        return await self.log(
            AuditLogCreate(
                user_id=user_id,
                action=AuditAction.TAG_DELETE,
                entity_type=EntityType.TAG,
                entity_id=str(tag_id),
            ),
            db,
        )

    async def log_tag_assign(
        self, user_id: str, document_id: int, tag_names: List[str], is_primary: bool, db: AsyncSession
    ) -> Optional[AuditLogRead]:
        return await self.log(
            AuditLogCreate(
                user_id=user_id,
                action=AuditAction.TAG_ASSIGN,
                entity_type=EntityType.DOCUMENT,
                entity_id=str(document_id),
                metadata={"tags": tag_names, "is_primary": is_primary},
            ),
            db,
        )

    async def log_tag_remove(
        self, user_id: str, document_id: int, tag_id: int, db: AsyncSession
    ) -> Optional[AuditLogRead]:
        return await self.log(
            AuditLogCreate(
                user_id=user_id,
                action=AuditAction.TAG_REMOVE,
                entity_type=EntityType.DOCUMENT,
                entity_id=str(document_id),
                metadata={"tag_id": tag_id},
            ),
            db,
        )

    async def log_action_run(
        self, user_id: str, action_id: int, metadata: Dict[str, Any], db: AsyncSession
    ) -> Optional[AuditLogRead]:
        return await self.log(
            AuditLogCreate(
                user_id=user_id,
                action=AuditAction.ACTION_RUN,
                entity_type=EntityType.ACTION,
                entity_id=str(action_id),
                metadata=metadata,
            ),
            db,
        )

    async def log_action_fail(
        self, user_id: str, action_id: int, error: str, db: AsyncSession
    ) -> Optional[AuditLogRead]:
        return await self.log(
            AuditLogCreate(
                user_id=user_id,
                action=AuditAction.ACTION_FAIL,
                entity_type=EntityType.ACTION,
                entity_id=str(action_id),
                metadata={"error": error},
            ),
            db,
        )

    async def log_task_create(
        self, user_id: str, task_id: int, metadata: Dict[str, Any], db: AsyncSession
    ) -> Optional[AuditLogRead]:
        return await self._log_task(AuditAction.TASK_CREATE, user_id, task_id, metadata, db)

    async def log_task_update(
        self, user_id: str, task_id: int, changes: Dict[str, Any], db: AsyncSession
    ) -> Optional[AuditLogRead]:
        return await self._log_task(AuditAction.TASK_UPDATE, user_id, task_id, {"changes": changes}, db)

    async def log_task_delete(
        self, user_id: str, task_id: int, metadata: Dict[str, Any], db: AsyncSession
    ) -> Optional[AuditLogRead]:
        return await self._log_task(AuditAction.TASK_DELETE, user_id, task_id, metadata, db)

    async def _log_task(
        self, action: AuditAction, user_id: str, task_id: int, metadata: Dict[str, Any], db: AsyncSession
    ) -> Optional[AuditLogRead]:
        return await self.log(
            AuditLogCreate(
                user_id=user_id,
                action=action,
                entity_type=EntityType.TASK,
                entity_id=str(task_id),
                metadata=metadata,
            ),
            db,
        )

    async def get_audit_entry(self, caller: Caller, log_id: int, db: AsyncSession) -> AuditLogRead:
        """Get one audit entry by ID.

        Raises:
            ResourceNotFoundError: If the entry does not exist or belongs to
                another user the caller may not read
        """
        audit_log = await db.get(AuditLog, log_id)
        if audit_log is None or not can_access_resource(caller.role, audit_log.user_id, caller.user_id):
            raise ResourceNotFoundError(f"Audit entry {log_id} not found")
        return _to_read(audit_log)

    async def get_audit_trail(
        self,
        caller: Caller,
        db: AsyncSession,
        user_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[AuditLogRead]:
        """List recent audit entries visible to ``caller``, newest first.

        Standard users only ever see their own entries. Admins may narrow to
        one user; read-only roles see everyone's.
        """
        effective_user = resolve_effective_owner_filter(caller.role, caller.user_id, user_id)

        stmt = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)
        if effective_user is not None:
            stmt = stmt.where(AuditLog.user_id == effective_user)

        result = await db.execute(stmt)
        return [_to_read(row) for row in result.scalars().all()]


def _to_read(audit_log: AuditLog) -> AuditLogRead:
    return AuditLogRead(
        id=audit_log.id,
        user_id=audit_log.user_id,
        action=AuditAction(audit_log.action),
        entity_type=EntityType(audit_log.entity_type),
        entity_id=audit_log.entity_id,
        metadata=audit_log.extra_metadata or {},
        created_at=audit_log.created_at,
        updated_at=audit_log.updated_at,
    )
