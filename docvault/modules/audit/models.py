"""SQLAlchemy models for the audit trail."""

from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class AuditAction(str, Enum):
    """Recorded activity kinds."""

    DOCUMENT_UPLOAD = "document.upload"
    DOCUMENT_DELETE = "document.delete"
    TAG_CREATE = "tag.create"
    TAG_DELETE = "tag.delete"
    TAG_ASSIGN = "tag.assign"
    TAG_REMOVE = "tag.remove"
    ACTION_RUN = "action.run"
    ACTION_FAIL = "action.fail"
    TASK_CREATE = "task.create"
    TASK_UPDATE = "task.update"
    TASK_DELETE = "task.delete"


class EntityType(str, Enum):
    """Kinds of entity an audit entry can point at."""

    DOCUMENT = "document"
    TAG = "tag"
    ACTION = "action"
    TASK = "task"


class AuditLog(Base, TimestampMixin):
    """One recorded user activity."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_user_created", "user_id", "created_at"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    user_id: Mapped[str] = mapped_column(String(64))
    action: Mapped[str] = mapped_column(String(64), index=True)
    entity_type: Mapped[str] = mapped_column(String(32))
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), default=None)
    extra_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, default=None)
