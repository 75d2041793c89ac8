"""SQLAlchemy models for follow-up tasks."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class TaskType(str, Enum):
    UNSUBSCRIBE = "unsubscribe"
    FOLLOW_UP = "follow_up"
    REVIEW = "review"
    OTHER = "other"


class TaskStatus(str, Enum):
    """Lifecycle of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TaskChannel(str, Enum):
    """How the task target is reached."""

    EMAIL = "email"
    URL = "url"
    PHONE = "phone"
    OTHER = "other"


OPEN_TASK_STATUSES = (TaskStatus.PENDING.value, TaskStatus.IN_PROGRESS.value)


class Task(Base, TimestampMixin):
    """A follow-up item owned by one user, raised by some source."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_status_created", "user_id", "status", "created_at"),
        Index("ix_tasks_user_source_created", "user_id", "source", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    user_id: Mapped[str] = mapped_column(String(64))
    source: Mapped[str] = mapped_column(String(100))
    channel: Mapped[str] = mapped_column(String(16))
    target: Mapped[str] = mapped_column(String(500))
    type: Mapped[str] = mapped_column(String(16), default=TaskType.OTHER.value)
    status: Mapped[str] = mapped_column(String(16), default=TaskStatus.PENDING.value)
    title: Mapped[Optional[str]] = mapped_column(String(200), default=None)
    description: Mapped[Optional[str]] = mapped_column(Text, default=None)
    extra_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, default=None)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)
    notes: Mapped[Optional[str]] = mapped_column(Text, default=None)
