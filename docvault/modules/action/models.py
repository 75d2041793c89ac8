"""SQLAlchemy models for batch actions."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class ActionStatus(str, Enum):
    """Lifecycle of a batch action run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Action(Base, TimestampMixin):
    """One run of scripted actions over a document scope."""

    __tablename__ = "actions"
    __table_args__ = (Index("ix_actions_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    user_id: Mapped[str] = mapped_column(String(64))
    scope: Mapped[Dict[str, Any]] = mapped_column(JSON)
    messages: Mapped[List[Dict[str, Any]]] = mapped_column(JSON)
    actions: Mapped[List[str]] = mapped_column(JSON)
    credits_used: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(16), default=ActionStatus.PENDING.value)
    outputs: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default_factory=list)
    error: Mapped[Optional[str]] = mapped_column(Text, default=None)
    executed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)
