"""Pydantic schemas for tasks."""

from datetime import datetime
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from ..common.schemas import TimestampSchema
from .models import TaskChannel, TaskStatus, TaskType


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    source: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)] = Field(
        description="Identifier of whatever raised the task, e.g. scanner-01"
    )
    type: TaskType = TaskType.OTHER
    channel: TaskChannel
    target: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)] = Field(
        description="Email address, URL or phone number to act on"
    )
    title: Optional[Annotated[str, Field(max_length=200)]] = None
    description: Optional[Annotated[str, Field(max_length=1000)]] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    due_date: Optional[datetime] = None


class TaskUpdate(BaseModel):
    """Schema for updating a task. Only fields that are set are applied."""

    status: Optional[TaskStatus] = None
    notes: Optional[Annotated[str, Field(max_length=1000)]] = None
    due_date: Optional[datetime] = None


class TaskNotes(BaseModel):
    """Optional notes sent when closing a task."""

    notes: Optional[Annotated[str, Field(max_length=1000)]] = None


class TaskRead(TimestampSchema):
    """Schema for reading task data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    source: str
    type: TaskType
    status: TaskStatus
    channel: TaskChannel
    target: str
    title: Optional[str] = None
    description: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None


class TaskStats(BaseModel):
    """Task counts per status."""

    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0
