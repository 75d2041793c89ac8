"""Pydantic schemas for batch actions."""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..common.schemas import TimestampSchema
from .models import ActionStatus


class ActionMessage(BaseModel):
    """One chat-style instruction passed to the processor."""

    role: Annotated[str, Field(min_length=1)]
    content: Annotated[str, Field(min_length=1)]


class ActionRunRequest(BaseModel):
    """Schema for running actions over a scope."""

    scope: Dict[str, Any] = Field(
        description='Either {"kind": "folder", "name": ...} or {"kind": "files", "ids": [...]}'
    )
    messages: Annotated[List[ActionMessage], Field(min_length=1)]
    actions: Annotated[List[Annotated[str, Field(min_length=1)]], Field(min_length=1)] = Field(
        description="Action names, e.g. make_csv or make_document"
    )


class ActionOutput(BaseModel):
    """A document produced by an action run."""

    type: str
    document_id: int
    filename: str


class ActionRead(TimestampSchema):
    """Schema for reading action data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    status: ActionStatus
    scope: Dict[str, Any]
    messages: List[ActionMessage]
    actions: List[str]
    outputs: List[ActionOutput] = Field(default_factory=list)
    credits_used: int
    error: Optional[str] = None
    executed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class UsageEntry(BaseModel):
    """Credits charged by one action run."""

    date: datetime
    credits: int
    action_type: str


class MonthlyUsage(BaseModel):
    """Credits charged within one calendar month."""

    period: str = Field(description="Month as YYYY-MM")
    total_credits: int
    actions_count: int
    breakdown: List[UsageEntry] = Field(default_factory=list)


class MonthlyCredits(BaseModel):
    month: str
    credits: int


class UsageSummary(BaseModel):
    """All-time credits, per month, oldest month first."""

    total_credits: int
    monthly_breakdown: List[MonthlyCredits] = Field(default_factory=list)
