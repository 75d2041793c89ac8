"""Pydantic schemas for audit entries."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..common.schemas import TimestampSchema
from .models import AuditAction, EntityType


class AuditLogCreate(BaseModel):
    """Schema for recording an audit entry."""

    user_id: str
    action: AuditAction
    entity_type: EntityType
    entity_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AuditLogRead(TimestampSchema):
    """Schema for reading audit entries."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    action: AuditAction
    entity_type: EntityType
    entity_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
