"""Shared Pydantic schema building blocks."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TimestampSchema(BaseModel):
    """Creation and last-update timestamps shared by read schemas."""

    created_at: datetime = Field(description="When the record was created")
    updated_at: Optional[datetime] = Field(default=None, description="When the record was last updated")
