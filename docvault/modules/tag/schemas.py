"""Pydantic schemas for tags, folders and document-tag associations."""

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from ..common.schemas import TimestampSchema

TagName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]


class TagCreate(BaseModel):
    """Schema for creating a tag explicitly."""

    name: TagName = Field(description="Tag name, unique per owner")


class TagRead(TimestampSchema):
    """Schema for reading tag data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    owner_id: str


class FolderRead(BaseModel):
    """A tag used as primary tag by at least one document."""

    id: int
    name: str
    owner_id: str
    document_count: int = Field(ge=1, description="Number of documents whose primary tag this is")
    created_at: datetime


class DocumentTagsRead(BaseModel):
    """All tags of one document, split by role."""

    primary: Optional[TagRead] = None
    secondary: List[TagRead] = Field(default_factory=list)


class PrimaryTagAssign(BaseModel):
    """Schema for moving a document into a folder."""

    name: TagName = Field(description="Folder (primary tag) name")


class SecondaryTagsAssign(BaseModel):
    """Schema for adding secondary tags to a document."""

    names: Annotated[List[TagName], Field(min_length=1, description="Secondary tag names")]
