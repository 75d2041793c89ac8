"""Pydantic schemas for document entities."""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..common.constants import ALLOWED_MIME_TYPES
from ..common.schemas import TimestampSchema
from ..tag.schemas import DocumentTagsRead, TagName, TagRead


class DocumentCreate(BaseModel):
    """Internal schema for persisting a document record."""

    owner_id: str
    filename: Annotated[str, Field(min_length=1, max_length=255)]
    mime_type: str
    size: int = Field(ge=0)
    storage_path: str
    text_content: str = ""


class DocumentUpload(BaseModel):
    """Schema for uploading a document body together with its tags."""

    filename: Annotated[str, Field(min_length=1, max_length=255, description="Original file name")]
    mime_type: str = Field(default="text/plain", description="MIME type of the file body")
    content: str = Field(description="File body")
    primary_tag: TagName = Field(description="Folder the document is filed under")
    secondary_tags: List[TagName] = Field(default_factory=list, description="Additional labels")

    @field_validator("mime_type")
    @classmethod
    def check_mime_type(cls, value: str) -> str:
        if value not in ALLOWED_MIME_TYPES:
            raise ValueError(f"File type not allowed. Allowed types: {', '.join(ALLOWED_MIME_TYPES)}")
        return value


class DocumentRead(TimestampSchema):
    """Schema for reading document data with its tags."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    filename: str
    mime_type: str
    size: int
    primary_tag: Optional[TagRead] = None
    secondary_tags: List[TagRead] = Field(default_factory=list)

    @classmethod
    def from_record(cls, document: Any, tags: Optional[DocumentTagsRead] = None) -> "DocumentRead":
        tags = tags or DocumentTagsRead()
        return cls(
            id=document.id,
            owner_id=document.owner_id,
            filename=document.filename,
            mime_type=document.mime_type,
            size=document.size,
            created_at=document.created_at,
            updated_at=document.updated_at,
            primary_tag=tags.primary,
            secondary_tags=tags.secondary,
        )


class DocumentRecord(TimestampSchema):
    """Full stored document as returned by the document store."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    filename: str
    mime_type: str
    size: int
    storage_path: str
    text_content: str = ""


class DocumentSearchRequest(BaseModel):
    """Schema for searching document text within a scope."""

    query: Annotated[str, Field(min_length=1, description="Case-insensitive text to look for")]
    scope: Dict[str, Any] = Field(
        description='Either {"kind": "folder", "name": ...} or {"kind": "files", "ids": [...]}'
    )


class DocumentSearchHit(BaseModel):
    """One search match with a short excerpt around the first occurrence."""

    document: DocumentRead
    snippet: str
