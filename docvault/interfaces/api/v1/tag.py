"""Tag and folder API endpoints."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status

from ....modules.tag.schemas import (
    DocumentTagsRead,
    FolderRead,
    PrimaryTagAssign,
    SecondaryTagsAssign,
    TagCreate,
    TagRead,
)
from ....modules.tag.services import TagService
from ..dependencies import CurrentCaller, DbSession, get_tag_service

router = APIRouter(prefix="/tags", tags=["Tags"])

TagServiceDep = Annotated[TagService, Depends(get_tag_service)]


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Tag",
    responses={
        201: {"description": "Tag created, or the caller's existing tag of this name"},
        403: {"description": "Caller has a read-only role"},
    },
)
async def create_tag(tag_data: TagCreate, caller: CurrentCaller, db: DbSession, tag_service: TagServiceDep) -> TagRead:
    """Find or create a tag owned by the caller."""
    return await tag_service.create_tag(caller, tag_data, db)


@router.get(
    "",
    summary="List Tags",
    responses={200: {"description": "Tags visible to the caller, by name"}},
)
async def list_tags(
    caller: CurrentCaller,
    db: DbSession,
    tag_service: TagServiceDep,
    owner_id: Annotated[Optional[str], Query(description="Owner to narrow to (admin only)")] = None,
) -> List[TagRead]:
    """List tags."""
    return await tag_service.list_tags(caller, db, owner_id=owner_id)


@router.get(
    "/folders",
    summary="List Folders",
    description="""
    Lists tags that are the primary tag of at least one document, with the
    number of documents in each.

    Users see their own folders; support and moderator see every owner's;
    admins see every owner's or can narrow to one with **owner_id**.
    """,
    responses={200: {"description": "Folders with document counts"}},
)
async def list_folders(
    caller: CurrentCaller,
    db: DbSession,
    tag_service: TagServiceDep,
    owner_id: Annotated[Optional[str], Query(description="Owner to narrow to (admin only)")] = None,
) -> List[FolderRead]:
    """List folders with document counts."""
    return await tag_service.get_folders(caller, db, owner_id=owner_id)


@router.get(
    "/documents/{document_id}",
    summary="Get Document Tags",
    responses={
        200: {"description": "Primary and secondary tags of the document"},
        404: {"description": "Document not found"},
    },
)
async def get_document_tags(
    document_id: int, caller: CurrentCaller, db: DbSession, tag_service: TagServiceDep
) -> DocumentTagsRead:
    """Get the tags of a document."""
    return await tag_service.get_document_tags(caller, document_id, db)


@router.post(
    "/documents/{document_id}/primary",
    summary="Set Document Folder",
    description="""
    Makes **name** the document's primary tag, creating the tag if needed.

    The previous primary tag stays on the document as a secondary tag.
    """,
    responses={
        200: {"description": "Updated tags of the document"},
        403: {"description": "Caller may not modify this document"},
        404: {"description": "Document not found"},
    },
)
async def assign_primary_tag(
    document_id: int,
    assignment: PrimaryTagAssign,
    caller: CurrentCaller,
    db: DbSession,
    tag_service: TagServiceDep,
) -> DocumentTagsRead:
    """Move a document into a folder."""
    return await tag_service.assign_primary_tag(caller, document_id, assignment, db)


@router.post(
    "/documents/{document_id}/secondary",
    summary="Add Secondary Tags",
    description="Adds secondary tags to a document. Tags already on the document are left as they are.",
    responses={
        200: {"description": "Updated tags of the document"},
        403: {"description": "Caller may not modify this document"},
        404: {"description": "Document not found"},
    },
)
async def assign_secondary_tags(
    document_id: int,
    assignment: SecondaryTagsAssign,
    caller: CurrentCaller,
    db: DbSession,
    tag_service: TagServiceDep,
) -> DocumentTagsRead:
    """Add secondary tags to a document."""
    return await tag_service.assign_secondary_tags(caller, document_id, assignment, db)


@router.delete(
    "/documents/{document_id}/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove Document Tag",
    description="""
    Removes a secondary tag from a document.

    The primary tag cannot be removed; assign a different primary tag instead.
    """,
    responses={
        204: {"description": "Tag removed from the document"},
        400: {"description": "The tag is the document's primary tag"},
        403: {"description": "Caller may not modify this document"},
        404: {"description": "Document not found or tag not assigned"},
    },
)
async def remove_document_tag(
    document_id: int,
    tag_id: int,
    caller: CurrentCaller,
    db: DbSession,
    tag_service: TagServiceDep,
) -> None:
    """Remove a secondary tag from a document."""
    await tag_service.remove_document_tag(caller, document_id, tag_id, db)


@router.get(
    "/{tag_id}",
    summary="Get Tag",
    responses={
        200: {"description": "Tag details"},
        404: {"description": "Tag not found"},
    },
)
async def get_tag(tag_id: int, caller: CurrentCaller, db: DbSession, tag_service: TagServiceDep) -> TagRead:
    """Get a specific tag by ID."""
    return await tag_service.get_tag(caller, tag_id, db)


@router.delete(
    "/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Tag",
    description="""
    Deletes a tag that no document uses.

    While documents still reference the tag the request fails with 409 and
    the response carries **document_count**.
    """,
    responses={
        204: {"description": "Tag deleted"},
        403: {"description": "Caller may not modify this tag"},
        404: {"description": "Tag not found"},
        409: {"description": "Tag still assigned to documents"},
    },
)
async def delete_tag(tag_id: int, caller: CurrentCaller, db: DbSession, tag_service: TagServiceDep) -> None:
    """Delete a tag."""
    await tag_service.delete_tag(caller, tag_id, db)
