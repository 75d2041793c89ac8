"""Document API endpoints."""

from typing import Annotated, Any, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Response, status

from ....modules.document.schemas import DocumentRead, DocumentSearchHit, DocumentSearchRequest, DocumentUpload
from ....modules.document.services import DocumentService
from ..dependencies import CurrentCaller, DbSession, get_document_service

router = APIRouter(prefix="/documents", tags=["Documents"])

DocumentServiceDep = Annotated[DocumentService, Depends(get_document_service)]


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Upload Document",
    description="""
    Stores a new document owned by the caller and files it into a folder.

    - **filename**: Original file name
    - **mime_type**: One of the allowed document, spreadsheet, text or image types
    - **content**: File body
    - **primary_tag**: Folder the document is filed under (created if missing)
    - **secondary_tags**: Additional labels (created if missing)
    """,
    responses={
        201: {"description": "Document stored and tagged"},
        403: {"description": "Caller has a read-only role"},
        422: {"description": "Invalid upload data"},
    },
)
async def upload_document(
    upload: DocumentUpload,
    caller: CurrentCaller,
    db: DbSession,
    document_service: DocumentServiceDep,
) -> DocumentRead:
    """Upload a new document."""
    return await document_service.upload_document(caller, upload, db)


@router.get(
    "",
    summary="List Documents",
    description="""
    Retrieves the documents visible to the caller, newest first.

    Users see their own documents; support, moderator and admin see all.
    Only admins may narrow the list to one owner.

    - **page**: Page number (1-indexed, default: 1)
    - **items_per_page**: Number of documents per page (default: 50, max: 100)
    - **owner_id**: Owner to list (admin only)
    """,
    responses={
        200: {"description": "Paginated list of documents with their tags"},
    },
)
async def list_documents(
    caller: CurrentCaller,
    db: DbSession,
    document_service: DocumentServiceDep,
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    items_per_page: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 50,
    owner_id: Annotated[Optional[str], Query(description="Owner to narrow to (admin only)")] = None,
) -> dict[str, Any]:
    """Get documents with pagination."""
    return await document_service.list_documents(caller, db, page, items_per_page, owner_id=owner_id)


@router.post(
    "/search",
    summary="Search Documents",
    description="""
    Finds documents whose text contains the query, ignoring case, within
    exactly one scope: a folder or an explicit list of document ids.

    - **query**: Text to look for
    - **scope**: `{"kind": "folder", "name": "invoices"}` or `{"kind": "files", "ids": [1, 2]}`
    """,
    responses={
        200: {"description": "Matching documents with a short excerpt"},
        400: {"description": "Malformed scope"},
        404: {"description": "Folder or document not found"},
    },
)
async def search_documents(
    request: DocumentSearchRequest,
    caller: CurrentCaller,
    db: DbSession,
    document_service: DocumentServiceDep,
) -> List[DocumentSearchHit]:
    """Search document text within a scope."""
    return await document_service.search_documents(caller, request, db)


@router.get(
    "/folder/{name}",
    summary="List Folder Documents",
    description="""
    Retrieves the documents whose primary tag is `name`.

    For support, moderator and admin, same-named folders of every owner are merged.
    """,
    responses={
        200: {"description": "Paginated list of documents in the folder"},
        404: {"description": "Folder not found"},
    },
)
async def list_documents_by_folder(
    name: str,
    caller: CurrentCaller,
    db: DbSession,
    document_service: DocumentServiceDep,
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    items_per_page: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 50,
) -> dict[str, Any]:
    """Get the documents of one folder."""
    return await document_service.list_documents_by_folder(caller, name, db, page, items_per_page)


@router.get(
    "/{document_id}",
    summary="Get Document",
    responses={
        200: {"description": "Document with its tags"},
        404: {"description": "Document not found"},
    },
)
async def get_document(
    document_id: int,
    caller: CurrentCaller,
    db: DbSession,
    document_service: DocumentServiceDep,
) -> DocumentRead:
    """Get a specific document by ID."""
    return await document_service.get_document(caller, document_id, db)


@router.get(
    "/{document_id}/download",
    summary="Download Document",
    description="Returns the stored file body with its MIME type as an attachment.",
    response_class=Response,
    responses={
        200: {"description": "File body"},
        404: {"description": "Document not found"},
        503: {"description": "Stored file could not be read"},
    },
)
async def download_document(
    document_id: int,
    caller: CurrentCaller,
    db: DbSession,
    document_service: DocumentServiceDep,
) -> Response:
    """Download the file of a document."""
    record, content = await document_service.download_document(caller, document_id, db)
    filename = quote(record.filename)
    return Response(
        content=content,
        media_type=record.mime_type,
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\"; filename*=UTF-8''{filename}"},
    )


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Document",
    description="""
    Deletes a document, its tag associations and its stored file.

    Tags themselves are kept; folders left without documents disappear from
    the folder list.
    """,
    responses={
        204: {"description": "Document deleted"},
        403: {"description": "Caller may not modify this document"},
        404: {"description": "Document not found"},
    },
)
async def delete_document(
    document_id: int,
    caller: CurrentCaller,
    db: DbSession,
    document_service: DocumentServiceDep,
) -> None:
    """Delete a document."""
    await document_service.delete_document(caller, document_id, db)
