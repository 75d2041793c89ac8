"""Role-aware document operations: upload, download, listing, deletion and search."""

from typing import Any, List, Optional, Tuple

from fastcrud import paginated_response
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config import settings
from ...infrastructure.logging import get_logger
from ...infrastructure.storage import LocalFileStorage, extract_text
from ..audit.services import AuditService
from ..common.constants import MAX_FILE_SIZE
from ..common.exceptions import DomainError, ResourceNotFoundError, ValidationError
from ..permission import (
    Caller,
    can_access_resource,
    ensure_can_modify,
    ensure_can_write,
    resolve_effective_owner_filter,
)
from ..scope.services import ScopeResolver, parse_scope
from ..tag.store import TagStore
from .schemas import (
    DocumentCreate,
    DocumentRead,
    DocumentRecord,
    DocumentSearchHit,
    DocumentSearchRequest,
    DocumentUpload,
)
from .store import DocumentStore

logger = get_logger(__name__)

SNIPPET_RADIUS = 60


class DocumentService:
    """Document operations on behalf of an authenticated caller.

    Documents the caller may not see are reported as missing, never as
    forbidden. Writes on visible documents of another owner are forbidden.
    """

    def __init__(
        self,
        document_store: Optional[DocumentStore] = None,
        tag_store: Optional[TagStore] = None,
        scope_resolver: Optional[ScopeResolver] = None,
        storage: Optional[LocalFileStorage] = None,
        audit_service: Optional[AuditService] = None,
    ):
        self.tag_store = tag_store or TagStore()
        self.document_store = document_store or DocumentStore(self.tag_store)
        self.scope_resolver = scope_resolver or ScopeResolver(self.tag_store)
        self.storage = storage or LocalFileStorage(settings.STORAGE_ROOT)
        self.audit_service = audit_service or AuditService()

    async def upload_document(self, caller: Caller, upload: DocumentUpload, db: AsyncSession) -> DocumentRead:
        """Store a new document owned by the caller and file it under its tags.

        If tagging fails the document and its file are removed again and the
        error is re-raised.

        Raises:
            PermissionDeniedError: For read-only roles
            ValidationError: If the file body is too large
        """
        ensure_can_write(caller.role)

        content = upload.content.encode("utf-8")
        if len(content) > MAX_FILE_SIZE:
            raise ValidationError(f"File exceeds the maximum size of {MAX_FILE_SIZE} bytes")

        document = await self.store_document(
            caller.user_id,
            upload.filename,
            upload.mime_type,
            content,
            upload.primary_tag,
            upload.secondary_tags,
            db,
        )
        await self.audit_service.log_document_upload(caller.user_id, document.id, document.filename, db)
        return document

    async def store_document(
        self,
        owner_id: str,
        filename: str,
        mime_type: str,
        content: bytes,
        primary_tag: str,
        secondary_tags: List[str],
        db: AsyncSession,
    ) -> DocumentRead:
        """Persist a file body as a tagged document of ``owner_id``.

        No permission checks happen here; callers have already done them.
        """
        storage_path = await self.storage.save(owner_id, filename, content)
        try:
            record = await self.document_store.create_document(
                DocumentCreate(
                    owner_id=owner_id,
                    filename=filename,
                    mime_type=mime_type,
                    size=len(content),
                    storage_path=storage_path,
                ),
                db,
            )
        except DomainError:
            await self.storage.delete(storage_path)
            raise

        try:
            tag = await self.tag_store.find_or_create_tag(primary_tag, owner_id, db)
            await self.tag_store.set_primary_tag(record.id, tag.id, db)
            for name in dict.fromkeys(secondary_tags):
                secondary = await self.tag_store.find_or_create_tag(name, owner_id, db)
                await self.tag_store.assign_secondary_tag(record.id, secondary.id, db)
        except DomainError:
            logger.warning(f"Tagging document {record.id} failed, removing it")
            await self.document_store.delete_cascade(record.id, db)
            await self.storage.delete(storage_path)
            raise

        await self.document_store.update_text_content(record.id, extract_text(content, mime_type), db)

        tags = await self.tag_store.get_document_tags(record.id, db)
        return DocumentRead.from_record(record, tags)

    async def get_document(self, caller: Caller, document_id: int, db: AsyncSession) -> DocumentRead:
        record = await self._get_visible_record(caller, document_id, db)
        tags = await self.tag_store.get_document_tags(record.id, db)
        return DocumentRead.from_record(record, tags)

    async def download_document(
        self, caller: Caller, document_id: int, db: AsyncSession
    ) -> Tuple[DocumentRecord, bytes]:
        """Load a visible document together with its stored bytes.

        Raises:
            ResourceNotFoundError: If the document does not exist or is not visible
            StorageError: If the stored file cannot be read
        """
        record = await self._get_visible_record(caller, document_id, db)
        content = await self.storage.read(record.storage_path)
        return record, content

    async def list_documents(
        self,
        caller: Caller,
        db: AsyncSession,
        page: int = 1,
        items_per_page: int = 50,
        owner_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """List documents visible to the caller, newest first, with pagination.

        Args:
            caller: Authenticated caller
            db: Database session
            page: Page number (1-indexed)
            items_per_page: Number of documents per page
            owner_id: Owner to narrow to; honoured for admins only

        Returns:
            Paginated response with documents and their tags
        """
        effective_owner = resolve_effective_owner_filter(caller.role, caller.user_id, owner_id)
        offset = (page - 1) * items_per_page

        records = await self.document_store.list_documents(effective_owner, db, offset=offset, limit=items_per_page)
        total_count = await self.document_store.count_documents(effective_owner, db)

        documents = await self._with_tags(records, db)
        crud_data = {"data": [document.model_dump() for document in documents], "total_count": total_count}
        return paginated_response(crud_data, page, items_per_page)

    async def list_documents_by_folder(
        self,
        caller: Caller,
        name: str,
        db: AsyncSession,
        page: int = 1,
        items_per_page: int = 50,
    ) -> dict[str, Any]:
        """List the documents of one folder visible to the caller.

        Raises:
            ResourceNotFoundError: If no visible folder has this name
        """
        effective_owner = resolve_effective_owner_filter(caller.role, caller.user_id)
        document_ids = await self.tag_store.get_document_ids_by_folder(name, effective_owner, db)

        offset = (page - 1) * items_per_page
        page_ids = document_ids[offset : offset + items_per_page]
        records = await self.document_store.find_by_ids(page_ids, effective_owner, db)

        documents = await self._with_tags(records, db)
        crud_data = {"data": [document.model_dump() for document in documents], "total_count": len(document_ids)}
        return paginated_response(crud_data, page, items_per_page)

    async def delete_document(self, caller: Caller, document_id: int, db: AsyncSession) -> None:
        """Delete a document, its tag associations and its stored file."""
        ensure_can_write(caller.role)
        record = await self._get_visible_record(caller, document_id, db)
        ensure_can_modify(caller.role, record.owner_id, caller.user_id)

        if not await self.document_store.delete_cascade(record.id, db):
            raise ResourceNotFoundError(f"Document {document_id} not found")
        await self.storage.delete(record.storage_path)

        await self.audit_service.log_document_delete(caller.user_id, record.id, db)

    async def get_accessible_documents(
        self, caller: Caller, document_ids: List[int], db: AsyncSession
    ) -> List[DocumentRecord]:
        """Load every requested document, in order.

        Raises:
            ResourceNotFoundError: If any id is missing or not visible to the caller
        """
        records = await self.document_store.find_by_ids(document_ids, None, db)
        found = {record.id: record for record in records}

        accessible = []
        for document_id in dict.fromkeys(document_ids):
            record = found.get(document_id)
            if record is None or not can_access_resource(caller.role, record.owner_id, caller.user_id):
                raise ResourceNotFoundError(f"Document {document_id} not found")
            accessible.append(record)
        return accessible

    async def search_documents(
        self, caller: Caller, request: DocumentSearchRequest, db: AsyncSession
    ) -> List[DocumentSearchHit]:
        """Find documents in a scope whose text contains the query.

        Raises:
            InvalidScopeError: If the scope is malformed
            ResourceNotFoundError: If the folder or any listed file is not visible
        """
        scope = parse_scope(request.scope)
        document_ids = await self.scope_resolver.resolve(scope, caller.role, caller.user_id, db)
        accessible = await self.get_accessible_documents(caller, document_ids, db)

        matches = await self.document_store.search_text(
            [record.id for record in accessible], request.query, db, limit=settings.SEARCH_RESULT_LIMIT
        )
        tags = await self.tag_store.get_tags_for_documents([record.id for record in matches], db)
        return [
            DocumentSearchHit(
                document=DocumentRead.from_record(record, tags[record.id]),
                snippet=_snippet(record.text_content, request.query),
            )
            for record in matches
        ]

    async def _get_visible_record(self, caller: Caller, document_id: int, db: AsyncSession) -> DocumentRecord:
        record = await self.document_store.find_by_id(document_id, db)
        if record is None or not can_access_resource(caller.role, record.owner_id, caller.user_id):
            raise ResourceNotFoundError(f"Document {document_id} not found")
        return record

    async def _with_tags(self, records: List[DocumentRecord], db: AsyncSession) -> List[DocumentRead]:
        tags = await self.tag_store.get_tags_for_documents([record.id for record in records], db)
        return [DocumentRead.from_record(record, tags[record.id]) for record in records]


def _snippet(text: str, query: str) -> str:
    position = text.lower().find(query.lower())
    if position < 0:
        return text[: SNIPPET_RADIUS * 2]
    start = max(position - SNIPPET_RADIUS, 0)
    end = min(position + len(query) + SNIPPET_RADIUS, len(text))
    return text[start:end]
