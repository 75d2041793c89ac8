"""Role-aware tag and folder operations."""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..audit.services import AuditService
from ..common.exceptions import ResourceNotFoundError
from ..document.schemas import DocumentRecord
from ..document.store import DocumentStore
from ..permission import (
    Caller,
    can_access_resource,
    ensure_can_modify,
    ensure_can_write,
    resolve_effective_owner_filter,
)
from .schemas import DocumentTagsRead, FolderRead, PrimaryTagAssign, SecondaryTagsAssign, TagCreate, TagRead
from .store import TagStore


class TagService:
    """Tag operations on behalf of an authenticated caller.

    Tags live in the namespace of the document owner: assigning a tag to a
    document finds or creates it for that owner, whoever the caller is.
    Resources the caller cannot see are reported as missing.
    """

    def __init__(
        self,
        tag_store: Optional[TagStore] = None,
        document_store: Optional[DocumentStore] = None,
        audit_service: Optional[AuditService] = None,
    ):
        self.tag_store = tag_store or TagStore()
        self.document_store = document_store or DocumentStore(self.tag_store)
        self.audit_service = audit_service or AuditService()

    async def create_tag(self, caller: Caller, tag_data: TagCreate, db: AsyncSession) -> TagRead:
        """Find or create a tag owned by the caller.

        Creating a name the caller already owns returns the existing tag.

        Raises:
            PermissionDeniedError: For read-only roles
        """
        ensure_can_write(caller.role)

        tag = await self.tag_store.find_or_create_tag(tag_data.name, caller.user_id, db)
        await self.audit_service.log_tag_create(caller.user_id, tag.id, tag.name, db)
        return tag

    async def get_tag(self, caller: Caller, tag_id: int, db: AsyncSession) -> TagRead:
        """Get a tag by ID.

        Raises:
            ResourceNotFoundError: If the tag does not exist or is not visible
        """
        tag = await self.tag_store.get_tag(tag_id, db)
        if tag is None or not can_access_resource(caller.role, tag.owner_id, caller.user_id):
            raise ResourceNotFoundError(f"Tag {tag_id} not found")
        return tag

    async def list_tags(self, caller: Caller, db: AsyncSession, owner_id: Optional[str] = None) -> List[TagRead]:
        """List tags visible to the caller; ``owner_id`` narrows the list for admins only."""
        effective_owner = resolve_effective_owner_filter(caller.role, caller.user_id, owner_id)
        return await self.tag_store.list_tags(effective_owner, db)

    async def delete_tag(self, caller: Caller, tag_id: int, db: AsyncSession) -> None:
        """Delete a tag no document uses.

        Raises:
            ResourceNotFoundError: If the tag does not exist or is not visible
            PermissionDeniedError: If the caller may not modify the tag
            TagInUseError: If documents still reference the tag
        """
        ensure_can_write(caller.role)
        tag = await self.get_tag(caller, tag_id, db)
        ensure_can_modify(caller.role, tag.owner_id, caller.user_id)

        await self.tag_store.delete_tag(tag_id, db)
        await self.audit_service.log_tag_delete(caller.user_id, tag_id, db)

    async def assign_primary_tag(
        self, caller: Caller, document_id: int, assignment: PrimaryTagAssign, db: AsyncSession
    ) -> DocumentTagsRead:
        """Move a document into the folder ``assignment.name``.

        The previous primary tag, if any, stays on the document as a secondary tag.
        """
        document = await self._get_document_for_write(caller, document_id, db)

        tag = await self.tag_store.find_or_create_tag(assignment.name, document.owner_id, db)
        await self.tag_store.set_primary_tag(document.id, tag.id, db)

        await self.audit_service.log_tag_assign(caller.user_id, document.id, [tag.name], True, db)
        return await self.tag_store.get_document_tags(document.id, db)

    async def assign_secondary_tags(
        self, caller: Caller, document_id: int, assignment: SecondaryTagsAssign, db: AsyncSession
    ) -> DocumentTagsRead:
        """Add secondary tags to a document, keeping its primary tag."""
        document = await self._get_document_for_write(caller, document_id, db)

        names = list(dict.fromkeys(assignment.names))
        for name in names:
            tag = await self.tag_store.find_or_create_tag(name, document.owner_id, db)
            await self.tag_store.assign_secondary_tag(document.id, tag.id, db)

        await self.audit_service.log_tag_assign(caller.user_id, document.id, names, False, db)
        return await self.tag_store.get_document_tags(document.id, db)

    async def remove_document_tag(self, caller: Caller, document_id: int, tag_id: int, db: AsyncSession) -> None:
        """Remove a secondary tag from a document.

        Raises:
            InvalidOperationError: If ``tag_id`` is the document's primary tag
        """
        document = await self._get_document_for_write(caller, document_id, db)

        await self.tag_store.remove_tag(document.id, tag_id, db)
        await self.audit_service.log_tag_remove(caller.user_id, document.id, tag_id, db)

    async def get_document_tags(self, caller: Caller, document_id: int, db: AsyncSession) -> DocumentTagsRead:
        """Get the primary and secondary tags of a visible document."""
        document = await self._get_document_for_read(caller, document_id, db)
        return await self.tag_store.get_document_tags(document.id, db)

    async def get_folders(self, caller: Caller, db: AsyncSession, owner_id: Optional[str] = None) -> List[FolderRead]:
        """Folders visible to the caller with their live document counts."""
        effective_owner = resolve_effective_owner_filter(caller.role, caller.user_id, owner_id)
        return await self.tag_store.get_folders_with_counts(effective_owner, db)

    async def get_documents_by_folder(self, caller: Caller, name: str, db: AsyncSession) -> List[int]:
        """Ids of the documents filed under folder ``name``.

        Raises:
            ResourceNotFoundError: If no visible folder has this name
        """
        effective_owner = resolve_effective_owner_filter(caller.role, caller.user_id)
        return await self.tag_store.get_document_ids_by_folder(name, effective_owner, db)

    async def _get_document_for_read(self, caller: Caller, document_id: int, db: AsyncSession) -> DocumentRecord:
        document = await self.document_store.find_by_id(document_id, db)
        if document is None or not can_access_resource(caller.role, document.owner_id, caller.user_id):
            raise ResourceNotFoundError(f"Document {document_id} not found")
        return document

    async def _get_document_for_write(self, caller: Caller, document_id: int, db: AsyncSession) -> DocumentRecord:
        ensure_can_write(caller.role)
        document = await self._get_document_for_read(caller, document_id, db)
        ensure_can_modify(caller.role, document.owner_id, caller.user_id)
        return document
