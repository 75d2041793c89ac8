"""Persistence of document records."""

from typing import Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.database.models import utcnow
from ...infrastructure.logging import get_logger
from ..common.exceptions import StorageError
from ..tag.store import TagStore
from .crud import document_crud
from .models import Document
from .schemas import DocumentCreate, DocumentRecord

logger = get_logger(__name__)


class DocumentStore:
    """Store-level document operations, unaware of roles."""

    def __init__(self, tag_store: Optional[TagStore] = None):
        self.tag_store = tag_store or TagStore()

    async def create_document(self, document_data: DocumentCreate, db: AsyncSession) -> DocumentRecord:
        document = Document(**document_data.model_dump())
        try:
            db.add(document)
            await db.commit()
            await db.refresh(document)
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to create document '{document_data.filename}': {e}") from e

        logger.info(f"Created document {document.id} '{document.filename}' for owner {document.owner_id}")
        return DocumentRecord.model_validate(document)

    async def find_by_id(self, document_id: int, db: AsyncSession) -> Optional[DocumentRecord]:
        result = await db.execute(
            select(Document).where(Document.id == document_id).execution_options(populate_existing=True)
        )
        document = result.scalar_one_or_none()
        return DocumentRecord.model_validate(document) if document else None

    async def find_by_id_for_owner(
        self, document_id: int, owner_id: str, db: AsyncSession
    ) -> Optional[DocumentRecord]:
        result = await db.execute(
            select(Document)
            .where(Document.id == document_id, Document.owner_id == owner_id)
            .execution_options(populate_existing=True)
        )
        document = result.scalar_one_or_none()
        return DocumentRecord.model_validate(document) if document else None

    async def find_by_ids(
        self, document_ids: Iterable[int], owner_id: Optional[str], db: AsyncSession
    ) -> List[DocumentRecord]:
        """Load the given documents that exist, in the order requested.

        With ``owner_id`` set, documents of other owners are left out.
        """
        ids = list(dict.fromkeys(document_ids))
        if not ids:
            return []

        stmt = select(Document).where(Document.id.in_(ids)).execution_options(populate_existing=True)
        if owner_id is not None:
            stmt = stmt.where(Document.owner_id == owner_id)
        result = await db.execute(stmt)
        found = {document.id: document for document in result.scalars().all()}
        return [DocumentRecord.model_validate(found[document_id]) for document_id in ids if document_id in found]

    async def count_documents(self, owner_id: Optional[str], db: AsyncSession) -> int:
        if owner_id is None:
            return await document_crud.count(db=db)
        return await document_crud.count(db=db, owner_id=owner_id)

    async def list_documents(
        self, owner_id: Optional[str], db: AsyncSession, offset: int = 0, limit: int = 50
    ) -> List[DocumentRecord]:
        stmt = select(Document).order_by(Document.created_at.desc(), Document.id.desc()).offset(offset).limit(limit)
        if owner_id is not None:
            stmt = stmt.where(Document.owner_id == owner_id)
        result = await db.execute(stmt)
        return [DocumentRecord.model_validate(document) for document in result.scalars().all()]

    async def update_text_content(self, document_id: int, text_content: str, db: AsyncSession) -> None:
        try:
            await db.execute(
                update(Document)
                .where(Document.id == document_id)
                .values(text_content=text_content, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to update text of document {document_id}: {e}") from e

    async def delete_cascade(self, document_id: int, db: AsyncSession) -> bool:
        """Delete a document after all of its tag associations.

        Both deletes share one transaction, associations first.

        Returns:
            Whether a document row was deleted
        """
        try:
            removed_tags = await self.tag_store.remove_all_document_tags(document_id, db, commit=False)
            result = await db.execute(
                delete(Document).where(Document.id == document_id).execution_options(synchronize_session=False)
            )
            deleted = bool(result.rowcount)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to delete document {document_id}: {e}") from e

        if deleted:
            logger.info(f"Deleted document {document_id} and {removed_tags} tag association(s)")
        return deleted

    async def search_text(
        self, document_ids: List[int], query: str, db: AsyncSession, limit: int = 50
    ) -> List[DocumentRecord]:
        """Documents among ``document_ids`` whose text contains ``query``, ignoring case."""
        if not document_ids:
            return []

        stmt = (
            select(Document)
            .where(Document.id.in_(document_ids), Document.text_content.ilike(f"%{_escape_like(query)}%", escape="\\"))
            .order_by(Document.created_at.desc(), Document.id.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return [DocumentRecord.model_validate(document) for document in result.scalars().all()]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
