"""Persistence of tags, folders and document-tag associations.

All uniqueness guarantees here are enforced by the database, not by
read-then-write checks: unique ``(name, owner_id)`` on tags, unique
``(document_id, tag_id)`` on associations, and a partial unique index that
allows at most one primary association per document. Methods that race on
those constraints catch the resulting ``IntegrityError`` and converge.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config import settings
from ...infrastructure.database.models import utcnow
from ...infrastructure.database.upsert import dialect_insert
from ...infrastructure.logging import get_logger
from ..common.exceptions import (
    InvalidOperationError,
    ResourceNotFoundError,
    StorageError,
    TagInUseError,
    ValidationError,
)
from ..document.models import Document
from .crud import document_tag_crud, tag_crud
from .models import DocumentTag, Tag
from .schemas import DocumentTagsRead, FolderRead, TagRead

logger = get_logger(__name__)

document_tags = DocumentTag.__table__


class TagStore:
    """Store-level tag operations.

    Nothing here knows about roles. ``owner_id`` arguments are already the
    effective owner filter computed by the permission policy, where None
    means "all owners".

    Storage faults, reads included, surface as ``StorageError``.
    """

    async def get_tag(self, tag_id: int, db: AsyncSession) -> Optional[TagRead]:
        try:
            tag = await db.get(Tag, tag_id)
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to read tag {tag_id}: {e}") from e
        return TagRead.model_validate(tag) if tag else None

    async def get_tag_by_name(self, name: str, owner_id: str, db: AsyncSession) -> Optional[TagRead]:
        try:
            result = await db.execute(select(Tag).where(Tag.name == name, Tag.owner_id == owner_id))
            tag = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to look up tag '{name}' for owner {owner_id}: {e}") from e
        return TagRead.model_validate(tag) if tag else None

    async def list_tags(self, owner_id: Optional[str], db: AsyncSession) -> List[TagRead]:
        stmt = select(Tag).order_by(Tag.name, Tag.id)
        if owner_id is not None:
            stmt = stmt.where(Tag.owner_id == owner_id)
        try:
            result = await db.execute(stmt)
            tags = result.scalars().all()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to list tags: {e}") from e
        return [TagRead.model_validate(tag) for tag in tags]

    async def find_or_create_tag(self, name: str, owner_id: str, db: AsyncSession) -> TagRead:
        """Return the tag ``(name, owner_id)``, creating it if absent.

        Concurrent callers with the same arguments all receive the same tag:
        the loser of the insert race re-reads the row the winner committed.

        Raises:
            ValidationError: If ``name`` is blank
            StorageError: If the tag can neither be created nor found
        """
        tag_name = name.strip()
        if not tag_name:
            raise ValidationError("Tag name must not be empty")

        existing = await self.get_tag_by_name(tag_name, owner_id, db)
        if existing is not None:
            return existing

        tag = Tag(name=tag_name, owner_id=owner_id)
        db.add(tag)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.debug(f"Tag '{tag_name}' for owner {owner_id} created concurrently, re-reading")
            existing = await self.get_tag_by_name(tag_name, owner_id, db)
            if existing is None:
                raise StorageError(f"Tag '{tag_name}' could not be created or found")
            return existing
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to create tag '{tag_name}': {e}") from e

        logger.info(f"Created tag {tag.id} '{tag_name}' for owner {owner_id}")
        return TagRead.model_validate(tag)

    async def set_primary_tag(self, document_id: int, tag_id: int, db: AsyncSession) -> None:
        """Make ``tag_id`` the single primary tag of ``document_id``.

        A previous primary association is kept as a secondary one. Both steps
        run in one transaction; if a concurrent writer trips the one-primary
        index the transaction is rolled back and retried.

        Raises:
            StorageError: If the retries are exhausted or the store fails
        """
        attempts = settings.PRIMARY_TAG_MAX_ATTEMPTS
        for attempt in range(1, attempts + 1):
            now = utcnow()
            demote = (
                update(document_tags)
                .where(
                    document_tags.c.document_id == document_id,
                    document_tags.c.is_primary.is_(True),
                    document_tags.c.tag_id != tag_id,
                )
                .values(is_primary=False, updated_at=now)
            )
            promote = (
                dialect_insert(db, document_tags)
                .values(document_id=document_id, tag_id=tag_id, is_primary=True, created_at=now, updated_at=now)
            )
            promote = promote.on_conflict_do_update(
                index_elements=["document_id", "tag_id"],
                set_={"is_primary": True, "updated_at": now},
            )
            try:
                await db.execute(demote)
                await db.execute(promote)
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                logger.warning(
                    f"Primary tag update for document {document_id} conflicted "
                    f"(attempt {attempt}/{attempts}): {e.orig}"
                )
                continue
            except SQLAlchemyError as e:
                await db.rollback()
                raise StorageError(f"Failed to set primary tag for document {document_id}: {e}") from e

            logger.info(f"Document {document_id} primary tag set to {tag_id}")
            return

        raise StorageError(f"Could not set primary tag for document {document_id} after {attempts} attempts")

    async def assign_secondary_tag(self, document_id: int, tag_id: int, db: AsyncSession) -> None:
        """Associate ``tag_id`` with ``document_id`` as a secondary tag.

        An existing association, primary or not, is left untouched.
        """
        now = utcnow()
        stmt = (
            dialect_insert(db, document_tags)
            .values(document_id=document_id, tag_id=tag_id, is_primary=False, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=["document_id", "tag_id"])
        )
        try:
            await db.execute(stmt)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to assign tag {tag_id} to document {document_id}: {e}") from e

    async def remove_tag(self, document_id: int, tag_id: int, db: AsyncSession) -> None:
        """Remove a secondary association.

        Raises:
            ResourceNotFoundError: If the association does not exist
            InvalidOperationError: If the association is the primary one
        """
        stmt = delete(document_tags).where(
            document_tags.c.document_id == document_id,
            document_tags.c.tag_id == tag_id,
            document_tags.c.is_primary.is_(False),
        )
        try:
            removed = (await db.execute(stmt)).rowcount
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to remove tag {tag_id} from document {document_id}: {e}") from e

        if removed:
            return

        try:
            remaining = await db.execute(
                select(document_tags.c.is_primary).where(
                    document_tags.c.document_id == document_id,
                    document_tags.c.tag_id == tag_id,
                )
            )
            is_primary = remaining.scalar_one_or_none()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to read tag {tag_id} of document {document_id}: {e}") from e
        if is_primary is None:
            raise ResourceNotFoundError(f"Tag {tag_id} is not assigned to document {document_id}")
        raise InvalidOperationError("Cannot remove primary tag")

    async def count_tag_references(self, tag_id: int, db: AsyncSession) -> int:
        """Number of documents associated with ``tag_id`` in any role."""
        try:
            return await document_tag_crud.count(db=db, tag_id=tag_id)
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to count references of tag {tag_id}: {e}") from e

    async def delete_tag(self, tag_id: int, db: AsyncSession) -> None:
        """Delete a tag that no document references.

        Raises:
            ResourceNotFoundError: If the tag does not exist
            TagInUseError: If associations still reference the tag
        """
        try:
            exists = await tag_crud.exists(db=db, id=tag_id)
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to read tag {tag_id}: {e}") from e
        if not exists:
            raise ResourceNotFoundError(f"Tag {tag_id} not found")

        references = await self.count_tag_references(tag_id, db)
        if references > 0:
            raise TagInUseError(tag_id, references)

        try:
            await db.execute(delete(Tag).where(Tag.id == tag_id))
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise TagInUseError(tag_id, await self.count_tag_references(tag_id, db))
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to delete tag {tag_id}: {e}") from e

        logger.info(f"Deleted tag {tag_id}")

    async def get_folders_with_counts(self, owner_id: Optional[str], db: AsyncSession) -> List[FolderRead]:
        """List tags that are the primary tag of at least one live document.

        Associations whose document no longer exists are not counted.
        """
        document_count = func.count(DocumentTag.document_id).label("document_count")
        stmt = (
            select(Tag.id, Tag.name, Tag.owner_id, Tag.created_at, document_count)
            .join(DocumentTag, DocumentTag.tag_id == Tag.id)
            .join(Document, Document.id == DocumentTag.document_id)
            .where(DocumentTag.is_primary.is_(True))
            .group_by(Tag.id, Tag.name, Tag.owner_id, Tag.created_at)
            .order_by(Tag.name, Tag.id)
        )
        if owner_id is not None:
            stmt = stmt.where(Tag.owner_id == owner_id)

        try:
            rows = (await db.execute(stmt)).all()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to list folders: {e}") from e
        return [
            FolderRead(
                id=row.id,
                name=row.name,
                owner_id=row.owner_id,
                document_count=row.document_count,
                created_at=row.created_at,
            )
            for row in rows
        ]

    async def get_document_ids_by_folder(
        self, tag_name: str, owner_id: Optional[str], db: AsyncSession
    ) -> List[int]:
        """Ids of live documents whose primary tag is named ``tag_name``.

        With ``owner_id`` None, same-named folders of every owner are merged.

        Raises:
            ResourceNotFoundError: If no matching tag exists
        """
        name = tag_name.strip()
        tag_stmt = select(Tag.id).where(Tag.name == name)
        if owner_id is not None:
            tag_stmt = tag_stmt.where(Tag.owner_id == owner_id)
        try:
            tag_ids = list((await db.execute(tag_stmt)).scalars().all())
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to look up folder '{name}': {e}") from e
        if not tag_ids:
            raise ResourceNotFoundError(f"Folder '{name}' not found")

        stmt = (
            select(DocumentTag.document_id)
            .join(Document, Document.id == DocumentTag.document_id)
            .where(DocumentTag.tag_id.in_(tag_ids), DocumentTag.is_primary.is_(True))
            .order_by(DocumentTag.document_id)
        )
        try:
            return list((await db.execute(stmt)).scalars().all())
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to list documents of folder '{name}': {e}") from e

    async def get_document_tags(self, document_id: int, db: AsyncSession) -> DocumentTagsRead:
        return (await self.get_tags_for_documents([document_id], db))[document_id]

    async def get_tags_for_documents(
        self, document_ids: Iterable[int], db: AsyncSession
    ) -> Dict[int, DocumentTagsRead]:
        """Primary and secondary tags for each of ``document_ids``.

        Every requested id gets an entry, empty when it has no tags.
        """
        ids = list(dict.fromkeys(document_ids))
        tags: Dict[int, DocumentTagsRead] = {document_id: DocumentTagsRead() for document_id in ids}
        if not ids:
            return tags

        stmt = (
            select(Tag, DocumentTag.document_id, DocumentTag.is_primary)
            .join(DocumentTag, DocumentTag.tag_id == Tag.id)
            .where(DocumentTag.document_id.in_(ids))
            .order_by(Tag.name, Tag.id)
        )
        try:
            rows = (await db.execute(stmt)).all()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to read tags of documents {ids}: {e}") from e
        for tag, document_id, is_primary in rows:
            tag_read = TagRead.model_validate(tag)
            if is_primary:
                tags[document_id].primary = tag_read
            else:
                tags[document_id].secondary.append(tag_read)
        return tags

    async def remove_all_document_tags(self, document_id: int, db: AsyncSession, commit: bool = True) -> int:
        """Delete every association of ``document_id``.

        Returns:
            Number of associations removed
        """
        try:
            result = await db.execute(delete(document_tags).where(document_tags.c.document_id == document_id))
            removed = result.rowcount or 0
            if commit:
                await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to remove tags of document {document_id}: {e}") from e
        return removed
