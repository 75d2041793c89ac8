"""SQLAlchemy models for tags and document-tag associations."""

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class Tag(Base, TimestampMixin):
    """A named label owned by one user.

    A tag becomes a folder as soon as it is the primary tag of at least one
    document. The ``(name, owner_id)`` pair is unique.
    """

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("name", "owner_id", name="uq_tags_name_owner"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    name: Mapped[str] = mapped_column(String(255), index=True)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)


class DocumentTag(Base, TimestampMixin):
    """Association between a document and a tag.

    ``document_id`` carries no foreign key: deleting a document removes its
    associations explicitly before the document row. At most one row per
    document may have ``is_primary`` set, enforced by a partial unique index.
    """

    __tablename__ = "document_tags"
    __table_args__ = (
        UniqueConstraint("document_id", "tag_id", name="uq_document_tags_document_tag"),
        Index(
            "uq_document_tags_one_primary",
            "document_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary = 1"),
        ),
        Index("ix_document_tags_tag_primary", "tag_id", "is_primary"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    document_id: Mapped[int] = mapped_column(Integer, index=True)
    tag_id: Mapped[int] = mapped_column(Integer, ForeignKey("tags.id"), index=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
