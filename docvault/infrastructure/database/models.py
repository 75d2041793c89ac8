from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, MappedAsDataclass, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current time used for every timestamp column."""
    return datetime.now(UTC)


class TimestampMixin(MappedAsDataclass):
    """Mixin for adding created_at and updated_at timestamp columns.

    Both columns are filled from ``utcnow`` when an ORM object is created.
    Statements that bypass the ORM (bulk ``insert``/``update`` on association
    rows) must set them explicitly, since there is no server default.

    Attributes:
        created_at: Timestamp when the record was created.
        updated_at: Timestamp when the record was last updated.

    Example:
        ```python
        class Document(Base, TimestampMixin):
            __tablename__ = "documents"
            filename: Mapped[str] = mapped_column(String(255))

        document = Document(filename="invoice.pdf")
        # document.created_at and document.updated_at are set
        ```
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default_factory=utcnow,
        nullable=False,
        init=False,
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default_factory=utcnow,
        onupdate=utcnow,
        nullable=True,
        init=False,
    )
