"""Dialect-aware ``INSERT ... ON CONFLICT`` construction.

The tag store relies on the database rejecting duplicates (unique
``(name, owner_id)``, unique ``(document_id, tag_id)``, and the partial
unique index on primary associations). PostgreSQL and SQLite both support
``ON CONFLICT``, but through separate insert constructs.
"""

from typing import Any, Callable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ...modules.common.exceptions import StorageError

_INSERTS: dict[str, Callable[..., Any]] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(db: AsyncSession, table: Any) -> Any:
    """Return an insert construct for ``table`` that supports ``on_conflict_*``.

    Args:
        db: Session whose bind decides the dialect
        table: Mapped class or Table to insert into

    Raises:
        StorageError: If the bound database has no ON CONFLICT support here
    """
    bind = db.get_bind()
    insert = _INSERTS.get(bind.dialect.name)
    if insert is None:
        raise StorageError(f"Unsupported database dialect for upserts: {bind.dialect.name}")
    return insert(table)
