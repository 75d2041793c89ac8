from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass

from ..config.settings import DatabaseSettings, settings


def engine_options(database_settings: DatabaseSettings) -> Dict[str, Any]:
    """Build engine keyword arguments for the configured backend.

    Pool sizing only applies to PostgreSQL; SQLite URLs (used by tests and
    local runs through ``DATABASE_URL_OVERRIDE``) get a lock wait instead so
    concurrent writers queue rather than fail.
    """
    if database_settings.DATABASE_URL.startswith("sqlite"):
        return {"connect_args": {"timeout": 30}}
    return {
        "pool_size": database_settings.POSTGRES_POOL_SIZE,
        "max_overflow": database_settings.POSTGRES_MAX_OVERFLOW,
    }


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    **engine_options(settings),
)

local_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase, MappedAsDataclass):
    """Base class for all database models.

    Combines SQLAlchemy's DeclarativeBase with MappedAsDataclass so every
    model gets a generated ``__init__``/``__repr__`` from its mapped columns.
    Columns declared with ``init=False`` (ids, timestamps) are filled by the
    database or by default factories and cannot be passed to the constructor.

    Example:
        ```python
        class Tag(Base, TimestampMixin):
            __tablename__ = "tags"

            id: Mapped[int] = mapped_column(Integer, primary_key=True, init=False)
            name: Mapped[str] = mapped_column(String(255))

        tag = Tag(name="invoices")
        ```
    """

    pass


async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for database session management.

    Designed to be used as a FastAPI dependency via ``Depends(async_session)``.
    Services commit their own units of work; the session is closed when the
    request finishes.

    Yields:
        AsyncSession: A configured async database session.
    """
    async with local_session() as db:
        yield db


async def create_tables() -> None:
    """Create all tables in the database if they don't exist.

    Idempotent: existing tables are left unchanged. Model modules must be
    imported before this runs so their tables are registered on
    ``Base.metadata``.
    """
    from ... import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
