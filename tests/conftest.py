"""Test configuration and fixtures for DocVault.

Tests run against a fresh SQLite file per test by default. Set
``DOCVAULT_TEST_POSTGRES=1`` to run the same tests against a PostgreSQL
container instead (Docker required).
"""

import os
from typing import Callable, Dict, Iterable

os.environ.setdefault("JWT_SECRET_KEY", "test_secret_key_for_tests")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from docvault import models  # noqa: E402, F401
from docvault.infrastructure.database.session import Base, async_session  # noqa: E402
from docvault.infrastructure.logging import configure_testing_logging  # noqa: E402
from docvault.infrastructure.security import create_access_token  # noqa: E402
from docvault.infrastructure.storage import LocalFileStorage  # noqa: E402
from docvault.interfaces.api.dependencies import get_file_storage  # noqa: E402
from docvault.interfaces.main import app  # noqa: E402
from docvault.modules.action.services import ActionService  # noqa: E402
from docvault.modules.audit.services import AuditService  # noqa: E402
from docvault.modules.document.schemas import DocumentRead  # noqa: E402
from docvault.modules.document.services import DocumentService  # noqa: E402
from docvault.modules.document.store import DocumentStore  # noqa: E402
from docvault.modules.permission import Caller, Role  # noqa: E402
from docvault.modules.scope.services import ScopeResolver  # noqa: E402
from docvault.modules.tag.services import TagService  # noqa: E402
from docvault.modules.tag.store import TagStore  # noqa: E402
from docvault.modules.task.services import TaskService  # noqa: E402

configure_testing_logging()


def use_postgres() -> bool:
    return os.environ.get("DOCVAULT_TEST_POSTGRES") == "1"


def is_docker_running() -> bool:
    """Check if Docker daemon is running."""
    from testcontainers.core.docker_client import DockerClient

    try:
        DockerClient()
        return True
    except Exception:
        return False


@pytest.fixture(scope="session")
def pg_container():
    """Create a PostgreSQL container for testing."""
    if not is_docker_running():
        pytest.skip("Docker is required, but not running")

    from testcontainers.postgres import PostgresContainer

    with PostgresContainer("postgres:16-alpine") as pg:
        yield pg


@pytest.fixture
def test_db_url(request, tmp_path) -> str:
    """Database URL for one test: a SQLite file, or the PostgreSQL container."""
    if not use_postgres():
        return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"

    pg_container = request.getfixturevalue("pg_container")
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    return (
        f"postgresql+asyncpg://{pg_container.username}:{pg_container.password}"
        f"@{host}:{port}/{pg_container.dbname}"
    )


@pytest_asyncio.fixture
async def test_db_engine(test_db_url: str):
    """Create a SQLAlchemy engine with a fresh schema."""
    connect_args = {"timeout": 30} if test_db_url.startswith("sqlite") else {}
    engine = create_async_engine(test_db_url, echo=False, connect_args=connect_args)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine) -> async_sessionmaker[AsyncSession]:
    """Independent sessions for tests that simulate concurrent requests."""
    return async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(str(tmp_path / "uploads"))


@pytest_asyncio.fixture
async def client(session_factory, storage: LocalFileStorage):
    """Test client where every request gets its own database session."""
    app.dependency_overrides = {}

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[async_session] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


# Callers


@pytest.fixture
def alice() -> Caller:
    return Caller(user_id="alice", role=Role.USER)


@pytest.fixture
def bob() -> Caller:
    return Caller(user_id="bob", role=Role.USER)


@pytest.fixture
def admin() -> Caller:
    return Caller(user_id="root", role=Role.ADMIN)


@pytest.fixture
def support() -> Caller:
    return Caller(user_id="helpdesk", role=Role.SUPPORT)


@pytest.fixture
def moderator() -> Caller:
    return Caller(user_id="mod", role=Role.MODERATOR)


@pytest.fixture
def auth_headers() -> Callable[[Caller], Dict[str, str]]:
    """Build an Authorization header for a caller."""

    def _headers(caller: Caller) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(caller.user_id, caller.role)}"}

    return _headers


# Services


@pytest.fixture
def tag_store() -> TagStore:
    return TagStore()


@pytest.fixture
def document_store(tag_store: TagStore) -> DocumentStore:
    return DocumentStore(tag_store)


@pytest.fixture
def audit_service() -> AuditService:
    return AuditService()


@pytest.fixture
def tag_service(tag_store: TagStore, document_store: DocumentStore, audit_service: AuditService) -> TagService:
    return TagService(tag_store=tag_store, document_store=document_store, audit_service=audit_service)


@pytest.fixture
def scope_resolver(tag_store: TagStore) -> ScopeResolver:
    return ScopeResolver(tag_store)


@pytest.fixture
def document_service(
    tag_store: TagStore,
    document_store: DocumentStore,
    scope_resolver: ScopeResolver,
    storage: LocalFileStorage,
    audit_service: AuditService,
) -> DocumentService:
    return DocumentService(
        document_store=document_store,
        tag_store=tag_store,
        scope_resolver=scope_resolver,
        storage=storage,
        audit_service=audit_service,
    )


@pytest.fixture
def action_service(
    document_service: DocumentService, scope_resolver: ScopeResolver, audit_service: AuditService
) -> ActionService:
    return ActionService(document_service=document_service, scope_resolver=scope_resolver, audit_service=audit_service)


@pytest.fixture
def task_service(audit_service: AuditService) -> TaskService:
    return TaskService(audit_service=audit_service)


@pytest.fixture
def make_document(document_service: DocumentService, db_session: AsyncSession):
    """Store a tagged text document directly, without permission checks or audit."""

    async def _make(
        owner_id: str,
        primary_tag: str = "inbox",
        secondary_tags: Iterable[str] = (),
        filename: str = "notes.txt",
        content: str = "hello world",
    ) -> DocumentRead:
        return await document_service.store_document(
            owner_id,
            filename,
            "text/plain",
            content.encode("utf-8"),
            primary_tag,
            list(secondary_tags),
            db_session,
        )

    return _make
