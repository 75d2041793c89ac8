"""FastAPI dependencies for use in API endpoints."""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config import settings
from ...infrastructure.database import async_session
from ...infrastructure.security import InvalidTokenError, decode_access_token
from ...infrastructure.storage import LocalFileStorage
from ...modules.action.services import ActionService
from ...modules.audit.services import AuditService
from ...modules.document.services import DocumentService
from ...modules.permission import Caller
from ...modules.tag.services import TagService
from ...modules.task.services import TaskService

DbSession = Annotated[AsyncSession, Depends(async_session)]

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_caller(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> Caller:
    """Identify the caller from the ``Authorization: Bearer`` token, or answer 401."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_access_token(credentials.credentials)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


CurrentCaller = Annotated[Caller, Depends(get_current_caller)]


def get_file_storage() -> LocalFileStorage:
    """Dependency for providing the file storage backend."""
    return LocalFileStorage(settings.STORAGE_ROOT)


def get_audit_service() -> AuditService:
    """Dependency for providing an AuditService instance."""
    return AuditService()


def get_tag_service() -> TagService:
    """Dependency for providing a TagService instance."""
    return TagService()


def get_task_service() -> TaskService:
    """Dependency for providing a TaskService instance."""
    return TaskService()


def get_document_service(
    storage: Annotated[LocalFileStorage, Depends(get_file_storage)],
) -> DocumentService:
    """Dependency for providing a DocumentService instance."""
    return DocumentService(storage=storage)


def get_action_service(
    document_service: Annotated[DocumentService, Depends(get_document_service)],
) -> ActionService:
    """Dependency for providing an ActionService instance."""
    return ActionService(document_service=document_service)
