"""Common constants used across the application."""

from typing import Callable, Dict, Type

from fastapi import HTTPException, status

from .exceptions import (
    ConflictError,
    DomainError,
    InvalidOperationError,
    InvalidScopeError,
    PermissionDeniedError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
)

# Checked in order with isinstance, so subclasses come before their bases.
EXCEPTION_MAPPING: Dict[Type[DomainError], Callable[[str], HTTPException]] = {
    ResourceNotFoundError: lambda message: HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message),
    ConflictError: lambda message: HTTPException(status_code=status.HTTP_409_CONFLICT, detail=message),
    InvalidScopeError: lambda message: HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message),
    ValidationError: lambda message: HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=message),
    InvalidOperationError: lambda message: HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message),
    PermissionDeniedError: lambda message: HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message),
    StorageError: lambda message: HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message),
}

AI_GENERATED_TAG = "ai-generated"
ACTION_TAG_PREFIX = "action-"

ALLOWED_MIME_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "text/csv",
    "text/markdown",
    "image/jpeg",
    "image/png",
    "image/gif",
)
TEXT_MIME_TYPES = ("text/plain", "text/csv", "text/markdown")
MAX_FILE_SIZE = 10 * 1024 * 1024
