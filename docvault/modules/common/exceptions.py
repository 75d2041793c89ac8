"""Domain exception classes for business logic errors."""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for all domain-specific errors.

    ``extra`` holds structured fields that the HTTP layer merges into the
    error body next to ``detail``.
    """

    def __init__(self, message: str = "", extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.extra: Dict[str, Any] = extra or {}


class ResourceNotFoundError(DomainError):
    """Raised when a requested resource cannot be found or is not visible to the caller."""

    pass


class ConflictError(DomainError):
    """Raised when an operation would violate a uniqueness or reference invariant."""

    pass


class TagInUseError(ConflictError):
    """Raised when deleting a tag that documents still reference."""

    def __init__(self, tag_id: int, document_count: int):
        super().__init__(
            f"Cannot delete tag {tag_id}. It is assigned to {document_count} document(s)",
            extra={"document_count": document_count},
        )
        self.tag_id = tag_id
        self.document_count = document_count


class ValidationError(DomainError):
    """Raised when data validation fails."""

    pass


class InvalidScopeError(ValidationError):
    """Raised when a scope descriptor is malformed (not exactly one of folder or files)."""

    pass


class InvalidOperationError(DomainError):
    """Raised when an operation is not allowed in the resource's current state."""

    pass


class PermissionDeniedError(DomainError):
    """Raised when a user attempts an action they don't have permission for.

    ``read_only`` is set when the denial comes from the caller's role class
    (support/moderator) rather than from resource ownership, so clients can
    explain why the write was blocked.
    """

    def __init__(self, message: str = "Permission denied", read_only: bool = False):
        super().__init__(message, extra={"read_only": True} if read_only else None)
        self.read_only = read_only


class StorageError(DomainError):
    """Raised when the backing store is unavailable or fails unexpectedly."""

    pass
