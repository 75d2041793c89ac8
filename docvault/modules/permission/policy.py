"""Role-based permission policy.

Every access decision in the application goes through this module. Services
never compare roles themselves; they ask one of the predicates below.

Permission classes:
    full-access: admin, reads and writes anything regardless of owner.
    read-only: support and moderator, read anything, write nothing.
    standard: user, reads and writes only what it owns.
"""

from typing import Optional

from ..common.exceptions import PermissionDeniedError
from .schemas import Role

_WRITERS = frozenset({Role.ADMIN, Role.USER})
_READ_ONLY = frozenset({Role.SUPPORT, Role.MODERATOR})


def can_write(role: Role) -> bool:
    """Whether ``role`` may create, update or delete anything at all."""
    return role in _WRITERS


def is_read_only(role: Role) -> bool:
    """Whether ``role`` sees everything but may never write."""
    return role in _READ_ONLY


def has_full_access(role: Role) -> bool:
    """Whether ``role`` bypasses ownership checks for reads and writes."""
    return role == Role.ADMIN


def can_access_resource(role: Role, owner_id: str, requester_id: str) -> bool:
    """Decide whether ``requester_id`` may read a resource owned by ``owner_id``."""
    if has_full_access(role):
        return True
    if is_read_only(role):
        return True
    return owner_id == requester_id


def can_modify_resource(role: Role, owner_id: str, requester_id: str) -> bool:
    """Decide whether ``requester_id`` may change a resource owned by ``owner_id``."""
    if is_read_only(role):
        return False
    if has_full_access(role):
        return True
    return owner_id == requester_id


def resolve_effective_owner_filter(
    role: Role, user_id: str, requested_owner_id: Optional[str] = None
) -> Optional[str]:
    """Compute the owner filter a store query should apply for this caller.

    Args:
        role: Caller role
        user_id: Caller id
        requested_owner_id: Owner the caller asked to narrow to, if any

    Returns:
        The owner id to filter on, or None meaning "all owners". Admins may
        narrow to any owner; read-only roles always span all owners and
        cannot narrow; standard users are pinned to themselves.
    """
    if has_full_access(role):
        return requested_owner_id
    if is_read_only(role):
        return None
    return user_id


def ensure_can_write(role: Role) -> None:
    """Raise unless ``role`` is allowed to write.

    Raises:
        PermissionDeniedError: With ``read_only`` set for support/moderator
    """
    if not can_write(role):
        raise PermissionDeniedError(
            f"Role '{role.value}' has read-only access. Write operations are not allowed.",
            read_only=is_read_only(role),
        )


def ensure_can_modify(role: Role, owner_id: str, requester_id: str) -> None:
    """Raise unless the caller may modify a resource owned by ``owner_id``.

    Raises:
        PermissionDeniedError: ``read_only`` is set when the role, not ownership, is the reason
    """
    ensure_can_write(role)
    if not can_modify_resource(role, owner_id, requester_id):
        raise PermissionDeniedError("Permission denied")
