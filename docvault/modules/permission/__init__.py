from .policy import (
    can_access_resource,
    can_modify_resource,
    can_write,
    ensure_can_modify,
    ensure_can_write,
    has_full_access,
    is_read_only,
    resolve_effective_owner_filter,
)
from .schemas import Caller, Role

__all__ = [
    "Caller",
    "Role",
    "can_access_resource",
    "can_modify_resource",
    "can_write",
    "ensure_can_modify",
    "ensure_can_write",
    "has_full_access",
    "is_read_only",
    "resolve_effective_owner_filter",
]
