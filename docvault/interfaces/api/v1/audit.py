"""Audit trail API endpoints."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query

from ....modules.audit.schemas import AuditLogRead
from ....modules.audit.services import AuditService
from ..dependencies import CurrentCaller, DbSession, get_audit_service

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get(
    "",
    summary="Get Audit Trail",
    description="""
    Lists recent recorded activity, newest first.

    Users see their own entries; support and moderator see everyone's;
    admins see everyone's or can narrow to one user with **user_id**.
    """,
    responses={200: {"description": "Audit entries"}},
)
async def get_audit_trail(
    caller: CurrentCaller,
    db: DbSession,
    audit_service: Annotated[AuditService, Depends(get_audit_service)],
    user_id: Annotated[Optional[str], Query(description="User to narrow to (admin only)")] = None,
    limit: Annotated[int, Query(ge=1, le=200, description="Maximum number of entries")] = 50,
) -> List[AuditLogRead]:
    """Get audit entries."""
    return await audit_service.get_audit_trail(caller, db, user_id=user_id, limit=limit)


@router.get(
    "/{log_id}",
    summary="Get Audit Entry",
    responses={
        200: {"description": "Audit entry"},
        404: {"description": "Audit entry not found"},
    },
)
async def get_audit_entry(
    log_id: int,
    caller: CurrentCaller,
    db: DbSession,
    audit_service: Annotated[AuditService, Depends(get_audit_service)],
) -> AuditLogRead:
    """Get a specific audit entry by ID."""
    return await audit_service.get_audit_entry(caller, log_id, db)
