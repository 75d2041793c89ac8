"""Batch action API endpoints."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status

from ....modules.action.schemas import ActionRead, ActionRunRequest, MonthlyUsage, UsageSummary
from ....modules.action.services import ActionService
from ..dependencies import CurrentCaller, DbSession, get_action_service

router = APIRouter(prefix="/actions", tags=["Actions"])

ActionServiceDep = Annotated[ActionService, Depends(get_action_service)]


@router.post(
    "/run",
    status_code=status.HTTP_201_CREATED,
    summary="Run Actions",
    description="""
    Runs scripted actions over the documents of one scope and stores each
    output as a new document in the caller's `ai-generated` folder.

    - **scope**: `{"kind": "folder", "name": ...}` or `{"kind": "files", "ids": [...]}`
    - **messages**: Chat-style instructions, e.g. `[{"role": "user", "content": "vendor totals"}]`
    - **actions**: `make_csv` and/or `make_document`; other names are ignored
    """,
    responses={
        201: {"description": "Completed action with its outputs"},
        400: {"description": "Malformed or empty scope"},
        403: {"description": "Caller has a read-only role"},
        404: {"description": "Folder or document not found"},
    },
)
async def run_action(
    request: ActionRunRequest,
    caller: CurrentCaller,
    db: DbSession,
    action_service: ActionServiceDep,
) -> ActionRead:
    """Run actions over a scope."""
    return await action_service.run_action(caller, request, db)


@router.get(
    "",
    summary="List Actions",
    responses={200: {"description": "Most recent actions visible to the caller"}},
)
async def list_actions(
    caller: CurrentCaller,
    db: DbSession,
    action_service: ActionServiceDep,
    user_id: Annotated[Optional[str], Query(description="User to narrow to (admin only)")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum number of actions")] = 50,
) -> List[ActionRead]:
    """List action history."""
    return await action_service.list_actions(caller, db, user_id=user_id, limit=limit)


@router.get(
    "/usage/month",
    summary="Get Monthly Credit Usage",
    description="""
    Credits charged for action runs started in one calendar month (UTC),
    newest run first. Failed runs are charged like completed ones.

    - **year**: Calendar year
    - **month**: Month, 1-12
    - **user_id**: User to report on (admin only)
    """,
    responses={
        200: {"description": "Credit usage for the month"},
        422: {"description": "Invalid year or month"},
    },
)
async def get_monthly_usage(
    caller: CurrentCaller,
    db: DbSession,
    action_service: ActionServiceDep,
    year: Annotated[int, Query(ge=1970, le=9999, description="Calendar year")],
    month: Annotated[int, Query(ge=1, le=12, description="Month (1-12)")],
    user_id: Annotated[Optional[str], Query(description="User to narrow to (admin only)")] = None,
) -> MonthlyUsage:
    """Get credit usage for one month."""
    return await action_service.get_monthly_usage(caller, year, month, db, user_id=user_id)


@router.get(
    "/usage/all",
    summary="Get All-Time Credit Usage",
    responses={200: {"description": "Total credits with a per-month breakdown"}},
)
async def get_all_time_usage(
    caller: CurrentCaller,
    db: DbSession,
    action_service: ActionServiceDep,
    user_id: Annotated[Optional[str], Query(description="User to narrow to (admin only)")] = None,
) -> UsageSummary:
    """Get all-time credit usage."""
    return await action_service.get_all_time_usage(caller, db, user_id=user_id)


@router.get(
    "/{action_id}",
    summary="Get Action",
    responses={
        200: {"description": "Action details"},
        404: {"description": "Action not found"},
    },
)
async def get_action(
    action_id: int, caller: CurrentCaller, db: DbSession, action_service: ActionServiceDep
) -> ActionRead:
    """Get a specific action by ID."""
    return await action_service.get_action(caller, action_id, db)
