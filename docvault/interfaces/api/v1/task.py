"""Task API endpoints."""

from typing import Annotated, Any, List, Optional

from fastapi import APIRouter, Depends, Query, status

from ....modules.task.models import TaskStatus, TaskType
from ....modules.task.schemas import TaskCreate, TaskNotes, TaskRead, TaskStats, TaskUpdate
from ....modules.task.services import TaskService
from ..dependencies import CurrentCaller, DbSession, get_task_service

router = APIRouter(prefix="/tasks", tags=["Tasks"])

TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="""
    Records a follow-up task for the caller.

    - **source**: Whatever raised the task, e.g. `scanner-01`
    - **type**: `unsubscribe`, `follow_up`, `review` or `other`
    - **channel**: `email`, `url`, `phone` or `other`
    - **target**: Address, URL or number to act on
    - **due_date**: Optional deadline

    A source may raise a limited number of tasks per user per day.
    """,
    responses={
        201: {"description": "Task created"},
        403: {"description": "Caller has a read-only role"},
        409: {"description": "Daily task limit for this source reached"},
        422: {"description": "Invalid task data"},
    },
)
async def create_task(
    task_data: TaskCreate,
    caller: CurrentCaller,
    db: DbSession,
    task_service: TaskServiceDep,
) -> TaskRead:
    """Create a new task."""
    return await task_service.create_task(caller, task_data, db)


@router.get(
    "",
    summary="List Tasks",
    description="""
    Retrieves the tasks visible to the caller, newest first.

    - **page**: Page number (1-indexed, default: 1)
    - **items_per_page**: Number of tasks per page (default: 20, max: 100)
    - **status**: Only tasks in this status
    - **type**: Only tasks of this type
    - **user_id**: User to list (admin only)
    """,
    responses={200: {"description": "Paginated list of tasks"}},
)
async def list_tasks(
    caller: CurrentCaller,
    db: DbSession,
    task_service: TaskServiceDep,
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    items_per_page: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 20,
    task_status: Annotated[Optional[TaskStatus], Query(alias="status", description="Status filter")] = None,
    task_type: Annotated[Optional[TaskType], Query(alias="type", description="Type filter")] = None,
    user_id: Annotated[Optional[str], Query(description="User to narrow to (admin only)")] = None,
) -> dict[str, Any]:
    """Get tasks with pagination."""
    return await task_service.list_tasks(
        caller, db, page, items_per_page, status=task_status, task_type=task_type, user_id=user_id
    )


@router.get(
    "/stats",
    summary="Get Task Statistics",
    responses={200: {"description": "Task counts per status"}},
)
async def get_task_stats(
    caller: CurrentCaller,
    db: DbSession,
    task_service: TaskServiceDep,
    user_id: Annotated[Optional[str], Query(description="User to narrow to (admin only)")] = None,
) -> TaskStats:
    """Count tasks per status."""
    return await task_service.get_stats(caller, db, user_id=user_id)


@router.get(
    "/today",
    summary="Get Today's Tasks",
    responses={200: {"description": "Tasks created since midnight UTC, newest first"}},
)
async def get_today_tasks(caller: CurrentCaller, db: DbSession, task_service: TaskServiceDep) -> List[TaskRead]:
    """Get tasks created today."""
    return await task_service.get_today_tasks(caller, db)


@router.get(
    "/overdue",
    summary="Get Overdue Tasks",
    responses={200: {"description": "Open tasks past their due date, most overdue first"}},
)
async def get_overdue_tasks(caller: CurrentCaller, db: DbSession, task_service: TaskServiceDep) -> List[TaskRead]:
    """Get overdue tasks."""
    return await task_service.get_overdue_tasks(caller, db)


@router.get(
    "/{task_id}",
    summary="Get Task",
    responses={
        200: {"description": "Task details"},
        404: {"description": "Task not found"},
    },
)
async def get_task(task_id: int, caller: CurrentCaller, db: DbSession, task_service: TaskServiceDep) -> TaskRead:
    """Get a specific task by ID."""
    return await task_service.get_task(caller, task_id, db)


@router.patch(
    "/{task_id}",
    summary="Update Task",
    description="""
    Updates the status, notes or due date of a task. Only fields sent are changed.
    Moving a task to `completed` records its completion time.
    """,
    responses={
        200: {"description": "Task updated"},
        403: {"description": "Caller may not modify this task"},
        404: {"description": "Task not found"},
    },
)
async def update_task(
    task_id: int,
    update: TaskUpdate,
    caller: CurrentCaller,
    db: DbSession,
    task_service: TaskServiceDep,
) -> TaskRead:
    """Update a task."""
    return await task_service.update_task(caller, task_id, update, db)


@router.patch(
    "/{task_id}/complete",
    summary="Complete Task",
    responses={
        200: {"description": "Task marked completed"},
        403: {"description": "Caller may not modify this task"},
        404: {"description": "Task not found"},
    },
)
async def complete_task(
    task_id: int,
    caller: CurrentCaller,
    db: DbSession,
    task_service: TaskServiceDep,
    body: Optional[TaskNotes] = None,
) -> TaskRead:
    """Mark a task completed."""
    return await task_service.complete_task(caller, task_id, db, notes=body.notes if body else None)


@router.patch(
    "/{task_id}/fail",
    summary="Fail Task",
    responses={
        200: {"description": "Task marked failed"},
        403: {"description": "Caller may not modify this task"},
        404: {"description": "Task not found"},
    },
)
async def fail_task(
    task_id: int,
    caller: CurrentCaller,
    db: DbSession,
    task_service: TaskServiceDep,
    body: Optional[TaskNotes] = None,
) -> TaskRead:
    """Mark a task failed."""
    return await task_service.fail_task(caller, task_id, db, notes=body.notes if body else None)


@router.patch(
    "/{task_id}/cancel",
    summary="Cancel Task",
    responses={
        200: {"description": "Task cancelled"},
        403: {"description": "Caller may not modify this task"},
        404: {"description": "Task not found"},
    },
)
async def cancel_task(
    task_id: int,
    caller: CurrentCaller,
    db: DbSession,
    task_service: TaskServiceDep,
    body: Optional[TaskNotes] = None,
) -> TaskRead:
    """Cancel a task."""
    return await task_service.cancel_task(caller, task_id, db, notes=body.notes if body else None)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    responses={
        204: {"description": "Task deleted"},
        403: {"description": "Caller may not modify this task"},
        404: {"description": "Task not found"},
    },
)
async def delete_task(task_id: int, caller: CurrentCaller, db: DbSession, task_service: TaskServiceDep) -> None:
    """Delete a task."""
    await task_service.delete_task(caller, task_id, db)
