"""Role-aware task operations."""

from datetime import UTC, datetime, time
from typing import Any, List, Optional

from fastcrud import paginated_response
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config import settings
from ...infrastructure.database.models import utcnow
from ...infrastructure.logging import get_logger
from ..audit.services import AuditService
from ..common.exceptions import ConflictError, ResourceNotFoundError, StorageError
from ..permission import (
    Caller,
    can_access_resource,
    ensure_can_modify,
    ensure_can_write,
    resolve_effective_owner_filter,
)
from .crud import task_crud
from .models import OPEN_TASK_STATUSES, Task, TaskStatus, TaskType
from .schemas import TaskCreate, TaskRead, TaskStats, TaskUpdate

logger = get_logger(__name__)


class TaskService:
    """Task operations on behalf of an authenticated caller.

    Tasks follow the same ownership rules as documents: standard users see
    and change only their own, support and moderator may read every task,
    and admins may do anything. Tasks the caller cannot see are reported as
    missing.
    """

    def __init__(self, audit_service: Optional[AuditService] = None):
        self.audit_service = audit_service or AuditService()

    async def create_task(self, caller: Caller, task_data: TaskCreate, db: AsyncSession) -> TaskRead:
        """Create a task owned by the caller.

        Each source may raise a limited number of tasks per user per day.

        Raises:
            PermissionDeniedError: For read-only roles
            ConflictError: If the daily limit for ``task_data.source`` is reached
        """
        ensure_can_write(caller.role)

        limit = settings.TASK_DAILY_LIMIT_PER_SOURCE
        created_today = await self._count_today(caller.user_id, task_data.source, db)
        if created_today >= limit:
            raise ConflictError(f"Rate limit exceeded. Maximum {limit} tasks per day per source.")

        task = Task(
            user_id=caller.user_id,
            source=task_data.source,
            channel=task_data.channel.value,
            target=task_data.target,
            type=task_data.type.value,
            title=task_data.title,
            description=task_data.description,
            extra_metadata=task_data.metadata or None,
            due_date=_as_utc(task_data.due_date),
        )
        await self._save(task, db)

        logger.info(f"Created task {task.id} from source '{task.source}' for user {caller.user_id}")
        await self.audit_service.log_task_create(
            caller.user_id,
            task.id,
            {"type": task.type, "source": task.source, "channel": task.channel, "target": task.target},
            db,
        )
        return _to_read(task)

    async def get_task(self, caller: Caller, task_id: int, db: AsyncSession) -> TaskRead:
        """Get a task by ID.

        Raises:
            ResourceNotFoundError: If the task does not exist or is not visible
        """
        return _to_read(await self._get_visible_task(caller, task_id, db))

    async def list_tasks(
        self,
        caller: Caller,
        db: AsyncSession,
        page: int = 1,
        items_per_page: int = 20,
        status: Optional[TaskStatus] = None,
        task_type: Optional[TaskType] = None,
        user_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """List tasks visible to the caller, newest first, with pagination.

        Args:
            caller: Authenticated caller
            db: Database session
            page: Page number (1-indexed)
            items_per_page: Number of tasks per page
            status: Only tasks in this status
            task_type: Only tasks of this type
            user_id: User to narrow to; honoured for admins only

        Returns:
            Paginated response with tasks
        """
        filters = {}
        effective_user = resolve_effective_owner_filter(caller.role, caller.user_id, user_id)
        if effective_user is not None:
            filters["user_id"] = effective_user
        if status is not None:
            filters["status"] = status.value
        if task_type is not None:
            filters["type"] = task_type.value

        offset = (page - 1) * items_per_page
        try:
            stmt = await task_crud.select(sort_columns=["created_at", "id"], sort_orders=["desc", "desc"], **filters)
            result = await db.execute(stmt.offset(offset).limit(items_per_page))
            tasks = result.scalars().all()
            total_count = await task_crud.count(db=db, **filters)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list tasks: {e}") from e

        crud_data = {"data": [_to_read(task).model_dump() for task in tasks], "total_count": total_count}
        return paginated_response(crud_data, page, items_per_page)

    async def update_task(self, caller: Caller, task_id: int, update: TaskUpdate, db: AsyncSession) -> TaskRead:
        """Apply the fields set on ``update``.

        Moving a task to ``completed`` stamps ``completed_at``.

        Raises:
            ResourceNotFoundError: If the task does not exist or is not visible
            PermissionDeniedError: If the caller may not modify the task
        """
        ensure_can_write(caller.role)
        task = await self._get_visible_task(caller, task_id, db)
        ensure_can_modify(caller.role, task.user_id, caller.user_id)

        changes = update.model_dump(exclude_unset=True, mode="json")
        if update.status is not None:
            task.status = update.status.value
            if update.status == TaskStatus.COMPLETED:
                task.completed_at = utcnow()
        if "notes" in changes:
            task.notes = update.notes
        if "due_date" in changes:
            task.due_date = _as_utc(update.due_date)
        await self._save(task, db)

        await self.audit_service.log_task_update(caller.user_id, task.id, changes, db)
        return _to_read(task)

    async def complete_task(
        self, caller: Caller, task_id: int, db: AsyncSession, notes: Optional[str] = None
    ) -> TaskRead:
        return await self.update_task(caller, task_id, _closing_update(TaskStatus.COMPLETED, notes), db)

    async def fail_task(self, caller: Caller, task_id: int, db: AsyncSession, notes: Optional[str] = None) -> TaskRead:
        return await self.update_task(caller, task_id, _closing_update(TaskStatus.FAILED, notes), db)

    async def cancel_task(
        self, caller: Caller, task_id: int, db: AsyncSession, notes: Optional[str] = None
    ) -> TaskRead:
        return await self.update_task(caller, task_id, _closing_update(TaskStatus.CANCELLED, notes), db)

    async def delete_task(self, caller: Caller, task_id: int, db: AsyncSession) -> None:
        """Delete a task.

        Raises:
            ResourceNotFoundError: If the task does not exist or is not visible
            PermissionDeniedError: If the caller may not modify the task
        """
        ensure_can_write(caller.role)
        task = await self._get_visible_task(caller, task_id, db)
        ensure_can_modify(caller.role, task.user_id, caller.user_id)

        task_type, task_status = task.type, task.status
        try:
            await db.delete(task)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to delete task {task_id}: {e}") from e

        logger.info(f"Deleted task {task_id}")
        await self.audit_service.log_task_delete(
            caller.user_id, task_id, {"type": task_type, "status": task_status}, db
        )

    async def get_stats(self, caller: Caller, db: AsyncSession, user_id: Optional[str] = None) -> TaskStats:
        """Count the tasks visible to the caller per status."""
        effective_user = resolve_effective_owner_filter(caller.role, caller.user_id, user_id)
        stmt = select(Task.status, func.count(Task.id)).group_by(Task.status)
        if effective_user is not None:
            stmt = stmt.where(Task.user_id == effective_user)
        try:
            rows = (await db.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to count tasks: {e}") from e

        stats = TaskStats()
        for task_status, count in rows:
            setattr(stats, TaskStatus(task_status).value, count)
            stats.total += count
        return stats

    async def get_today_tasks(self, caller: Caller, db: AsyncSession) -> List[TaskRead]:
        """Tasks created since midnight UTC, newest first."""
        effective_user = resolve_effective_owner_filter(caller.role, caller.user_id)
        stmt = select(Task).where(Task.created_at >= _start_of_day()).order_by(Task.created_at.desc(), Task.id.desc())
        if effective_user is not None:
            stmt = stmt.where(Task.user_id == effective_user)
        return await self._fetch(stmt, db)

    async def get_overdue_tasks(self, caller: Caller, db: AsyncSession) -> List[TaskRead]:
        """Open tasks whose due date has passed, most overdue first."""
        effective_user = resolve_effective_owner_filter(caller.role, caller.user_id)
        stmt = (
            select(Task)
            .where(Task.status.in_(OPEN_TASK_STATUSES), Task.due_date.is_not(None), Task.due_date < utcnow())
            .order_by(Task.due_date, Task.id)
        )
        if effective_user is not None:
            stmt = stmt.where(Task.user_id == effective_user)
        return await self._fetch(stmt, db)

    async def _get_visible_task(self, caller: Caller, task_id: int, db: AsyncSession) -> Task:
        try:
            task = await db.get(Task, task_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read task {task_id}: {e}") from e
        if task is None or not can_access_resource(caller.role, task.user_id, caller.user_id):
            raise ResourceNotFoundError(f"Task {task_id} not found")
        return task

    async def _count_today(self, user_id: str, source: str, db: AsyncSession) -> int:
        stmt = select(func.count(Task.id)).where(
            Task.user_id == user_id,
            Task.source == source,
            Task.created_at >= _start_of_day(),
        )
        try:
            return (await db.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to count today's tasks: {e}") from e

    async def _fetch(self, stmt, db: AsyncSession) -> List[TaskRead]:
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list tasks: {e}") from e
        return [_to_read(task) for task in result.scalars().all()]

    async def _save(self, task: Task, db: AsyncSession) -> None:
        try:
            db.add(task)
            await db.commit()
            await db.refresh(task)
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to save task: {e}") from e


def _closing_update(status: TaskStatus, notes: Optional[str]) -> TaskUpdate:
    if notes is None:
        return TaskUpdate(status=status)
    return TaskUpdate(status=status, notes=notes)


def _start_of_day() -> datetime:
    return datetime.combine(utcnow().date(), time.min, tzinfo=UTC)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_read(task: Task) -> TaskRead:
    return TaskRead(
        id=task.id,
        user_id=task.user_id,
        source=task.source,
        type=TaskType(task.type),
        status=TaskStatus(task.status),
        channel=task.channel,
        target=task.target,
        title=task.title,
        description=task.description,
        metadata=task.extra_metadata or {},
        due_date=task.due_date,
        completed_at=task.completed_at,
        notes=task.notes,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )
