"""Batch actions over a document scope."""

from collections import defaultdict
from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config import settings
from ...infrastructure.database.models import utcnow
from ...infrastructure.logging import get_logger
from ..audit.services import AuditService
from ..common.constants import ACTION_TAG_PREFIX, AI_GENERATED_TAG
from ..common.exceptions import InvalidScopeError, ResourceNotFoundError, StorageError, ValidationError
from ..document.services import DocumentService
from ..permission import Caller, can_access_resource, ensure_can_write, resolve_effective_owner_filter
from ..scope.services import ScopeResolver, parse_scope
from .crud import action_crud
from .models import Action, ActionStatus
from .processor import MockProcessor, ProcessorDocument
from .schemas import (
    ActionOutput,
    ActionRead,
    ActionRunRequest,
    MonthlyCredits,
    MonthlyUsage,
    UsageEntry,
    UsageSummary,
)

logger = get_logger(__name__)


class ActionService:
    """Runs scripted actions over the documents of a scope.

    Every run is recorded: it is persisted as pending before any work starts
    and ends either completed with its outputs or failed with the error text.
    Outputs are stored as new documents owned by the caller, filed under the
    ``ai-generated`` folder and tagged with ``action-<id>``.
    """

    def __init__(
        self,
        document_service: Optional[DocumentService] = None,
        scope_resolver: Optional[ScopeResolver] = None,
        processor: Optional[MockProcessor] = None,
        audit_service: Optional[AuditService] = None,
    ):
        self.document_service = document_service or DocumentService()
        self.scope_resolver = scope_resolver or ScopeResolver(self.document_service.tag_store)
        self.processor = processor or MockProcessor()
        self.audit_service = audit_service or AuditService()

    async def run_action(self, caller: Caller, request: ActionRunRequest, db: AsyncSession) -> ActionRead:
        """Run ``request.actions`` over the scope of ``request``.

        Raises:
            PermissionDeniedError: For read-only roles
            InvalidScopeError: If the scope is malformed or holds no documents
            ResourceNotFoundError: If the folder or a listed file is not visible
        """
        ensure_can_write(caller.role)
        scope = parse_scope(request.scope)

        action = Action(
            user_id=caller.user_id,
            scope=scope.model_dump(),
            messages=[message.model_dump() for message in request.messages],
            actions=list(request.actions),
            credits_used=settings.ACTION_CREDITS_PER_RUN,
        )
        await self._save(action, db)

        try:
            action.status = ActionStatus.RUNNING.value
            action.executed_at = utcnow()
            await self._save(action, db)

            document_ids = await self.scope_resolver.resolve(scope, caller.role, caller.user_id, db)
            records = await self.document_service.get_accessible_documents(caller, document_ids, db)
            if not records:
                raise InvalidScopeError("No documents found in the requested scope")

            context = [ProcessorDocument(record.id, record.filename, record.text_content) for record in records]
            results = self.processor.process(context, request.messages, request.actions)

            outputs = []
            for result in results:
                document = await self.document_service.store_document(
                    caller.user_id,
                    result.filename,
                    result.mime_type,
                    result.content.encode("utf-8"),
                    AI_GENERATED_TAG,
                    [f"{ACTION_TAG_PREFIX}{action.id}"],
                    db,
                )
                outputs.append(ActionOutput(type=result.type, document_id=document.id, filename=document.filename))

            action.status = ActionStatus.COMPLETED.value
            action.outputs = [output.model_dump() for output in outputs]
            action.completed_at = utcnow()
            await self._save(action, db)
        except Exception as e:
            action.status = ActionStatus.FAILED.value
            action.error = str(e)
            action.completed_at = utcnow()
            await self._save(action, db)
            logger.warning(f"Action {action.id} for user {caller.user_id} failed: {e}")
            await self.audit_service.log_action_fail(caller.user_id, action.id, str(e), db)
            raise

        logger.info(f"Action {action.id} completed with {len(outputs)} output(s)")
        await self.audit_service.log_action_run(
            caller.user_id,
            action.id,
            {"scope": action.scope, "actions": action.actions, "output_count": len(outputs)},
            db,
        )
        return ActionRead.model_validate(action)

    async def get_action(self, caller: Caller, action_id: int, db: AsyncSession) -> ActionRead:
        action = await action_crud.get(db=db, id=action_id)
        if action is None or not can_access_resource(caller.role, action["user_id"], caller.user_id):
            raise ResourceNotFoundError(f"Action {action_id} not found")
        return ActionRead.model_validate(action)

    async def list_actions(
        self, caller: Caller, db: AsyncSession, user_id: Optional[str] = None, limit: int = 50
    ) -> List[ActionRead]:
        """Most recent actions visible to the caller, newest first."""
        effective_user = resolve_effective_owner_filter(caller.role, caller.user_id, user_id)
        stmt = select(Action).order_by(Action.created_at.desc(), Action.id.desc()).limit(limit)
        if effective_user is not None:
            stmt = stmt.where(Action.user_id == effective_user)
        result = await db.execute(stmt)
        return [ActionRead.model_validate(action) for action in result.scalars().all()]

    async def get_monthly_usage(
        self, caller: Caller, year: int, month: int, db: AsyncSession, user_id: Optional[str] = None
    ) -> MonthlyUsage:
        """Credits charged for runs started in one calendar month (UTC).

        Failed runs are charged like completed ones.

        Raises:
            ValidationError: If ``month`` is not 1-12
        """
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}")
        start = datetime(year, month, 1, tzinfo=UTC)
        end = datetime(year + 1, 1, 1, tzinfo=UTC) if month == 12 else datetime(year, month + 1, 1, tzinfo=UTC)

        stmt = (
            select(Action)
            .where(Action.created_at >= start, Action.created_at < end)
            .order_by(Action.created_at.desc(), Action.id.desc())
        )
        actions = await self._fetch_for_usage(caller, stmt, user_id, db)

        return MonthlyUsage(
            period=f"{year:04d}-{month:02d}",
            total_credits=sum(action.credits_used for action in actions),
            actions_count=len(actions),
            breakdown=[
                UsageEntry(date=action.created_at, credits=action.credits_used, action_type=",".join(action.actions))
                for action in actions
            ],
        )

    async def get_all_time_usage(
        self, caller: Caller, db: AsyncSession, user_id: Optional[str] = None
    ) -> UsageSummary:
        """Total credits charged, broken down by month."""
        actions = await self._fetch_for_usage(caller, select(Action), user_id, db)

        per_month = defaultdict(int)
        for action in actions:
            per_month[action.created_at.strftime("%Y-%m")] += action.credits_used

        return UsageSummary(
            total_credits=sum(per_month.values()),
            monthly_breakdown=[
                MonthlyCredits(month=month, credits=credits) for month, credits in sorted(per_month.items())
            ],
        )

    async def _fetch_for_usage(self, caller: Caller, stmt, user_id: Optional[str], db: AsyncSession) -> List[Action]:
        effective_user = resolve_effective_owner_filter(caller.role, caller.user_id, user_id)
        if effective_user is not None:
            stmt = stmt.where(Action.user_id == effective_user)
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read credit usage: {e}") from e
        return list(result.scalars().all())

    async def _save(self, action: Action, db: AsyncSession) -> None:
        try:
            db.add(action)
            await db.commit()
            await db.refresh(action)
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to save action: {e}") from e
