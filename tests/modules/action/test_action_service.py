"""Tests for the action service."""

from datetime import UTC, datetime

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.infrastructure.database.models import utcnow
from docvault.modules.action.models import Action, ActionStatus
from docvault.modules.action.schemas import ActionRunRequest
from docvault.modules.action.services import ActionService
from docvault.modules.audit.models import AuditAction
from docvault.modules.audit.services import AuditService
from docvault.modules.common.exceptions import (
    InvalidScopeError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from docvault.modules.document.services import DocumentService
from docvault.modules.permission import Caller
from docvault.modules.tag.services import TagService


def run_request(scope: dict, actions=("make_csv",), content: str = "vendor totals") -> ActionRunRequest:
    return ActionRunRequest(
        scope=scope,
        messages=[{"role": "user", "content": content}],
        actions=list(actions),
    )


async def move_action(db: AsyncSession, action_id: int, created_at: datetime) -> None:
    await db.execute(update(Action).where(Action.id == action_id).values(created_at=created_at))
    await db.commit()


@pytest_asyncio.fixture
async def invoices(make_document):
    """Two invoices of alice filed under 'invoices'."""
    return [
        await make_document("alice", primary_tag="invoices", filename="a.txt", content="Vendor: Acme\nAmount: $100.00"),
        await make_document("alice", primary_tag="invoices", filename="b.txt", content="Vendor: Acme\nAmount: $50.00"),
    ]


@pytest.mark.asyncio
async def test_run_action_on_folder(
    action_service: ActionService,
    document_service: DocumentService,
    tag_service: TagService,
    db_session: AsyncSession,
    alice: Caller,
    invoices,
):
    """Test that a completed run stores its outputs as tagged documents."""
    action = await action_service.run_action(
        alice, run_request({"kind": "folder", "name": "invoices"}, actions=["make_csv", "make_document"]), db_session
    )

    assert action.status == ActionStatus.COMPLETED
    assert action.user_id == "alice"
    assert action.scope == {"kind": "folder", "name": "invoices"}
    assert action.credits_used == 5
    assert action.error is None
    assert action.executed_at is not None
    assert action.completed_at is not None
    assert [output.filename for output in action.outputs] == ["vendor_totals.csv", "analysis_report.md"]

    csv_document = await document_service.get_document(alice, action.outputs[0].document_id, db_session)
    assert csv_document.owner_id == "alice"
    assert csv_document.mime_type == "text/csv"
    assert csv_document.primary_tag.name == "ai-generated"
    assert [tag.name for tag in csv_document.secondary_tags] == [f"action-{action.id}"]

    record = await document_service.document_store.find_by_id(csv_document.id, db_session)
    assert "Acme,$150.00" in record.text_content

    folders = {folder.name: folder.document_count for folder in await tag_service.get_folders(alice, db_session)}
    assert folders == {"ai-generated": 2, "invoices": 2}


@pytest.mark.asyncio
async def test_run_action_on_files(action_service: ActionService, db_session: AsyncSession, alice: Caller, invoices):
    """Test running over an explicit list of documents."""
    action = await action_service.run_action(
        alice, run_request({"kind": "files", "ids": [invoices[0].id]}, content="summary"), db_session
    )

    assert action.status == ActionStatus.COMPLETED
    assert [output.filename for output in action.outputs] == ["document_summary.csv"]


@pytest.mark.asyncio
async def test_run_action_unknown_actions_only(
    action_service: ActionService, db_session: AsyncSession, alice: Caller, invoices
):
    """Test that a run with only unknown action names completes without outputs."""
    action = await action_service.run_action(
        alice, run_request({"kind": "folder", "name": "invoices"}, actions=["translate"]), db_session
    )

    assert action.status == ActionStatus.COMPLETED
    assert action.outputs == []


@pytest.mark.asyncio
async def test_run_action_read_only_role(
    action_service: ActionService, db_session: AsyncSession, support: Caller, invoices
):
    """Test that read-only roles cannot run actions and nothing is recorded."""
    with pytest.raises(PermissionDeniedError) as exc_info:
        await action_service.run_action(support, run_request({"kind": "folder", "name": "invoices"}), db_session)

    assert exc_info.value.read_only is True
    assert await action_service.list_actions(support, db_session) == []


@pytest.mark.asyncio
async def test_run_action_invalid_scope(action_service: ActionService, db_session: AsyncSession, alice: Caller):
    """Test that a malformed scope is rejected before anything is recorded."""
    with pytest.raises(InvalidScopeError):
        await action_service.run_action(alice, run_request({"kind": "files", "ids": []}), db_session)

    assert await action_service.list_actions(alice, db_session) == []


@pytest.mark.asyncio
async def test_run_action_empty_folder_fails(
    action_service: ActionService, tag_service: TagService, db_session: AsyncSession, alice: Caller
):
    """Test that a folder without documents fails the run and records why."""
    await tag_service.tag_store.find_or_create_tag("empty", "alice", db_session)

    with pytest.raises(InvalidScopeError, match="No documents found"):
        await action_service.run_action(alice, run_request({"kind": "folder", "name": "empty"}), db_session)

    [action] = await action_service.list_actions(alice, db_session)
    assert action.status == ActionStatus.FAILED
    assert "No documents found" in action.error
    assert action.outputs == []


@pytest.mark.asyncio
async def test_run_action_hidden_document_fails(
    action_service: ActionService,
    audit_service: AuditService,
    db_session: AsyncSession,
    bob: Caller,
    invoices,
):
    """Test that listing another user's document fails the run as not found."""
    with pytest.raises(ResourceNotFoundError):
        await action_service.run_action(bob, run_request({"kind": "files", "ids": [invoices[0].id]}), db_session)

    [action] = await action_service.list_actions(bob, db_session)
    assert action.status == ActionStatus.FAILED

    trail = await audit_service.get_audit_trail(bob, db_session)
    assert [entry.action for entry in trail] == [AuditAction.ACTION_FAIL]


@pytest.mark.asyncio
async def test_run_action_by_admin_spans_owners(
    action_service: ActionService, db_session: AsyncSession, admin: Caller, make_document
):
    """Test that an admin folder scope merges every owner's folder and outputs belong to the admin."""
    await make_document("alice", primary_tag="invoices", content="Vendor: Acme\nAmount: $10.00")
    await make_document("bob", primary_tag="invoices", content="Vendor: Globex\nAmount: $5.00")

    action = await action_service.run_action(admin, run_request({"kind": "folder", "name": "invoices"}), db_session)

    assert action.status == ActionStatus.COMPLETED
    output = await action_service.document_service.get_document(admin, action.outputs[0].document_id, db_session)
    assert output.owner_id == "root"


@pytest.mark.asyncio
async def test_get_action_visibility(
    action_service: ActionService,
    db_session: AsyncSession,
    alice: Caller,
    bob: Caller,
    moderator: Caller,
    invoices,
):
    """Test that actions of other users look missing to standard users only."""
    action = await action_service.run_action(alice, run_request({"kind": "folder", "name": "invoices"}), db_session)

    with pytest.raises(ResourceNotFoundError):
        await action_service.get_action(bob, action.id, db_session)

    fetched = await action_service.get_action(moderator, action.id, db_session)
    assert fetched.id == action.id
    assert fetched.status == ActionStatus.COMPLETED
    assert fetched.outputs[0].filename == "vendor_totals.csv"


@pytest.mark.asyncio
async def test_list_actions_by_role(
    action_service: ActionService,
    db_session: AsyncSession,
    alice: Caller,
    bob: Caller,
    admin: Caller,
    invoices,
):
    """Test that users list their own runs, newest first."""
    first = await action_service.run_action(alice, run_request({"kind": "folder", "name": "invoices"}), db_session)
    second = await action_service.run_action(alice, run_request({"kind": "folder", "name": "invoices"}), db_session)

    assert [action.id for action in await action_service.list_actions(alice, db_session)] == [second.id, first.id]
    assert await action_service.list_actions(bob, db_session) == []
    assert len(await action_service.list_actions(admin, db_session, user_id="alice")) == 2
    assert await action_service.list_actions(admin, db_session, user_id="bob") == []


@pytest.mark.asyncio
async def test_get_monthly_usage(
    action_service: ActionService, db_session: AsyncSession, alice: Caller, bob: Caller, invoices
):
    """Test that completed and failed runs of the month are both charged."""
    first = await action_service.run_action(alice, run_request({"kind": "folder", "name": "invoices"}), db_session)
    with pytest.raises(ResourceNotFoundError):
        await action_service.run_action(alice, run_request({"kind": "folder", "name": "nowhere"}), db_session)
    last_month = await action_service.run_action(
        alice, run_request({"kind": "folder", "name": "invoices"}, actions=["make_document"]), db_session
    )
    await move_action(db_session, last_month.id, datetime(2025, 1, 15, tzinfo=UTC))

    now = utcnow()
    usage = await action_service.get_monthly_usage(alice, now.year, now.month, db_session)

    assert usage.period == f"{now.year:04d}-{now.month:02d}"
    assert usage.total_credits == 10
    assert usage.actions_count == 2
    assert [entry.credits for entry in usage.breakdown] == [5, 5]
    assert usage.breakdown[-1].action_type == "make_csv"
    assert usage.breakdown[-1].date.replace(tzinfo=None) == first.created_at.replace(tzinfo=None)

    january = await action_service.get_monthly_usage(alice, 2025, 1, db_session)
    assert january.total_credits == 5
    assert january.breakdown[0].action_type == "make_document"

    nothing = await action_service.get_monthly_usage(bob, now.year, now.month, db_session)
    assert nothing.total_credits == 0
    assert nothing.breakdown == []


@pytest.mark.asyncio
async def test_get_monthly_usage_invalid_month(action_service: ActionService, db_session: AsyncSession, alice: Caller):
    with pytest.raises(ValidationError):
        await action_service.get_monthly_usage(alice, 2025, 13, db_session)


@pytest.mark.asyncio
async def test_get_all_time_usage(
    action_service: ActionService, db_session: AsyncSession, alice: Caller, admin: Caller, invoices
):
    """Test the per-month breakdown, oldest month first."""
    old = await action_service.run_action(alice, run_request({"kind": "folder", "name": "invoices"}), db_session)
    await action_service.run_action(alice, run_request({"kind": "folder", "name": "invoices"}), db_session)
    await move_action(db_session, old.id, datetime(2025, 1, 15, tzinfo=UTC))

    usage = await action_service.get_all_time_usage(alice, db_session)

    now = utcnow()
    assert usage.total_credits == 10
    assert [(entry.month, entry.credits) for entry in usage.monthly_breakdown] == [
        ("2025-01", 5),
        (f"{now.year:04d}-{now.month:02d}", 5),
    ]

    assert (await action_service.get_all_time_usage(admin, db_session)).total_credits == 10
    assert (await action_service.get_all_time_usage(admin, db_session, user_id="bob")).total_credits == 0
