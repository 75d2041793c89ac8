"""API tests for Action endpoints."""

from datetime import UTC, datetime
from typing import Any, Callable, Dict

import pytest
from httpx import AsyncClient

from docvault.modules.permission import Caller

Headers = Callable[[Caller], Dict[str, str]]


def run_payload(scope: Dict[str, Any], actions=("make_csv",)) -> Dict[str, Any]:
    return {
        "scope": scope,
        "messages": [{"role": "user", "content": "vendor totals"}],
        "actions": list(actions),
    }


class TestActionAPI:
    """API tests for action endpoints."""

    @pytest.fixture
    async def invoice(self, client: AsyncClient, auth_headers: Headers, alice: Caller) -> Dict[str, Any]:
        response = await client.post(
            "/api/v1/documents",
            json={"filename": "a.txt", "content": "Vendor: Acme\nAmount: $42.00", "primary_tag": "invoices"},
            headers=auth_headers(alice),
        )
        assert response.status_code == 201
        return response.json()

    @pytest.mark.asyncio
    async def test_run_action(self, client: AsyncClient, auth_headers: Headers, alice: Caller, invoice):
        """Test a successful run and its stored outputs."""
        response = await client.post(
            "/api/v1/actions/run",
            json=run_payload({"kind": "folder", "name": "invoices"}, actions=["make_csv", "make_document"]),
            headers=auth_headers(alice),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "completed"
        assert data["credits_used"] == 5
        assert [output["type"] for output in data["outputs"]] == ["csv", "document"]

        output_id = data["outputs"][0]["document_id"]
        response = await client.get(f"/api/v1/documents/{output_id}", headers=auth_headers(alice))
        assert response.json()["primary_tag"]["name"] == "ai-generated"

    @pytest.mark.asyncio
    async def test_run_action_invalid_scope(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        """Test that a scope naming both a folder and files is a 400."""
        response = await client.post(
            "/api/v1/actions/run",
            json=run_payload({"kind": "files", "ids": [1], "name": "invoices"}),
            headers=auth_headers(alice),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_run_action_empty_scope(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        """Test that a folder without documents is a 400 and the run is recorded as failed."""
        await client.post("/api/v1/tags", json={"name": "empty"}, headers=auth_headers(alice))

        response = await client.post(
            "/api/v1/actions/run", json=run_payload({"kind": "folder", "name": "empty"}), headers=auth_headers(alice)
        )
        assert response.status_code == 400

        response = await client.get("/api/v1/actions", headers=auth_headers(alice))
        [action] = response.json()
        assert action["status"] == "failed"

    @pytest.mark.asyncio
    async def test_run_action_unknown_folder(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        """Test that an unknown folder is a 404."""
        response = await client.post(
            "/api/v1/actions/run", json=run_payload({"kind": "folder", "name": "nowhere"}), headers=auth_headers(alice)
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_run_action_read_only_role(
        self, client: AsyncClient, auth_headers: Headers, support: Caller, invoice
    ):
        """Test that support cannot run actions."""
        response = await client.post(
            "/api/v1/actions/run",
            json=run_payload({"kind": "files", "ids": [invoice["id"]]}),
            headers=auth_headers(support),
        )

        assert response.status_code == 403
        assert response.json()["read_only"] is True

    @pytest.mark.asyncio
    async def test_run_action_missing_messages(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        """Test request body validation."""
        payload = run_payload({"kind": "folder", "name": "invoices"})
        payload["messages"] = []

        response = await client.post("/api/v1/actions/run", json=payload, headers=auth_headers(alice))

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_action(
        self, client: AsyncClient, auth_headers: Headers, alice: Caller, bob: Caller, admin: Caller, invoice
    ):
        """Test reading an action as owner, other user and admin."""
        response = await client.post(
            "/api/v1/actions/run",
            json=run_payload({"kind": "files", "ids": [invoice["id"]]}),
            headers=auth_headers(alice),
        )
        action_id = response.json()["id"]

        response = await client.get(f"/api/v1/actions/{action_id}", headers=auth_headers(alice))
        assert response.status_code == 200
        assert response.json()["scope"] == {"kind": "files", "ids": [invoice["id"]]}

        response = await client.get(f"/api/v1/actions/{action_id}", headers=auth_headers(bob))
        assert response.status_code == 404

        response = await client.get("/api/v1/actions?user_id=alice", headers=auth_headers(admin))
        assert [action["id"] for action in response.json()] == [action_id]

    @pytest.mark.asyncio
    async def test_credit_usage(self, client: AsyncClient, auth_headers: Headers, alice: Caller, bob: Caller, invoice):
        """Test monthly and all-time credit usage, failed runs included."""
        await client.post(
            "/api/v1/actions/run",
            json=run_payload({"kind": "files", "ids": [invoice["id"]]}),
            headers=auth_headers(alice),
        )
        await client.post(
            "/api/v1/actions/run", json=run_payload({"kind": "folder", "name": "nowhere"}), headers=auth_headers(alice)
        )

        now = datetime.now(UTC)
        response = await client.get(
            "/api/v1/actions/usage/month",
            params={"year": now.year, "month": now.month},
            headers=auth_headers(alice),
        )
        assert response.status_code == 200
        usage = response.json()
        assert usage["period"] == f"{now.year:04d}-{now.month:02d}"
        assert usage["total_credits"] == 10
        assert usage["actions_count"] == 2
        assert [entry["action_type"] for entry in usage["breakdown"]] == ["make_csv", "make_csv"]

        response = await client.get("/api/v1/actions/usage/all", headers=auth_headers(alice))
        assert response.json() == {
            "total_credits": 10,
            "monthly_breakdown": [{"month": f"{now.year:04d}-{now.month:02d}", "credits": 10}],
        }

        response = await client.get("/api/v1/actions/usage/all", headers=auth_headers(bob))
        assert response.json() == {"total_credits": 0, "monthly_breakdown": []}

    @pytest.mark.asyncio
    async def test_credit_usage_invalid_month(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        response = await client.get(
            "/api/v1/actions/usage/month", params={"year": 2025, "month": 13}, headers=auth_headers(alice)
        )

        assert response.status_code == 422
