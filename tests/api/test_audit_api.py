"""API tests for the audit trail endpoint."""

from typing import Callable, Dict

import pytest
from httpx import AsyncClient

from docvault.modules.permission import Caller

Headers = Callable[[Caller], Dict[str, str]]


class TestAuditAPI:
    """API tests for audit endpoints."""

    @pytest.mark.asyncio
    async def test_audit_trail_by_role(
        self, client: AsyncClient, auth_headers: Headers, alice: Caller, bob: Caller, support: Caller
    ):
        """Test that users see their own activity and support sees everyone's."""
        await client.post("/api/v1/tags", json={"name": "a"}, headers=auth_headers(alice))
        await client.post("/api/v1/tags", json={"name": "b"}, headers=auth_headers(bob))

        response = await client.get("/api/v1/audit", headers=auth_headers(alice))
        assert response.status_code == 200
        entries = response.json()
        assert [(entry["user_id"], entry["action"]) for entry in entries] == [("alice", "tag.create")]
        assert entries[0]["metadata"] == {"name": "a"}

        response = await client.get("/api/v1/audit", headers=auth_headers(support))
        assert [entry["user_id"] for entry in response.json()] == ["bob", "alice"]

    @pytest.mark.asyncio
    async def test_audit_trail_limit(self, client: AsyncClient, auth_headers: Headers, admin: Caller):
        """Test limit validation."""
        response = await client.get("/api/v1/audit?limit=0", headers=auth_headers(admin))
        assert response.status_code == 422

        response = await client.get("/api/v1/audit?limit=1", headers=auth_headers(admin))
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_audit_trail_requires_authentication(self, client: AsyncClient):
        """Test that the audit trail is not public."""
        response = await client.get("/api/v1/audit")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_get_audit_entry(self, client: AsyncClient, auth_headers: Headers, alice: Caller, bob: Caller):
        """Test reading one entry as its user and as another user."""
        await client.post("/api/v1/tags", json={"name": "a"}, headers=auth_headers(alice))
        [entry] = (await client.get("/api/v1/audit", headers=auth_headers(alice))).json()

        response = await client.get(f"/api/v1/audit/{entry['id']}", headers=auth_headers(alice))
        assert response.status_code == 200
        assert response.json()["action"] == "tag.create"

        response = await client.get(f"/api/v1/audit/{entry['id']}", headers=auth_headers(bob))
        assert response.status_code == 404

        response = await client.get("/api/v1/audit/999", headers=auth_headers(alice))
        assert response.status_code == 404
