"""API tests for Tag and folder endpoints."""

from typing import Any, Callable, Dict

import pytest
from httpx import AsyncClient

from docvault.modules.permission import Caller

Headers = Callable[[Caller], Dict[str, str]]


async def upload(client: AsyncClient, headers: Dict[str, str], primary_tag: str, **overrides: Any) -> Dict[str, Any]:
    data = {"filename": "notes.txt", "content": "hello", "primary_tag": primary_tag}
    data.update(overrides)
    response = await client.post("/api/v1/documents", json=data, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestTagAPI:
    """API tests for tag endpoints."""

    @pytest.mark.asyncio
    async def test_create_tag(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        """Test tag creation, where a repeated name returns the existing tag."""
        response = await client.post("/api/v1/tags", json={"name": "invoices"}, headers=auth_headers(alice))

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "invoices"
        assert data["owner_id"] == "alice"

        response = await client.post("/api/v1/tags", json={"name": "invoices"}, headers=auth_headers(alice))
        assert response.status_code == 201
        assert response.json()["id"] == data["id"]

    @pytest.mark.asyncio
    async def test_create_tag_read_only_role(self, client: AsyncClient, auth_headers: Headers, moderator: Caller):
        """Test that moderators cannot create tags."""
        response = await client.post("/api/v1/tags", json={"name": "invoices"}, headers=auth_headers(moderator))

        assert response.status_code == 403
        assert response.json()["read_only"] is True

    @pytest.mark.asyncio
    async def test_list_tags(self, client: AsyncClient, auth_headers: Headers, alice: Caller, bob: Caller):
        """Test that users list only their own tags."""
        await client.post("/api/v1/tags", json={"name": "mine"}, headers=auth_headers(alice))
        await client.post("/api/v1/tags", json={"name": "theirs"}, headers=auth_headers(bob))

        response = await client.get("/api/v1/tags", headers=auth_headers(alice))

        assert response.status_code == 200
        assert [tag["name"] for tag in response.json()] == ["mine"]

    @pytest.mark.asyncio
    async def test_get_tag_of_other_user(self, client: AsyncClient, auth_headers: Headers, alice: Caller, bob: Caller):
        """Test that another user's tag is a 404."""
        response = await client.post("/api/v1/tags", json={"name": "private"}, headers=auth_headers(alice))
        tag_id = response.json()["id"]

        response = await client.get(f"/api/v1/tags/{tag_id}", headers=auth_headers(bob))
        assert response.status_code == 404

        response = await client.get(f"/api/v1/tags/{tag_id}", headers=auth_headers(alice))
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_folders_with_counts(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        """Test that the folder list reports live document counts."""
        headers = auth_headers(alice)
        first = await upload(client, headers, "invoices")
        await upload(client, headers, "invoices")
        await upload(client, headers, "receipts", secondary_tags=["invoices-2024"])

        response = await client.get("/api/v1/tags/folders", headers=headers)
        assert response.status_code == 200
        assert [(folder["name"], folder["document_count"]) for folder in response.json()] == [
            ("invoices", 2),
            ("receipts", 1),
        ]

        await client.delete(f"/api/v1/documents/{first['id']}", headers=headers)
        response = await client.get("/api/v1/tags/folders", headers=headers)
        assert [(folder["name"], folder["document_count"]) for folder in response.json()] == [
            ("invoices", 1),
            ("receipts", 1),
        ]

    @pytest.mark.asyncio
    async def test_assign_primary_tag(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        """Test moving a document into another folder."""
        headers = auth_headers(alice)
        document = await upload(client, headers, "inbox")

        response = await client.post(
            f"/api/v1/tags/documents/{document['id']}/primary", json={"name": "archive"}, headers=headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["primary"]["name"] == "archive"
        assert [tag["name"] for tag in data["secondary"]] == ["inbox"]

    @pytest.mark.asyncio
    async def test_assign_primary_tag_other_user(
        self, client: AsyncClient, auth_headers: Headers, alice: Caller, bob: Caller, support: Caller
    ):
        """Test that other users get a 404 and support a 403."""
        document = await upload(client, auth_headers(alice), "inbox")
        url = f"/api/v1/tags/documents/{document['id']}/primary"

        response = await client.post(url, json={"name": "stolen"}, headers=auth_headers(bob))
        assert response.status_code == 404

        response = await client.post(url, json={"name": "stolen"}, headers=auth_headers(support))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_secondary_tags(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        """Test adding and removing secondary tags."""
        headers = auth_headers(alice)
        document = await upload(client, headers, "inbox")

        response = await client.post(
            f"/api/v1/tags/documents/{document['id']}/secondary", json={"names": ["urgent", "q3"]}, headers=headers
        )
        assert response.status_code == 200
        secondary = {tag["name"]: tag["id"] for tag in response.json()["secondary"]}
        assert set(secondary) == {"urgent", "q3"}

        response = await client.delete(
            f"/api/v1/tags/documents/{document['id']}/{secondary['urgent']}", headers=headers
        )
        assert response.status_code == 204

        response = await client.get(f"/api/v1/tags/documents/{document['id']}", headers=headers)
        assert [tag["name"] for tag in response.json()["secondary"]] == ["q3"]

    @pytest.mark.asyncio
    async def test_remove_primary_tag_rejected(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        """Test that removing the primary tag is a 400."""
        headers = auth_headers(alice)
        document = await upload(client, headers, "inbox")

        response = await client.delete(
            f"/api/v1/tags/documents/{document['id']}/{document['primary_tag']['id']}", headers=headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot remove primary tag"

    @pytest.mark.asyncio
    async def test_delete_tag_in_use(self, client: AsyncClient, auth_headers: Headers, alice: Caller):
        """Test that deleting a used tag is a 409 carrying the document count."""
        headers = auth_headers(alice)
        document = await upload(client, headers, "invoices")
        await upload(client, headers, "invoices")

        response = await client.delete(f"/api/v1/tags/{document['primary_tag']['id']}", headers=headers)

        assert response.status_code == 409
        assert response.json()["document_count"] == 2

    @pytest.mark.asyncio
    async def test_delete_tag(self, client: AsyncClient, auth_headers: Headers, alice: Caller, moderator: Caller):
        """Test deleting an unused tag."""
        response = await client.post("/api/v1/tags", json={"name": "old"}, headers=auth_headers(alice))
        tag_id = response.json()["id"]

        response = await client.delete(f"/api/v1/tags/{tag_id}", headers=auth_headers(moderator))
        assert response.status_code == 403

        response = await client.delete(f"/api/v1/tags/{tag_id}", headers=auth_headers(alice))
        assert response.status_code == 204

        response = await client.get(f"/api/v1/tags/{tag_id}", headers=auth_headers(alice))
        assert response.status_code == 404
