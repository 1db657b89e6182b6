"""
Integration tests for comment endpoints.
"""
import pytest

from helpers import api, assert_error


def comment_body(workspace_id, content="Please review section 2", **extra):
    body = {
        "workspace_id": str(workspace_id),
        "target_type": "prd",
        "target_id": "prd-42",
        "content": content,
    }
    body.update(extra)
    return body


async def create(ac, workspace_id, content="Please review section 2", **extra):
    response = await ac.post(api("/comments"), json=comment_body(workspace_id, content, **extra))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def thread_params(workspace_id, **extra):
    params = {"workspace_id": str(workspace_id), "target_type": "prd", "target_id": "prd-42"}
    params.update(extra)
    return params


class TestCommentThread:
    """Test posting and reading comments."""

    @pytest.mark.asyncio
    async def test_post_and_list(self, client_for, workspace, member, admin):
        # Arrange
        first = await create(client_for(member), workspace.id, "First", mentions=[str(admin.id), str(admin.id)])
        second = await create(client_for(admin), workspace.id, "Second")

        # Act
        response = await client_for(member).get(api("/comments"), params=thread_params(workspace.id))

        # Assert
        assert first["author_name"] == "Mia Member"
        assert first["mentions"] == [str(admin.id)]
        assert first["resolved"] is False

        body = response.json()
        assert [c["id"] for c in body["data"]] == [first["id"], second["id"]]
        assert body["pagination"]["total"] == 2

    @pytest.mark.asyncio
    async def test_outsider_cannot_read_or_post(self, client_for, workspace, outsider):
        ac = client_for(outsider)

        assert_error(await ac.get(api("/comments"), params=thread_params(workspace.id)), 403)
        assert_error(await ac.post(api("/comments"), json=comment_body(workspace.id)), 403)

    @pytest.mark.asyncio
    async def test_blank_content_rejected(self, client_for, workspace, member):
        response = await client_for(member).post(api("/comments"), json=comment_body(workspace.id, "   "))

        assert_error(response, 400)

    @pytest.mark.asyncio
    async def test_unknown_target_type_rejected(self, client_for, workspace, member):
        response = await client_for(member).post(
            api("/comments"), json=comment_body(workspace.id, target_type="spreadsheet")
        )

        assert_error(response, 400)

    @pytest.mark.asyncio
    async def test_hide_resolved(self, client_for, workspace, member):
        ac = client_for(member)
        resolved = await create(ac, workspace.id, "Done")
        open_comment = await create(ac, workspace.id, "Still open")
        await ac.post(api(f"/comments/{resolved['id']}/resolve"))

        response = await ac.get(api("/comments"), params=thread_params(workspace.id, include_resolved="false"))

        assert [c["id"] for c in response.json()["data"]] == [open_comment["id"]]


class TestCommentChanges:
    """Test editing, resolving and deleting comments."""

    @pytest.mark.asyncio
    async def test_only_author_edits(self, client_for, workspace, member, owner):
        comment = await create(client_for(member), workspace.id)
        path = api(f"/comments/{comment['id']}")

        assert_error(await client_for(owner).patch(path, json={"content": "Hijacked"}), 403)

        response = await client_for(member).patch(path, json={"content": "  Edited  "})
        assert response.status_code == 200
        assert response.json()["data"]["content"] == "Edited"

    @pytest.mark.asyncio
    async def test_edit_requires_a_field(self, client_for, workspace, member):
        comment = await create(client_for(member), workspace.id)

        response = await client_for(member).patch(api(f"/comments/{comment['id']}"), json={})

        assert_error(response, 400)

    @pytest.mark.asyncio
    async def test_resolve_once(self, client_for, workspace, member, admin):
        # Arrange
        comment = await create(client_for(member), workspace.id)
        path = api(f"/comments/{comment['id']}/resolve")

        # Act
        response = await client_for(admin).post(path)

        # Assert
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["resolved"] is True
        assert data["resolved_by"] == str(admin.id)
        assert data["resolved_at"] is not None

        assert_error(await client_for(member).post(path), 409)

    @pytest.mark.asyncio
    async def test_delete_permissions(self, client_for, workspace, member, admin, owner):
        """Test the author or an admin may delete, other members may not."""
        by_admin = await create(client_for(admin), workspace.id)
        by_member = await create(client_for(member), workspace.id)

        assert_error(await client_for(member).delete(api(f"/comments/{by_admin['id']}")), 403)
        assert (await client_for(owner).delete(api(f"/comments/{by_member['id']}"))).status_code == 200
        assert (await client_for(admin).delete(api(f"/comments/{by_admin['id']}"))).status_code == 200

        remaining = await client_for(member).get(api("/comments"), params=thread_params(workspace.id))
        assert remaining.json()["data"] == []

    @pytest.mark.asyncio
    async def test_outsider_gets_403_on_existing_comment(self, client_for, workspace, member, outsider):
        comment = await create(client_for(member), workspace.id)

        response = await client_for(outsider).post(api(f"/comments/{comment['id']}/resolve"))

        assert_error(response, 403)

    @pytest.mark.asyncio
    async def test_unknown_comment(self, client_for, member):
        response = await client_for(member).delete(api("/comments/00000000-0000-0000-0000-000000000000"))

        assert_error(response, 404)
