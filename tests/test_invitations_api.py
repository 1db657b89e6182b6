"""
Integration tests for the invitation flow.
"""
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import update

from docspace.core.models import utc_now
from docspace.modules.invitations.mailer import get_invitation_mailer
from docspace.modules.invitations.models import WorkspaceInvitation
from helpers import api, assert_error, ws_path


async def invite(ac, workspace_id, email, role="member"):
    response = await ac.post(ws_path(workspace_id, "/members/invite"), json={"email": email, "role": role})
    assert response.status_code == 201, response.text
    return response.json()["data"]


def token_of(invitation: dict) -> str:
    return invitation["invite_url"].rsplit("/", 1)[-1]


class TestInvite:
    """Test sending invitations."""

    @pytest.mark.asyncio
    async def test_invite_returns_link_and_emails_it(self, app, client_for, workspace, admin, drain):
        # Arrange
        mailer = AsyncMock()
        mailer.send.return_value = True
        app.dependency_overrides[get_invitation_mailer] = lambda: mailer

        # Act
        data = await invite(client_for(admin), workspace.id, "Bob@Example.com", "admin")
        await drain()

        # Assert
        assert data["email"] == "bob@example.com"
        assert data["role"] == "admin"
        assert data["status"] == "pending"
        assert data["invite_url"].startswith("http://app.test/invite/")
        mailer.send.assert_awaited_once_with(
            "bob@example.com", "Acme", "Adam Admin", "admin", data["invite_url"]
        )

    @pytest.mark.asyncio
    async def test_member_cannot_invite(self, client_for, workspace, member):
        response = await client_for(member).post(
            ws_path(workspace.id, "/members/invite"), json={"email": "bob@example.com"}
        )

        assert_error(response, 403)

    @pytest.mark.asyncio
    async def test_cannot_invite_as_owner(self, client_for, workspace, owner):
        response = await client_for(owner).post(
            ws_path(workspace.id, "/members/invite"), json={"email": "bob@example.com", "role": "owner"}
        )

        assert_error(response, 400)

    @pytest.mark.asyncio
    async def test_duplicate_invite(self, client_for, workspace, owner):
        ac = client_for(owner)
        await invite(ac, workspace.id, "bob@example.com")

        response = await ac.post(ws_path(workspace.id, "/members/invite"), json={"email": "BOB@example.com"})

        assert_error(response, 409)

    @pytest.mark.asyncio
    async def test_invite_existing_member(self, client_for, workspace, owner):
        response = await client_for(owner).post(
            ws_path(workspace.id, "/members/invite"), json={"email": "member@example.com"}
        )

        assert_error(response, 409)


class TestInvitationLifecycle:
    """Test resolving, cancelling and accepting."""

    @pytest.mark.asyncio
    async def test_resolve_then_cancel(self, client, client_for, workspace, owner):
        """Test a cancelled link stops resolving."""
        # Arrange
        owner_client = client_for(owner)
        invitation = await invite(owner_client, workspace.id, "bob@example.com", "admin")
        token = token_of(invitation)

        # Resolve anonymously
        response = await client.get(api(f"/invitations/{token}"))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "b***b@example.com"
        assert data["role"] == "admin"
        assert data["workspace_name"] == "Acme"
        assert data["inviter_name"] == "Olivia Owner"

        # Cancel
        response = await owner_client.delete(ws_path(workspace.id, f"/members/invitations/{invitation['id']}"))
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

        # Resolve again
        body = assert_error(await client.get(api(f"/invitations/{token}")), 410)
        assert body["details"]["status"] == "cancelled"

        pending = (await owner_client.get(ws_path(workspace.id, "/members"))).json()["data"]["pending_invitations"]
        assert pending == []

    @pytest.mark.asyncio
    async def test_cancel_twice(self, client_for, workspace, owner):
        ac = client_for(owner)
        invitation = await invite(ac, workspace.id, "bob@example.com")
        path = ws_path(workspace.id, f"/members/invitations/{invitation['id']}")
        await ac.delete(path)

        assert_error(await ac.delete(path), 409)

    @pytest.mark.asyncio
    async def test_unknown_token(self, client):
        assert_error(await client.get(api("/invitations/does-not-exist")), 404)

    @pytest.mark.asyncio
    async def test_accept_joins_workspace(self, client_for, make_user, workspace, owner, drain):
        # Arrange
        invitation = await invite(client_for(owner), workspace.id, "bob@example.com", "admin")
        bob = await make_user("bob@example.com", "Bob")
        bob_client = client_for(bob)

        # Act
        response = await bob_client.post(api(f"/invitations/{token_of(invitation)}/accept"))

        # Assert
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["workspace_id"] == str(workspace.id)
        assert data["workspace_name"] == "Acme"
        assert data["role"] == "admin"

        workspace_view = await bob_client.get(ws_path(workspace.id))
        assert workspace_view.json()["data"]["current_user_role"] == "admin"

        assert_error(await bob_client.post(api(f"/invitations/{token_of(invitation)}/accept")), 410)

        await drain()
        feed = (await bob_client.get(ws_path(workspace.id, "/activities"))).json()["data"]
        actions = [entry["action"] for entry in feed]
        assert "joined_workspace" in actions
        assert "invited_member" in actions

    @pytest.mark.asyncio
    async def test_accept_requires_matching_email(self, client_for, workspace, owner, outsider):
        invitation = await invite(client_for(owner), workspace.id, "bob@example.com")

        response = await client_for(outsider).post(api(f"/invitations/{token_of(invitation)}/accept"))

        assert_error(response, 403)
        assert_error(await client_for(outsider).get(ws_path(workspace.id)), 403)

    @pytest.mark.asyncio
    async def test_accept_requires_login(self, client, client_for, workspace, owner):
        invitation = await invite(client_for(owner), workspace.id, "bob@example.com")

        assert_error(await client.post(api(f"/invitations/{token_of(invitation)}/accept")), 401)

    @pytest.mark.asyncio
    async def test_expired_token_is_gone(self, client, client_for, workspace, owner, db_session):
        # Arrange
        invitation = await invite(client_for(owner), workspace.id, "bob@example.com")
        await db_session.execute(
            update(WorkspaceInvitation)
            .where(WorkspaceInvitation.email == "bob@example.com")
            .values(expires_at=utc_now() - timedelta(hours=1))
        )
        await db_session.commit()

        # Act
        response = await client.get(api(f"/invitations/{token_of(invitation)}"))

        # Assert
        body = assert_error(response, 410)
        assert body["details"]["status"] == "expired"

        # An expired invitation no longer blocks a fresh one
        await invite(client_for(owner), workspace.id, "bob@example.com")
