"""
Unit tests for WorkspaceService.

This module contains tests for workspace management and membership rules.
"""
from uuid import uuid4

import pytest
from sqlalchemy import select

from docspace.core.exceptions import (
    AuthorizationException,
    ConflictException,
    ResourceNotFoundException,
    ValidationException,
)
from docspace.core.rbac import require_member
from docspace.modules.workspace.models import Workspace, WorkspaceMember, WorkspaceRole
from docspace.modules.workspace.schemas import WorkspaceCreate, WorkspaceUpdate
from docspace.modules.workspace.service import WorkspaceService


class TestWorkspaceCrud:
    """Test cases for workspace creation, listing and updates."""

    @pytest.mark.asyncio
    async def test_create_makes_creator_owner(self, db_session, owner):
        # Arrange
        service = WorkspaceService(db_session)
        data = WorkspaceCreate(name="Design", description="Design docs", color="#123abc")

        # Act
        workspace = await service.create_workspace(data, owner)

        # Assert
        assert workspace.name == "Design"
        assert workspace.color == "#123ABC"
        assert workspace.created_by == owner.id
        membership = await service.get_member(workspace.id, owner.id)
        assert membership.role == WorkspaceRole.OWNER

    @pytest.mark.asyncio
    async def test_create_duplicate_name_for_same_user(self, db_session, workspace, owner):
        """Test names are unique per user, case-insensitively."""
        with pytest.raises(ConflictException):
            await WorkspaceService(db_session).create_workspace(WorkspaceCreate(name="acme"), owner)

    @pytest.mark.asyncio
    async def test_same_name_allowed_for_other_user(self, db_session, workspace, outsider):
        created = await WorkspaceService(db_session).create_workspace(WorkspaceCreate(name="Acme"), outsider)

        assert created.id != workspace.id

    @pytest.mark.asyncio
    async def test_list_user_workspaces(self, db_session, workspace, make_workspace, owner, member):
        # Arrange
        await make_workspace(owner, "Second")
        service = WorkspaceService(db_session)

        # Act
        owner_view = await service.list_user_workspaces(owner.id)
        member_view = await service.list_user_workspaces(member.id)

        # Assert
        assert [w.name for w in owner_view] == ["Acme", "Second"]
        assert owner_view[0].current_user_role == WorkspaceRole.OWNER
        assert owner_view[0].member_count == 3
        assert owner_view[1].member_count == 1
        assert [(w.name, w.current_user_role) for w in member_view] == [("Acme", WorkspaceRole.MEMBER)]

    @pytest.mark.asyncio
    async def test_update(self, db_session, workspace, owner):
        updated = await WorkspaceService(db_session).update_workspace(
            workspace.id, WorkspaceUpdate(name="Acme Corp", icon="🚀"), owner.id
        )

        assert updated.name == "Acme Corp"
        assert updated.icon == "🚀"

    @pytest.mark.asyncio
    async def test_update_name_clash(self, db_session, workspace, make_workspace, owner):
        await make_workspace(owner, "Taken")

        with pytest.raises(ConflictException):
            await WorkspaceService(db_session).update_workspace(
                workspace.id, WorkspaceUpdate(name="TAKEN"), owner.id
            )

    @pytest.mark.asyncio
    async def test_update_keeps_own_name(self, db_session, workspace, owner):
        """Test renaming to the current name is not a clash."""
        updated = await WorkspaceService(db_session).update_workspace(
            workspace.id, WorkspaceUpdate(name="Acme", description="Same name"), owner.id
        )

        assert updated.description == "Same name"

    @pytest.mark.asyncio
    async def test_delete_cascades_memberships(self, db_session, workspace):
        await WorkspaceService(db_session).delete_workspace(workspace.id)

        remaining = await db_session.execute(
            select(WorkspaceMember.id).where(WorkspaceMember.workspace_id == workspace.id)
        )
        assert remaining.all() == []
        assert await db_session.scalar(select(Workspace.id).where(Workspace.id == workspace.id)) is None


class TestRemoveMember:
    """Test member removal rules."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("actor_fixture", ["owner", "admin"])
    async def test_cannot_remove_self(self, request, db_session, workspace, actor_fixture):
        actor_user = request.getfixturevalue(actor_fixture)
        actor = await require_member(db_session, actor_user.id, workspace.id)

        with pytest.raises(ValidationException):
            await WorkspaceService(db_session).remove_member(actor, actor_user.id)

    @pytest.mark.asyncio
    async def test_admin_removes_member(self, db_session, workspace, admin, member):
        actor = await require_member(db_session, admin.id, workspace.id)
        service = WorkspaceService(db_session)

        removed = await service.remove_member(actor, member.id)

        assert removed.role == WorkspaceRole.MEMBER
        assert await service.get_member(workspace.id, member.id) is None

    @pytest.mark.asyncio
    async def test_admin_cannot_remove_owner(self, db_session, workspace, admin, owner):
        actor = await require_member(db_session, admin.id, workspace.id)

        with pytest.raises(AuthorizationException):
            await WorkspaceService(db_session).remove_member(actor, owner.id)

    @pytest.mark.asyncio
    async def test_remove_unknown_member(self, db_session, workspace, owner):
        actor = await require_member(db_session, owner.id, workspace.id)

        with pytest.raises(ResourceNotFoundException):
            await WorkspaceService(db_session).remove_member(actor, uuid4())


class TestUpdateMemberRole:
    """Test role changes and the last-owner rule."""

    @pytest.mark.asyncio
    async def test_promote_member(self, db_session, workspace, owner, member):
        actor = await require_member(db_session, owner.id, workspace.id)

        updated = await WorkspaceService(db_session).update_member_role(actor, member.id, WorkspaceRole.ADMIN)

        assert updated.role == WorkspaceRole.ADMIN

    @pytest.mark.asyncio
    async def test_last_owner_cannot_be_demoted(self, db_session, workspace, owner):
        # The failed update rolls the session back, expiring loaded objects
        workspace_id, owner_id = workspace.id, owner.id
        actor = await require_member(db_session, owner_id, workspace_id)
        service = WorkspaceService(db_session)

        with pytest.raises(ConflictException, match="at least one owner"):
            await service.update_member_role(actor, owner_id, WorkspaceRole.ADMIN)

        membership = await service.get_member(workspace_id, owner_id)
        assert membership.role == WorkspaceRole.OWNER

    @pytest.mark.asyncio
    async def test_owner_can_step_down_when_another_owner_exists(self, db_session, workspace, owner, admin):
        # Arrange
        actor = await require_member(db_session, owner.id, workspace.id)
        service = WorkspaceService(db_session)
        await service.update_member_role(actor, admin.id, WorkspaceRole.OWNER)

        # Act
        updated = await service.update_member_role(actor, owner.id, WorkspaceRole.MEMBER)

        # Assert
        assert updated.role == WorkspaceRole.MEMBER

    @pytest.mark.asyncio
    async def test_same_role_is_a_no_op(self, db_session, workspace, owner, member):
        actor = await require_member(db_session, owner.id, workspace.id)

        result = await WorkspaceService(db_session).update_member_role(actor, member.id, WorkspaceRole.MEMBER)

        assert result.role == WorkspaceRole.MEMBER

    @pytest.mark.asyncio
    async def test_unknown_target(self, db_session, workspace, owner):
        actor = await require_member(db_session, owner.id, workspace.id)

        with pytest.raises(ResourceNotFoundException):
            await WorkspaceService(db_session).update_member_role(actor, uuid4(), WorkspaceRole.ADMIN)
