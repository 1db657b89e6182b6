"""
Tests for workspace role-based access control.

This module tests role ranking, the ``require_member`` check and the
``WorkspaceAccess`` route dependency.
"""
from uuid import uuid4

import pytest

from docspace.core.exceptions import AuthorizationException
from docspace.core.rbac import (
    NO_ACCESS_MESSAGE,
    MemberContext,
    WorkspaceAccess,
    require_member,
    require_workspace_admin,
    require_workspace_member,
    require_workspace_owner,
)
from docspace.modules.auth.dependencies import RequestContext
from docspace.modules.workspace.models import WorkspaceRole


class TestWorkspaceRole:
    """Test role ordering."""

    @pytest.mark.parametrize(
        "role,required,expected",
        [
            (WorkspaceRole.OWNER, WorkspaceRole.ADMIN, True),
            (WorkspaceRole.OWNER, WorkspaceRole.MEMBER, True),
            (WorkspaceRole.ADMIN, WorkspaceRole.ADMIN, True),
            (WorkspaceRole.ADMIN, WorkspaceRole.OWNER, False),
            (WorkspaceRole.MEMBER, WorkspaceRole.ADMIN, False),
            (WorkspaceRole.MEMBER, WorkspaceRole.MEMBER, True),
        ],
    )
    def test_at_least(self, role, required, expected):
        """Test that higher roles satisfy lower requirements only."""
        assert role.at_least(required) is expected

    def test_at_least_accepts_plain_values(self):
        """Test that a raw role string is accepted as the requirement."""
        assert WorkspaceRole.ADMIN.at_least("member") is True

    def test_rank_ordering(self):
        """Test member < admin < owner."""
        assert WorkspaceRole.MEMBER.rank < WorkspaceRole.ADMIN.rank < WorkspaceRole.OWNER.rank

    def test_member_context_delegates_to_role(self):
        """Test MemberContext.at_least."""
        context = MemberContext(user_id=uuid4(), workspace_id=uuid4(), role=WorkspaceRole.ADMIN)

        assert context.at_least(WorkspaceRole.MEMBER)
        assert not context.at_least(WorkspaceRole.OWNER)


class TestRequireMember:
    """Test the membership check against the database."""

    @pytest.mark.asyncio
    async def test_returns_member_context(self, db_session, workspace, admin):
        """Test a member gets their role back."""
        # Act
        context = await require_member(db_session, admin.id, workspace.id)

        # Assert
        assert context.role == WorkspaceRole.ADMIN
        assert context.user_id == admin.id
        assert context.workspace_id == workspace.id

    @pytest.mark.asyncio
    async def test_non_member_denied(self, db_session, workspace, outsider):
        """Test a non-member is refused."""
        with pytest.raises(AuthorizationException) as exc_info:
            await require_member(db_session, outsider.id, workspace.id)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == NO_ACCESS_MESSAGE

    @pytest.mark.asyncio
    async def test_missing_workspace_looks_like_non_membership(self, db_session, owner):
        """Test an unknown workspace id yields the same error as non-membership."""
        with pytest.raises(AuthorizationException) as exc_info:
            await require_member(db_session, owner.id, uuid4())

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == NO_ACCESS_MESSAGE

    @pytest.mark.asyncio
    async def test_role_below_minimum_denied(self, db_session, workspace, member):
        """Test a member is refused where admin is required."""
        with pytest.raises(AuthorizationException) as exc_info:
            await require_member(db_session, member.id, workspace.id, WorkspaceRole.ADMIN)

        assert exc_info.value.status_code == 403
        assert "admin" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_owner_passes_every_minimum(self, db_session, workspace, owner):
        """Test the owner satisfies every role requirement."""
        for role in WorkspaceRole:
            context = await require_member(db_session, owner.id, workspace.id, role)
            assert context.role == WorkspaceRole.OWNER


class TestWorkspaceAccess:
    """Test the route dependency."""

    def test_preset_minimums(self):
        """Test the module level dependencies."""
        assert require_workspace_member.min_role == WorkspaceRole.MEMBER
        assert require_workspace_admin.min_role == WorkspaceRole.ADMIN
        assert require_workspace_owner.min_role == WorkspaceRole.OWNER

    @pytest.mark.asyncio
    async def test_call_uses_request_context(self, db_session, workspace, admin):
        """Test the dependency resolves membership for the caller."""
        # Arrange
        access = WorkspaceAccess(WorkspaceRole.ADMIN)
        context = RequestContext(user_id=admin.id)

        # Act
        result = await access(workspace.id, context=context, db=db_session)

        # Assert
        assert result.role == WorkspaceRole.ADMIN

    @pytest.mark.asyncio
    async def test_call_rejects_lower_role(self, db_session, workspace, admin):
        """Test an admin is refused by the owner dependency."""
        context = RequestContext(user_id=admin.id)

        with pytest.raises(AuthorizationException):
            await require_workspace_owner(workspace.id, context=context, db=db_session)
