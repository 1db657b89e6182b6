"""
Workspace router.

This module provides API endpoints for workspace management.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from docspace.core.database import get_db_session
from docspace.core.rbac import (
    MemberContext,
    require_workspace_admin,
    require_workspace_member,
    require_workspace_owner,
)
from docspace.core.responses import ApiResponse, ok
from docspace.modules.activity.models import ActivityAction
from docspace.modules.activity.service import ActivityRecorder, get_activity_recorder
from docspace.modules.auth.dependencies import RequestContext, get_current_user, get_request_context
from docspace.modules.auth.models import User
from docspace.modules.invitations.schemas import MembersOverview
from docspace.modules.invitations.service import InvitationService

from .schemas import (
    MemberResponse,
    MemberRoleUpdate,
    WorkspaceCreate,
    WorkspaceResponse,
    WorkspaceSummary,
    WorkspaceUpdate,
)
from .service import WorkspaceService

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/workspaces",
    response_model=ApiResponse[WorkspaceResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create new workspace",
    description="Create a new workspace. The creator becomes its owner.",
)
async def create_workspace(
    workspace_data: WorkspaceCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    """Create a new workspace."""
    workspace = await WorkspaceService(db).create_workspace(workspace_data, current_user)
    recorder.record_later(
        workspace.id,
        current_user.id,
        ActivityAction.CREATED_WORKSPACE,
        "workspace",
        resource_id=workspace.id,
        resource_name=workspace.name,
    )
    return ok(WorkspaceResponse.model_validate(workspace), message="Workspace created")


@router.get(
    "/workspaces",
    response_model=ApiResponse[List[WorkspaceSummary]],
    summary="List workspaces",
    description="Workspaces the current user belongs to, with their role and the member count.",
)
async def list_workspaces(
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
):
    """List workspaces for the current user."""
    return ok(await WorkspaceService(db).list_user_workspaces(context.user_id))


@router.get(
    "/workspaces/{workspace_id}",
    response_model=ApiResponse[WorkspaceSummary],
    summary="Get workspace",
    description="Requires member access.",
)
async def get_workspace(
    workspace_id: UUID,
    member: MemberContext = Depends(require_workspace_member),
    db: AsyncSession = Depends(get_db_session),
):
    """Get workspace details."""
    service = WorkspaceService(db)
    workspace = await service.get_workspace(workspace_id)
    data = WorkspaceSummary(
        **WorkspaceResponse.model_validate(workspace).model_dump(),
        current_user_role=member.role,
        member_count=await service.count_members(workspace_id),
    )
    return ok(data)


@router.patch(
    "/workspaces/{workspace_id}",
    response_model=ApiResponse[WorkspaceResponse],
    summary="Update workspace",
    description="Requires admin access.",
)
async def update_workspace(
    workspace_id: UUID,
    workspace_data: WorkspaceUpdate,
    member: MemberContext = Depends(require_workspace_admin),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    """Update workspace."""
    workspace = await WorkspaceService(db).update_workspace(workspace_id, workspace_data, member.user_id)
    recorder.record_later(
        workspace_id,
        member.user_id,
        ActivityAction.UPDATED_WORKSPACE,
        "workspace",
        resource_id=workspace.id,
        resource_name=workspace.name,
        details={"fields": sorted(workspace_data.model_dump(exclude_unset=True))},
    )
    return ok(WorkspaceResponse.model_validate(workspace), message="Workspace updated")


@router.delete(
    "/workspaces/{workspace_id}",
    response_model=ApiResponse[None],
    summary="Delete workspace",
    description="Requires owner access. Everything in the workspace is deleted with it.",
)
async def delete_workspace(
    workspace_id: UUID,
    member: MemberContext = Depends(require_workspace_owner),
    db: AsyncSession = Depends(get_db_session),
):
    """Delete workspace."""
    await WorkspaceService(db).delete_workspace(workspace_id)
    logger.info("Workspace deleted via API", workspace_id=str(workspace_id), user_id=str(member.user_id))
    return ok(message="Workspace deleted")


@router.get(
    "/workspaces/{workspace_id}/members",
    response_model=ApiResponse[MembersOverview],
    summary="List workspace members",
    description="Members in join order plus live pending invitations. Requires member access.",
)
async def list_members(
    workspace_id: UUID,
    member: MemberContext = Depends(require_workspace_member),
    db: AsyncSession = Depends(get_db_session),
):
    """List members and pending invitations."""
    data = MembersOverview(
        members=await WorkspaceService(db).list_members(workspace_id),
        pending_invitations=await InvitationService(db).list_pending_invitations(workspace_id),
    )
    return ok(data)


@router.patch(
    "/workspaces/{workspace_id}/members/{user_id}",
    response_model=ApiResponse[MemberResponse],
    summary="Change a member's role",
    description="Requires owner access. The last owner cannot be demoted.",
)
async def update_member_role(
    workspace_id: UUID,
    user_id: UUID,
    role_data: MemberRoleUpdate,
    member: MemberContext = Depends(require_workspace_owner),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    """Update a member's role."""
    service = WorkspaceService(db)
    await service.update_member_role(member, user_id, role_data.role)
    updated = (await service.list_members(workspace_id, user_id=user_id))[0]

    recorder.record_later(
        workspace_id,
        member.user_id,
        ActivityAction.CHANGED_MEMBER_ROLE,
        "member",
        resource_id=user_id,
        resource_name=updated.full_name or updated.email,
        details={"role": role_data.role.value},
    )
    return ok(updated, message="Member role updated")


@router.delete(
    "/workspaces/{workspace_id}/members/{user_id}",
    response_model=ApiResponse[None],
    summary="Remove a member",
    description="Requires admin access. Only owners can remove another owner; nobody can remove themselves.",
)
async def remove_member(
    workspace_id: UUID,
    user_id: UUID,
    member: MemberContext = Depends(require_workspace_admin),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    """Remove a member from the workspace."""
    removed = await WorkspaceService(db).remove_member(member, user_id)
    recorder.record_later(
        workspace_id,
        member.user_id,
        ActivityAction.REMOVED_MEMBER,
        "member",
        resource_id=user_id,
        details={"role": removed.role.value},
    )
    return ok(message="Member removed")
