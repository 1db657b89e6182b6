"""
Invitation API endpoints.

Admins invite and cancel inside a workspace; the token routes are reached
from the shared link.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from docspace.core.database import get_db_session
from docspace.core.rbac import MemberContext, require_workspace_admin
from docspace.core.responses import ApiResponse, ok
from docspace.core.tasks import BackgroundTaskDispatcher, get_task_dispatcher
from docspace.modules.activity.models import ActivityAction
from docspace.modules.activity.service import ActivityRecorder, get_activity_recorder
from docspace.modules.auth.dependencies import get_current_user
from docspace.modules.auth.models import User
from docspace.modules.invitations.mailer import InvitationMailer, get_invitation_mailer
from docspace.modules.invitations.schemas import (
    InvitationAcceptedResponse,
    InvitationCreate,
    InvitationCreatedResponse,
    InvitationResponse,
    PublicInvitationResponse,
)
from docspace.modules.invitations.service import InvitationService, build_invite_url
from docspace.modules.workspace.service import WorkspaceService

router = APIRouter()


@router.post(
    "/workspaces/{workspace_id}/members/invite",
    response_model=ApiResponse[InvitationCreatedResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Invite someone to the workspace",
    description="Requires admin access. The response carries the shareable invite link.",
)
async def invite_member(
    workspace_id: UUID,
    invitation_data: InvitationCreate,
    member: MemberContext = Depends(require_workspace_admin),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    dispatcher: BackgroundTaskDispatcher = Depends(get_task_dispatcher),
    mailer: InvitationMailer = Depends(get_invitation_mailer),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    workspace = await WorkspaceService(db).get_workspace(workspace_id)
    invitation = await InvitationService(db).create_invitation(
        workspace_id, invitation_data.email, invitation_data.role, current_user
    )
    invite_url = build_invite_url(invitation.token)

    dispatcher.spawn(
        "invitation.email",
        mailer.send,
        invitation.email,
        workspace.name,
        current_user.display_name,
        invitation.role.value,
        invite_url,
    )
    recorder.record_later(
        workspace_id,
        current_user.id,
        ActivityAction.INVITED_MEMBER,
        "invitation",
        resource_id=invitation.id,
        resource_name=invitation.email,
        details={"role": invitation.role.value},
    )

    data = InvitationCreatedResponse(
        **InvitationResponse.model_validate(invitation).model_dump(),
        invite_url=invite_url,
    )
    return ok(data, message="Invitation sent")


@router.delete(
    "/workspaces/{workspace_id}/members/invitations/{invitation_id}",
    response_model=ApiResponse[InvitationResponse],
    summary="Cancel a pending invitation",
    description="Requires admin access.",
)
async def cancel_invitation(
    workspace_id: UUID,
    invitation_id: UUID,
    member: MemberContext = Depends(require_workspace_admin),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    invitation = await InvitationService(db).cancel_invitation(invitation_id, workspace_id)
    recorder.record_later(
        workspace_id,
        member.user_id,
        ActivityAction.CANCELLED_INVITATION,
        "invitation",
        resource_id=invitation.id,
        resource_name=invitation.email,
    )
    return ok(InvitationResponse.model_validate(invitation), message="Invitation cancelled")


@router.get(
    "/invitations/{token}",
    response_model=ApiResponse[PublicInvitationResponse],
    summary="Look up an invitation",
    description="Public. Shows where the link leads without revealing the full invitee address.",
)
async def get_invitation(token: str, db: AsyncSession = Depends(get_db_session)):
    return ok(await InvitationService(db).get_invitation_by_token(token))


@router.post(
    "/invitations/{token}/accept",
    response_model=ApiResponse[InvitationAcceptedResponse],
    summary="Accept an invitation",
    description="The signed-in user's email must match the invitation.",
)
async def accept_invitation(
    token: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    membership = await InvitationService(db).accept_invitation(token, current_user)
    workspace = await WorkspaceService(db).get_workspace(membership.workspace_id)

    recorder.record_later(
        workspace.id,
        current_user.id,
        ActivityAction.JOINED_WORKSPACE,
        "member",
        resource_id=current_user.id,
        resource_name=current_user.display_name,
        details={"role": membership.role.value},
    )
    data = InvitationAcceptedResponse(
        workspace_id=workspace.id,
        workspace_name=workspace.name,
        role=membership.role,
    )
    return ok(data, message=f"You joined {workspace.name}")
