"""
Invitation schemas.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from docspace.modules.invitations.models import InvitationStatus
from docspace.modules.workspace.models import WorkspaceRole
from docspace.modules.workspace.schemas import MemberResponse


class InvitationCreate(BaseModel):
    """Schema for inviting someone to a workspace."""

    email: EmailStr = Field(..., description="Invitee email address")
    role: WorkspaceRole = Field(WorkspaceRole.MEMBER, description="admin or member")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: WorkspaceRole) -> WorkspaceRole:
        if v == WorkspaceRole.OWNER:
            raise ValueError("Invitations can only grant the admin or member role")
        return v


class InvitationResponse(BaseModel):
    """Invitation as seen by workspace admins."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    email: str
    role: WorkspaceRole
    status: InvitationStatus
    inviter_id: Optional[UUID] = None
    expires_at: datetime
    created_at: datetime


class InvitationCreatedResponse(InvitationResponse):
    """Creation response carrying the shareable link."""

    invite_url: str


class PendingInvitationResponse(BaseModel):
    """Live pending invitation in a members listing."""

    id: UUID
    email: str
    role: WorkspaceRole
    inviter_name: Optional[str] = None
    expires_at: datetime
    created_at: datetime


class PublicInvitationResponse(BaseModel):
    """What an unauthenticated holder of the token may see."""

    workspace_id: UUID
    workspace_name: str
    inviter_name: Optional[str] = None
    email: str = Field(..., description="Masked invitee email")
    role: WorkspaceRole
    status: InvitationStatus
    expires_at: datetime


class MembersOverview(BaseModel):
    """Workspace members together with outstanding invitations."""

    members: List[MemberResponse]
    pending_invitations: List[PendingInvitationResponse]


class InvitationAcceptedResponse(BaseModel):
    """Membership created by accepting an invitation."""

    workspace_id: UUID
    workspace_name: str
    role: WorkspaceRole
