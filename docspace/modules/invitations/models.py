"""
Invitation models.

An invitation is a time-limited token granting a role in one workspace.
Status only moves out of ``pending``; every other status is terminal.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from docspace.core.models import BaseModel, as_utc, enum_column, utc_now
from docspace.modules.workspace.models import WorkspaceRole


class InvitationStatus(str, Enum):
    """Invitation status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not InvitationStatus.PENDING


class WorkspaceInvitation(BaseModel):
    """Pending or settled invitation to join a workspace."""

    __tablename__ = "workspace_invitations"

    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        comment="Workspace the invitation grants access to"
    )

    inviter_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who sent the invitation"
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Invitee email (lower-cased)"
    )

    role: Mapped[WorkspaceRole] = mapped_column(
        enum_column(WorkspaceRole, length=20),
        nullable=False,
        default=WorkspaceRole.MEMBER,
        comment="Role granted on acceptance"
    )

    token: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        comment="Opaque URL-safe token"
    )

    status: Mapped[InvitationStatus] = mapped_column(
        enum_column(InvitationStatus, length=20),
        nullable=False,
        default=InvitationStatus.PENDING,
        comment="pending, accepted, expired or cancelled"
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the token stops being accepted"
    )

    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the invitation was accepted"
    )

    accepted_by: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who accepted the invitation"
    )

    __table_args__ = (
        Index("ix_workspace_invitations_lookup", "workspace_id", "email", "status"),
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once the expiry time has been reached."""
        return (now or utc_now()) >= as_utc(self.expires_at)

    def __repr__(self) -> str:
        return f"<WorkspaceInvitation(id={self.id}, workspace_id={self.workspace_id}, status={self.status.value})>"
