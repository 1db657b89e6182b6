"""
Workspace models.

This module defines the database models for workspaces and membership.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from docspace.core.models import BaseModel, enum_column, utc_now


class WorkspaceRole(str, Enum):
    """
    Workspace role, ordered member < admin < owner.

    Compare with ``at_least`` rather than by value.
    """
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def rank(self) -> int:
        return ROLE_RANK[self]

    def at_least(self, other: "WorkspaceRole") -> bool:
        """True when this role grants everything ``other`` does."""
        return self.rank >= WorkspaceRole(other).rank


ROLE_RANK = {
    WorkspaceRole.MEMBER: 10,
    WorkspaceRole.ADMIN: 20,
    WorkspaceRole.OWNER: 30,
}


class Workspace(BaseModel):
    """Workspace: the tenancy boundary owning members, webhooks, comments and activity."""

    __tablename__ = "workspaces"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Workspace name"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Workspace description"
    )

    icon: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Emoji or icon key"
    )

    color: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Accent color as hex"
    )

    created_by: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who created the workspace"
    )

    def __repr__(self) -> str:
        return f"<Workspace(id={self.id}, name='{self.name}')>"


class WorkspaceMember(BaseModel):
    """Membership of a user in a workspace with a role."""

    __tablename__ = "workspace_members"

    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Workspace ID"
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="User ID"
    )

    role: Mapped[WorkspaceRole] = mapped_column(
        enum_column(WorkspaceRole, length=20),
        nullable=False,
        default=WorkspaceRole.MEMBER,
        comment="Member role in the workspace"
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        comment="When the user joined"
    )

    __table_args__ = (
        UniqueConstraint('workspace_id', 'user_id', name='uq_workspace_member'),
    )

    def __repr__(self) -> str:
        return f"<WorkspaceMember(workspace_id={self.workspace_id}, user_id={self.user_id}, role={self.role.value})>"
