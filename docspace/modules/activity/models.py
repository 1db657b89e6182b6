"""
Activity log models.

Append-only timeline of user-facing actions within a workspace.
"""
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from docspace.core.models import AppendOnlyModel


class ActivityAction(str, Enum):
    """Actions recorded by this service. Other producers may add their own strings."""
    CREATED_WORKSPACE = "created_workspace"
    UPDATED_WORKSPACE = "updated_workspace"
    INVITED_MEMBER = "invited_member"
    CANCELLED_INVITATION = "cancelled_invitation"
    JOINED_WORKSPACE = "joined_workspace"
    REMOVED_MEMBER = "removed_member"
    CHANGED_MEMBER_ROLE = "changed_member_role"
    CREATED_WEBHOOK = "created_webhook"
    UPDATED_WEBHOOK = "updated_webhook"
    DELETED_WEBHOOK = "deleted_webhook"
    ADDED_COMMENT = "added_comment"
    RESOLVED_COMMENT = "resolved_comment"
    DELETED_COMMENT = "deleted_comment"


class ActivityLog(AppendOnlyModel):
    """One auditable action in a workspace."""

    __tablename__ = "activity_logs"

    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        comment="Workspace the action happened in"
    )

    user_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Acting user"
    )

    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Action key, e.g. added_comment"
    )

    resource_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Kind of resource acted on"
    )

    resource_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Identifier of the resource acted on"
    )

    resource_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Display name of the resource at the time of the action"
    )

    details: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Action specific metadata"
    )

    __table_args__ = (
        Index("ix_activity_logs_workspace_created", "workspace_id", "created_at"),
    )
