"""
Comment models.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from docspace.core.models import BaseModel, enum_column


class CommentTargetType(str, Enum):
    """Kinds of resources that can be commented on."""
    DOCUMENT = "document"
    PRD = "prd"
    PROTOTYPE = "prototype"


class Comment(BaseModel):
    """A comment on a workspace resource. Resolution is one-way."""

    __tablename__ = "comments"

    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        comment="Workspace of the commented resource"
    )

    target_type: Mapped[CommentTargetType] = mapped_column(
        enum_column(CommentTargetType, length=20),
        nullable=False,
        comment="document, prd or prototype"
    )

    target_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Identifier of the commented resource"
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Author"
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Comment body"
    )

    mentions: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Mentioned user ids"
    )

    resolved: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Set once, never cleared"
    )

    resolved_by: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who resolved the comment"
    )

    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the comment was resolved"
    )

    __table_args__ = (
        Index("ix_comments_target", "workspace_id", "target_type", "target_id"),
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, target={self.target_type.value}:{self.target_id}, resolved={self.resolved})>"
