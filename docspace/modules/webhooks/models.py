"""
Webhook models.

A webhook is a workspace-owned HTTP endpoint subscribed to domain events.
Every delivery attempt is written to ``webhook_deliveries``, which is never
updated after insert.
"""
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from docspace.core.models import AppendOnlyModel, BaseModel, enum_column


class WebhookEvent(str, Enum):
    """Domain events a webhook can subscribe to."""
    DOCUMENT_UPLOADED = "document.uploaded"
    DOCUMENT_COMPLETED = "document.completed"
    DOCUMENT_FAILED = "document.failed"
    PRD_GENERATED = "prd.generated"
    COMMENT_CREATED = "comment.created"


class WebhookType(str, Enum):
    """Body format sent to the endpoint."""
    STANDARD = "standard"
    SLACK = "slack"
    DISCORD = "discord"
    FEISHU = "feishu"
    DINGTALK = "dingtalk"
    WECOM = "wecom"


class Webhook(BaseModel):
    """Outbound HTTP subscription of a workspace."""

    __tablename__ = "webhooks"

    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning workspace"
    )

    created_by: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who registered the webhook"
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name"
    )

    url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        comment="Absolute http(s) endpoint"
    )

    type: Mapped[WebhookType] = mapped_column(
        enum_column(WebhookType, length=20),
        nullable=False,
        default=WebhookType.STANDARD,
        comment="Body format"
    )

    events: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Subscribed event names"
    )

    secret: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="HMAC-SHA256 signing secret"
    )

    headers: Mapped[Dict[str, str]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Extra request headers"
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Inactive webhooks receive nothing"
    )

    def subscribes_to(self, event: str) -> bool:
        return event in (self.events or [])

    def __repr__(self) -> str:
        return f"<Webhook(id={self.id}, workspace_id={self.workspace_id}, type={self.type.value})>"


class WebhookDelivery(AppendOnlyModel):
    """One attempt to POST an event to a webhook."""

    __tablename__ = "webhook_deliveries"

    webhook_id: Mapped[UUID] = mapped_column(
        ForeignKey("webhooks.id", ondelete="CASCADE"),
        nullable=False,
        comment="Target webhook"
    )

    event: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Event name"
    )

    payload: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        comment="Standard event payload"
    )

    status_code: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="HTTP status returned by the endpoint"
    )

    response_body: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Truncated response body"
    )

    duration_ms: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Round trip time in milliseconds"
    )

    success: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="True for a 2xx response"
    )

    error: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Transport error, if any"
    )

    redelivery_of_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("webhook_deliveries.id", ondelete="SET NULL"),
        nullable=True,
        comment="Delivery this attempt repeats"
    )

    __table_args__ = (
        Index("ix_webhook_deliveries_webhook_created", "webhook_id", "created_at"),
    )
