"""
Webhook schemas.

The signing secret appears only in ``WebhookCreatedResponse``.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docspace.core.validators import CommonValidators
from docspace.modules.webhooks.models import WebhookEvent, WebhookType


def _validate_events(v: Optional[List[WebhookEvent]]) -> Optional[List[WebhookEvent]]:
    if v is None:
        return v
    events = CommonValidators.dedupe(v)
    if not events:
        raise ValueError("At least one event is required")
    return events


class WebhookCreate(BaseModel):
    """Schema for registering a webhook."""

    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., max_length=2048, description="Absolute http(s) URL")
    type: WebhookType = Field(WebhookType.STANDARD, description="Body format")
    events: List[WebhookEvent] = Field(..., min_length=1, description="Subscribed events")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra request headers")
    active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return CommonValidators.validate_name(v, max_length=255)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return CommonValidators.validate_url(v)

    @field_validator("events")
    @classmethod
    def validate_events(cls, v: List[WebhookEvent]) -> List[WebhookEvent]:
        return _validate_events(v)

    @field_validator("headers")
    @classmethod
    def validate_headers(cls, v: Dict[str, str]) -> Dict[str, str]:
        return CommonValidators.validate_header_map(v)


class WebhookUpdate(BaseModel):
    """Partial update. The secret cannot be changed here."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    url: Optional[str] = Field(None, max_length=2048)
    type: Optional[WebhookType] = None
    events: Optional[List[WebhookEvent]] = None
    headers: Optional[Dict[str, str]] = None
    active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return CommonValidators.validate_name(v, max_length=255)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return CommonValidators.validate_url(v)

    @field_validator("events")
    @classmethod
    def validate_events(cls, v: Optional[List[WebhookEvent]]) -> Optional[List[WebhookEvent]]:
        return _validate_events(v)

    @field_validator("headers")
    @classmethod
    def validate_headers(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if v is None:
            return v
        return CommonValidators.validate_header_map(v)


class WebhookResponse(BaseModel):
    """Webhook as listed to admins."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    name: str
    url: str
    type: WebhookType
    events: List[str]
    headers: Dict[str, str]
    active: bool
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class WebhookCreatedResponse(WebhookResponse):
    """Creation response, the only one that carries the secret."""

    secret: str


class DeliveryResponse(BaseModel):
    """One logged delivery attempt."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    webhook_id: UUID
    event: str
    payload: Dict[str, Any]
    status_code: Optional[int] = None
    response_body: Optional[str] = None
    duration_ms: int
    success: bool
    error: Optional[str] = None
    redelivery_of_id: Optional[UUID] = None
    created_at: datetime
