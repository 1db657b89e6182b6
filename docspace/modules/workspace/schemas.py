"""
Workspace schemas.

Pydantic models for workspace and membership payloads.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docspace.core.validators import CommonValidators
from docspace.modules.workspace.models import WorkspaceRole


class WorkspaceBase(BaseModel):
    """Base workspace schema."""

    name: str = Field(..., min_length=1, max_length=100, description="Workspace name")
    description: Optional[str] = Field(None, max_length=1000, description="Workspace description")
    icon: Optional[str] = Field(None, max_length=50, description="Emoji or icon key")
    color: Optional[str] = Field(None, description="Accent color (#RRGGBB)")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return CommonValidators.validate_name(v, max_length=100)

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        return CommonValidators.validate_hex_color(v)


class WorkspaceCreate(WorkspaceBase):
    """Schema for creating a workspace."""
    pass


class WorkspaceUpdate(BaseModel):
    """Schema for partially updating a workspace."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    icon: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return CommonValidators.validate_name(v, max_length=100)

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        return CommonValidators.validate_hex_color(v)


class WorkspaceResponse(BaseModel):
    """Workspace as returned to members."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class WorkspaceSummary(WorkspaceResponse):
    """Workspace with the caller's role, for listings."""

    current_user_role: WorkspaceRole
    member_count: int = 0


class MemberResponse(BaseModel):
    """Workspace member with user display fields."""

    user_id: UUID
    email: str
    full_name: Optional[str] = None
    role: WorkspaceRole
    joined_at: datetime


class MemberRoleUpdate(BaseModel):
    """Schema for changing a member's role."""

    role: WorkspaceRole = Field(..., description="New role")
