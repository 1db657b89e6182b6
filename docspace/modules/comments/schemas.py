"""
Comment schemas.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from docspace.core.validators import CommonValidators
from docspace.modules.comments.models import CommentTargetType


def _clean_content(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("Comment content cannot be empty")
    return v


class CommentCreate(BaseModel):
    """Schema for posting a comment."""

    workspace_id: UUID
    target_type: CommentTargetType
    target_id: str = Field(..., min_length=1, max_length=64)
    content: str = Field(..., min_length=1, max_length=5000)
    mentions: List[UUID] = Field(default_factory=list, description="Mentioned user ids")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _clean_content(v)

    @field_validator("mentions")
    @classmethod
    def validate_mentions(cls, v: List[UUID]) -> List[UUID]:
        return CommonValidators.dedupe(v)


class CommentUpdate(BaseModel):
    """Schema for editing a comment. At least one field is required."""

    model_config = ConfigDict(extra="forbid")

    content: Optional[str] = Field(None, min_length=1, max_length=5000)
    mentions: Optional[List[UUID]] = None

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_content(v)

    @field_validator("mentions")
    @classmethod
    def validate_mentions(cls, v: Optional[List[UUID]]) -> Optional[List[UUID]]:
        if v is None:
            return v
        return CommonValidators.dedupe(v)

    @model_validator(mode="after")
    def require_a_change(self) -> "CommentUpdate":
        if self.content is None and self.mentions is None:
            raise ValueError("Provide content or mentions to update")
        return self


class CommentResponse(BaseModel):
    """Comment with author display fields."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    target_type: CommentTargetType
    target_id: str
    user_id: UUID
    author_name: Optional[str] = None
    content: str
    mentions: List[str]
    resolved: bool
    resolved_by: Optional[UUID] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
