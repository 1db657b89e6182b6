"""
Authentication models.

This module defines the database models for user accounts.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from docspace.core.models import BaseModel, utc_now


class User(BaseModel):
    """User account able to belong to any number of workspaces."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="User's email address (unique, lower-cased)"
    )

    full_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="User's full name"
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt password hash"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Whether the user account is active"
    )

    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last login timestamp"
    )

    @property
    def display_name(self) -> str:
        """Full name if set, otherwise the email address."""
        return self.full_name or self.email

    def set_last_login(self) -> None:
        """Set last login timestamp."""
        self.last_login_at = utc_now()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
