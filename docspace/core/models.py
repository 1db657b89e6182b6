"""
Base database models with common fields and utilities.

This module provides:
- BaseModel with common fields (id, created_at, updated_at)
- Mixins for common functionality
- UTC helpers shared by every model that stores timestamps
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime read back from the database to aware UTC.

    SQLite drops tzinfo on the way in, PostgreSQL keeps it.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def enum_column(enum_cls: type[Enum], length: int = 32) -> SAEnum:
    """
    Column type storing a str enum by value in a VARCHAR.

    Values come back as enum members so role and status helpers keep working.
    """
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class Base(DeclarativeBase):
    """Base class for all database models."""

    type_annotation_map = {
        str: String(255),
        uuid.UUID: Uuid(as_uuid=True),
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """Mixin for adding timestamp fields to models."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
        doc="Timestamp when the record was created",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False,
        doc="Timestamp when the record was last updated",
    )


class UUIDMixin:
    """Mixin for adding UUID primary key to models."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
        doc="Unique identifier for the record",
    )


class BaseModel(Base, UUIDMixin, TimestampMixin):
    """
    Base model class with common fields.

    All application models should inherit from this class to get:
    - UUID primary key (id)
    - Created timestamp (created_at)
    - Updated timestamp (updated_at)

    Example:
        class Webhook(BaseModel):
            __tablename__ = "webhooks"

            name: Mapped[str] = mapped_column(String(255))
    """

    __abstract__ = True

    def to_dict(self, exclude: Optional[set] = None) -> Dict[str, Any]:
        """
        Convert model instance to dictionary.

        Args:
            exclude: Set of column names to exclude from the dictionary

        Returns:
            Dictionary representation of the model
        """
        exclude = exclude or set()
        return {
            column.key: getattr(self, column.key)
            for column in self.__mapper__.column_attrs
            if column.key not in exclude
        }

    def __repr__(self) -> str:
        """String representation of the model."""
        class_name = self.__class__.__name__
        return f"<{class_name}(id={self.id})>"


class AppendOnlyModel(Base, UUIDMixin):
    """
    Base for audit-style tables that are written once and never updated.

    Only carries a creation timestamp.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
        index=True,
        doc="Timestamp when the record was written",
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
