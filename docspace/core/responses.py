"""
Response envelope shared by every endpoint.

    {"success": true, "data": ..., "message": "...", "pagination": {"total", "limit", "offset"}}
"""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Pagination(BaseModel):
    """Pagination block for list responses."""

    total: int = Field(..., ge=0, description="Total matching records")
    limit: int = Field(..., ge=1, description="Page size")
    offset: int = Field(..., ge=0, description="Records skipped")


class ApiResponse(BaseModel, Generic[T]):
    """Successful response envelope."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    pagination: Optional[Pagination] = None


def ok(data=None, message: Optional[str] = None, pagination: Optional[Pagination] = None) -> dict:
    """Build a success envelope, leaving out empty optional keys."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination
    return body


def paginated(data, total: int, limit: int, offset: int, message: Optional[str] = None) -> dict:
    """Build a success envelope for a page of results."""
    return ok(data, message=message, pagination=Pagination(total=total, limit=limit, offset=offset))
