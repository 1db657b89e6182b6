"""
Activity module.

Append-only workspace timeline with best-effort background writes.
"""

from .models import ActivityAction, ActivityLog
from .schemas import ActivityResponse

__all__ = [
    "ActivityAction",
    "ActivityLog",
    "ActivityResponse",
]
