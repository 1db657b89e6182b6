"""
Authentication module.

User accounts, cookie sessions and the per-request caller context.
"""

from .models import User
from .schemas import UserCreate, UserLogin, UserResponse

__all__ = [
    "User",
    "UserCreate",
    "UserLogin",
    "UserResponse",
]
