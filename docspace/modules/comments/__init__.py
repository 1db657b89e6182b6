"""
Comments module.

Comments on workspace documents, PRDs and prototypes.
"""

from .models import Comment, CommentTargetType
from .schemas import CommentCreate, CommentResponse, CommentUpdate

__all__ = [
    "Comment",
    "CommentTargetType",
    "CommentCreate",
    "CommentResponse",
    "CommentUpdate",
]
