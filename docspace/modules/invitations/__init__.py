"""
Invitations module.

Time-limited tokens that let someone join a workspace with a given role.
"""

from .models import InvitationStatus, WorkspaceInvitation
from .schemas import InvitationCreate, InvitationResponse, PublicInvitationResponse

__all__ = [
    "InvitationStatus",
    "WorkspaceInvitation",
    "InvitationCreate",
    "InvitationResponse",
    "PublicInvitationResponse",
]
