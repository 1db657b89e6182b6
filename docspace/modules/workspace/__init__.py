"""
Workspace module.

This module handles workspaces, member roles and membership management.
"""

from .models import Workspace, WorkspaceMember, WorkspaceRole
from .schemas import (
    MemberResponse,
    WorkspaceCreate,
    WorkspaceResponse,
    WorkspaceSummary,
    WorkspaceUpdate,
)

__all__ = [
    "Workspace",
    "WorkspaceMember",
    "WorkspaceRole",
    "WorkspaceCreate",
    "WorkspaceResponse",
    "WorkspaceSummary",
    "WorkspaceUpdate",
    "MemberResponse",
]
