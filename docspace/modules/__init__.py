"""
Application modules package.

This package contains all the feature modules of the application.
"""

# Import all models to ensure they are registered with SQLAlchemy
from docspace.modules.activity.models import ActivityLog
from docspace.modules.auth.models import User
from docspace.modules.comments.models import Comment
from docspace.modules.invitations.models import WorkspaceInvitation
from docspace.modules.webhooks.models import Webhook, WebhookDelivery
from docspace.modules.workspace.models import Workspace, WorkspaceMember, WorkspaceRole

__all__ = [
    "ActivityLog",
    "Comment",
    "User",
    "Webhook",
    "WebhookDelivery",
    "Workspace",
    "WorkspaceInvitation",
    "WorkspaceMember",
    "WorkspaceRole",
]
