"""
Workspace role-based access control.

``require_member`` is the single authorization check for workspace-scoped
operations. ``WorkspaceAccess`` wraps it as a FastAPI dependency for routes
carrying a ``{workspace_id}`` path parameter.
"""
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docspace.core.database import get_db_session
from docspace.core.exceptions import AuthorizationException
from docspace.core.logger import get_logger
from docspace.modules.auth.dependencies import RequestContext, get_request_context
from docspace.modules.workspace.models import Workspace, WorkspaceMember, WorkspaceRole

logger = get_logger(__name__)

NO_ACCESS_MESSAGE = "You do not have access to this workspace"


@dataclass(frozen=True)
class MemberContext:
    """The caller's resolved membership in one workspace."""

    user_id: UUID
    workspace_id: UUID
    role: WorkspaceRole

    def at_least(self, role: WorkspaceRole) -> bool:
        return self.role.at_least(role)


async def require_member(
    db: AsyncSession,
    user_id: UUID,
    workspace_id: UUID,
    min_role: WorkspaceRole = WorkspaceRole.MEMBER,
) -> MemberContext:
    """
    Resolve the caller's membership and enforce a minimum role.

    A missing workspace and a missing membership produce the same error so
    non-members cannot probe which workspace ids exist.

    Args:
        db: Database session
        user_id: Authenticated user
        workspace_id: Target workspace
        min_role: Lowest role allowed through

    Returns:
        The caller's membership context

    Raises:
        AuthorizationException: If the caller is not a member or ranks below ``min_role``
    """
    result = await db.execute(
        select(WorkspaceMember.role)
        .join(Workspace, Workspace.id == WorkspaceMember.workspace_id)
        .where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
    )
    role = result.scalar_one_or_none()

    if role is None:
        logger.info("Workspace access denied", user_id=str(user_id), workspace_id=str(workspace_id))
        raise AuthorizationException(NO_ACCESS_MESSAGE)

    if not role.at_least(min_role):
        logger.info(
            "Workspace role too low",
            user_id=str(user_id),
            workspace_id=str(workspace_id),
            role=role.value,
            required=min_role.value,
        )
        raise AuthorizationException(f"This action requires the {min_role.value} role or higher")

    return MemberContext(user_id=user_id, workspace_id=workspace_id, role=role)


class WorkspaceAccess:
    """
    Dependency enforcing a minimum workspace role on a route.

    Example:
        @router.delete("/workspaces/{workspace_id}")
        async def delete(member: MemberContext = Depends(require_owner)): ...
    """

    def __init__(self, min_role: WorkspaceRole = WorkspaceRole.MEMBER):
        self.min_role = min_role

    async def __call__(
        self,
        workspace_id: UUID,
        context: RequestContext = Depends(get_request_context),
        db: AsyncSession = Depends(get_db_session),
    ) -> MemberContext:
        return await require_member(db, context.user_id, workspace_id, self.min_role)


require_workspace_member = WorkspaceAccess(WorkspaceRole.MEMBER)
require_workspace_admin = WorkspaceAccess(WorkspaceRole.ADMIN)
require_workspace_owner = WorkspaceAccess(WorkspaceRole.OWNER)
