"""
Activity log service.

Writes are best-effort: ``ActivityRecorder`` hands them to the background
dispatcher so a failed insert never fails the action being recorded.
"""
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import UUID

from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from docspace.core.database import get_session_factory
from docspace.core.tasks import BackgroundTaskDispatcher, get_task_dispatcher
from docspace.modules.activity.models import ActivityAction, ActivityLog
from docspace.modules.activity.schemas import ActivityResponse
from docspace.modules.auth.models import User

logger = get_logger(__name__)


class ActivityService:
    """Service class for activity log reads and writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        workspace_id: UUID,
        user_id: Optional[UUID],
        action: Union[ActivityAction, str],
        resource_type: str,
        resource_id: Optional[Any] = None,
        resource_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ActivityLog:
        """
        Append one activity entry and commit it.

        Args:
            workspace_id: Workspace the action belongs to
            user_id: Acting user
            action: Action key
            resource_type: Kind of resource acted on
            resource_id: Identifier of the resource
            resource_name: Display name of the resource
            details: Extra metadata

        Returns:
            The stored entry
        """
        entry = ActivityLog(
            workspace_id=workspace_id,
            user_id=user_id,
            action=action.value if isinstance(action, ActivityAction) else action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            resource_name=resource_name,
            details=details or {},
        )
        self.db.add(entry)
        await self.db.commit()
        return entry

    def _filters(self, workspace_id: UUID, action: Optional[str], user_id: Optional[UUID]) -> list:
        conditions = [ActivityLog.workspace_id == workspace_id]
        if action:
            conditions.append(ActivityLog.action == action)
        if user_id:
            conditions.append(ActivityLog.user_id == user_id)
        return conditions

    async def list_activities(
        self,
        workspace_id: UUID,
        action: Optional[str] = None,
        user_id: Optional[UUID] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[ActivityResponse], int]:
        """
        Page through a workspace's activity feed, newest first.

        The total honours the same filters as the page.

        Returns:
            Tuple of (entries, total matching)
        """
        conditions = self._filters(workspace_id, action, user_id)

        total = await self.db.scalar(select(func.count(ActivityLog.id)).where(*conditions))

        result = await self.db.execute(
            select(ActivityLog, User.full_name, User.email)
            .outerjoin(User, User.id == ActivityLog.user_id)
            .where(*conditions)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(limit)
            .offset(offset)
        )

        entries = []
        for entry, full_name, email in result.all():
            item = ActivityResponse.model_validate(entry)
            item.user_name = full_name or email
            item.user_email = email
            entries.append(item)

        return entries, total or 0


async def write_activity(session_factory: async_sessionmaker[AsyncSession], **fields: Any) -> None:
    """Write one activity entry in a session of its own."""
    async with session_factory() as session:
        await ActivityService(session).record(**fields)


class ActivityRecorder:
    """Schedules activity writes without blocking the caller."""

    def __init__(
        self,
        dispatcher: BackgroundTaskDispatcher,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.dispatcher = dispatcher
        self.session_factory = session_factory

    def record_later(
        self,
        workspace_id: UUID,
        user_id: Optional[UUID],
        action: ActivityAction,
        resource_type: str,
        resource_id: Optional[Any] = None,
        resource_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.dispatcher.spawn(
            f"activity.{ActivityAction(action).value}",
            write_activity,
            self.session_factory,
            workspace_id=workspace_id,
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            resource_name=resource_name,
            details=details,
        )


def get_activity_recorder(
    dispatcher: BackgroundTaskDispatcher = Depends(get_task_dispatcher),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ActivityRecorder:
    """Dependency building an ``ActivityRecorder`` for the request."""
    return ActivityRecorder(dispatcher, session_factory)
