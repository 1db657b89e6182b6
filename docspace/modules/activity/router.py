"""
Activity feed API endpoints.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from docspace.core.database import get_db_session
from docspace.core.rbac import MemberContext, require_workspace_member
from docspace.core.responses import ApiResponse, paginated
from docspace.modules.activity.schemas import ActivityResponse
from docspace.modules.activity.service import ActivityService

router = APIRouter()


@router.get(
    "/workspaces/{workspace_id}/activities",
    response_model=ApiResponse[List[ActivityResponse]],
    summary="Workspace activity feed",
    description="Newest first. Filter by action key and/or acting user. Requires member access.",
)
async def list_activities(
    workspace_id: UUID,
    action: Optional[str] = Query(None, max_length=50),
    user_id: Optional[UUID] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    member: MemberContext = Depends(require_workspace_member),
    db: AsyncSession = Depends(get_db_session),
):
    entries, total = await ActivityService(db).list_activities(
        workspace_id, action=action, user_id=user_id, limit=limit, offset=offset
    )
    return paginated(entries, total=total, limit=limit, offset=offset)
