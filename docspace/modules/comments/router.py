"""
Comment API endpoints.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from docspace.core.database import get_db_session
from docspace.core.rbac import require_member
from docspace.core.responses import ApiResponse, ok, paginated
from docspace.modules.activity.models import ActivityAction
from docspace.modules.activity.service import ActivityRecorder, get_activity_recorder
from docspace.modules.auth.dependencies import RequestContext, get_request_context
from docspace.modules.comments.models import CommentTargetType
from docspace.modules.comments.schemas import CommentCreate, CommentResponse, CommentUpdate
from docspace.modules.comments.service import CommentService
from docspace.modules.webhooks.delivery import EventPublisher, get_event_publisher
from docspace.modules.webhooks.models import WebhookEvent

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[List[CommentResponse]],
    summary="List comments on a resource",
    description="Oldest first. Requires member access to the workspace.",
)
async def list_comments(
    workspace_id: UUID = Query(...),
    target_type: CommentTargetType = Query(...),
    target_id: str = Query(..., min_length=1, max_length=64),
    include_resolved: bool = Query(True),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
):
    await require_member(db, context.user_id, workspace_id)
    comments, total = await CommentService(db).list_comments(
        workspace_id,
        target_type,
        target_id,
        include_resolved=include_resolved,
        limit=limit,
        offset=offset,
    )
    return paginated(comments, total=total, limit=limit, offset=offset)


@router.post(
    "",
    response_model=ApiResponse[CommentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Post a comment",
)
async def create_comment(
    comment_data: CommentCreate,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    await require_member(db, context.user_id, comment_data.workspace_id)
    service = CommentService(db)
    comment = await service.create_comment(comment_data, context.user_id)

    recorder.record_later(
        comment.workspace_id,
        context.user_id,
        ActivityAction.ADDED_COMMENT,
        "comment",
        resource_id=comment.id,
        details={"comment_id": str(comment.id), "mention_count": len(comment.mentions)},
    )
    publisher.publish(
        comment.workspace_id,
        WebhookEvent.COMMENT_CREATED.value,
        {
            "comment_id": str(comment.id),
            "target_type": comment.target_type.value,
            "target_id": comment.target_id,
            "author_id": str(comment.user_id),
        },
    )
    return ok(await service.to_response(comment), message="Comment added")


@router.patch(
    "/{comment_id}",
    response_model=ApiResponse[CommentResponse],
    summary="Edit a comment",
    description="Author only.",
)
async def update_comment(
    comment_id: UUID,
    comment_data: CommentUpdate,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
):
    service = CommentService(db)
    comment = await service.update_comment(comment_id, context.user_id, comment_data)
    return ok(await service.to_response(comment), message="Comment updated")


@router.post(
    "/{comment_id}/resolve",
    response_model=ApiResponse[CommentResponse],
    summary="Resolve a comment",
    description="Any member. A resolved comment cannot be resolved again.",
)
async def resolve_comment(
    comment_id: UUID,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    service = CommentService(db)
    comment = await service.resolve_comment(comment_id, context.user_id)
    recorder.record_later(
        comment.workspace_id,
        context.user_id,
        ActivityAction.RESOLVED_COMMENT,
        "comment",
        resource_id=comment.id,
    )
    return ok(await service.to_response(comment), message="Comment resolved")


@router.delete(
    "/{comment_id}",
    response_model=ApiResponse[None],
    summary="Delete a comment",
    description="The author or a workspace admin.",
)
async def delete_comment(
    comment_id: UUID,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    comment = await CommentService(db).delete_comment(comment_id, context.user_id)
    recorder.record_later(
        comment.workspace_id,
        context.user_id,
        ActivityAction.DELETED_COMMENT,
        "comment",
        resource_id=comment.id,
    )
    return ok(message="Comment deleted")
