"""
Webhook API endpoints.

Every route requires admin access to the workspace.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from docspace.core.database import get_db_session
from docspace.core.rbac import MemberContext, require_workspace_admin
from docspace.core.responses import ApiResponse, ok, paginated
from docspace.modules.activity.models import ActivityAction
from docspace.modules.activity.service import ActivityRecorder, get_activity_recorder
from docspace.modules.webhooks.delivery import WebhookDeliveryEngine, get_delivery_engine
from docspace.modules.webhooks.schemas import (
    DeliveryResponse,
    WebhookCreate,
    WebhookCreatedResponse,
    WebhookResponse,
    WebhookUpdate,
)
from docspace.modules.webhooks.service import WebhookService

router = APIRouter()


@router.get(
    "/workspaces/{workspace_id}/webhooks",
    response_model=ApiResponse[List[WebhookResponse]],
    summary="List webhooks",
)
async def list_webhooks(
    workspace_id: UUID,
    member: MemberContext = Depends(require_workspace_admin),
    db: AsyncSession = Depends(get_db_session),
):
    webhooks = await WebhookService(db).list_webhooks(workspace_id)
    return ok([WebhookResponse.model_validate(webhook) for webhook in webhooks])


@router.post(
    "/workspaces/{workspace_id}/webhooks",
    response_model=ApiResponse[WebhookCreatedResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register a webhook",
    description="The signing secret is returned in this response only.",
)
async def create_webhook(
    workspace_id: UUID,
    webhook_data: WebhookCreate,
    member: MemberContext = Depends(require_workspace_admin),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    webhook = await WebhookService(db).create_webhook(workspace_id, webhook_data, member.user_id)
    recorder.record_later(
        workspace_id,
        member.user_id,
        ActivityAction.CREATED_WEBHOOK,
        "webhook",
        resource_id=webhook.id,
        resource_name=webhook.name,
        details={"events": webhook.events},
    )
    return ok(WebhookCreatedResponse.model_validate(webhook), message="Webhook created")


@router.get(
    "/workspaces/{workspace_id}/webhooks/{webhook_id}",
    response_model=ApiResponse[WebhookResponse],
    summary="Get a webhook",
)
async def get_webhook(
    workspace_id: UUID,
    webhook_id: UUID,
    member: MemberContext = Depends(require_workspace_admin),
    db: AsyncSession = Depends(get_db_session),
):
    webhook = await WebhookService(db).get_webhook(workspace_id, webhook_id)
    return ok(WebhookResponse.model_validate(webhook))


@router.patch(
    "/workspaces/{workspace_id}/webhooks/{webhook_id}",
    response_model=ApiResponse[WebhookResponse],
    summary="Update a webhook",
    description="Partial update. The secret cannot be changed.",
)
async def update_webhook(
    workspace_id: UUID,
    webhook_id: UUID,
    webhook_data: WebhookUpdate,
    member: MemberContext = Depends(require_workspace_admin),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    webhook = await WebhookService(db).update_webhook(workspace_id, webhook_id, webhook_data)
    recorder.record_later(
        workspace_id,
        member.user_id,
        ActivityAction.UPDATED_WEBHOOK,
        "webhook",
        resource_id=webhook.id,
        resource_name=webhook.name,
        details={"fields": sorted(webhook_data.model_dump(exclude_unset=True))},
    )
    return ok(WebhookResponse.model_validate(webhook), message="Webhook updated")


@router.delete(
    "/workspaces/{workspace_id}/webhooks/{webhook_id}",
    response_model=ApiResponse[None],
    summary="Delete a webhook",
)
async def delete_webhook(
    workspace_id: UUID,
    webhook_id: UUID,
    member: MemberContext = Depends(require_workspace_admin),
    db: AsyncSession = Depends(get_db_session),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    webhook = await WebhookService(db).delete_webhook(workspace_id, webhook_id)
    recorder.record_later(
        workspace_id,
        member.user_id,
        ActivityAction.DELETED_WEBHOOK,
        "webhook",
        resource_id=webhook.id,
        resource_name=webhook.name,
    )
    return ok(message="Webhook deleted")


@router.get(
    "/workspaces/{workspace_id}/webhooks/{webhook_id}/deliveries",
    response_model=ApiResponse[List[DeliveryResponse]],
    summary="Delivery history",
    description="Newest first.",
)
async def list_deliveries(
    workspace_id: UUID,
    webhook_id: UUID,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    member: MemberContext = Depends(require_workspace_admin),
    db: AsyncSession = Depends(get_db_session),
):
    deliveries, total = await WebhookService(db).list_deliveries(
        workspace_id, webhook_id, limit=limit, offset=offset
    )
    return paginated(
        [DeliveryResponse.model_validate(delivery) for delivery in deliveries],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/workspaces/{workspace_id}/webhooks/{webhook_id}/deliveries/{delivery_id}/redeliver",
    response_model=ApiResponse[DeliveryResponse],
    summary="Redeliver a logged event",
    description="Sends the stored payload again and returns the new delivery.",
)
async def redeliver(
    workspace_id: UUID,
    webhook_id: UUID,
    delivery_id: UUID,
    member: MemberContext = Depends(require_workspace_admin),
    db: AsyncSession = Depends(get_db_session),
    engine: WebhookDeliveryEngine = Depends(get_delivery_engine),
):
    service = WebhookService(db)
    webhook = await service.get_webhook(workspace_id, webhook_id)
    delivery = await service.get_delivery(webhook.id, delivery_id)
    attempt = await engine.redeliver(webhook, delivery)
    return ok(DeliveryResponse.model_validate(attempt), message="Redelivery attempted")
