"""
Webhook registry service.
"""
from typing import List, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from docspace.core.exceptions import ResourceNotFoundException
from docspace.core.security import generate_secure_token
from docspace.modules.webhooks.models import Webhook, WebhookDelivery
from docspace.modules.webhooks.schemas import WebhookCreate, WebhookUpdate

logger = get_logger(__name__)


class WebhookService:
    """Service class for webhook registration and delivery history."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_webhook(self, workspace_id: UUID, data: WebhookCreate, creator_id: UUID) -> Webhook:
        """
        Register a webhook with a freshly generated signing secret.

        Args:
            workspace_id: Owning workspace
            data: Webhook definition
            creator_id: Registering user

        Returns:
            The stored webhook, secret included
        """
        webhook = Webhook(
            workspace_id=workspace_id,
            created_by=creator_id,
            name=data.name,
            url=data.url,
            type=data.type,
            events=[event.value for event in data.events],
            headers=data.headers,
            active=data.active,
            secret=generate_secure_token(32),
        )
        self.db.add(webhook)
        await self.db.commit()
        await self.db.refresh(webhook)

        logger.info(
            "Webhook created",
            webhook_id=str(webhook.id),
            workspace_id=str(workspace_id),
            events=webhook.events,
        )
        return webhook

    async def list_webhooks(self, workspace_id: UUID) -> List[Webhook]:
        """Webhooks of a workspace, newest first."""
        result = await self.db.execute(
            select(Webhook)
            .where(Webhook.workspace_id == workspace_id)
            .order_by(Webhook.created_at.desc(), Webhook.id.desc())
        )
        return list(result.scalars().all())

    async def get_webhook(self, workspace_id: UUID, webhook_id: UUID) -> Webhook:
        """
        Get a webhook of the workspace.

        Raises:
            ResourceNotFoundException: If it does not exist in this workspace
        """
        result = await self.db.execute(
            select(Webhook).where(Webhook.id == webhook_id, Webhook.workspace_id == workspace_id)
        )
        webhook = result.scalar_one_or_none()
        if webhook is None:
            raise ResourceNotFoundException("Webhook", webhook_id)
        return webhook

    async def update_webhook(self, workspace_id: UUID, webhook_id: UUID, data: WebhookUpdate) -> Webhook:
        """Apply a partial update. Fields sent as null are left alone."""
        webhook = await self.get_webhook(workspace_id, webhook_id)

        update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if "events" in update_data:
            update_data["events"] = [event.value for event in data.events]

        for field, value in update_data.items():
            setattr(webhook, field, value)

        await self.db.commit()
        await self.db.refresh(webhook)

        logger.info("Webhook updated", webhook_id=str(webhook_id), fields=sorted(update_data))
        return webhook

    async def delete_webhook(self, workspace_id: UUID, webhook_id: UUID) -> Webhook:
        """Delete a webhook and its delivery history."""
        webhook = await self.get_webhook(workspace_id, webhook_id)
        await self.db.execute(delete(Webhook).where(Webhook.id == webhook.id))
        await self.db.commit()

        logger.info("Webhook deleted", webhook_id=str(webhook_id), workspace_id=str(workspace_id))
        return webhook

    async def list_deliveries(
        self,
        workspace_id: UUID,
        webhook_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[WebhookDelivery], int]:
        """
        Page through a webhook's delivery log, newest first.

        Returns:
            Tuple of (deliveries, total)
        """
        await self.get_webhook(workspace_id, webhook_id)

        total = await self.db.scalar(
            select(func.count(WebhookDelivery.id)).where(WebhookDelivery.webhook_id == webhook_id)
        )
        result = await self.db.execute(
            select(WebhookDelivery)
            .where(WebhookDelivery.webhook_id == webhook_id)
            .order_by(WebhookDelivery.created_at.desc(), WebhookDelivery.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def get_delivery(self, webhook_id: UUID, delivery_id: UUID) -> WebhookDelivery:
        result = await self.db.execute(
            select(WebhookDelivery).where(
                WebhookDelivery.id == delivery_id,
                WebhookDelivery.webhook_id == webhook_id,
            )
        )
        delivery = result.scalar_one_or_none()
        if delivery is None:
            raise ResourceNotFoundException("Delivery", delivery_id)
        return delivery

    async def find_active_for_event(self, workspace_id: UUID, event: str) -> List[Webhook]:
        """
        Active webhooks of the workspace subscribed to ``event``.

        Subscription lists are JSON, so the event filter runs in Python.
        """
        result = await self.db.execute(
            select(Webhook).where(Webhook.workspace_id == workspace_id, Webhook.active.is_(True))
        )
        return [webhook for webhook in result.scalars().all() if webhook.subscribes_to(event)]