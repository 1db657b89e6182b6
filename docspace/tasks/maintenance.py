"""
Periodic maintenance: invitation expiry sweep and delivery log retention.
"""
import asyncio
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete

from docspace.core.celery_app import celery_app
from docspace.core.config import settings
from docspace.core.database import DatabaseManager
from docspace.core.logger import get_logger
from docspace.core.metrics import record_celery_task
from docspace.core.models import utc_now
from docspace.modules.invitations.service import InvitationService
from docspace.modules.webhooks.models import WebhookDelivery

logger = get_logger(__name__)


@celery_app.task(bind=True)
def expire_stale_invitations(self):
    """
    Mark every pending invitation past its expiry as expired.
    """
    return _run("expire_stale_invitations", _expire_stale_invitations_async())


@celery_app.task(bind=True)
def prune_webhook_deliveries(self, retention_days: Optional[int] = None):
    """
    Delete delivery log rows older than the retention window.
    """
    return _run("prune_webhook_deliveries", _prune_webhook_deliveries_async(retention_days))


def _run(task_name: str, coro):
    try:
        result = asyncio.run(coro)
    except Exception:
        record_celery_task(task_name, success=False)
        raise
    record_celery_task(task_name, success=True)
    return result


async def _expire_stale_invitations_async(manager: Optional[DatabaseManager] = None) -> dict:
    """Async implementation of the expiry sweep."""
    manager = manager or DatabaseManager()
    try:
        async with manager.session_factory() as session:
            expired = await InvitationService(session).expire_stale_invitations()
        logger.info("Invitation sweep completed", expired=expired)
        return {"expired_invitations": expired}
    except Exception as e:
        logger.error("Error during invitation sweep", error=str(e))
        raise
    finally:
        await manager.close()


async def _prune_webhook_deliveries_async(
    retention_days: Optional[int] = None,
    manager: Optional[DatabaseManager] = None,
) -> dict:
    """Async implementation of delivery log pruning."""
    manager = manager or DatabaseManager()
    days = retention_days or settings.webhook_delivery_retention_days
    cutoff = utc_now() - timedelta(days=days)
    try:
        async with manager.session_factory() as session:
            result = await session.execute(
                delete(WebhookDelivery).where(WebhookDelivery.created_at < cutoff)
            )
            await session.commit()
        pruned = result.rowcount or 0
        logger.info("Delivery log pruned", pruned=pruned, retention_days=days)
        return {"pruned_deliveries": pruned}
    except Exception as e:
        logger.error("Error during delivery log pruning", error=str(e))
        raise
    finally:
        await manager.close()
