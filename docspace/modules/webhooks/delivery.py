"""
Webhook delivery engine.

Signs and POSTs event payloads to subscribed webhooks and logs one
``WebhookDelivery`` row per attempt, successful or not. Request handlers
never wait on this: ``EventPublisher`` hands ``trigger`` to the background
dispatcher.
"""
import asyncio
import json
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import httpx
from fastapi import Depends, Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from docspace.core.config import settings
from docspace.core.database import get_session_factory
from docspace.core.exceptions import ConflictException
from docspace.core.metrics import record_webhook_delivery
from docspace.core.models import utc_now
from docspace.core.security import sign_payload
from docspace.core.tasks import BackgroundTaskDispatcher, get_task_dispatcher
from docspace.modules.webhooks.adapters import format_body
from docspace.modules.webhooks.models import Webhook, WebhookDelivery
from docspace.modules.webhooks.service import WebhookService

logger = get_logger(__name__)

EVENT_HEADER = "X-Docspace-Event"
SIGNATURE_HEADER = "X-Docspace-Signature"
TIMESTAMP_HEADER = "X-Docspace-Timestamp"
DELIVERY_HEADER = "X-Docspace-Delivery"

RESERVED_HEADERS = {
    "content-type",
    "user-agent",
    EVENT_HEADER.lower(),
    SIGNATURE_HEADER.lower(),
    TIMESTAMP_HEADER.lower(),
    DELIVERY_HEADER.lower(),
}

TIMEOUT_ERROR = "Request timed out"


def iso_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_payload(workspace_id: UUID, event: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Standard event payload."""
    return {
        "event": event,
        "workspace_id": str(workspace_id),
        "timestamp": iso_timestamp(),
        "data": jsonable_encoder(data or {}),
    }


def serialize_body(body: Dict[str, Any]) -> bytes:
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def build_headers(
    webhook: Webhook,
    event: str,
    signature: str,
    timestamp: str,
    delivery_id: UUID,
) -> Dict[str, str]:
    """
    Request headers for one attempt.

    Custom headers go first and may not replace any reserved header.
    """
    headers = {
        name: value
        for name, value in (webhook.headers or {}).items()
        if name.lower() not in RESERVED_HEADERS
    }
    headers.update({
        "Content-Type": "application/json",
        "User-Agent": settings.webhook_user_agent,
        EVENT_HEADER: event,
        SIGNATURE_HEADER: f"sha256={signature}",
        TIMESTAMP_HEADER: timestamp,
        DELIVERY_HEADER: str(delivery_id),
    })
    return headers


class WebhookDeliveryEngine:
    """
    Fans events out to webhooks and records the outcome of every attempt.

    Args:
        session_factory: Opens the sessions used to look up webhooks and log deliveries
        transport: Optional httpx transport, used by tests to intercept requests
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.transport = transport
        self.timeout = timeout if timeout is not None else settings.webhook_timeout_seconds

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
            follow_redirects=False,
        )

    async def _send(
        self,
        client: httpx.AsyncClient,
        webhook: Webhook,
        event: str,
        payload: Dict[str, Any],
        redelivery_of: Optional[UUID] = None,
    ) -> WebhookDelivery:
        """POST once and describe the outcome as an unsaved delivery row."""
        delivery_id = uuid.uuid4()
        body = serialize_body(format_body(webhook.type, payload))
        signature = sign_payload(webhook.secret, body)
        headers = build_headers(webhook, event, signature, payload.get("timestamp") or iso_timestamp(), delivery_id)

        status_code: Optional[int] = None
        response_body: Optional[str] = None
        error: Optional[str] = None
        success = False

        started = time.perf_counter()
        try:
            response = await client.post(webhook.url, content=body, headers=headers)
            status_code = response.status_code
            response_body = response.text[: settings.webhook_response_body_limit]
            success = response.is_success
        except httpx.TimeoutException:
            error = TIMEOUT_ERROR
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error = str(e) or e.__class__.__name__
        except Exception as e:
            # Bad stored data (e.g. unencodable header values) fails this attempt only
            logger.exception("Webhook request could not be sent", webhook_id=str(webhook.id), event=event)
            error = str(e) or e.__class__.__name__
        duration = time.perf_counter() - started

        record_webhook_delivery(event, success, duration)
        if not success:
            logger.warning(
                "Webhook delivery failed",
                webhook_id=str(webhook.id),
                event=event,
                status_code=status_code,
                error=error,
            )

        return WebhookDelivery(
            id=delivery_id,
            webhook_id=webhook.id,
            event=event,
            payload=payload,
            status_code=status_code,
            response_body=response_body,
            duration_ms=int(duration * 1000),
            success=success,
            error=error,
            redelivery_of_id=redelivery_of,
        )

    async def _persist(self, deliveries: Iterable[WebhookDelivery]) -> List[WebhookDelivery]:
        """
        Store each row in its own transaction.

        A row that cannot be written, such as one whose webhook was deleted
        mid fan-out, is logged and left out without affecting the others.

        Returns:
            The rows that were stored
        """
        stored = []
        for delivery in deliveries:
            async with self.session_factory() as session:
                session.add(delivery)
                try:
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error(
                        "Failed to log webhook delivery",
                        webhook_id=str(delivery.webhook_id),
                        event=delivery.event,
                        error=str(e),
                    )
                    continue
            stored.append(delivery)
        return stored

    async def deliver(
        self,
        client: httpx.AsyncClient,
        webhook: Webhook,
        event: str,
        payload: Dict[str, Any],
        redelivery_of: Optional[UUID] = None,
    ) -> WebhookDelivery:
        """
        Make one delivery attempt and log it.

        Args:
            client: Shared HTTP client
            webhook: Target webhook
            event: Event name
            payload: Standard event payload
            redelivery_of: Delivery this attempt repeats

        Returns:
            The stored delivery row
        """
        delivery = await self._send(client, webhook, event, payload, redelivery_of)
        await self._persist([delivery])
        return delivery

    async def _active_webhooks(self, workspace_id: UUID, event: str) -> List[Webhook]:
        async with self.session_factory() as session:
            return await WebhookService(session).find_active_for_event(workspace_id, event)

    async def trigger(self, workspace_id: UUID, event: str, data: Dict[str, Any]) -> List[WebhookDelivery]:
        """
        Deliver ``event`` to every active subscribed webhook of the workspace.

        Attempts run concurrently over one client and never raise. Each
        attempt is logged on its own, failures included.

        Returns:
            The stored delivery rows, one per webhook
        """
        webhooks = await self._active_webhooks(workspace_id, event)
        if not webhooks:
            return []

        payload = build_payload(workspace_id, event, data)
        async with self.client() as client:
            deliveries = await asyncio.gather(
                *(self._send(client, webhook, event, payload) for webhook in webhooks)
            )

        stored = await self._persist(deliveries)
        logger.info(
            "Webhooks triggered",
            workspace_id=str(workspace_id),
            event=event,
            attempted=len(deliveries),
            succeeded=sum(1 for d in deliveries if d.success),
            logged=len(stored),
        )
        return stored

    async def redeliver(self, webhook: Webhook, delivery: WebhookDelivery) -> WebhookDelivery:
        """
        Re-send a logged delivery with a fresh timestamp.

        The new attempt is a new row pointing back at the original.

        Raises:
            ConflictException: If the webhook is inactive
        """
        if not webhook.active:
            raise ConflictException("Webhook is inactive")

        payload = dict(delivery.payload or {})
        payload["timestamp"] = iso_timestamp()
        payload["redelivery"] = True

        async with self.client() as client:
            return await self.deliver(client, webhook, delivery.event, payload, redelivery_of=delivery.id)


class EventPublisher:
    """Publishes domain events to webhooks in the background."""

    def __init__(self, dispatcher: BackgroundTaskDispatcher, engine: WebhookDeliveryEngine):
        self.dispatcher = dispatcher
        self.engine = engine

    def publish(self, workspace_id: UUID, event: str, data: Dict[str, Any]) -> asyncio.Task:
        return self.dispatcher.spawn(f"webhook.{event}", self.engine.trigger, workspace_id, event, data)


def get_delivery_engine(
    request: Request,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> WebhookDeliveryEngine:
    """Dependency building the engine with the application's transport, if any."""
    transport = getattr(request.app.state, "webhook_transport", None)
    return WebhookDeliveryEngine(session_factory, transport=transport)


def get_event_publisher(
    dispatcher: BackgroundTaskDispatcher = Depends(get_task_dispatcher),
    engine: WebhookDeliveryEngine = Depends(get_delivery_engine),
) -> EventPublisher:
    return EventPublisher(dispatcher, engine)
