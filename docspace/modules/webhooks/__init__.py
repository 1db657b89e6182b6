"""
Webhooks module.

Workspace webhook registry and the signed HTTP delivery engine.
"""

from .models import Webhook, WebhookDelivery, WebhookEvent, WebhookType

__all__ = [
    "Webhook",
    "WebhookDelivery",
    "WebhookEvent",
    "WebhookType",
]
