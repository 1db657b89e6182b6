"""
Chat platform message formats.

Each adapter turns the standard event payload into the body a platform's
incoming-webhook endpoint expects. ``standard`` webhooks get the payload as is.
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Tuple

from docspace.modules.webhooks.models import WebhookType

BRAND = "Docspace"

EVENT_LABELS: Dict[str, Tuple[str, str]] = {
    "document.uploaded": ("Document uploaded", "📄"),
    "document.completed": ("Document processed", "✅"),
    "document.failed": ("Document processing failed", "❌"),
    "prd.generated": ("PRD generated", "📝"),
    "comment.created": ("New comment", "💬"),
}


def event_label(event: str) -> Tuple[str, str]:
    return EVENT_LABELS.get(event, (event, "🔔"))


def is_error_event(event: str) -> bool:
    return event.endswith(".failed")


def _format_time(timestamp: str) -> str:
    try:
        return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S UTC")
    except (AttributeError, ValueError):
        return str(timestamp)


def format_fields(event: str, data: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Readable (label, value) pairs for an event's data."""
    fields: List[Tuple[str, str]] = []
    if event.startswith("document."):
        if data.get("title"):
            fields.append(("Document", str(data["title"])))
        if data.get("file_type"):
            fields.append(("Type", str(data["file_type"]).upper()))
        if data.get("error"):
            fields.append(("Error", str(data["error"])))
    elif event == "prd.generated":
        user_input = data.get("user_input")
        if user_input:
            text = str(user_input)
            fields.append(("Request", text[:80] + ("…" if len(text) > 80 else "")))
    elif event == "comment.created":
        if data.get("target_type"):
            fields.append(("Target", str(data["target_type"])))
    return fields


def to_feishu(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Feishu (Lark) interactive card."""
    event = payload["event"]
    title, emoji = event_label(event)
    fields = format_fields(event, payload.get("data") or {})

    elements: List[Dict[str, Any]] = []
    if fields:
        elements.append({
            "tag": "div",
            "text": {"tag": "lark_md", "content": "\n".join(f"**{k}**: {v}" for k, v in fields)},
        })
    elements.append({
        "tag": "note",
        "elements": [{"tag": "plain_text", "content": f"{_format_time(payload['timestamp'])} · {BRAND}"}],
    })

    return {
        "msg_type": "interactive",
        "card": {
            "header": {
                "title": {"tag": "plain_text", "content": f"{emoji} {title}"},
                "template": "red" if is_error_event(event) else "blue",
            },
            "elements": elements,
        },
    }


def to_dingtalk(payload: Dict[str, Any]) -> Dict[str, Any]:
    """DingTalk markdown message."""
    event = payload["event"]
    title, emoji = event_label(event)
    fields = format_fields(event, payload.get("data") or {})

    lines = [f"## {emoji} {title}"]
    lines.extend(f"> {k}: {v}" for k, v in fields)
    lines.append(f"> Time: {_format_time(payload['timestamp'])}")

    body: Dict[str, Any] = {
        "msgtype": "markdown",
        "markdown": {"title": f"{emoji} {title}", "text": "\n\n".join(lines)},
    }
    if is_error_event(event):
        body["at"] = {"isAtAll": False}
    return body


def to_wecom(payload: Dict[str, Any]) -> Dict[str, Any]:
    """WeCom markdown message."""
    event = payload["event"]
    title, emoji = event_label(event)
    fields = format_fields(event, payload.get("data") or {})
    color = "warning" if is_error_event(event) else "info"

    lines = [f"**{emoji} {title}**"]
    lines.extend(f'> <font color="{color}">{k}: {v}</font>' for k, v in fields)
    lines.append(f"> Time: {_format_time(payload['timestamp'])}")

    return {"msgtype": "markdown", "markdown": {"content": "\n".join(lines)}}


def to_slack(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Slack Block Kit message."""
    event = payload["event"]
    title, emoji = event_label(event)
    fields = format_fields(event, payload.get("data") or {})

    blocks: List[Dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": f"{emoji} {title}", "emoji": True}},
    ]
    if fields:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": "\n".join(f"*{k}*: {v}" for k, v in fields)},
        })
    footer = f"{_format_time(payload['timestamp'])} · {BRAND}"
    if is_error_event(event):
        footer += " · :red_circle:"
    blocks.append({"type": "context", "elements": [{"type": "mrkdwn", "text": footer}]})

    return {"blocks": blocks}


def to_discord(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Discord embed."""
    event = payload["event"]
    title, emoji = event_label(event)
    fields = format_fields(event, payload.get("data") or {})

    return {
        "embeds": [{
            "title": f"{emoji} {title}",
            "color": 0xED4245 if is_error_event(event) else 0x5865F2,
            "fields": [{"name": k, "value": v, "inline": True} for k, v in fields],
            "footer": {"text": BRAND},
            "timestamp": payload["timestamp"],
        }]
    }


ADAPTERS: Dict[WebhookType, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    WebhookType.FEISHU: to_feishu,
    WebhookType.DINGTALK: to_dingtalk,
    WebhookType.WECOM: to_wecom,
    WebhookType.SLACK: to_slack,
    WebhookType.DISCORD: to_discord,
}


def format_body(webhook_type: WebhookType, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Body to send for a webhook of ``webhook_type``."""
    adapter = ADAPTERS.get(webhook_type)
    return adapter(payload) if adapter else payload
