"""
Integration tests for webhook registration and delivery endpoints.
"""
import json

import pytest

from docspace.core.security import sign_payload
from helpers import api, assert_error, ws_path

HOOK_URL = "https://hooks.example.com/docspace"


async def register(ac, workspace_id, **overrides):
    payload = {"name": "CI hook", "url": HOOK_URL, "events": ["comment.created"]}
    payload.update(overrides)
    response = await ac.post(ws_path(workspace_id, "/webhooks"), json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def post_comment(ac, workspace_id, content="Looks good"):
    response = await ac.post(
        api("/comments"),
        json={
            "workspace_id": str(workspace_id),
            "target_type": "document",
            "target_id": "doc-1",
            "content": content,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestWebhookRegistry:
    """Test webhook CRUD over HTTP."""

    @pytest.mark.asyncio
    async def test_secret_only_returned_on_create(self, client_for, workspace, admin):
        # Arrange
        ac = client_for(admin)

        # Act
        created = await register(ac, workspace.id, headers={"X-Team": "docs"})
        fetched = await ac.get(ws_path(workspace.id, f"/webhooks/{created['id']}"))
        listed = await ac.get(ws_path(workspace.id, "/webhooks"))

        # Assert
        assert len(created["secret"]) >= 32
        assert created["type"] == "standard"
        assert created["active"] is True
        assert created["headers"] == {"X-Team": "docs"}

        assert fetched.status_code == 200
        assert "secret" not in fetched.json()["data"]
        assert [w["id"] for w in listed.json()["data"]] == [created["id"]]
        assert "secret" not in listed.json()["data"][0]

    @pytest.mark.asyncio
    async def test_member_has_no_access(self, client_for, workspace, member):
        ac = client_for(member)

        assert_error(await ac.get(ws_path(workspace.id, "/webhooks")), 403)
        response = await ac.post(
            ws_path(workspace.id, "/webhooks"),
            json={"name": "x", "url": HOOK_URL, "events": ["comment.created"]},
        )
        assert_error(response, 403)

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_event(self, client_for, workspace, admin):
        response = await client_for(admin).post(
            ws_path(workspace.id, "/webhooks"),
            json={"name": "x", "url": HOOK_URL, "events": ["workspace.exploded"]},
        )

        assert_error(response, 400)

    @pytest.mark.asyncio
    async def test_create_rejects_bad_url(self, client_for, workspace, admin):
        response = await client_for(admin).post(
            ws_path(workspace.id, "/webhooks"),
            json={"name": "x", "url": "ftp://hooks.example.com", "events": ["comment.created"]},
        )

        assert_error(response, 400)

    @pytest.mark.asyncio
    async def test_update_fields(self, client_for, workspace, admin):
        ac = client_for(admin)
        created = await register(ac, workspace.id)

        response = await ac.patch(
            ws_path(workspace.id, f"/webhooks/{created['id']}"),
            json={"name": "Renamed", "type": "slack", "active": False},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed"
        assert data["type"] == "slack"
        assert data["active"] is False
        assert data["url"] == HOOK_URL
        assert "secret" not in data

    @pytest.mark.asyncio
    async def test_update_cannot_change_secret(self, client_for, workspace, admin):
        ac = client_for(admin)
        created = await register(ac, workspace.id)

        response = await ac.patch(
            ws_path(workspace.id, f"/webhooks/{created['id']}"), json={"secret": "mine"}
        )

        assert_error(response, 400)

    @pytest.mark.asyncio
    async def test_delete(self, client_for, workspace, admin):
        ac = client_for(admin)
        created = await register(ac, workspace.id)
        path = ws_path(workspace.id, f"/webhooks/{created['id']}")

        assert (await ac.delete(path)).status_code == 200
        assert_error(await ac.get(path), 404)

    @pytest.mark.asyncio
    async def test_webhook_of_another_workspace_is_not_found(
        self, client_for, make_workspace, workspace, owner, admin
    ):
        """Test a webhook id cannot be reached through a different workspace."""
        other = await make_workspace(owner, "Other")
        created = await register(client_for(owner), other.id)

        response = await client_for(owner).get(ws_path(workspace.id, f"/webhooks/{created['id']}"))

        assert_error(response, 404)


class TestWebhookDeliveries:
    """Test event delivery and the delivery log."""

    @pytest.mark.asyncio
    async def test_comment_created_is_delivered_signed(
        self, client_for, workspace, admin, member, webhook_receiver, drain
    ):
        # Arrange
        created = await register(client_for(admin), workspace.id)

        # Act
        comment = await post_comment(client_for(member), workspace.id)
        await drain()

        # Assert
        assert len(webhook_receiver.requests) == 1
        request = webhook_receiver.requests[0]
        assert str(request.url) == HOOK_URL
        assert request.headers["X-Docspace-Event"] == "comment.created"
        assert request.headers["X-Docspace-Signature"] == (
            f"sha256={sign_payload(created['secret'], request.content)}"
        )

        body = json.loads(request.content)
        assert body["event"] == "comment.created"
        assert body["workspace_id"] == str(workspace.id)
        assert body["data"]["comment_id"] == comment["id"]
        assert body["data"]["author_id"] == str(member.id)

    @pytest.mark.asyncio
    async def test_unsubscribed_and_inactive_webhooks_are_skipped(
        self, client_for, workspace, admin, webhook_receiver, drain
    ):
        ac = client_for(admin)
        await register(ac, workspace.id, events=["document.uploaded"])
        await register(ac, workspace.id, active=False)

        await post_comment(ac, workspace.id)
        await drain()

        assert webhook_receiver.requests == []

    @pytest.mark.asyncio
    async def test_failed_delivery_is_logged_without_failing_the_request(
        self, client_for, workspace, admin, webhook_receiver, drain
    ):
        # Arrange
        webhook_receiver.status_code = 500
        webhook_receiver.body = "boom"
        ac = client_for(admin)
        created = await register(ac, workspace.id)

        # Act
        await post_comment(ac, workspace.id)
        await drain()
        response = await ac.get(ws_path(workspace.id, f"/webhooks/{created['id']}/deliveries"))

        # Assert
        assert response.status_code == 200
        [delivery] = response.json()["data"]
        assert delivery["success"] is False
        assert delivery["status_code"] == 500
        assert delivery["response_body"] == "boom"
        assert delivery["event"] == "comment.created"

    @pytest.mark.asyncio
    async def test_timeout_is_logged(self, client_for, workspace, admin, webhook_receiver, drain):
        webhook_receiver.raise_timeout = True
        ac = client_for(admin)
        created = await register(ac, workspace.id)

        await post_comment(ac, workspace.id)
        await drain()
        response = await ac.get(ws_path(workspace.id, f"/webhooks/{created['id']}/deliveries"))

        [delivery] = response.json()["data"]
        assert delivery["success"] is False
        assert delivery["status_code"] is None
        assert delivery["error"] == "Request timed out"

    @pytest.mark.asyncio
    async def test_deliveries_are_paginated(self, client_for, workspace, admin, drain):
        # Arrange
        ac = client_for(admin)
        created = await register(ac, workspace.id)
        for n in range(3):
            await post_comment(ac, workspace.id, f"Comment {n}")
            await drain()

        # Act
        response = await ac.get(
            ws_path(workspace.id, f"/webhooks/{created['id']}/deliveries"),
            params={"limit": 2, "offset": 0},
        )

        # Assert
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {"total": 3, "limit": 2, "offset": 0}

        second_page = await ac.get(
            ws_path(workspace.id, f"/webhooks/{created['id']}/deliveries"),
            params={"limit": 2, "offset": 2},
        )
        assert len(second_page.json()["data"]) == 1

    @pytest.mark.asyncio
    async def test_redeliver_creates_linked_attempt(
        self, client_for, workspace, admin, webhook_receiver, drain
    ):
        # Arrange
        ac = client_for(admin)
        created = await register(ac, workspace.id)
        await post_comment(ac, workspace.id)
        await drain()
        deliveries_path = ws_path(workspace.id, f"/webhooks/{created['id']}/deliveries")
        [original] = (await ac.get(deliveries_path)).json()["data"]

        # Act
        response = await ac.post(f"{deliveries_path}/{original['id']}/redeliver")

        # Assert
        assert response.status_code == 200
        attempt = response.json()["data"]
        assert attempt["id"] != original["id"]
        assert attempt["redelivery_of_id"] == original["id"]
        assert attempt["payload"]["redelivery"] is True
        assert attempt["payload"]["data"] == original["payload"]["data"]
        assert len(webhook_receiver.requests) == 2

        history = (await ac.get(deliveries_path)).json()
        assert history["pagination"]["total"] == 2

    @pytest.mark.asyncio
    async def test_redeliver_to_inactive_webhook(self, client_for, workspace, admin, drain):
        ac = client_for(admin)
        created = await register(ac, workspace.id)
        await post_comment(ac, workspace.id)
        await drain()
        deliveries_path = ws_path(workspace.id, f"/webhooks/{created['id']}/deliveries")
        [original] = (await ac.get(deliveries_path)).json()["data"]
        await ac.patch(ws_path(workspace.id, f"/webhooks/{created['id']}"), json={"active": False})

        response = await ac.post(f"{deliveries_path}/{original['id']}/redeliver")

        assert_error(response, 409)

    @pytest.mark.asyncio
    async def test_redeliver_unknown_delivery(self, client_for, workspace, admin):
        ac = client_for(admin)
        created = await register(ac, workspace.id)

        response = await ac.post(
            ws_path(
                workspace.id,
                f"/webhooks/{created['id']}/deliveries/00000000-0000-0000-0000-000000000000/redeliver",
            )
        )

        assert_error(response, 404)
