"""
Small helpers shared by the API tests.
"""
from typing import Any, Dict
from uuid import UUID

import httpx

TEST_PASSWORD = "SecurePassword123!"


def api(path: str) -> str:
    return f"/api/v1{path}"


def ws_path(workspace_id: UUID, suffix: str = "") -> str:
    return api(f"/workspaces/{workspace_id}{suffix}")


def assert_error(response: httpx.Response, status_code: int) -> Dict[str, Any]:
    """Assert an error envelope with the given status and return its body."""
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["success"] is False
    assert body["message"]
    return body
