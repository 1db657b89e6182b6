"""
Top-level API router: mounts each API version under ``/api``.
"""
from fastapi import APIRouter

from .v1.router import v1_router

API_VERSIONS = [
    {"version": "v1", "status": "stable", "path": "/api/v1"},
]
CURRENT_VERSION = "v1"

api_router = APIRouter(prefix="/api")
api_router.include_router(v1_router)


@api_router.get("/versions")
async def api_versions():
    """List the API versions this server speaks."""
    return {"versions": API_VERSIONS, "current": CURRENT_VERSION}
