"""
API v1 router registry.
"""
from fastapi import APIRouter

from docspace.modules.activity.router import router as activity_router
from docspace.modules.auth.router import router as auth_router
from docspace.modules.comments.router import router as comments_router
from docspace.modules.invitations.router import router as invitations_router
from docspace.modules.webhooks.router import router as webhooks_router
from docspace.modules.workspace.router import router as workspaces_router

from .health import router as health_router

# Create v1 router
v1_router = APIRouter(prefix="/v1")

# Include all v1 routers
v1_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
v1_router.include_router(workspaces_router, tags=["Workspaces"])
v1_router.include_router(invitations_router, tags=["Invitations"])
v1_router.include_router(webhooks_router, tags=["Webhooks"])
v1_router.include_router(comments_router, prefix="/comments", tags=["Comments"])
v1_router.include_router(activity_router, tags=["Activity"])
v1_router.include_router(health_router, tags=["Health & Monitoring"])


@v1_router.get("/info")
async def api_info():
    """Get API v1 information."""
    return {
        "version": "v1",
        "endpoints": {
            "auth": "/api/v1/auth",
            "workspaces": "/api/v1/workspaces",
            "invitations": "/api/v1/invitations",
            "comments": "/api/v1/comments",
            "health": "/api/v1/health/detailed",
        },
    }
