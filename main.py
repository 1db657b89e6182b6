"""
Docspace Workspaces - Main Application Entry Point
"""
from fastapi import FastAPI, Response

from docspace.api.router import api_router
from docspace.core.config import settings
from docspace.core.events import lifespan
from docspace.core.exceptions import setup_exception_handlers
from docspace.core.logger import get_logger
from docspace.core.metrics import PrometheusMiddleware, get_metrics, get_metrics_content_type
from docspace.core.middleware import setup_middleware
from docspace.core.tasks import BackgroundTaskDispatcher

logger = get_logger(__name__)


def create_application() -> FastAPI:
    """Create and configure FastAPI application."""

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        swagger_ui_parameters={
            "tryItOutEnabled": True,
            "persistAuthorization": True,
        },
    )

    # Per-application state
    app.state.task_dispatcher = BackgroundTaskDispatcher()
    app.state.webhook_transport = None

    # Setup middleware stack
    setup_middleware(app)

    # Setup exception handlers
    setup_exception_handlers(app)

    # Add Prometheus metrics middleware
    app.add_middleware(PrometheusMiddleware)

    # Include API router
    app.include_router(api_router)

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "docs_url": "/docs" if not settings.is_production else None,
            "api_version": "v1"
        }

    @app.get("/health")
    async def health():
        """Simple health check."""
        return {"status": "healthy"}

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=get_metrics(), media_type=get_metrics_content_type())

    logger.info("FastAPI application created and configured")
    return app


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_config=None,  # Use our custom logging
    )
