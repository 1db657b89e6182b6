"""
Application startup and shutdown event handlers.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import redis.asyncio as redis
from fastapi import FastAPI

from docspace.core.config import settings
from docspace.core.database import close_db, db_manager, init_db
from docspace.core.logger import get_logger

logger = get_logger("events")


def _redact(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url


async def startup_tasks() -> None:
    """Tasks to run on application startup."""
    logger.info("Starting application startup tasks")

    try:
        await init_db()
        logger.info(
            "Application started successfully",
            environment=settings.environment,
            debug=settings.debug,
            database_url=_redact(settings.database_url),
            redis_url=_redact(settings.redis_url),
        )
    except Exception as e:
        logger.error("Startup task failed", error=str(e), exc_info=True)
        raise


async def shutdown_tasks(app: FastAPI) -> None:
    """Tasks to run on application shutdown."""
    logger.info("Starting application shutdown tasks")

    try:
        dispatcher = getattr(app.state, "task_dispatcher", None)
        if dispatcher is not None:
            await dispatcher.shutdown()

        await close_db()
        logger.info("Application shutdown completed successfully")
    except Exception as e:
        logger.error("Shutdown task failed", error=str(e), exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.
    Handles startup and shutdown events.
    """
    await startup_tasks()

    try:
        yield
    finally:
        await shutdown_tasks(app)


async def check_database_health() -> tuple[bool, str]:
    """Check database connection health."""
    if await db_manager.health_check():
        return True, "Database connection successful"
    return False, "Database connection failed"


async def check_redis_health() -> tuple[bool, str]:
    """Check Redis connection health."""
    client = redis.from_url(settings.redis_url)
    try:
        await client.ping()
        return True, "Redis connection successful"
    except (redis.RedisError, OSError) as e:
        return False, f"Redis connection failed: {str(e)}"
    finally:
        await client.aclose()
