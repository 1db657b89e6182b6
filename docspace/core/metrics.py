"""
Prometheus metrics configuration for monitoring.
"""
import time

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

# Request metrics
request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

active_requests = Gauge(
    'http_requests_active',
    'Number of active HTTP requests'
)

# Authentication metrics
auth_attempts = Counter(
    'auth_attempts_total',
    'Total authentication attempts',
    ['status']
)

# Webhook metrics
webhook_deliveries = Counter(
    'webhook_deliveries_total',
    'Webhook delivery attempts',
    ['event', 'outcome']
)

webhook_delivery_duration = Histogram(
    'webhook_delivery_duration_seconds',
    'Webhook delivery duration in seconds',
    ['event']
)

# Invitation metrics
invitation_transitions = Counter(
    'invitation_transitions_total',
    'Invitation status transitions',
    ['status']
)

# Background work
background_task_failures = Counter(
    'background_task_failures_total',
    'Background tasks that raised',
    ['task']
)

background_tasks_active = Gauge(
    'background_tasks_active',
    'Background tasks currently running'
)

# Celery metrics
celery_task_count = Counter(
    'celery_tasks_total',
    'Total Celery tasks',
    ['task_name', 'status']
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect Prometheus metrics."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        active_requests.inc()
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            endpoint = self._get_endpoint_name(request)
            request_count.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code
            ).inc()
            request_duration.labels(
                method=request.method,
                endpoint=endpoint
            ).observe(time.perf_counter() - start_time)
            active_requests.dec()

    def _get_endpoint_name(self, request: Request) -> str:
        """Route template (``/api/v1/workspaces/{workspace_id}``) or raw path."""
        route = request.scope.get("route")
        if route is not None and getattr(route, "path", None):
            return route.path
        return "unmatched"


def record_auth_attempt(success: bool = True):
    """Record authentication attempt metrics."""
    status = "success" if success else "failure"
    auth_attempts.labels(status=status).inc()


def record_webhook_delivery(event: str, success: bool, duration: float):
    """Record one webhook delivery attempt."""
    outcome = "success" if success else "failure"
    webhook_deliveries.labels(event=event, outcome=outcome).inc()
    webhook_delivery_duration.labels(event=event).observe(duration)


def record_invitation_transition(status: str, count: int = 1):
    """Record invitation status changes."""
    if count > 0:
        invitation_transitions.labels(status=status).inc(count)


def record_background_failure(task: str):
    """Record a background task that raised."""
    background_task_failures.labels(task=task).inc()


def record_celery_task(task_name: str, success: bool = True):
    """Record Celery task metrics."""
    status = "success" if success else "error"
    celery_task_count.labels(task_name=task_name, status=status).inc()


def get_metrics() -> bytes:
    """Get Prometheus metrics in text format."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get Prometheus metrics content type."""
    return CONTENT_TYPE_LATEST
