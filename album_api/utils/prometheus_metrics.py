"""
Prometheus metrics for stability, availability and business events.

- FastAPI: request count, latency (Instrumentator)
- Stability: exceptions_total, db_errors_total, external_request_errors_total
- HA: ready gauge (1=up, 0=shutting down)
- Business: logins, album operations, shares, uploads, authorization denials
"""
import logging
import socket
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from prometheus_client import REGISTRY, Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from album_api.config import get_settings

logger = logging.getLogger(__name__)

# --- Stability ---
exceptions_total = Counter(
    "album_api_exceptions_total",
    "Total unhandled exceptions",
    registry=REGISTRY,
)
db_errors_total = Counter(
    "album_api_db_errors_total",
    "Total database session/transaction errors",
    registry=REGISTRY,
)
external_request_errors_total = Counter(
    "album_api_external_request_errors_total",
    "Total external API request failures",
    ["service"],
    registry=REGISTRY,
)
external_request_total = Counter(
    "album_api_external_request_total",
    "Total external API requests by service and outcome",
    ["service", "status"],  # status: success | failure
    registry=REGISTRY,
)
external_request_duration_seconds = Histogram(
    "album_api_external_request_duration_seconds",
    "External API request duration in seconds",
    ["service", "result"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=REGISTRY,
)

# --- HA ---
ready = Gauge(
    "album_api_ready",
    "Application readiness (1=ready, 0=starting or shutting down)",
    registry=REGISTRY,
)

# --- Auth ---
user_login_total = Counter(
    "album_api_user_login_total",
    "Login attempts through the identity provider",
    ["result"],  # success | failure
    registry=REGISTRY,
)
users_provisioned_total = Counter(
    "album_api_users_provisioned_total",
    "Users created on first login",
    registry=REGISTRY,
)
authorization_denials_total = Counter(
    "album_api_authorization_denials_total",
    "Requests denied by the authorization engine",
    ["operation"],
    registry=REGISTRY,
)

# --- Albums / images ---
album_operations_total = Counter(
    "album_api_album_operations_total",
    "Album operations",
    ["operation", "result"],
    registry=REGISTRY,
)
album_share_total = Counter(
    "album_api_album_share_total",
    "Album share requests",
    ["result"],  # success | invalid_email | unknown_user
    registry=REGISTRY,
)
image_upload_total = Counter(
    "album_api_image_upload_total",
    "Image upload attempts",
    ["result"],  # success | rejected | failure
    registry=REGISTRY,
)
image_upload_size_bytes = Histogram(
    "album_api_image_upload_size_bytes",
    "Size of accepted image uploads",
    buckets=(64 * 1024, 256 * 1024, 1024 * 1024, 2 * 1024 * 1024, 5 * 1024 * 1024),
    registry=REGISTRY,
)
image_operations_total = Counter(
    "album_api_image_operations_total",
    "Image operations other than upload",
    ["operation", "result"],
    registry=REGISTRY,
)

# --- Rate limit ---
rate_limit_hits_total = Counter(
    "album_api_rate_limit_hits_total",
    "Requests rejected by the rate limiter",
    ["endpoint"],
    registry=REGISTRY,
)


def _node_identity() -> str:
    """Node/instance identifier: NODE_NAME env or hostname."""
    settings = get_settings()
    if settings.node_name:
        return settings.node_name
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


@asynccontextmanager
async def record_external_request(service: str) -> AsyncGenerator[None, None]:
    """
    Context manager to record external request duration, total count, and errors.
    Use around identity provider and object storage HTTP calls.
    """
    start = time.perf_counter()
    exc_raised = None
    try:
        yield
    except Exception as e:
        exc_raised = e
        external_request_errors_total.labels(service=service).inc()
        external_request_total.labels(service=service, status="failure").inc()
        raise
    finally:
        duration = time.perf_counter() - start
        result = "failure" if exc_raised is not None else "success"
        if exc_raised is None:
            external_request_total.labels(service=service, status="success").inc()
        external_request_duration_seconds.labels(service=service, result=result).observe(duration)


def setup_prometheus(app) -> None:
    """
    Register Prometheus instrumentation.

    1. app_info gauge (node/app/version/environment labels).
    2. Instrumentator (FastAPI request metrics) and /metrics endpoint.
    """
    settings = get_settings()

    app_info = Gauge(
        "album_api_app_info",
        "Application and node identity (labels only, value is 1)",
        ["node", "app", "version", "environment"],
        registry=REGISTRY,
    )
    app_info.labels(
        node=_node_identity(),
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    ).set(1)

    # status 라벨을 구체 코드(200, 201, 404, 500 등)로 노출
    Instrumentator(should_group_status_codes=False).instrument(app).expose(
        app, endpoint="/metrics"
    )
