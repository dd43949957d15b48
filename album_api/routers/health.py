"""
Health Check 라우터.

로드밸런서/Kubernetes probe용 엔드포인트를 제공합니다.
"""
import asyncio
import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text

from album_api.config import get_settings
from album_api.database import engine
from album_api.utils.prometheus_metrics import REGISTRY, Gauge, ready

logger = logging.getLogger("album_api.health")
router = APIRouter(prefix="/health", tags=["Health"])

settings = get_settings()

DB_CHECK_TIMEOUT_SECONDS = 1.0

health_check_status = Gauge(
    "album_api_health_check_status",
    "Health check status (1=healthy, 0=unhealthy)",
    ["check_type"],
    registry=REGISTRY,
)


async def _check_db() -> None:
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))


async def _ensure_db(check_type: str) -> None:
    """DB 연결 확인. 실패 시 503."""
    try:
        await asyncio.wait_for(_check_db(), timeout=DB_CHECK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("DB health check timeout", extra={"event": "health", "check_type": check_type})
        health_check_status.labels(check_type=check_type).set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection timeout",
        )
    except Exception as e:
        logger.warning(
            "DB health check failed",
            extra={"event": "health", "check_type": check_type, "error_type": type(e).__name__},
        )
        health_check_status.labels(check_type=check_type).set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection failed",
        )


def _ensure_ready(check_type: str) -> None:
    if ready._value.get() == 0:
        health_check_status.labels(check_type=check_type).set(0)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application is not ready",
        )


@router.get(
    "",
    summary="Health check (fast)",
)
async def health_check() -> Dict[str, Any]:
    """
    빠른 Health Check (로드밸런서용).
    Ready 상태와 DB 연결을 짧은 타임아웃으로 확인합니다.
    """
    start_time = time.perf_counter()
    _ensure_ready("fast")
    await _ensure_db("fast")

    health_check_status.labels(check_type="fast").set(1)
    return {
        "status": "healthy",
        "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
        "instance": settings.instance_ip or "unknown",
    }


@router.get(
    "/liveness",
    summary="Liveness probe (Kubernetes)",
)
async def liveness_probe() -> Dict[str, str]:
    """애플리케이션이 살아있는지만 확인합니다."""
    if ready._value.get() == 0:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application is shutting down",
        )
    return {"status": "alive"}


@router.get(
    "/readiness",
    summary="Readiness probe (Kubernetes)",
)
async def readiness_probe() -> Dict[str, str]:
    """요청을 처리할 준비가 되었는지 (ready + DB) 확인합니다."""
    _ensure_ready("readiness")
    await _ensure_db("readiness")
    health_check_status.labels(check_type="readiness").set(1)
    return {"status": "ready"}
