"""
Rate limiting using slowapi.
Protects the OAuth callback from code-guessing and replay floods.
"""
import logging
from typing import Callable

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from album_api.config import get_settings
from album_api.utils.client_ip import get_client_ip
from album_api.utils.prometheus_metrics import rate_limit_hits_total

logger = logging.getLogger("album_api.rate_limit")
settings = get_settings()


def get_client_identifier(request: Request) -> str:
    """Rate limiting 키: 프록시 헤더를 고려한 클라이언트 IP."""
    return get_client_ip(request) or "unknown"


# 메모리 기반 (인스턴스별 카운터)
limiter = Limiter(
    key_func=get_client_identifier,
    enabled=settings.rate_limit_enabled,
    storage_uri="memory://",
)


def setup_rate_limit_exception_handler(app) -> None:
    """
    Rate limit 초과 시 예외 처리 핸들러 등록.
    """
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        endpoint = request.url.path
        rate_limit_hits_total.labels(endpoint=endpoint).inc()

        logger.warning(
            "Rate limit exceeded",
            extra={
                "event": "rate_limit",
                "client_ip": get_client_identifier(request),
                "endpoint": endpoint,
                "limit": getattr(exc, "detail", "unknown"),
            },
        )
        return _rate_limit_exceeded_handler(request, exc)


def get_rate_limit_decorator(limit: str):
    """
    Rate limit 데코레이터 생성 헬퍼.

    Args:
        limit: Rate limit 문자열 (예: "10/minute", "60/hour")

    Returns:
        Rate limit 데코레이터. 비활성화 시 원래 함수를 그대로 반환
    """
    if not settings.rate_limit_enabled:
        def noop_decorator(func: Callable) -> Callable:
            return func
        return noop_decorator

    return limiter.limit(limit)
