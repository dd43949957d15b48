"""
FastAPI Photo Albums API Application.

Main application entry point that configures:
- CORS middleware
- API routers
- Database lifecycle
- Logging system
- Exception handlers
- Prometheus metrics
- Rate limiting
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from album_api.config import get_settings
from album_api.database import close_db, init_db
from album_api.exceptions import AppError, UpstreamError
from album_api.middlewares.logging_middleware import LoggingMiddleware
from album_api.middlewares.rate_limit_middleware import setup_rate_limit_exception_handler
from album_api.routers import (
    albums_router,
    auth_router,
    health_router,
    images_router,
    user_router,
)
from album_api.utils.logger import get_request_id, log_error, log_info, log_warning, setup_logging
from album_api.utils.prometheus_metrics import exceptions_total, ready, setup_prometheus

settings = get_settings()
logger = logging.getLogger("album_api")

# Python logging 설정
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan.

    Startup: 테이블 생성 후 ready=1
    Shutdown: ready=0 (로드밸런서가 새 요청 차단) 후 DB 연결 종료
    """
    await init_db()
    ready.set(1)
    log_info(
        "Application startup completed",
        event="lifecycle",
        version=settings.app_version,
        environment=settings.environment.value,
    )

    yield

    ready.set(0)
    log_info("Application shutdown initiated", event="lifecycle")
    await close_db()
    log_info("Graceful shutdown completed", event="lifecycle")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## Photo Albums API

Albums of images, shared between users by email.

### Features
- **Sign-in**: Google OAuth, session as JWT (cookie or Bearer header)
- **Albums**: Create, update, delete, list own and shared albums
- **Sharing**: Grant access to registered users by email
- **Images**: Upload to Object Storage, tags, favorites, comments
    """,
    openapi_tags=[
        {"name": "Authentication", "description": "Google sign-in and logout"},
        {"name": "User", "description": "Current user profile"},
        {"name": "Albums", "description": "Album management and sharing"},
        {"name": "Images", "description": "Image upload, favorites and comments"},
        {"name": "Health", "description": "Health checks"},
    ],
    lifespan=lifespan,
)

# Prometheus: FastAPI metrics + node info at /metrics
setup_prometheus(app)

# Rate limiting: 예외 처리 핸들러 등록
setup_rate_limit_exception_handler(app)

# 쿠키 인증을 위해 프론트엔드 origin만 허용
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add structured logging middleware
app.add_middleware(LoggingMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """
    Render client-facing errors as {"detail", "error_code", "invalid"?, "request_id"}.
    """
    if isinstance(exc, UpstreamError):
        log_warning(
            "Upstream failure",
            error_code=exc.error_code,
            upstream_service=exc.service,
            http_path=request.url.path,
            event="upstream",
        )

    content = exc.to_dict()
    content["request_id"] = get_request_id()

    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Unhandled exception handler with structured logging.

    모든 처리되지 않은 예외를 캐치하여:
    - ERROR 로그 남김
    - 500 응답 반환 (Request ID 포함)
    """
    exceptions_total.inc()
    rid = get_request_id()

    log_error(
        "Unhandled exception occurred",
        error_type=type(exc).__name__,
        error_code="INTERNAL_SERVER_ERROR",
        http_method=request.method,
        http_path=request.url.path,
        request_id=rid,
        event="exception",
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "request_id": rid,
        },
    )


# Include routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(user_router)
app.include_router(albums_router)
app.include_router(images_router)


@app.get(
    "/",
    tags=["Root"],
    summary="API information",
)
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
