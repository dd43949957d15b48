"""
Application configuration using Pydantic Settings.
Manages all environment variables and settings.

Settings are built once per process (see get_settings) and are immutable;
components receive them explicitly instead of reading the environment.
"""
from enum import Enum
from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./photo_albums.db"


class Environment(str, Enum):
    """Application environment modes."""
    DEV = "DEV"
    PRODUCTION = "PRODUCTION"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # 환경변수만 사용 (.env 파일 미사용)
    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        frozen=True,
    )

    # Environment
    environment: Environment = Field(
        default=Environment.DEV,
        description="Application environment: DEV or PRODUCTION"
    )

    # Application
    app_name: str = Field(default="Photo Albums API")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    @model_validator(mode="before")
    @classmethod
    def default_debug_from_environment(cls, data: Any) -> Any:
        """Enable debug in DEV unless DEBUG is set explicitly."""
        if isinstance(data, dict) and "debug" not in data:
            env = str(data.get("environment", Environment.DEV.value)).upper()
            data["debug"] = env == Environment.DEV.value
        return data

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEV

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    # Database (빈 문자열이면 기본값 사용)
    database_url: str = Field(default=DEFAULT_DATABASE_URL)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_timeout: int = Field(default=30)
    db_pool_recycle: int = Field(default=1800)

    @field_validator("database_url", mode="before")
    @classmethod
    def coerce_empty_database_url(cls, v: str) -> str:
        if not v or not str(v).strip():
            return DEFAULT_DATABASE_URL
        return v

    # JWT (session credential signing)
    jwt_secret_key: str = Field(default="jwt-secret-change-in-production")
    jwt_algorithm: str = Field(default="HS256")

    # Google OAuth 2.0 (authorization code flow)
    google_client_id: str = Field(default="")
    google_client_secret: str = Field(default="")
    backend_url: str = Field(
        default="http://localhost:4000",
        description="Public URL of this API, used to build the OAuth redirect URI",
    )
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Frontend origin: CORS allow-origin and post-login redirect target",
    )

    # Object Storage (OpenStack Swift API, Keystone v2 token auth)
    storage_auth_url: str = Field(
        default="https://api-identity-infrastructure.nhncloudservice.com/v2.0",
        description="Keystone identity endpoint",
    )
    storage_username: str = Field(default="")
    storage_password: str = Field(default="")
    storage_tenant_id: str = Field(default="")
    storage_url: str = Field(
        default="https://api-storage.nhncloudservice.com/v1",
        description="Swift endpoint (without account)",
    )
    storage_container: str = Field(default="photo-albums")
    storage_public_url: str = Field(
        default="",
        description="Public base URL for stored objects (CDN). Empty = Swift object URL",
    )

    # External calls (identity provider, object storage)
    external_request_timeout_seconds: float = Field(default=10.0, gt=0)

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)
    login_rate_limit: str = Field(default="10/minute")

    # Logging / metrics identity
    log_dir: str = Field(default="/var/log/photo-albums")
    node_name: str = Field(default="", description="Node/Pod identifier for Prometheus labels")
    instance_ip: str = Field(default="", description="서버 사설 IP (비우면 hostname 사용)")

    @property
    def google_redirect_uri(self) -> str:
        return f"{self.backend_url.rstrip('/')}/auth/google/callback"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Built once at first use; every caller shares the same immutable object.
    """
    return Settings()
