"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded outside dev defaults)
    - get_settings() is cached (lru_cache) — single instance per process
    - Resolution never raises: an invalid value falls back to the field default
    - A missing backend_api_url is a valid state, detected per operation

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Settings instance is handed to create_app() and injected from app.state,
      so tests build their own instead of patching the environment
"""

import json
import logging
from functools import lru_cache
from typing import Annotated, Any

from pydantic import ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from portfolio.core.domain_types import (
    ImageSourceKind, MetricsBackend, RuntimeEnvironment,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Backend API
    backend_api_url: str | None = None
    backend_api_key: str | None = None

    # Admin session
    admin_password: str = "admin"
    session_secret: str = "dev-secret-change-in-production"
    session_cookie_name: str = "portfolio_session"
    session_max_age_seconds: int = 7 * 24 * 60 * 60

    # Runtime
    environment: RuntimeEnvironment = RuntimeEnvironment.PRODUCTION
    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"
    enable_request_logging: bool = True
    enable_metrics: bool = True
    metrics_backend: MetricsBackend = MetricsBackend.CONSOLE
    metrics_file_path: str = "metrics.ndjson"
    metrics_buffer_size: int = 100
    metrics_flush_interval_seconds: float = 60.0
    cloudwatch_namespace: str = "Portfolio"
    aws_region: str = "us-east-1"

    # Image storage
    image_source: ImageSourceKind = ImageSourceKind.BACKEND
    uploads_dir: str = "public/uploads"
    uploads_public_path: str = "/uploads"

    @field_validator("backend_api_url", "backend_api_key", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v: Any) -> Any:
        """Accept a JSON list or a comma-separated string of origins."""
        if not isinstance(v, str):
            return v
        v = v.strip()
        if v.startswith("["):
            return json.loads(v)
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @field_validator("*", mode="wrap")
    @classmethod
    def fallback_to_default(cls, v: Any, handler, info: ValidationInfo) -> Any:
        """Invalid env values degrade to defaults instead of failing startup."""
        try:
            return handler(v)
        except ValidationError:
            if isinstance(v, str):
                try:
                    return handler(v.strip().lower())
                except ValidationError:
                    pass
            logger.warning(f"Invalid value for setting '{info.field_name}', using default")
            return cls.model_fields[info.field_name].get_default(
                call_default_factory=True,
            )

    @property
    def backend_configured(self) -> bool:
        return bool(self.backend_api_url)

    @property
    def development(self) -> bool:
        return self.environment == RuntimeEnvironment.DEVELOPMENT


@lru_cache
def get_settings() -> Settings:
    return Settings()
