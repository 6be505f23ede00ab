"""
crm_access.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    - Env-driven configuration (prefix `CRM_`)
    - Defaults safe for local dev
    - Single settings object injected across layers
    """

    model_config = SettingsConfigDict(env_prefix="CRM_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "crm-access"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "crm-access"
    jwt_audience: str = "crm-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    jwt_ttl_minutes: int = Field(default=7 * 24 * 60, ge=1)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./crm.db"

    # Assignment engine
    assignment_max_attempts: int = Field(default=16, ge=1)
    assignment_retry_backoff_seconds: float = Field(default=0.01, ge=0)
    assignment_retry_backoff_cap_seconds: float = Field(default=0.2, ge=0)
    assignment_timeout_seconds: float | None = Field(default=5.0, gt=0)
    directory_timeout_seconds: float | None = Field(default=5.0, gt=0)
    unavailable_retry_after_seconds: int = Field(default=30, ge=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every layer reads configuration from here; the assignment knobs are consumed by
# `assignment.engine.AssignmentEngine` through the app factory.
