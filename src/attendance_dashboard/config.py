"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base_url: str = "http://localhost:5000"
    api_token: str
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    session_ttl_seconds: float = Field(default=120.0, gt=0)
    roster_settle_delay_seconds: float = Field(default=1.0, ge=0)
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=1.0, ge=0)
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
