"""Configuration management for linear-rpc."""

import logging
import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env" if os.getenv("ENVIRONMENT") != "test" else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "linear-rpc"
    app_version: str = "0.1.0"
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Linear API
    linear_api_key: Optional[str] = Field(default=None)
    linear_api_url: str = Field(default="https://api.linear.app/graphql")
    linear_http_timeout: float = Field(default=30.0, gt=0)

    # Identifier resolver
    resolver_cache_ttl_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Seconds before the whole resolver cache is considered stale",
    )

    # Retry policy
    retry_max_retries: int = Field(default=3, ge=0)
    retry_min_delay: float = Field(default=1.0, gt=0)
    retry_max_delay: float = Field(default=10.0, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        level = str(v or "INFO").upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(_LOG_LEVELS)}")
        return level

    @model_validator(mode="after")
    def validate_retry_bounds(self):
        if self.retry_max_delay < self.retry_min_delay:
            raise ValueError("retry_max_delay must be >= retry_min_delay")
        return self

    def get_log_level(self) -> int:
        """Numeric logging level for the configured level name."""
        return getattr(logging, self.log_level, logging.INFO)

    def get_auth_value(self) -> str:
        """Authorization header value for the Linear API.

        Personal API keys are sent bare; OAuth tokens need the Bearer prefix.
        """
        key = self.linear_api_key or ""
        if key.startswith("lin_oauth_"):
            return f"Bearer {key}"
        return key


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
