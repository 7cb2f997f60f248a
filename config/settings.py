"""Application configuration using pydantic-settings."""

import os
from pathlib import Path
from typing import Annotated, Literal

from fastapi import Depends
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment-specific configuration.

    Configuration priority (highest to lowest):
    1. Environment variables
    2. .env.{ENVIRONMENT} file (e.g., .env.production)
    3. .env file (shared defaults)
    4. Field defaults in this class
    """

    model_config = SettingsConfigDict(
        env_file=(
            ".env",
            f".env.{os.getenv('ENVIRONMENT', 'development')}",
        ),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "PyRock"
    app_version: str = "1.0.0"
    environment: Literal["development", "production", "testing"] = Field(
        default="development",
        description="Application environment",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=3000, description="HTTP/WebSocket listen port")

    # Static assets
    static_dir: str = Field(
        default="public",
        description="Directory served as static assets (frontend and published screenshot)",
    )
    screenshot_filename: str = Field(
        default="screenshot.png",
        description="File name of the published screenshot inside static_dir",
    )

    # Browser session
    navigation_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for page navigation",
    )
    health_check_interval: float = Field(
        default=10.0,
        description="Interval in seconds between session health checks",
    )
    health_probe_timeout: float = Field(
        default=5.0,
        description="Timeout in seconds for the liveness probe script evaluation",
    )
    screenshot_interval: float = Field(
        default=1.0,
        description="Interval in seconds between published screenshots",
    )

    # Recovery
    init_retry_delay: float = Field(
        default=5.0,
        description="Delay in seconds before retrying a failed initialization",
    )
    disconnect_retry_delay: float = Field(
        default=2.0,
        description="Delay in seconds before recovering from a browser disconnect",
    )
    health_retry_delay: float = Field(
        default=1.0,
        description="Delay in seconds before recovering from a failed health check",
    )
    operation_retry_delay: float = Field(
        default=0.0,
        description="Delay in seconds before recovering after an operation hit a dead session",
    )
    max_recovery_attempts: int = Field(
        default=3,
        description="Consecutive failed deferred retries before automatic recovery stops",
    )

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    @property
    def static_path(self) -> Path:
        """Static asset directory as a path."""
        return Path(self.static_dir)

    @property
    def screenshot_path(self) -> Path:
        """Well-known location of the published screenshot."""
        return self.static_path / self.screenshot_filename

    @field_validator(
        "navigation_timeout",
        "health_check_interval",
        "health_probe_timeout",
        "screenshot_interval",
    )
    @classmethod
    def validate_positive_interval(cls, v: float) -> float:
        """Validate intervals and timeouts are positive."""
        if v <= 0:
            raise ValueError("intervals and timeouts must be greater than 0")
        return v

    @field_validator(
        "init_retry_delay",
        "disconnect_retry_delay",
        "health_retry_delay",
        "operation_retry_delay",
    )
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        """Validate retry delays are not negative."""
        if v < 0:
            raise ValueError("retry delays must not be negative")
        return v

    @field_validator("max_recovery_attempts")
    @classmethod
    def validate_max_recovery_attempts(cls, v: int) -> int:
        """Validate max recovery attempts is positive."""
        if v < 1:
            raise ValueError("max_recovery_attempts must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid option."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper


def get_settings() -> Settings:
    """Get settings instance for dependency injection.

    FastAPI will cache this automatically within the same request.
    The instance is lightweight to create.
    """
    return Settings()


# Type alias for dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
