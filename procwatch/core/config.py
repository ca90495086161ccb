"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "ProcWatch"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    store_cas_retries: int = Field(
        default=5,
        ge=1,
        description="Attempts for optimistic (WATCH/MULTI) updates before giving up",
    )

    # Execution simulation
    execution_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Delay before a started execution is completed",
    )
    step_duration_min_ms: int = Field(default=1000, ge=0)
    step_duration_max_ms: int = Field(default=6000, ge=0)

    # Retention
    max_execution_history: int = Field(default=100, ge=1)
    max_performance_history: int = Field(default=1000, ge=1)
    max_alert_history: int = Field(default=500, ge=1)

    # Alerting
    alert_coalesce_open: bool = Field(
        default=True,
        description="Fold evaluator alerts into an open alert of the same type",
    )
    sla_window_hours: int = Field(default=24, ge=1)

    # Notification
    notification_max_retry: int = Field(
        default=3,
        ge=1,
        description="Maximum notification retry attempts",
    )
    webhook_timeout: float = Field(default=10.0, gt=0)

    # Email (optional)
    smtp_host: str = Field(default="", description="SMTP server host")
    smtp_port: int = Field(default=587, description="SMTP server port")
    smtp_user: str = Field(default="", description="SMTP username")
    smtp_password: str = Field(default="", description="SMTP password")
    smtp_from: str = Field(default="", description="Email sender address")
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS (port 587). Set False for SSL (port 465)")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
