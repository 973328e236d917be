"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="inquiry-board", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/inquiry_board",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Credential Vault ==========
    credential_key: str = Field(
        default="",
        description="Symmetric key used to encrypt server passwords at rest"
    )

    # ========== Reasoning Service ==========
    llm_provider: str = Field(
        default="cli",
        description="Reasoning backend: openai, zai, cli or mock"
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    zai_api_key: Optional[str] = Field(default=None, description="Z.AI API key")
    llm_model: str = Field(default="gpt-4o", description="Model used for analysis")
    llm_temperature: float = Field(
        default=0.3,
        description="Sampling temperature",
        ge=0.0,
        le=1.0
    )
    llm_max_tokens: int = Field(
        default=4000,
        description="Max tokens for an analysis report",
        ge=1,
        le=16000
    )
    reasoning_cli_path: Path = Field(
        default=Path("/usr/local/bin/claude"),
        description="Reasoning CLI binary, run non-interactively"
    )

    # ========== Notifications ==========
    telegram_bot_token: Optional[str] = Field(default=None, description="Telegram bot token")
    telegram_chat_id: Optional[str] = Field(default=None, description="Telegram chat receiving alerts")
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook URL, used when Telegram is not configured"
    )
    notification_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for notification calls",
        ge=0.1,
        le=30
    )

    # ========== Server Diagnostics ==========
    ssh_connect_timeout_seconds: int = Field(default=10, description="SSH connect timeout", ge=1)
    probe_timeout_seconds: float = Field(
        default=30.0,
        description="Wall-clock limit for a single remote probe",
        ge=1
    )

    # ========== Triage Worker ==========
    worker_batch_size: int = Field(default=5, description="Tickets taken per tick", ge=1)
    worker_pause_seconds: float = Field(
        default=2.0,
        description="Pause between tickets to respect reasoning-service rate limits",
        ge=0
    )
    worker_lock_path: Path = Field(
        default=Path("/tmp/inquiry_board_worker.lock"),
        description="Sentinel file guarding against overlapping ticks"
    )
    worker_lock_stale_seconds: int = Field(
        default=300,
        description="Age after which a sentinel is treated as orphaned",
        ge=1
    )
    worker_interval_seconds: int = Field(
        default=60,
        description="Seconds between ticks when running the built-in scheduler",
        ge=10
    )
    max_analysis_attempts: int = Field(
        default=5,
        description="Failed analysis passes before a ticket is parked (0 = unlimited)",
        ge=0
    )
    run_worker_in_api: bool = Field(
        default=False,
        description="Run the worker scheduler inside the API process instead of from cron"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Ensure the reasoning backend is a known one."""
        allowed = {"openai", "zai", "cli", "mock"}
        v = v.lower()
        if v not in allowed:
            raise ValueError(f"llm_provider must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class TicketCategory(str):
    """Inquiry categories chosen by the user when filing."""
    URGENT = "긴급"
    ERROR = "오류"
    SUGGESTION = "건의"
    FEATURE = "추가개발"
    OTHER = "기타"

