from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SHIPYARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    service_name: str = "shipyard"
    api_prefix: str = "/api"
    allowed_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )
    database_url: str = "sqlite+aiosqlite:///./shipyard.db"

    vercel_api_url: str = "https://api.vercel.com"
    vercel_api_token: str = Field(
        default="",
        description="Bearer token used for every hosting provider call",
    )
    github_api_url: str = "https://api.github.com"
    github_webhook_secret: str | None = Field(
        default=None,
        description="Shared secret for push webhooks; signatures are not enforced when unset",
    )
    http_timeout_seconds: float | None = None

    default_framework: str = "nextjs"
    default_branch: str = "main"
    poll_interval_seconds: float = 3.0
    poll_max_attempts: int | None = None

    better_auth_url: str = Field(
        default="http://localhost:3000",
        description="Better-auth base URL",
    )
    better_auth_internal_url: str | None = Field(
        default=None,
        description="Internal URL for contacting better-auth from backend (optional)",
    )

    log_format: Literal["json", "console"] = "console"
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
