"""Kodex AI — Application Configuration."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kodex_ai.domain.enums import RequestType
from kodex_ai.shared.engine.types import (
    CacheConfig,
    EngineConfig,
    QueueConfig,
    RateLimitConfig,
    SelectorConfig,
)


class Environment(str, enum.Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Centralised, validated configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    app_name: str = "kodex-ai"
    app_env: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Providers ────────────────────────────────────────────
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    anthropic_max_tokens: int = Field(4000, gt=0)
    anthropic_temperature: float = Field(0.7, ge=0.0, le=2.0)

    openai_api_key: str = ""
    openai_model: str = "gpt-4"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_max_tokens: int = Field(4000, gt=0)
    openai_temperature: float = Field(0.7, ge=0.0, le=2.0)

    fallback_enabled: bool = True
    fallback_templates: dict[str, str] = Field(default_factory=dict)

    provider_timeout_seconds: float = Field(60.0, gt=0)
    availability_cache_seconds: float = Field(30.0, ge=0)

    # Comma-separated, most preferred first
    provider_preference: str = "claude,openai,fallback"
    fallback_provider_name: str = "fallback"

    # ── Rate limiting ────────────────────────────────────────
    requests_per_minute: int = Field(60, ge=0)
    requests_per_hour: int = Field(1000, ge=0)
    requests_per_day: int = Field(10000, ge=0)

    # ── Queue ────────────────────────────────────────────────
    queue_max_size: int = Field(100, ge=0)
    queue_timeout_seconds: float = Field(30.0, gt=0)
    queue_retries: int = Field(3, ge=0)
    queue_retry_backoff_seconds: float = Field(1.0, ge=0)
    queue_poll_interval_seconds: float = Field(0.1, gt=0)

    # ── Caching ──────────────────────────────────────────────
    cache_enabled: bool = True
    cache_ttl_seconds: float = Field(300.0, ge=0)
    cache_max_size: int = Field(1000, ge=0)

    # ── Derived helpers ──────────────────────────────────────
    @property
    def is_production(self) -> bool:
        return self.app_env == Environment.PRODUCTION

    @property
    def preference_order(self) -> tuple[str, ...]:
        return tuple(
            name.strip().lower() for name in self.provider_preference.split(",") if name.strip()
        )

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("provider_preference")
    @classmethod
    def _validate_preference(cls, v: str) -> str:
        if not any(name.strip() for name in v.split(",")):
            raise ValueError("provider_preference must name at least one provider")
        return v

    @model_validator(mode="after")
    def _default_json_logs(self) -> Settings:
        if self.json_logs is None:
            self.json_logs = self.is_production
        return self

    def engine_config(self) -> EngineConfig:
        """Translate flat settings into the engine's frozen config tree."""
        order = self.preference_order
        return EngineConfig(
            rate_limiting=RateLimitConfig(
                requests_per_minute=self.requests_per_minute,
                requests_per_hour=self.requests_per_hour,
                requests_per_day=self.requests_per_day,
            ),
            queue=QueueConfig(
                max_size=self.queue_max_size,
                timeout_s=self.queue_timeout_seconds,
                retries=self.queue_retries,
                retry_backoff_s=self.queue_retry_backoff_seconds,
                poll_interval_s=self.queue_poll_interval_seconds,
            ),
            caching=CacheConfig(
                enabled=self.cache_enabled,
                ttl_s=self.cache_ttl_seconds,
                max_size=self.cache_max_size,
            ),
            selector=SelectorConfig(
                preferences={rt: order for rt in RequestType},
                fallback_provider=self.fallback_provider_name,
            ),
        )


def get_settings(**overrides: Any) -> Settings:
    """Factory that allows test-time overrides."""
    return Settings(**overrides)
