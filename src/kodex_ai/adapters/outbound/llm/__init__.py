"""LLM provider adapters implementing the ``AIProvider`` port.

``build_providers`` registers providers in a fixed order:
Claude and OpenAI when their API keys are configured, then the
template fallback when enabled.
"""

from __future__ import annotations

import httpx
import structlog

from kodex_ai.adapters.outbound.llm.claude import ClaudeProvider
from kodex_ai.adapters.outbound.llm.fallback import FallbackProvider
from kodex_ai.adapters.outbound.llm.openai import OpenAIProvider
from kodex_ai.config import Settings
from kodex_ai.ports.outbound import AIProvider

logger = structlog.get_logger(__name__)

__all__ = ["ClaudeProvider", "FallbackProvider", "OpenAIProvider", "build_providers"]


def build_providers(
    settings: Settings,
    *,
    client: httpx.AsyncClient | None = None,
) -> list[AIProvider]:
    """Construct the configured providers from settings."""
    providers: list[AIProvider] = []

    if settings.anthropic_api_key.strip():
        providers.append(
            ClaudeProvider(
                api_key=settings.anthropic_api_key,
                model=settings.anthropic_model,
                base_url=settings.anthropic_base_url,
                max_tokens=settings.anthropic_max_tokens,
                temperature=settings.anthropic_temperature,
                timeout_s=settings.provider_timeout_seconds,
                availability_ttl_s=settings.availability_cache_seconds,
                client=client,
            )
        )

    if settings.openai_api_key.strip():
        providers.append(
            OpenAIProvider(
                api_key=settings.openai_api_key,
                model=settings.openai_model,
                base_url=settings.openai_base_url,
                max_tokens=settings.openai_max_tokens,
                temperature=settings.openai_temperature,
                timeout_s=settings.provider_timeout_seconds,
                availability_ttl_s=settings.availability_cache_seconds,
                client=client,
            )
        )

    if settings.fallback_enabled:
        providers.append(
            FallbackProvider(enabled=True, templates=settings.fallback_templates)
        )

    logger.info("providers_built", providers=[p.name for p in providers])
    return providers
