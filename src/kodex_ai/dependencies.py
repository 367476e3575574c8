"""Engine wiring — builds providers and the engine from settings.

There is no module-level singleton: the application constructs one engine
at startup and passes it to its call sites.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

import structlog

from kodex_ai.adapters.outbound.llm import build_providers
from kodex_ai.config import Settings, get_settings
from kodex_ai.ports.outbound import PerformanceMeasurer
from kodex_ai.shared.engine import AIServiceEngine, ProviderRegistry
from kodex_ai.shared.observability import configure_logging

logger = structlog.get_logger(__name__)


def build_engine(
    settings: Settings | None = None,
    *,
    measurer: PerformanceMeasurer | None = None,
) -> AIServiceEngine:
    settings = settings or get_settings()
    registry = ProviderRegistry(build_providers(settings))
    return AIServiceEngine(registry, settings.engine_config(), measurer=measurer)


@asynccontextmanager
async def engine_lifespan(settings: Settings | None = None) -> AsyncIterator[AIServiceEngine]:
    """Run an engine for the duration of the block, then stop it and close providers."""
    settings = settings or get_settings()
    configure_logging(log_level=settings.log_level, json_logs=bool(settings.json_logs))

    engine = build_engine(settings)
    logger.info(
        "engine_starting",
        app=settings.app_name,
        env=settings.app_env.value,
        providers=engine.get_available_providers(),
    )
    await engine.start()
    try:
        yield engine
    finally:
        await engine.stop()
        await engine.registry.close()
        logger.info("engine_shutdown")
