"""Registry of configured providers, in registration order."""

from __future__ import annotations

from typing import Iterator, Sequence

import structlog

from kodex_ai.ports.outbound import AIProvider

logger = structlog.get_logger(__name__)


class ProviderRegistry:
    """Owns the provider capabilities for the engine's lifetime."""

    def __init__(self, providers: Sequence[AIProvider] = ()) -> None:
        self._providers: dict[str, AIProvider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: AIProvider) -> None:
        if provider.name in self._providers:
            raise ValueError(f"Provider {provider.name!r} is already registered")
        self._providers[provider.name] = provider
        logger.info("provider_registered", provider=provider.name)

    def names(self) -> list[str]:
        return list(self._providers)

    async def probe(self, provider: AIProvider) -> bool:
        """Availability check; raises whatever the provider raises."""
        return bool(await provider.is_available())

    async def status(self) -> dict[str, bool]:
        """Availability of every provider; a failing probe reports False."""
        result: dict[str, bool] = {}
        for name, provider in self._providers.items():
            try:
                result[name] = await self.probe(provider)
            except Exception as exc:
                logger.warning("provider_status_probe_failed", provider=name, error=str(exc))
                result[name] = False
        return result

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()

    def __iter__(self) -> Iterator[AIProvider]:
        return iter(list(self._providers.values()))

    def __len__(self) -> int:
        return len(self._providers)
