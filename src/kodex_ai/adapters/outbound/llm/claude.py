"""Anthropic Messages API provider."""

from __future__ import annotations

from typing import Any

from kodex_ai.adapters.outbound.llm.base import ChatCompletionProvider

ANTHROPIC_VERSION = "2023-06-01"


class ClaudeProvider(ChatCompletionProvider):
    name = "claude"

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    async def _complete(self, system_prompt: str, user_prompt: str) -> tuple[str, int]:
        response = await self._client.post(
            f"{self._base_url}/messages",
            headers=self._headers(),
            json={
                "model": self._model,
                "max_tokens": self._max_tokens,
                "temperature": self._temperature,
                "system": system_prompt,
                "messages": [{"role": "user", "content": user_prompt}],
            },
        )
        response.raise_for_status()
        data: dict[str, Any] = response.json()
        text = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type", "text") == "text"
        )
        usage = data.get("usage", {})
        tokens = int(usage.get("input_tokens", 0)) + int(usage.get("output_tokens", 0))
        return text, tokens
