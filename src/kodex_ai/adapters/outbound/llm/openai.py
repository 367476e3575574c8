"""OpenAI Chat Completions provider."""

from __future__ import annotations

from typing import Any

from kodex_ai.adapters.outbound.llm.base import ChatCompletionProvider


class OpenAIProvider(ChatCompletionProvider):
    name = "openai"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _complete(self, system_prompt: str, user_prompt: str) -> tuple[str, int]:
        response = await self._client.post(
            f"{self._base_url}/chat/completions",
            headers=self._headers(),
            json={
                "model": self._model,
                "temperature": self._temperature,
                "max_tokens": self._max_tokens,
                "response_format": {"type": "json_object"},
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            },
        )
        response.raise_for_status()
        data: dict[str, Any] = response.json()
        choices = data.get("choices") or [{}]
        text = choices[0].get("message", {}).get("content") or ""
        tokens = int(data.get("usage", {}).get("total_tokens", 0))
        return text, tokens
