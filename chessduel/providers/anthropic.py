"""
Anthropic (Claude) provider.

The prompt is sent as a single user turn; Anthropic requires max_tokens on
every request.
"""

from __future__ import annotations

import logging

import anthropic

from chessduel.providers.base import LLMProvider, wrap_provider_error

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    def __init__(self, api_key: str, model: str) -> None:
        self._model = model
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        max_tokens: int = 1024,
    ) -> str:
        request_kwargs: dict = {}
        if temperature is not None:
            request_kwargs["temperature"] = temperature
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
                **request_kwargs,
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as exc:
            logger.error("complete() rejected credentials [provider=anthropic model=%s]: %s",
                         self._model, exc)
            raise wrap_provider_error("anthropic", exc, is_auth=True) from exc
        except Exception as exc:
            logger.error("complete() failed [provider=anthropic model=%s]: %s",
                         self._model, exc, exc_info=True)
            raise wrap_provider_error("anthropic", exc) from exc
        block = response.content[0] if response.content else None
        return (block.text if block is not None and hasattr(block, "text") else "").strip()
