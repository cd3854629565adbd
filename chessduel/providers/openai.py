"""
OpenAI provider — also handles any OpenAI-compatible API (pass base_url).

Parameter compatibility notes:
- max_completion_tokens: used by all models (replaces the deprecated max_tokens).
- temperature: not supported by reasoning models (o1, o3, o4-series); omitted for those.
"""

from __future__ import annotations

import logging

from openai import (
    AsyncOpenAI,
    AuthenticationError as _OpenAIAuthError,
    PermissionDeniedError as _OpenAIPermissionError,
)

from chessduel.providers.base import LLMProvider, wrap_provider_error

logger = logging.getLogger(__name__)

# Reasoning models don't accept a custom temperature (must be omitted or 1)
_REASONING_PREFIXES = ("o1", "o3", "o4")


def _is_reasoning_model(model: str) -> bool:
    return any(model.startswith(p) for p in _REASONING_PREFIXES)


class OpenAIProvider(LLMProvider):
    """Supports all OpenAI chat models and OpenAI-compatible endpoints."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        provider_label: str = "openai",
    ) -> None:
        self._model = model
        self._provider_label = provider_label
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)

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
        if temperature is not None and not _is_reasoning_model(self._model):
            request_kwargs["temperature"] = temperature
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                max_completion_tokens=max_tokens,
                **request_kwargs,
            )
        except (_OpenAIAuthError, _OpenAIPermissionError) as exc:
            logger.error("complete() rejected credentials [provider=%s model=%s]: %s",
                         self._provider_label, self._model, exc)
            raise wrap_provider_error(self._provider_label, exc, is_auth=True) from exc
        except Exception as exc:
            logger.error("complete() failed [provider=%s model=%s]: %s",
                         self._provider_label, self._model, exc, exc_info=True)
            raise wrap_provider_error(self._provider_label, exc) from exc
        return (response.choices[0].message.content or "").strip()
