"""
Google Gemini provider via the google-genai SDK (v1.x, native async).

google-genai reports HTTP failures as errors.APIError with a numeric `code`;
401/403 are treated as credential failures.
"""

from __future__ import annotations

import logging

from google import genai
from google.genai import errors, types

from chessduel.providers.base import LLMProvider, wrap_provider_error

logger = logging.getLogger(__name__)


class GoogleProvider(LLMProvider):
    def __init__(self, api_key: str, model: str) -> None:
        self._model_name = model
        self._client = genai.Client(api_key=api_key)

    @property
    def model(self) -> str:
        return self._model_name

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        max_tokens: int = 1024,
    ) -> str:
        gen_config = types.GenerateContentConfig(
            max_output_tokens=max_tokens,
            temperature=temperature,
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model_name,
                contents=prompt,
                config=gen_config,
            )
        except errors.APIError as exc:
            logger.error("complete() failed [provider=google model=%s]: %s",
                         self._model_name, exc, exc_info=True)
            raise wrap_provider_error("google", exc, status_code=exc.code) from exc
        except Exception as exc:
            logger.error("complete() failed [provider=google model=%s]: %s",
                         self._model_name, exc, exc_info=True)
            raise wrap_provider_error("google", exc) from exc
        return (response.text or "").strip()
