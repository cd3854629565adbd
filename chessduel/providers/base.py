"""
Abstract LLM provider interface.

All concrete providers (OpenAI, Anthropic, Google) implement LLMProvider.
The opponent sends a single prompt string and gets free-form text back;
nothing about the format, legality or determinism of that text is promised.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

# Message fragments that mark a credential problem rather than a transient failure
_AUTH_MARKERS = re.compile(
    r"api[ _-]?key|authenticat|unauthori[sz]ed|permission denied|\b401\b|\b403\b",
    re.IGNORECASE,
)


class LLMProvider(ABC):
    """Abstract base for all LLM API backends."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent to the API."""
        ...

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        max_tokens: int = 1024,
    ) -> str:
        """
        Send a single-turn prompt to the LLM and return the raw text response.

        Args:
            prompt: The full user prompt.
            temperature: Sampling temperature; None leaves the provider default.
            max_tokens: Token budget for the response.

        Raises:
            AuthenticationError: the credential was rejected.
            ProviderError: any other transport or API failure.
        """
        ...


class ProviderError(Exception):
    """Raised when a provider API call fails unrecoverably."""

    def __init__(self, provider: str, message: str, cause: Exception | None = None) -> None:
        self.provider = provider
        self.cause = cause
        super().__init__(f"[{provider}] {message}")


class AuthenticationError(ProviderError):
    """The provider rejected the credential (missing, invalid, expired or unauthorized)."""


def wrap_provider_error(
    provider: str,
    exc: Exception,
    *,
    status_code: int | None = None,
    is_auth: bool = False,
) -> ProviderError:
    """
    Wrap an SDK exception into ProviderError, or AuthenticationError when the
    exception type, status code or message identifies a credential problem.
    """
    if isinstance(exc, ProviderError):
        return exc
    if status_code is None:
        status_code = getattr(exc, "status_code", None)
    message = str(exc) or exc.__class__.__name__
    if is_auth or status_code in (401, 403) or _AUTH_MARKERS.search(message):
        return AuthenticationError(provider, message, cause=exc)
    return ProviderError(provider, message, cause=exc)
