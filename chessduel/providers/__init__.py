"""
Provider factory.

create_provider() is the single entry point for instantiating any LLMProvider.
Groq, OpenRouter and other OpenAI-compatible providers are handled as special
cases of OpenAIProvider with a custom base_url.

To add a new provider:
  1. Create chessduel/providers/<name>.py implementing LLMProvider
  2. Add a case here in create_provider()
  3. Add the provider section to config.yaml and its key prefix to credentials.py
"""

from __future__ import annotations

from chessduel.config import ProviderConfig
from chessduel.providers.base import (
    AuthenticationError,
    LLMProvider,
    ProviderError,
)
from chessduel.providers.openai import OpenAIProvider
from chessduel.providers.anthropic import AnthropicProvider
from chessduel.providers.google import GoogleProvider

__all__ = [
    "LLMProvider",
    "ProviderError",
    "AuthenticationError",
    "OpenAIProvider",
    "AnthropicProvider",
    "GoogleProvider",
    "create_provider",
]


def create_provider(
    provider_name: str,
    model_id: str,
    providers_cfg: dict[str, ProviderConfig],
    api_key: str | None = None,
) -> LLMProvider:
    """
    Instantiate the correct LLMProvider for the given provider name and model ID.

    api_key overrides the key from config.yaml (credentials entered at runtime).
    """
    prov_cfg = providers_cfg.get(provider_name) or ProviderConfig()

    token = api_key or prov_cfg.api_key
    if not token:
        raise ValueError(
            f"Provider '{provider_name}' needs an API key (enter one or set 'api_key' in config.yaml)"
        )

    match provider_name:
        case "openai":
            return OpenAIProvider(api_key=token, model=model_id, base_url=prov_cfg.base_url)
        case "anthropic":
            return AnthropicProvider(api_key=token, model=model_id)
        case "google":
            return GoogleProvider(api_key=token, model=model_id)
        case "groq" | "openrouter":
            if not prov_cfg.base_url:
                raise ValueError(f"{provider_name} provider requires 'base_url' in config")
            return OpenAIProvider(
                api_key=token,
                model=model_id,
                base_url=prov_cfg.base_url,
                provider_label=provider_name,
            )
        case _:
            raise ValueError(
                f"Unknown provider: '{provider_name}'. "
                "Supported: openai, anthropic, google, groq, openrouter"
            )
