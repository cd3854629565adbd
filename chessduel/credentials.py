"""Validation for the credential / model-selection dialog.

Keys are held in memory for the session only; nothing here touches disk.
"""

from __future__ import annotations

from dataclasses import dataclass

from chessduel.config import Config

# Expected key prefixes per provider. Providers not listed only need a non-empty key.
_KEY_PREFIXES: dict[str, str] = {
    "openai": "sk-",
    "anthropic": "sk-ant-",
    "google": "AIza",
    "groq": "gsk_",
    "openrouter": "sk-or-",
}

_PROVIDER_LABELS: dict[str, str] = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "google": "Google",
    "groq": "Groq",
    "openrouter": "OpenRouter",
}


class CredentialError(ValueError):
    """User-facing validation failure; the message is shown in the dialog."""


@dataclass(frozen=True)
class Credentials:
    provider: str
    api_key: str
    model_id: str

    def __repr__(self) -> str:
        # Never echo the key into logs or tracebacks
        return f"Credentials(provider={self.provider!r}, model_id={self.model_id!r})"


def validate_credentials(
    provider: str,
    api_key: str,
    model_id: str,
    config: Config,
) -> Credentials:
    """
    Check a dialog submission and return normalized Credentials.

    Raises:
        CredentialError: unknown provider/model, empty key or wrong key prefix.
    """
    provider = provider.strip()
    key = api_key.strip()
    label = _PROVIDER_LABELS.get(provider, provider)

    if provider not in config.providers:
        raise CredentialError(f"Unknown provider: {provider!r}")
    if not key:
        raise CredentialError(f"Please enter a valid {label} API key")
    prefix = _KEY_PREFIXES.get(provider)
    if prefix and not key.startswith(prefix):
        raise CredentialError(f"API key should start with '{prefix}'")
    if config.find_model(provider, model_id) is None:
        raise CredentialError(f"Model {model_id!r} is not available for {label}")

    return Credentials(provider=provider, api_key=key, model_id=model_id)
