import unittest

from chessduel.config import ProviderConfig
from chessduel.providers import (
    AnthropicProvider,
    AuthenticationError,
    OpenAIProvider,
    ProviderError,
    create_provider,
)
from chessduel.providers.base import wrap_provider_error
from chessduel.providers.openai import _is_reasoning_model


class _StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class WrapProviderErrorTests(unittest.TestCase):
    def test_status_code_marks_auth(self) -> None:
        err = wrap_provider_error("openai", _StatusError("denied", 401))
        self.assertIsInstance(err, AuthenticationError)
        self.assertIs(err.cause.__class__, _StatusError)

    def test_message_marks_auth(self) -> None:
        err = wrap_provider_error("google", RuntimeError("API key not valid. Please pass a valid API key."))
        self.assertIsInstance(err, AuthenticationError)

    def test_transient_failure_is_plain_provider_error(self) -> None:
        err = wrap_provider_error("openai", _StatusError("Service Unavailable", 503))
        self.assertIsInstance(err, ProviderError)
        self.assertNotIsInstance(err, AuthenticationError)
        self.assertIn("[openai]", str(err))

    def test_provider_errors_pass_through(self) -> None:
        original = ProviderError("anthropic", "overloaded")
        self.assertIs(wrap_provider_error("anthropic", original), original)


class CreateProviderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.providers = {
            "openai": ProviderConfig(api_key="sk-from-config"),
            "anthropic": ProviderConfig(),
            "groq": ProviderConfig(api_key="gsk_x"),
        }

    def test_openai_uses_config_key(self) -> None:
        provider = create_provider("openai", "gpt-4o", self.providers)
        self.assertIsInstance(provider, OpenAIProvider)
        self.assertEqual(provider.model, "gpt-4o")

    def test_runtime_key_overrides_missing_config_key(self) -> None:
        provider = create_provider("anthropic", "claude-sonnet-4-5", self.providers, api_key="sk-ant-x")
        self.assertIsInstance(provider, AnthropicProvider)

    def test_missing_key_raises(self) -> None:
        with self.assertRaises(ValueError):
            create_provider("anthropic", "claude-sonnet-4-5", self.providers)

    def test_compatible_provider_needs_base_url(self) -> None:
        with self.assertRaisesRegex(ValueError, "base_url"):
            create_provider("groq", "llama-3.3-70b-versatile", self.providers)

    def test_unknown_provider_raises(self) -> None:
        with self.assertRaisesRegex(ValueError, "Unknown provider"):
            create_provider("mystery", "m", {"mystery": ProviderConfig(api_key="k")})

    def test_reasoning_models_skip_temperature(self) -> None:
        self.assertTrue(_is_reasoning_model("o3-mini"))
        self.assertFalse(_is_reasoning_model("gpt-4o"))


if __name__ == "__main__":
    unittest.main()
