"""
Configuration loading from config.yaml.

Uses typed dataclasses throughout so the rest of the app gets IDE
completion and type-checker support without touching raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from chessduel.events import Color


@dataclass
class GameConfig:
    starting_seconds: int = 600     # per side
    history_window: int = 7         # trailing half-moves shown to the model
    temperature: float = 0.5
    move_timeout: int = 120         # seconds before a model response is abandoned
    max_output_tokens: int = 1024
    player_color: Color = "white"
    fallback_seed: int | None = None
    log_conversations: bool = True
    log_dir: str = "./logs"


@dataclass
class ModelEntry:
    id: str    # model ID sent to the API
    name: str  # display name shown in the UI


@dataclass
class ProviderConfig:
    api_key: str = ""
    models: list[ModelEntry] = field(default_factory=list)
    base_url: str | None = None


@dataclass
class Config:
    game: GameConfig
    providers: dict[str, ProviderConfig]

    @property
    def log_dir_path(self) -> Path:
        return Path(self.game.log_dir)

    def all_models(self) -> list[tuple[str, ModelEntry]]:
        """Return a flat list of (provider_name, ModelEntry) across all providers."""
        return [
            (provider_name, model)
            for provider_name, prov_cfg in self.providers.items()
            for model in prov_cfg.models
        ]

    def find_model(self, provider_name: str, model_id: str) -> ModelEntry | None:
        prov = self.providers.get(provider_name)
        if prov is None:
            return None
        return next((m for m in prov.models if m.id == model_id), None)


def default_config() -> Config:
    """Built-in configuration used when no config.yaml is present."""
    return Config(
        game=GameConfig(),
        providers={
            "openai": ProviderConfig(
                models=[
                    ModelEntry(id="gpt-4o", name="GPT-4o (Best quality)"),
                    ModelEntry(id="gpt-4-turbo", name="GPT-4 Turbo"),
                    ModelEntry(id="gpt-3.5-turbo", name="GPT-3.5 Turbo (Faster)"),
                ],
            ),
        },
    )


def load_config(path: str | Path = "config.yaml") -> Config:
    """
    Load and validate config.yaml.

    Raises:
        FileNotFoundError: config.yaml is missing.
        ValueError: required fields are absent or invalid.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {cfg_path.resolve()}\n"
            "Copy config.example.yaml to config.yaml and adjust it."
        )

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        game_raw = raw.get("game") or {}
        seed = game_raw.get("fallback_seed")
        game_cfg = GameConfig(
            starting_seconds=int(game_raw.get("starting_seconds", 600)),
            history_window=int(game_raw.get("history_window", 7)),
            temperature=float(game_raw.get("temperature", 0.5)),
            move_timeout=int(game_raw.get("move_timeout", 120)),
            max_output_tokens=int(game_raw.get("max_output_tokens", 1024)),
            player_color=game_raw.get("player_color", "white"),
            fallback_seed=int(seed) if seed is not None else None,
            log_conversations=bool(game_raw.get("log_conversations", True)),
            log_dir=str(game_raw.get("log_dir", "./logs")),
        )

        providers_raw = raw.get("providers") or {}
        providers: dict[str, ProviderConfig] = {}
        for provider_name, prov_raw in providers_raw.items():
            prov_raw = prov_raw or {}
            models = [
                ModelEntry(id=str(m["id"]), name=str(m.get("name", m["id"])))
                for m in prov_raw.get("models", [])
            ]
            providers[provider_name] = ProviderConfig(
                api_key=str(prov_raw.get("api_key", "") or ""),
                models=models,
                base_url=prov_raw.get("base_url"),
            )

        config = Config(game=game_cfg, providers=providers or default_config().providers)
        _validate(config)
        return config

    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc


def _validate(config: Config) -> None:
    if config.game.player_color not in ("white", "black"):
        raise ValueError(
            f"game.player_color must be 'white' or 'black', got '{config.game.player_color}'"
        )
    if config.game.starting_seconds < 1:
        raise ValueError("game.starting_seconds must be >= 1")
    if config.game.history_window < 0:
        raise ValueError("game.history_window must be >= 0")
    if config.game.move_timeout < 1:
        raise ValueError("game.move_timeout must be >= 1")
    if not 0.0 <= config.game.temperature <= 2.0:
        raise ValueError("game.temperature must be between 0 and 2")
