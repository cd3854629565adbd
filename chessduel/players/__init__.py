"""
Opponent factory.

create_opponent() is the single entry point for instantiating any Opponent.
The special provider name "random" needs no provider instance or credentials.
"""

from __future__ import annotations

from chessduel.config import GameConfig
from chessduel.players.base import HistoryEntry, MoveRequest, Opponent, OpponentMove
from chessduel.players.fallback import FALLBACK_REASONING, FallbackSelector, RandomOpponent
from chessduel.players.llm import LLMOpponent
from chessduel.providers.base import LLMProvider

__all__ = [
    "Opponent",
    "OpponentMove",
    "MoveRequest",
    "HistoryEntry",
    "LLMOpponent",
    "RandomOpponent",
    "FallbackSelector",
    "FALLBACK_REASONING",
    "create_opponent",
]


def create_opponent(
    provider_name: str,
    display_name: str,
    game_cfg: GameConfig,
    provider: LLMProvider | None = None,
) -> Opponent:
    """
    Instantiate the correct Opponent.

    For LLM-backed providers, pass a pre-built LLMProvider. The fallback
    selector is seeded from game.fallback_seed so games can be reproduced.
    """
    selector = FallbackSelector(seed=game_cfg.fallback_seed)
    match provider_name:
        case "random":
            return RandomOpponent(name=display_name, selector=selector)
        case _:
            if provider is None:
                raise ValueError(
                    f"LLMOpponent for provider '{provider_name}' requires a provider instance"
                )
            return LLMOpponent(
                name=display_name,
                provider=provider,
                temperature=game_cfg.temperature,
                move_timeout=game_cfg.move_timeout,
                max_output_tokens=game_cfg.max_output_tokens,
                fallback=selector,
            )
