"""
Typed event dataclasses — the shared language between the orchestrator and any consumer.

The orchestrator (game.py) emits these. The CLI, web UI, or test harness consumes them.
All events are frozen (immutable) so they're safe to pass across async boundaries
and can be trivially serialized to JSON via dataclasses.asdict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Color = Literal["white", "black"]
Side = Literal["player", "opponent"]
GameStatus = Literal["waiting", "playing", "ended"]
GameResult = Literal["none", "player", "opponent", "draw"]
ResultReason = Literal[
    "none",
    "checkmate",
    "stalemate",
    "time",
    "insufficient_material",
    "repetition",
    "fifty_move",
    "resignation",
]
FailureKind = Literal["malformed", "illegal", "transport", "auth"]


def other_side(side: Side) -> Side:
    return "opponent" if side == "player" else "player"


@dataclass(frozen=True)
class GameStartEvent:
    game_id: int
    player_color: Color
    model_name: str
    fen: str
    starting_seconds: int
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ThinkingEvent:
    """The opponent request for this ply has been sent."""
    ply: int


@dataclass(frozen=True)
class MoveRejectedEvent:
    from_square: str
    to_square: str
    reason: str


@dataclass(frozen=True)
class ResponseRejectedEvent:
    kind: FailureKind
    error: str
    raw_response: str    # unmodified model output ("" on transport failure)


@dataclass(frozen=True)
class AuthRequiredEvent:
    message: str


@dataclass(frozen=True)
class MoveAppliedEvent:
    ply: int
    mover: Side
    from_square: str
    to_square: str
    promotion: str | None
    san: str
    piece: str
    captured: str | None
    fen_after: str
    reasoning: str | None
    fallback: bool
    is_check: bool
    is_checkmate: bool


@dataclass(frozen=True)
class CheckEvent:
    side_in_check: Side
    square: str


@dataclass(frozen=True)
class ClockTickEvent:
    running: Side
    player_remaining: int
    opponent_remaining: int


@dataclass(frozen=True)
class GameOverEvent:
    result: GameResult
    reason: ResultReason
    pgn: str
    total_moves: int
    timestamp: datetime = field(default_factory=datetime.now)


# Union type for type-safe pattern matching in consumers
GameEvent = (
    GameStartEvent
    | ThinkingEvent
    | MoveRejectedEvent
    | ResponseRejectedEvent
    | AuthRequiredEvent
    | MoveAppliedEvent
    | CheckEvent
    | ClockTickEvent
    | GameOverEvent
)
