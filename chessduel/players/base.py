"""
Abstract Opponent interface and the snapshots passed to it each turn.

MoveRequest contains everything an opponent needs to decide — whether that's
an LLM API call or a random pick. OpponentMove is what comes back: a move that
has already been validated and applied to the request's position.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from chessduel.board import MoveDescriptor, Position, move_number_after
from chessduel.events import Color, Side
from chessduel.providers.base import AuthenticationError


@dataclass(frozen=True)
class HistoryEntry:
    """One applied half-move. Never mutated after it is appended."""

    ply: int                      # 0-based half-move index within the game
    mover: Side
    move: MoveDescriptor
    fen_after: str
    reasoning: str | None = None  # opponent moves only
    fallback: bool = False

    @property
    def move_number(self) -> int:
        return move_number_after(self.fen_after)


@dataclass(frozen=True)
class MoveRequest:
    """Immutable snapshot of the game at the start of the opponent's turn."""

    position: Position
    color: Color
    ply: int
    legal_moves: tuple[MoveDescriptor, ...]
    recent_history: tuple[HistoryEntry, ...]   # trailing window only
    in_check: bool = False
    checkmate_possible: bool = False


@dataclass(frozen=True)
class OpponentMove:
    """An applied opponent move: resulting position, the move, and why."""

    position: Position
    move: MoveDescriptor
    reasoning: str
    raw: str = ""                       # unmodified model output
    fallback: bool = False
    failure: Exception | None = None    # what triggered the fallback, if any

    @property
    def auth_failed(self) -> bool:
        return isinstance(self.failure, AuthenticationError)


class Opponent(ABC):
    """Abstract base class for all move generators facing the human."""

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def get_move(self, request: MoveRequest) -> OpponentMove:
        """
        Given the current request, return an applied OpponentMove.

        Implementations must always return a legal move for a non-terminal
        position: any failure of the underlying generator is absorbed by a
        fallback rather than raised.
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
