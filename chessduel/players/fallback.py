"""Fallback selector: a uniformly random legal move when generation fails."""

from __future__ import annotations

import random

from chessduel.board import ChessBoard, Position
from chessduel.players.base import Opponent, OpponentMove, MoveRequest

FALLBACK_REASONING = "Random move (AI generation failed)"


class FallbackSelector:
    """
    Picks and applies a random legal move.

    Pass a seeded random.Random (or a seed) for reproducible games and tests.
    """

    def __init__(self, rng: random.Random | None = None, seed: int | None = None) -> None:
        self._rng = rng if rng is not None else random.Random(seed)

    def select(
        self,
        position: Position,
        *,
        raw: str = "",
        failure: Exception | None = None,
        reasoning: str = FALLBACK_REASONING,
    ) -> OpponentMove:
        board = ChessBoard(position)
        moves = list(board.chess_board.legal_moves)
        if not moves:
            raise ValueError("No legal moves available")
        descriptor = board.push(self._rng.choice(moves))
        return OpponentMove(
            position=board.position,
            move=descriptor,
            reasoning=reasoning,
            raw=raw,
            fallback=True,
            failure=failure,
        )


class RandomOpponent(Opponent):
    """Plays uniformly random legal moves. Useful offline and in tests."""

    def __init__(self, name: str = "Random", selector: FallbackSelector | None = None) -> None:
        super().__init__(name)
        self._selector = selector or FallbackSelector()

    async def get_move(self, request: MoveRequest) -> OpponentMove:
        chosen = self._selector.select(request.position, reasoning="Random move")
        return OpponentMove(position=chosen.position, move=chosen.move, reasoning=chosen.reasoning)
