"""
Board rendering for the CLI and web surfaces.

ASCII and SVG both come straight from python-chess; the SVG marks the last
move and, when the side to move is in check, its king square.
"""

from __future__ import annotations

import chess
import chess.svg

from chessduel.board import ChessBoard, Position


def render_ascii(position: Position, *, flipped: bool = False) -> str:
    """Standard ASCII board via python-chess, optionally from Black's side."""
    text = str(ChessBoard(position).chess_board)
    if not flipped:
        return text
    return "\n".join(line[::-1] for line in reversed(text.splitlines()))


def render_svg(position: Position, *, flipped: bool = False, size: int = 400) -> str:
    """SVG string of the board with last-move arrow and check highlight."""
    board = ChessBoard(position).chess_board
    arrows: list[chess.svg.Arrow] = []
    if board.move_stack:
        last = board.peek()
        arrows = [chess.svg.Arrow(last.from_square, last.to_square, color="#cc0000bb")]
    check = board.king(board.turn) if board.is_check() else None
    return chess.svg.board(
        board=board,
        arrows=arrows,
        check=check,
        orientation=chess.BLACK if flipped else chess.WHITE,
        size=size,
    )
