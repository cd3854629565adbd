"""
Thin facade over python-chess Board and PGN machinery.

Provides the exact interface the orchestrator and opponents need without leaking
python-chess internals into the rest of the codebase (easier to unit-test and swap out).

Positions cross module boundaries as immutable Position values. Every query
re-loads a fresh chess.Board from the Position, so no long-lived engine
instance can drift from the authoritative state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import chess
import chess.pgn

from chessduel.events import Color

_PROMOTION_NAMES = {"queen": "q", "rook": "r", "bishop": "b", "knight": "n"}


class IllegalMoveError(Exception):
    """Raised when a proposed move is not in the position's legal-move set."""

    def __init__(self, from_square: str, to_square: str, promotion: str | None = None) -> None:
        self.from_square = from_square
        self.to_square = to_square
        self.promotion = promotion
        move = f"{from_square}{to_square}{promotion or ''}"
        super().__init__(f"'{move}' is not a legal move in this position")


@dataclass(frozen=True)
class Position:
    """
    Serializable snapshot of a game.

    fen is the cross-boundary representation. root_fen + moves are retained so
    threefold repetition survives a reload.
    """

    fen: str = chess.STARTING_FEN
    root_fen: str = chess.STARTING_FEN
    moves: tuple[str, ...] = ()

    @classmethod
    def from_fen(cls, fen: str) -> Position:
        """Load an arbitrary position. Raises ValueError on an invalid FEN."""
        board = chess.Board(fen)
        return cls(fen=board.fen(), root_fen=board.fen())


@dataclass(frozen=True)
class MoveDescriptor:
    from_square: str
    to_square: str
    promotion: str | None
    piece: str               # lowercase piece letter of the mover (p, n, b, r, q, k)
    captured: str | None     # lowercase piece letter of the captured piece, if any
    san: str

    @property
    def uci(self) -> str:
        return f"{self.from_square}{self.to_square}{self.promotion or ''}"

    def to_prompt_dict(self) -> dict[str, str]:
        """JSON-ready dict for the opponent prompt; absent fields are omitted."""
        data = {"from": self.from_square, "to": self.to_square}
        if self.promotion:
            data["promotion"] = self.promotion
        data["piece"] = self.piece
        if self.captured:
            data["captured"] = self.captured
        data["san"] = self.san
        return data


@dataclass(frozen=True)
class StatusFlags:
    check: bool = False
    checkmate: bool = False
    stalemate: bool = False
    insufficient_material: bool = False
    threefold_repetition: bool = False
    fifty_move: bool = False

    @property
    def is_terminal(self) -> bool:
        return (
            self.checkmate
            or self.stalemate
            or self.insufficient_material
            or self.threefold_repetition
            or self.fifty_move
        )


class ChessBoard:
    """Facade over chess.Board, always loaded from a Position."""

    def __init__(self, position: Position | None = None) -> None:
        self.load(position or Position())

    def load(self, position: Position) -> None:
        """Re-synchronize from an authoritative Position."""
        board = chess.Board(position.root_fen)
        for uci in position.moves:
            board.push_uci(uci)
        self._root_fen = position.root_fen
        self._board = board

    # ------------------------------------------------------------------ #
    # State queries                                                        #
    # ------------------------------------------------------------------ #

    @property
    def position(self) -> Position:
        return Position(
            fen=self._board.fen(),
            root_fen=self._root_fen,
            moves=tuple(m.uci() for m in self._board.move_stack),
        )

    @property
    def chess_board(self) -> chess.Board:
        return self._board

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def turn(self) -> Color:
        return "white" if self._board.turn == chess.WHITE else "black"

    def legal_moves(self) -> list[MoveDescriptor]:
        return [self.describe(m) for m in self._board.legal_moves]

    def describe(self, move: chess.Move) -> MoveDescriptor:
        """Build the display fields for a move legal in the current position."""
        board = self._board
        piece = board.piece_at(move.from_square)
        if board.is_en_passant(move):
            captured: str | None = "p"
        else:
            target = board.piece_at(move.to_square)
            captured = target.symbol().lower() if target is not None else None
        return MoveDescriptor(
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            promotion=chess.piece_symbol(move.promotion) if move.promotion else None,
            piece=piece.symbol().lower() if piece else "",
            captured=captured,
            san=board.san(move),
        )

    def status(self) -> StatusFlags:
        board = self._board
        return StatusFlags(
            check=board.is_check(),
            checkmate=board.is_checkmate(),
            stalemate=board.is_stalemate(),
            insufficient_material=board.is_insufficient_material(),
            threefold_repetition=board.is_repetition(3),
            fifty_move=board.is_fifty_moves(),
        )

    def king_square(self, color: Color) -> str | None:
        square = self._board.king(chess.WHITE if color == "white" else chess.BLACK)
        return chess.square_name(square) if square is not None else None

    # ------------------------------------------------------------------ #
    # Move application                                                    #
    # ------------------------------------------------------------------ #

    def find_legal_move(
        self,
        from_square: str,
        to_square: str,
        promotion: str | None = None,
    ) -> chess.Move:
        """
        Match (from, to, promotion) against the legal-move set.

        A promoting move without an explicit piece promotes to a queen. A
        promotion piece supplied for a non-promoting move is ignored; an
        unrecognized promotion piece matches nothing.

        Raises:
            IllegalMoveError: no legal move matches.
        """
        try:
            from_sq = chess.parse_square(from_square.strip().lower())
            to_sq = chess.parse_square(to_square.strip().lower())
            promo = _normalize_promotion(promotion)
        except ValueError:
            raise IllegalMoveError(from_square, to_square, promotion) from None

        legal = self._board.legal_moves
        if promo is not None:
            move = chess.Move(from_sq, to_sq, promotion=promo)
            if move in legal:
                return move
        plain = chess.Move(from_sq, to_sq)
        if plain in legal:
            return plain
        if promo is None:
            queen = chess.Move(from_sq, to_sq, promotion=chess.QUEEN)
            if queen in legal:
                return queen
        raise IllegalMoveError(from_square, to_square, promotion)

    def push(self, move: chess.Move) -> MoveDescriptor:
        """Apply a validated legal move. Returns its descriptor (computed before the push)."""
        descriptor = self.describe(move)
        self._board.push(move)
        return descriptor

    # ------------------------------------------------------------------ #
    # PGN                                                                 #
    # ------------------------------------------------------------------ #

    def to_pgn(self, white: str, black: str, result: str = "*") -> str:
        game = chess.pgn.Game.from_board(self._board)
        game.headers["Event"] = "ChessDuel"
        game.headers["Date"] = datetime.now().strftime("%Y.%m.%d")
        game.headers["White"] = white
        game.headers["Black"] = black
        game.headers["Result"] = result
        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=False)
        return game.accept(exporter)


# --------------------------------------------------------------------------- #
# Position-level helpers (fresh board per call)                                #
# --------------------------------------------------------------------------- #

def legal_moves(position: Position) -> list[MoveDescriptor]:
    return ChessBoard(position).legal_moves()


def apply_move(
    position: Position,
    from_square: str,
    to_square: str,
    promotion: str | None = None,
) -> tuple[Position, MoveDescriptor]:
    """Apply a move to a position. Raises IllegalMoveError if it is not legal."""
    board = ChessBoard(position)
    move = board.find_legal_move(from_square, to_square, promotion)
    descriptor = board.push(move)
    return board.position, descriptor


def status(position: Position) -> StatusFlags:
    return ChessBoard(position).status()


def king_square(position: Position, color: Color) -> str | None:
    return ChessBoard(position).king_square(color)


def side_to_move(position: Position) -> Color:
    return ChessBoard(position).turn


def move_number_after(fen_after: str) -> int:
    """Full-move number of the half-move that produced `fen_after`."""
    fields = fen_after.split()
    fullmove = int(fields[5])
    # After a Black move the FEN has already advanced to the next full move
    return fullmove if fields[1] == "b" else fullmove - 1


def checkmate_available(moves: list[MoveDescriptor]) -> bool:
    """True if any legal move's SAN denotes mate."""
    return any(m.san.endswith("#") for m in moves)


def _normalize_promotion(promotion: str | None) -> chess.PieceType | None:
    """Map "q" / "queen" (any case) to a piece type. Raises ValueError if unrecognized."""
    if promotion is None or promotion == "":
        return None
    if not isinstance(promotion, str):
        raise ValueError(f"Promotion must be a string, got {type(promotion).__name__}")
    p = promotion.strip().lower()
    p = _PROMOTION_NAMES.get(p, p)
    if p not in ("q", "r", "b", "n"):
        raise ValueError(f"Unknown promotion piece: {promotion!r}")
    return chess.Piece.from_symbol(p).piece_type
