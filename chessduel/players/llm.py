"""
LLMOpponent — the human's opponent, backed by any LLMProvider.

Prompt design:
  - Single prompt, rebuilt from scratch every turn: FEN, a trailing window of
    history (with the model's own earlier reasoning), a crude read of the
    human's tendencies, urgency directives, and the full legal-move list.
  - The legal-move list is the vocabulary the model must choose from.
  - The reply must be a fixed JSON shape: {"move": {"from", "to", "promotion"?}, "reasoning"}.

Extraction is strict: JSON parse, pydantic schema, then membership in the
legal-move set. Anything else falls back to a random legal move; there are no
retries.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from chessduel.board import (
    ChessBoard,
    IllegalMoveError,
    MoveDescriptor,
    Position,
)
from chessduel.players.base import HistoryEntry, MoveRequest, Opponent, OpponentMove
from chessduel.players.fallback import FallbackSelector
from chessduel.providers.base import AuthenticationError, LLMProvider, ProviderError

if TYPE_CHECKING:
    from chessduel.conv_logger import ConversationLogger

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# Prompt templates                                                             #
# --------------------------------------------------------------------------- #

_PROMPT = """\
You are an expert chess player with a 1800 ELO rating, playing the {color} pieces. \
You will analyze the current board position and choose the best move.

The current board position in FEN notation is: {fen}

{history_block}
{directives_block}
Here are all the legal moves you can make:
{legal_moves}

Analyze the position and choose the best move. Consider:
1. {consider_first}
2. {consider_second}
3. {consider_third}
4. Potential threats and future plans

Return your response in the following JSON format only:
{{
  "move": {{
    "from": "square1",
    "to": "square2",
    "promotion": "q"
  }},
  "reasoning": "Brief explanation of why you chose this move"
}}
Include "promotion" only when the move promotes a pawn."""

_HISTORY_BLOCK = """\
Recent game history (last {count} moves):
{lines}

Based on this game history, I can see the following patterns and strategies:
- {tendency}
- {captures}
"""

_OPENING_BLOCK = "This is the beginning of the game.\n"

_IN_CHECK = "IMPORTANT: Your king is in check! You must respond to this threat."
_MATE_AVAILABLE = "IMPORTANT: There's a potential checkmate available. Look for it carefully."
_DEFENSIVE = "IMPORTANT: You need to play defensively to protect your king."

_CODE_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


# --------------------------------------------------------------------------- #
# Composer                                                                     #
# --------------------------------------------------------------------------- #

def compose_prompt(request: MoveRequest) -> str:
    """Build the opponent prompt. Pure function of the request."""
    recent = request.recent_history

    if recent:
        history_block = _HISTORY_BLOCK.format(
            count=len(recent),
            lines="\n".join(_history_line(e) for e in recent),
            tendency=describe_tendencies(recent),
            captures=describe_captures(recent),
        )
    else:
        history_block = _OPENING_BLOCK

    directives: list[str] = []
    if request.in_check:
        directives.append(_IN_CHECK)
    if request.checkmate_possible:
        directives.append(_MATE_AVAILABLE)
    if request.in_check:
        directives.append(_DEFENSIVE)
    directives_block = "".join(f"{d}\n" for d in directives)

    legal_moves = json.dumps([m.to_prompt_dict() for m in request.legal_moves], indent=2)

    return _PROMPT.format(
        color=request.color,
        fen=request.position.fen,
        history_block=history_block,
        directives_block=directives_block,
        legal_moves=legal_moves,
        consider_first=(
            "Getting out of check is your top priority!"
            if request.in_check
            else "The recent game history and opponent's strategy"
        ),
        consider_second=(
            "Look for checkmate opportunities"
            if request.checkmate_possible
            else "Piece development and center control"
        ),
        consider_third=(
            "Defensive needs and king safety"
            if request.in_check
            else "King safety and tactical opportunities"
        ),
    )


def describe_tendencies(recent: tuple[HistoryEntry, ...] | list[HistoryEntry]) -> str:
    """Piece-frequency read of the human's recent moves (pawn > knight > bishop)."""
    if len(recent) < 2:
        return "This is early in the game"
    human = [e for e in recent if e.mover == "player"]
    if len(human) < 2:
        return "The human player tends to play aggressively"
    counts = Counter(e.move.piece for e in human)
    if counts["p"] >= 2:
        focus = "pawn moves"
    elif counts["n"] >= 2:
        focus = "knight development"
    elif counts["b"] >= 2:
        focus = "bishop development"
    else:
        focus = "piece development"
    return f"The human player tends to favor {focus}"


def describe_captures(recent: tuple[HistoryEntry, ...] | list[HistoryEntry]) -> str:
    captures = sum(1 for e in recent if e.move.captured)
    if captures == 0:
        return "No pieces have been captured yet"
    return f"There have been {captures} captures so far"


def _history_line(entry: HistoryEntry) -> str:
    who = "Human" if entry.mover == "player" else "AI"
    line = f"{entry.move_number}. {who}: {entry.move.san}"
    if entry.reasoning:
        line += f" ({entry.reasoning})"
    return line


# --------------------------------------------------------------------------- #
# Extractor / validator                                                        #
# --------------------------------------------------------------------------- #

class MalformedResponseError(Exception):
    """The model's text is not JSON or does not match the response schema."""

    def __init__(self, message: str, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message)


class _MoveSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_square: StrictStr = Field(alias="from")
    to_square: StrictStr = Field(alias="to")
    promotion: StrictStr | None = None


class _ResponseSchema(BaseModel):
    move: _MoveSchema
    reasoning: StrictStr


@dataclass(frozen=True)
class ExtractedMove:
    position: Position
    move: MoveDescriptor
    reasoning: str


@dataclass(frozen=True)
class ExtractionFailure:
    error: MalformedResponseError | IllegalMoveError


ExtractionResult = ExtractedMove | ExtractionFailure


def extract_move(raw: str, position: Position) -> ExtractionResult:
    """
    Parse, validate and apply a model response.

    Returns a tagged result; parse/schema/legality failures never raise.
    """
    try:
        parsed = parse_response(raw)
        board = ChessBoard(position)
        move = board.find_legal_move(
            parsed.move.from_square,
            parsed.move.to_square,
            parsed.move.promotion,
        )
        descriptor = board.push(move)
    except (MalformedResponseError, IllegalMoveError) as exc:
        return ExtractionFailure(error=exc)
    return ExtractedMove(position=board.position, move=descriptor, reasoning=parsed.reasoning)


def parse_response(raw: str) -> _ResponseSchema:
    """
    JSON-parse and schema-check a response.

    Raises:
        MalformedResponseError: not JSON, or wrong shape/types.
    """
    text = raw.strip()
    fenced = _CODE_FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise MalformedResponseError(f"Response is not valid JSON: {exc}", raw) from exc
    try:
        return _ResponseSchema.model_validate(data)
    except ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise MalformedResponseError(f"Response does not match schema: {errors}", raw) from exc


# --------------------------------------------------------------------------- #
# Opponent                                                                     #
# --------------------------------------------------------------------------- #

class LLMOpponent(Opponent):
    """Opponent powered by an LLMProvider, with a random-move safety net."""

    def __init__(
        self,
        name: str,
        provider: LLMProvider,
        *,
        temperature: float | None = 0.5,
        move_timeout: int = 120,
        max_output_tokens: int = 1024,
        fallback: FallbackSelector | None = None,
        logger: ConversationLogger | None = None,
    ) -> None:
        super().__init__(name)
        self._provider = provider
        self._temperature = temperature
        self._move_timeout = move_timeout
        self._max_output_tokens = max_output_tokens
        self._fallback = fallback or FallbackSelector()
        self._logger = logger

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    def update_provider(self, provider: LLMProvider, name: str | None = None) -> None:
        """Swap in a provider built from freshly entered credentials."""
        self._provider = provider
        if name:
            self.name = name

    def attach_logger(self, conv_logger: ConversationLogger | None) -> None:
        self._logger = conv_logger

    async def get_move(self, request: MoveRequest) -> OpponentMove:
        prompt = compose_prompt(request)

        if self._logger:
            self._logger.log_request(ply=request.ply, color=request.color, prompt=prompt)

        try:
            async with asyncio.timeout(self._move_timeout):
                raw = await self._provider.complete(
                    prompt,
                    temperature=self._temperature,
                    max_tokens=self._max_output_tokens,
                )
        except TimeoutError:
            error = ProviderError(
                self._provider.__class__.__name__,
                f"No response within {self._move_timeout}s timeout.",
            )
            return self._fall_back(request, error, raw="")
        except ProviderError as exc:
            return self._fall_back(request, exc, raw="")

        result = extract_move(raw, request.position)
        match result:
            case ExtractedMove(position=position, move=move, reasoning=reasoning):
                if self._logger:
                    self._logger.log_response(raw=raw, outcome=f"accepted {move.uci}")
                return OpponentMove(position=position, move=move, reasoning=reasoning, raw=raw)
            case ExtractionFailure(error=error):
                return self._fall_back(request, error, raw=raw)

    def _fall_back(self, request: MoveRequest, error: Exception, raw: str) -> OpponentMove:
        if isinstance(error, AuthenticationError):
            logger.warning("Credential rejected, falling back to a random move [model=%s]: %s",
                           self._provider.model, error)
        elif isinstance(error, ProviderError):
            logger.warning("Provider failed, falling back to a random move [model=%s]: %s",
                           self._provider.model, error)
        else:
            logger.warning("Rejected model response (%s), falling back to a random move: %s",
                           type(error).__name__, error)

        chosen = self._fallback.select(request.position, raw=raw, failure=error)
        if self._logger:
            self._logger.log_response(
                raw=raw,
                outcome=f"{type(error).__name__}: {error} — fallback {chosen.move.uci}",
            )
        return chosen
