"""
Game orchestrator — the core state machine.

This module is UI-agnostic. It emits typed GameEvent objects onto a queue and
never prints, never writes files directly, and has no Rich/CLI dependencies.

Consumers:
  CLI   → chessduel/cli/display.py
  Web   → FastAPI WebSocket handler (chessduel/web/app.py)
  Tests → orchestrator.drain_events()

All GameState changes go through reduce(state, action), a pure function.
The orchestrator only decides *which* action to reduce and what to do next
(schedule the opponent, restart the clock, announce the result).

Usage:
    orchestrator = GameOrchestrator(opponent, config.game)
    orchestrator.start()
    orchestrator.on_drop("e2", "e4")
    async for event in orchestrator.events():
        display_event(event)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field, replace

from chessduel.board import (
    ChessBoard,
    IllegalMoveError,
    MoveDescriptor,
    Position,
    StatusFlags,
    apply_move,
    checkmate_available,
    king_square,
    legal_moves,
    side_to_move,
    status,
)
from chessduel.clock import ClockState, DualClock
from chessduel.config import GameConfig
from chessduel.events import (
    AuthRequiredEvent,
    CheckEvent,
    ClockTickEvent,
    Color,
    FailureKind,
    GameEvent,
    GameOverEvent,
    GameResult,
    GameStartEvent,
    GameStatus,
    MoveAppliedEvent,
    MoveRejectedEvent,
    ResponseRejectedEvent,
    ResultReason,
    Side,
    ThinkingEvent,
    other_side,
)
from chessduel.players.base import HistoryEntry, MoveRequest, Opponent
from chessduel.players.fallback import FallbackSelector
from chessduel.players.llm import LLMOpponent, MalformedResponseError
from chessduel.providers.base import AuthenticationError, LLMProvider

logger = logging.getLogger(__name__)

HUMAN_NAME = "Human"


# --------------------------------------------------------------------------- #
# State and actions                                                            #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class GameState:
    """The single authoritative game state. Replaced, never mutated."""

    position: Position = field(default_factory=Position)
    player_color: Color = "white"
    turn: Side = "player"
    status: GameStatus = "waiting"
    result: GameResult = "none"
    result_reason: ResultReason = "none"
    in_check: bool = False
    check_square: str | None = None
    ply: int = 0        # half-moves applied this game; tags in-flight opponent requests
    game_id: int = 0    # bumped on every start/restart

    @property
    def fen(self) -> str:
        return self.position.fen

    @property
    def is_player_turn(self) -> bool:
        return self.status == "playing" and self.turn == "player"

    def color_of(self, side: Side) -> Color:
        if side == "player":
            return self.player_color
        return "black" if self.player_color == "white" else "white"


@dataclass(frozen=True)
class GameStarted:
    position: Position
    player_color: Color
    first: Side
    in_check: bool = False
    check_square: str | None = None


@dataclass(frozen=True)
class MovePlayed:
    mover: Side
    position: Position
    flags: StatusFlags
    check_square: str | None = None   # king square of the side now to move, when in check


@dataclass(frozen=True)
class FlagFell:
    side: Side


@dataclass(frozen=True)
class Resigned:
    side: Side


Action = GameStarted | MovePlayed | FlagFell | Resigned


def reduce(state: GameState, action: Action) -> GameState:
    """Pure transition function: (state, action) -> state'."""
    match action:
        case GameStarted():
            return GameState(
                position=action.position,
                player_color=action.player_color,
                turn=action.first,
                status="playing",
                in_check=action.in_check,
                check_square=action.check_square if action.in_check else None,
                game_id=state.game_id + 1,
            )

        case MovePlayed():
            if state.status != "playing" or action.mover != state.turn:
                return state
            flags = action.flags
            moved = replace(
                state,
                position=action.position,
                turn=other_side(action.mover),
                ply=state.ply + 1,
                in_check=flags.check,
                check_square=action.check_square if flags.check else None,
            )
            if flags.checkmate:
                # The side that just moved delivered mate
                return replace(moved, status="ended", result=action.mover, result_reason="checkmate")
            draw_reason = _draw_reason(flags)
            if draw_reason is not None:
                return replace(
                    moved,
                    status="ended",
                    result="draw",
                    result_reason=draw_reason,
                    in_check=False,
                    check_square=None,
                )
            return moved

        case FlagFell(side=side):
            if state.status != "playing":
                return state
            return replace(state, status="ended", result=other_side(side), result_reason="time")

        case Resigned(side=side):
            if state.status != "playing":
                return state
            return replace(state, status="ended", result=other_side(side), result_reason="resignation")

    return state


def _draw_reason(flags: StatusFlags) -> ResultReason | None:
    if flags.stalemate:
        return "stalemate"
    if flags.insufficient_material:
        return "insufficient_material"
    if flags.threefold_repetition:
        return "repetition"
    if flags.fifty_move:
        return "fifty_move"
    return None


# --------------------------------------------------------------------------- #
# Orchestrator                                                                 #
# --------------------------------------------------------------------------- #

class GameOrchestrator:
    """
    Owns GameState, move history and the dual clock for one human-vs-opponent session.

    Must be driven from a running event loop: the opponent request and the
    clock ticker are asyncio tasks. Only one half-move is ever in flight; a
    human move is refused while an opponent request is outstanding.

    Args:
        opponent: Move generator facing the human.
        game_cfg: Clock budget, history window, human colour, fallback seed.
        clock: Injected DualClock (tests pass tick_interval=0 and call tick()).
        start_position: Position each new game starts from (standard start by default).
    """

    def __init__(
        self,
        opponent: Opponent,
        game_cfg: GameConfig | None = None,
        *,
        clock: DualClock | None = None,
        start_position: Position | None = None,
    ) -> None:
        self._opponent = opponent
        self._cfg = game_cfg or GameConfig()
        self._clock = clock or DualClock(starting_seconds=self._cfg.starting_seconds)
        self._clock.bind(self.tick)
        self._fallback = FallbackSelector(seed=self._cfg.fallback_seed)
        self._start_position = start_position or Position()
        self._state = GameState(position=self._start_position, player_color=self._cfg.player_color)
        self._history: list[HistoryEntry] = []
        self._events: asyncio.Queue[GameEvent | None] = asyncio.Queue()
        self._opponent_task: asyncio.Task | None = None

    # ------------------------------------------------------------------ #
    # Queries                                                              #
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._history)

    @property
    def clock(self) -> ClockState:
        return self._clock.state

    @property
    def opponent(self) -> Opponent:
        return self._opponent

    @property
    def is_thinking(self) -> bool:
        return self._opponent_task is not None and not self._opponent_task.done()

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    def start(self, position: Position | None = None) -> None:
        """Start (or restart) a game from `position` or the configured start."""
        position = position or self._start_position
        flags = status(position)
        if flags.is_terminal:
            raise ValueError("Cannot start a game from a finished position")

        self._cancel_opponent_task()
        self._clock.reset()
        self._history.clear()

        to_move = side_to_move(position)
        first: Side = "player" if to_move == self._cfg.player_color else "opponent"
        self._state = reduce(
            self._state,
            GameStarted(
                position=position,
                player_color=self._cfg.player_color,
                first=first,
                in_check=flags.check,
                check_square=king_square(position, to_move) if flags.check else None,
            ),
        )
        logger.info("Game %d started [human=%s opponent=%s]",
                    self._state.game_id, self._cfg.player_color, self._opponent.name)
        self._emit(GameStartEvent(
            game_id=self._state.game_id,
            player_color=self._cfg.player_color,
            model_name=self._opponent.name,
            fen=position.fen,
            starting_seconds=self._clock.starting_seconds,
        ))

        self._clock.restart()
        if self._state.turn == "opponent":
            self._schedule_opponent_turn()

    def restart(self) -> None:
        self.start()

    def resign(self) -> bool:
        """The human resigns. Returns False if no game is in progress."""
        if self._state.status != "playing":
            return False
        self._state = reduce(self._state, Resigned("player"))
        self._finish()
        return True

    def update_provider(self, provider: LLMProvider, name: str | None = None) -> None:
        """Use new credentials for subsequent opponent requests."""
        if not isinstance(self._opponent, LLMOpponent):
            raise TypeError(f"{self._opponent!r} is not backed by an LLM provider")
        self._opponent.update_provider(provider, name)

    async def wait_idle(self) -> None:
        """Wait for any outstanding opponent request to resolve."""
        while self._opponent_task is not None and not self._opponent_task.done():
            # Cancelling this waiter must leave the opponent request running
            await asyncio.wait({self._opponent_task})

    async def close(self) -> None:
        self._cancel_opponent_task()
        self._clock.stop()
        self._events.put_nowait(None)

    # ------------------------------------------------------------------ #
    # Events                                                               #
    # ------------------------------------------------------------------ #

    async def events(self) -> AsyncIterator[GameEvent]:
        """Yield events until close() is called."""
        while True:
            event = await self._events.get()
            if event is None:
                return
            yield event

    def drain_events(self) -> list[GameEvent]:
        drained: list[GameEvent] = []
        while not self._events.empty():
            event = self._events.get_nowait()
            if event is not None:
                drained.append(event)
        return drained

    def _emit(self, event: GameEvent) -> None:
        self._events.put_nowait(event)

    # ------------------------------------------------------------------ #
    # Human move path                                                      #
    # ------------------------------------------------------------------ #

    def on_drop(self, from_square: str, to_square: str, promotion: str | None = None) -> bool:
        """
        Board-input callback. Returns True if the move was accepted.

        Refused (state unchanged) when no game is running, it is not the
        human's turn, an opponent request is outstanding, or the move is illegal.
        """
        state = self._state
        if state.status != "playing":
            return self._reject(from_square, to_square, "No game in progress")
        if state.turn != "player" or self.is_thinking:
            return self._reject(from_square, to_square, "It is not your turn")
        try:
            position, move = apply_move(state.position, from_square, to_square, promotion)
        except IllegalMoveError as exc:
            return self._reject(from_square, to_square, str(exc))
        self._commit("player", position, move)
        return True

    def _reject(self, from_square: str, to_square: str, reason: str) -> bool:
        logger.debug("Rejected human move %s%s: %s", from_square, to_square, reason)
        self._emit(MoveRejectedEvent(from_square=from_square, to_square=to_square, reason=reason))
        return False

    # ------------------------------------------------------------------ #
    # Opponent move path                                                   #
    # ------------------------------------------------------------------ #

    def _schedule_opponent_turn(self) -> None:
        state = self._state
        moves = legal_moves(state.position)
        window = self._cfg.history_window
        request = MoveRequest(
            position=state.position,
            color=state.color_of("opponent"),
            ply=state.ply,
            legal_moves=tuple(moves),
            recent_history=tuple(self._history[-window:]) if window > 0 else (),
            in_check=state.in_check,
            checkmate_possible=checkmate_available(moves),
        )
        token = (state.game_id, state.ply)
        self._emit(ThinkingEvent(ply=state.ply))
        self._opponent_task = asyncio.get_running_loop().create_task(
            self._run_opponent_turn(request, token)
        )

    async def _run_opponent_turn(self, request: MoveRequest, token: tuple[int, int]) -> None:
        try:
            result = await self._opponent.get_move(request)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Opponent %r raised; substituting a random move", self._opponent)
            result = self._fallback.select(request.position, failure=exc)

        if not self._token_current(token):
            logger.info(
                "Discarding late opponent move %s [game=%d ply=%d, now game=%d ply=%d status=%s]",
                result.move.uci, token[0], token[1],
                self._state.game_id, self._state.ply, self._state.status,
            )
            return

        if result.move.uci not in {m.uci for m in request.legal_moves}:
            logger.error("Opponent returned %s, not in the legal set; substituting", result.move.uci)
            result = self._fallback.select(
                request.position, failure=IllegalMoveError(result.move.from_square, result.move.to_square)
            )

        if result.failure is not None:
            self._emit(ResponseRejectedEvent(
                kind=_failure_kind(result.failure),
                error=str(result.failure),
                raw_response=result.raw,
            ))
        if result.auth_failed:
            self._emit(AuthRequiredEvent(
                message="Invalid or expired API key. Please update your API key.",
            ))

        if self._opponent_task is asyncio.current_task():
            self._opponent_task = None
        self._commit(
            "opponent",
            result.position,
            result.move,
            reasoning=result.reasoning,
            fallback=result.fallback,
        )

    def _token_current(self, token: tuple[int, int]) -> bool:
        state = self._state
        return (
            state.status == "playing"
            and state.turn == "opponent"
            and (state.game_id, state.ply) == token
        )

    def _cancel_opponent_task(self) -> None:
        if self._opponent_task is not None and not self._opponent_task.done():
            self._opponent_task.cancel()
        self._opponent_task = None

    # ------------------------------------------------------------------ #
    # Shared transition                                                    #
    # ------------------------------------------------------------------ #

    def _commit(
        self,
        mover: Side,
        position: Position,
        move: MoveDescriptor,
        reasoning: str | None = None,
        fallback: bool = False,
    ) -> None:
        before = self._state
        flags = status(position)
        to_move = before.color_of(other_side(mover))
        check_square = king_square(position, to_move) if flags.check else None

        self._state = reduce(before, MovePlayed(mover, position, flags, check_square))
        self._history.append(HistoryEntry(
            ply=before.ply,
            mover=mover,
            move=move,
            fen_after=position.fen,
            reasoning=reasoning,
            fallback=fallback,
        ))
        self._emit(MoveAppliedEvent(
            ply=before.ply,
            mover=mover,
            from_square=move.from_square,
            to_square=move.to_square,
            promotion=move.promotion,
            san=move.san,
            piece=move.piece,
            captured=move.captured,
            fen_after=position.fen,
            reasoning=reasoning,
            fallback=fallback,
            is_check=flags.check,
            is_checkmate=flags.checkmate,
        ))

        state = self._state
        if state.status == "ended":
            self._finish()
            return

        if state.in_check and state.check_square is not None:
            self._emit(CheckEvent(side_in_check=state.turn, square=state.check_square))
        self._clock.restart()
        if state.turn == "opponent":
            self._schedule_opponent_turn()

    # ------------------------------------------------------------------ #
    # Clock                                                                #
    # ------------------------------------------------------------------ #

    def tick(self) -> None:
        """One elapsed second against the side to move. Called by the clock ticker."""
        state = self._state
        if state.status != "playing":
            self._clock.stop()
            return
        clock = self._clock.tick(state.turn)
        self._emit(ClockTickEvent(
            running=state.turn,
            player_remaining=clock.player_remaining,
            opponent_remaining=clock.opponent_remaining,
        ))
        if clock.expired(state.turn):
            logger.info("Game %d: %s ran out of time", state.game_id, state.turn)
            self._state = reduce(state, FlagFell(state.turn))
            self._finish()

    # ------------------------------------------------------------------ #
    # Game over                                                            #
    # ------------------------------------------------------------------ #

    def _finish(self) -> None:
        self._clock.stop()
        state = self._state
        logger.info("Game %d over: result=%s reason=%s after %d plies",
                    state.game_id, state.result, state.result_reason, state.ply)
        self._emit(GameOverEvent(
            result=state.result,
            reason=state.result_reason,
            pgn=self._pgn(),
            total_moves=len(self._history),
        ))

    def _pgn(self) -> str:
        state = self._state
        human_white = state.player_color == "white"
        white = HUMAN_NAME if human_white else self._opponent.name
        black = self._opponent.name if human_white else HUMAN_NAME
        if state.result == "draw":
            result = "1/2-1/2"
        elif state.result in ("player", "opponent"):
            winner_white = (state.result == "player") == human_white
            result = "1-0" if winner_white else "0-1"
        else:
            result = "*"
        return ChessBoard(state.position).to_pgn(white, black, result)


def _failure_kind(error: Exception) -> FailureKind:
    if isinstance(error, AuthenticationError):
        return "auth"
    if isinstance(error, MalformedResponseError):
        return "malformed"
    if isinstance(error, IllegalMoveError):
        return "illegal"
    return "transport"

