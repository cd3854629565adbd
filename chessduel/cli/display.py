"""
Rich-based CLI event consumer.

This is the ONLY place where game terminal output happens.
It translates GameEvent objects into formatted Rich output; the web UI does
the same job by serializing events to JSON.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.panel import Panel

from chessduel.board import Position, move_number_after
from chessduel.events import (
    AuthRequiredEvent,
    CheckEvent,
    ClockTickEvent,
    GameEvent,
    GameOverEvent,
    GameStartEvent,
    MoveAppliedEvent,
    MoveRejectedEvent,
    ResponseRejectedEvent,
    ThinkingEvent,
)
from chessduel.renderer import render_ascii

console = Console(legacy_windows=False)
logger = logging.getLogger(__name__)

_RESULT_MESSAGES: dict[tuple[str, str], str] = {
    ("player", "checkmate"): "Checkmate! You won!",
    ("player", "time"): "AI ran out of time. You won!",
    ("player", "resignation"): "AI resigned. You won!",
    ("opponent", "checkmate"): "Checkmate! AI won!",
    ("opponent", "time"): "You ran out of time. AI won!",
    ("opponent", "resignation"): "You resigned. AI won!",
    ("draw", "stalemate"): "Stalemate! The game is a draw.",
    ("draw", "insufficient_material"): "Insufficient material. The game is a draw.",
    ("draw", "repetition"): "Threefold repetition. The game is a draw.",
    ("draw", "fifty_move"): "Fifty-move rule. The game is a draw.",
}


def display_event(event: GameEvent, *, flipped: bool = False) -> None:
    """Dispatch a GameEvent to the appropriate display function."""
    match event:
        case GameStartEvent():
            _game_start(event, flipped)
        case ThinkingEvent():
            console.print("  [dim]AI is thinking…[/]")
        case MoveRejectedEvent():
            console.print(f"  [red]✗[/] {event.from_square}{event.to_square} rejected — {event.reason}")
        case ResponseRejectedEvent():
            # Absorbed by the fallback; the applied move carries the "(random fallback)" tag
            logger.info("AI response rejected (%s): %s", event.kind, event.error)
        case AuthRequiredEvent():
            console.print(f"  [bold red]{event.message}[/]")
        case MoveAppliedEvent():
            _move_applied(event, flipped)
        case CheckEvent():
            who = "You are" if event.side_in_check == "player" else "AI is"
            console.print(f"  [bold red]CHECK![/] {who} in check ({event.square})")
        case ClockTickEvent():
            pass
        case GameOverEvent():
            _game_over(event)


def format_clock(seconds: int) -> str:
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def clock_style(seconds: int) -> str:
    if seconds <= 30:
        return "bold red"
    if seconds <= 60:
        return "yellow"
    return "white"


def print_clocks(player_remaining: int, opponent_remaining: int) -> None:
    console.print(
        f"  [dim]You[/] [{clock_style(player_remaining)}]{format_clock(player_remaining)}[/]"
        f"   [dim]AI[/] [{clock_style(opponent_remaining)}]{format_clock(opponent_remaining)}[/]"
    )


# --------------------------------------------------------------------------- #
# Display functions                                                            #
# --------------------------------------------------------------------------- #

def _game_start(event: GameStartEvent, flipped: bool) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]You[/] [dim]({event.player_color})[/]  vs  "
            f"[bold white]{event.model_name}[/]\n"
            f"[dim]{format_clock(event.starting_seconds)} each · "
            f"{event.timestamp.strftime('%Y-%m-%d %H:%M:%S')}[/]",
            title="[bold green] Chess vs. LLM [/]",
            border_style="green",
            expand=False,
        )
    )
    _board(event.fen, flipped)


def _move_applied(event: MoveAppliedEvent, flipped: bool) -> None:
    who = "[bold]You[/]" if event.mover == "player" else "[bold]AI[/]"
    tag = "  [yellow](random fallback)[/]" if event.fallback else ""
    console.print(f"\n  [green]✓[/] {move_number_after(event.fen_after)}. {who}: [bold]{event.san}[/]{tag}")
    if event.reasoning:
        reasoning = event.reasoning if len(event.reasoning) <= 100 else event.reasoning[:100] + "..."
        console.print(f"    [dim]{reasoning}[/]")
    _board(event.fen_after, flipped)


def _board(fen: str, flipped: bool) -> None:
    console.print(
        Panel(
            f"[green]{render_ascii(Position.from_fen(fen), flipped=flipped)}[/]",
            subtitle=f"[dim]{fen}[/]",
            border_style="dim",
            padding=(0, 1),
            expand=False,
        )
    )


def _game_over(event: GameOverEvent) -> None:
    styles = {"player": "bold green", "opponent": "bold red", "draw": "bold yellow"}
    style = styles.get(event.result, "white")
    message = _RESULT_MESSAGES.get((event.result, event.reason), "The game has ended.")

    console.print()
    console.print(
        Panel(
            f"[{style}]{message}[/]\n"
            f"[dim]Total moves: {event.total_moves}[/]",
            title="[bold]Game Over[/]",
            border_style=style.replace("bold ", ""),
            expand=False,
        )
    )

    console.print()
    console.rule("[dim]PGN[/]")
    console.print(event.pgn)
    console.rule()
