"""
ChessDuel — terminal entry point.

Wires together:  config → model/credential prompt → provider → opponent → orchestrator → CLI display

Type moves as squares (e2e4, e2-e4, e7e8q). Other commands: resign, restart, key, quit.
"""

from __future__ import annotations

import asyncio
import logging
import logging.handlers
import re
import signal
import sys
from datetime import datetime
from pathlib import Path

from chessduel.cli.display import console, display_event, print_clocks
from chessduel.cli.selector import ask_credentials, select_model
from chessduel.config import Config, default_config, load_config
from chessduel.conv_logger import ConversationLogger
from chessduel.events import AuthRequiredEvent
from chessduel.game import GameOrchestrator
from chessduel.players import LLMOpponent, create_opponent
from chessduel.providers import create_provider

_MOVE_RE = re.compile(r"^([a-h][1-8])\s*-?\s*([a-h][1-8])\s*=?\s*([qrbn])?$", re.IGNORECASE)


def _configure_logging(log_dir: Path) -> None:
    # File only: the terminal belongs to the rich display
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        handlers=[
            logging.handlers.RotatingFileHandler(
                log_dir / "chessduel.log", maxBytes=2 * 1024 * 1024, backupCount=3,
                encoding="utf-8",
            ),
        ],
    )


def _load() -> Config:
    config_path = Path("config.yaml")
    if not config_path.exists():
        return default_config()
    try:
        return load_config(config_path)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)


async def _main(stop_event: asyncio.Event) -> None:
    config = _load()
    _configure_logging(config.log_dir_path)

    provider_name, model = select_model(config)
    if provider_name == "random":
        opponent = create_opponent("random", model.name, config.game)
    else:
        creds = ask_credentials(config, provider_name, model)
        provider = create_provider(provider_name, model.id, config.providers, api_key=creds.api_key)
        opponent = create_opponent(provider_name, model.name, config.game, provider)

    if isinstance(opponent, LLMOpponent) and config.game.log_conversations:
        game_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        conv_logger = ConversationLogger(config.log_dir_path, game_id, model.name)
        opponent.attach_logger(conv_logger)
        console.print(f"[dim]Conversation log: {conv_logger.path}[/]")

    orchestrator = GameOrchestrator(opponent, config.game)
    flipped = config.game.player_color == "black"
    auth_required = asyncio.Event()

    async def _pump() -> None:
        async for event in orchestrator.events():
            display_event(event, flipped=flipped)
            if isinstance(event, AuthRequiredEvent):
                auth_required.set()

    pump_task = asyncio.create_task(_pump())
    loop = asyncio.get_running_loop()
    orchestrator.start()

    try:
        while not stop_event.is_set():
            await orchestrator.wait_idle()
            await asyncio.sleep(0.05)  # let the pump print pending events

            if auth_required.is_set() and provider_name != "random":
                auth_required.clear()
                creds = ask_credentials(config, provider_name, model)
                orchestrator.update_provider(
                    create_provider(provider_name, model.id, config.providers, api_key=creds.api_key)
                )

            state = orchestrator.state
            if state.status == "ended":
                answer = await loop.run_in_executor(None, input, "\nPlay again? [y/N] ")
                if answer.strip().lower() != "y":
                    break
                orchestrator.restart()
                continue
            if not state.is_player_turn:
                continue

            clock = orchestrator.clock
            print_clocks(clock.player_remaining, clock.opponent_remaining)
            line = (await loop.run_in_executor(None, input, "Your move: ")).strip()

            match line.lower():
                case "quit" | "exit":
                    break
                case "resign":
                    orchestrator.resign()
                case "restart":
                    orchestrator.restart()
                case "key" if provider_name != "random":
                    auth_required.set()
                case _:
                    parsed = _MOVE_RE.match(line)
                    if parsed is None:
                        console.print("  [red]Enter a move like e2e4 (or resign / restart / key / quit)[/]")
                        continue
                    orchestrator.on_drop(parsed.group(1), parsed.group(2), parsed.group(3))
    finally:
        await orchestrator.close()
        await pump_task


def main() -> None:
    async def _run() -> None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        original_sigint = signal.getsignal(signal.SIGINT)

        def _on_sigint(sig: int, frame: object) -> None:
            # Schedule the event set on the event loop thread (safe on Windows)
            loop.call_soon_threadsafe(stop_event.set)
            # Restore the original handler so a second Ctrl+C force-quits
            signal.signal(signal.SIGINT, original_sigint)

        signal.signal(signal.SIGINT, _on_sigint)
        await _main(stop_event)

    asyncio.run(_run())


if __name__ == "__main__":
    main()
