"""
FastAPI application — the web UI backend.

Exposes:
  GET  /api/models                 List all configured models
  GET  /api/config                 Relevant game config for the UI
  POST /api/credentials/validate   Check a provider / API key / model submission
  GET  /api/board.svg              Render a FEN as SVG
  WS   /ws/game                    Play a game over a WebSocket

WebSocket protocol (client → server, JSON with a "type" key):
  start        {provider, model_id, api_key}   begin a new game (replaces any current one)
  move         {from, to, promotion?}           human move; answered with a move_ack frame
  resign
  restart
  credentials  {api_key}                        new key for the current opponent

Server → client frames are the orchestrator's events, serialized as
{"type": <EventClassName>, ...fields}, plus move_ack and error frames.

In production FastAPI serves the built frontend from frontend/dist.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import logging.handlers
from datetime import date, datetime
from pathlib import Path

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, Response
from fastapi.staticfiles import StaticFiles

from chessduel.board import Position
from chessduel.config import Config, default_config, load_config
from chessduel.conv_logger import ConversationLogger
from chessduel.credentials import CredentialError, validate_credentials
from chessduel.events import GameEvent
from chessduel.game import GameOrchestrator
from chessduel.players import LLMOpponent, Opponent, create_opponent
from chessduel.providers import create_provider
from chessduel.renderer import render_svg

config = load_config() if Path("config.yaml").exists() else default_config()

# --------------------------------------------------------------------------- #
# Logging                                                                      #
# --------------------------------------------------------------------------- #

_LOG_FILE = config.log_dir_path / "chessduel.log"
_LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    handlers=[
        logging.StreamHandler(),                                   # server console
        logging.handlers.RotatingFileHandler(
            _LOG_FILE, maxBytes=2 * 1024 * 1024, backupCount=3,  # 2 MB × 3 files
            encoding="utf-8",
        ),
    ],
)
logger = logging.getLogger("chessduel")


app = FastAPI(title="ChessDuel")

_DIST = Path(__file__).parent.parent.parent / "frontend" / "dist"


def _to_json(data: dict) -> str:
    """json.dumps with datetime → ISO-string support."""
    def _default(obj: object) -> str:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
    return json.dumps(data, default=_default)


def _event_frame(event: GameEvent) -> str:
    return _to_json({"type": type(event).__name__, **dataclasses.asdict(event)})


# --------------------------------------------------------------------------- #
# REST                                                                         #
# --------------------------------------------------------------------------- #

@app.get("/api/models")
def get_models():
    return [
        {"provider": provider, "id": m.id, "name": m.name}
        for provider, m in config.all_models()
    ]


@app.get("/api/config")
def get_config():
    return {
        "starting_seconds": config.game.starting_seconds,
        "history_window": config.game.history_window,
        "player_color": config.game.player_color,
        "move_timeout": config.game.move_timeout,
    }


@app.post("/api/credentials/validate")
def validate_credentials_endpoint(payload: dict):
    try:
        creds = validate_credentials(
            str(payload.get("provider", "")),
            str(payload.get("api_key", "")),
            str(payload.get("model_id", "")),
            config,
        )
    except CredentialError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": True, "provider": creds.provider, "model_id": creds.model_id}


@app.get("/api/board.svg")
def board_svg(fen: str | None = None, flipped: bool = False, size: int = 400):
    try:
        position = Position.from_fen(fen) if fen else Position()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return Response(render_svg(position, flipped=flipped, size=size), media_type="image/svg+xml")


# --------------------------------------------------------------------------- #
# WebSocket game                                                               #
# --------------------------------------------------------------------------- #

def _build_opponent(cfg: Config, msg: dict) -> Opponent:
    """Validate a start message's credentials and build the opponent it names."""
    provider_name = str(msg.get("provider", ""))
    model_id = str(msg.get("model_id", ""))

    if provider_name == "random":
        return create_opponent("random", "Random", cfg.game)

    creds = validate_credentials(provider_name, str(msg.get("api_key", "")), model_id, cfg)
    model = cfg.find_model(creds.provider, creds.model_id)
    display_name = model.name if model else creds.model_id
    provider = create_provider(creds.provider, creds.model_id, cfg.providers, api_key=creds.api_key)
    opponent = create_opponent(creds.provider, display_name, cfg.game, provider)

    if isinstance(opponent, LLMOpponent) and cfg.game.log_conversations:
        game_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        opponent.attach_logger(ConversationLogger(cfg.log_dir_path, game_id, display_name))
    return opponent


class _Session:
    """One WebSocket connection: at most one orchestrator plus its event pump."""

    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws
        self._orchestrator: GameOrchestrator | None = None
        self._pump_task: asyncio.Task | None = None
        self._provider_name: str | None = None
        self._model_id: str | None = None

    async def handle(self, msg: dict) -> None:
        match msg.get("type"):
            case "start":
                opponent = _build_opponent(config, msg)
                await self.close()
                self._provider_name = str(msg.get("provider", ""))
                self._model_id = str(msg.get("model_id", ""))
                self._orchestrator = GameOrchestrator(opponent, config.game)
                self._pump_task = asyncio.create_task(self._pump(self._orchestrator))
                self._orchestrator.start()

            case "move":
                orchestrator = self._require_game()
                promotion = msg.get("promotion")
                accepted = orchestrator.on_drop(
                    str(msg.get("from", "")),
                    str(msg.get("to", "")),
                    str(promotion) if promotion is not None else None,
                )
                await self._ws.send_text(_to_json({"type": "move_ack", "accepted": accepted}))

            case "resign":
                self._require_game().resign()

            case "restart":
                self._require_game().restart()

            case "credentials":
                orchestrator = self._require_game()
                if self._provider_name == "random":
                    raise ValueError("The random opponent does not use credentials")
                creds = validate_credentials(
                    self._provider_name or "",
                    str(msg.get("api_key", "")),
                    self._model_id or "",
                    config,
                )
                orchestrator.update_provider(
                    create_provider(creds.provider, creds.model_id, config.providers,
                                    api_key=creds.api_key)
                )
                await self._ws.send_text(_to_json({"type": "credentials_ack"}))

            case other:
                raise ValueError(f"Unknown message type: {other!r}")

    def _require_game(self) -> GameOrchestrator:
        if self._orchestrator is None:
            raise ValueError("No game has been started")
        return self._orchestrator

    async def _pump(self, orchestrator: GameOrchestrator) -> None:
        try:
            async for event in orchestrator.events():
                await self._ws.send_text(_event_frame(event))
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.debug("Event pump stopped: %s", exc)

    async def close(self) -> None:
        if self._orchestrator is not None:
            await self._orchestrator.close()
            self._orchestrator = None
        if self._pump_task is not None:
            await self._pump_task
            self._pump_task = None


@app.websocket("/ws/game")
async def game_ws(ws: WebSocket) -> None:
    await ws.accept()
    session = _Session(ws)

    try:
        while True:
            msg = await ws.receive_json()
            try:
                await session.handle(msg)
            except (ValueError, TypeError) as exc:
                # CredentialError is a ValueError; the message is user-facing
                logger.info("Rejected %r message: %s", msg.get("type"), exc)
                await ws.send_text(_to_json({"type": "error", "message": str(exc)}))
    except WebSocketDisconnect:
        logger.debug("WebSocket client disconnected")
    finally:
        await session.close()


# --------------------------------------------------------------------------- #
# Serve built frontend in production                                           #
# --------------------------------------------------------------------------- #

if _DIST.exists():
    app.mount(
        "/assets", StaticFiles(directory=_DIST / "assets"), name="assets"
    )

    @app.get("/{full_path:path}")
    async def spa(full_path: str) -> FileResponse:
        return FileResponse(_DIST / "index.html")
