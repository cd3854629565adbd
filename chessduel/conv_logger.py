"""
Conversation logger — writes every prompt and raw model response to a text file.

One log file is created per game, named by timestamp and model.
Log files land in ./logs/ by default (created automatically).
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

_SEP = "=" * 80
_THIN = "-" * 80


class ConversationLogger:
    def __init__(self, log_dir: Path, game_id: str, model_name: str) -> None:
        log_dir.mkdir(parents=True, exist_ok=True)
        self._path = log_dir / f"game_{game_id}_{_safe(model_name)}.log"
        self._write(
            f"{_SEP}\n"
            f"  ChessDuel — Conversation Log\n"
            f"  Human vs {model_name}\n"
            f"  Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"{_SEP}\n"
        )

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    def log_request(self, *, ply: int, color: str, prompt: str) -> None:
        lines = [
            f"\n{_SEP}",
            f"  {color.upper()} | Ply {ply}",
            f"  {datetime.now().strftime('%H:%M:%S')}",
            _SEP,
            prompt,
        ]
        self._write("\n".join(lines) + "\n")

    def log_response(self, *, raw: str, outcome: str) -> None:
        lines = [
            f"\n{_THIN}",
            f"[RESPONSE — {outcome}]",
            raw if raw else "(empty)",
            _THIN,
        ]
        self._write("\n".join(lines) + "\n")

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _write(self, text: str) -> None:
        with self._path.open("a", encoding="utf-8") as f:
            f.write(text)

    @property
    def path(self) -> Path:
        return self._path


def _safe(name: str) -> str:
    """Strip characters that are problematic in filenames."""
    return "".join(c if c.isalnum() or c in " _-" else "_" for c in name).strip()
