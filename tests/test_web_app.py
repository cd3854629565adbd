import json
import unittest
from datetime import datetime
from unittest.mock import patch

from fastapi.testclient import TestClient

from chessduel.config import default_config
from chessduel.events import GameStartEvent
from chessduel.web import app as web_app


def _receive_until(ws, predicate, limit: int = 20) -> list[dict]:
    """Read frames until predicate(frames) holds; fail after `limit` frames."""
    frames: list[dict] = []
    for _ in range(limit):
        frames.append(ws.receive_json())
        if predicate(frames):
            return frames
    raise AssertionError(f"condition not met within {limit} frames: {frames}")


class WebRestTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = patch.object(web_app, "config", default_config())
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(web_app.app)

    def test_models_lists_configured_entries(self) -> None:
        models = self.client.get("/api/models").json()
        self.assertIn({"provider": "openai", "id": "gpt-4o", "name": "GPT-4o (Best quality)"}, models)

    def test_config_exposes_game_settings(self) -> None:
        body = self.client.get("/api/config").json()
        self.assertEqual(body["starting_seconds"], 600)
        self.assertEqual(body["player_color"], "white")

    def test_credentials_validate_ok(self) -> None:
        response = self.client.post(
            "/api/credentials/validate",
            json={"provider": "openai", "api_key": "sk-test", "model_id": "gpt-4o"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True, "provider": "openai", "model_id": "gpt-4o"})

    def test_credentials_validate_rejects_bad_prefix(self) -> None:
        response = self.client.post(
            "/api/credentials/validate",
            json={"provider": "openai", "api_key": "nope", "model_id": "gpt-4o"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "API key should start with 'sk-'")

    def test_board_svg(self) -> None:
        response = self.client.get("/api/board.svg")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("image/svg+xml"))
        self.assertIn("<svg", response.text)

    def test_board_svg_rejects_bad_fen(self) -> None:
        response = self.client.get("/api/board.svg", params={"fen": "not a fen"})
        self.assertEqual(response.status_code, 400)

    def test_event_frame_serializes_timestamps(self) -> None:
        event = GameStartEvent(
            game_id=1,
            player_color="white",
            model_name="Random",
            fen="8/8/8/8/8/8/8/k6K w - - 0 1",
            starting_seconds=600,
            timestamp=datetime(2024, 1, 2, 3, 4, 5),
        )
        frame = json.loads(web_app._event_frame(event))
        self.assertEqual(frame["type"], "GameStartEvent")
        self.assertEqual(frame["timestamp"], "2024-01-02T03:04:05")


class WebSocketGameTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = patch.object(web_app, "config", default_config())
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(web_app.app)

    def test_random_opponent_game(self) -> None:
        with self.client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "start", "provider": "random"})
            start = _receive_until(ws, lambda f: f[-1]["type"] == "GameStartEvent")[-1]
            self.assertEqual(start["player_color"], "white")
            self.assertEqual(start["model_name"], "Random")

            ws.send_json({"type": "move", "from": "e2", "to": "e4"})
            frames = _receive_until(
                ws,
                lambda f: any(x["type"] == "move_ack" for x in f)
                and sum(x["type"] == "MoveAppliedEvent" for x in f) == 2,
            )

            ack = next(x for x in frames if x["type"] == "move_ack")
            self.assertTrue(ack["accepted"])
            applied = [x for x in frames if x["type"] == "MoveAppliedEvent"]
            self.assertEqual(applied[0]["san"], "e4")
            self.assertEqual(applied[1]["mover"], "opponent")

            ws.send_json({"type": "resign"})
            over = _receive_until(ws, lambda f: f[-1]["type"] == "GameOverEvent")[-1]
            self.assertEqual(over["result"], "opponent")
            self.assertEqual(over["reason"], "resignation")

    def test_illegal_move_is_acknowledged_as_rejected(self) -> None:
        with self.client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "start", "provider": "random"})
            _receive_until(ws, lambda f: f[-1]["type"] == "GameStartEvent")

            ws.send_json({"type": "move", "from": "e2", "to": "e5"})
            frames = _receive_until(
                ws,
                lambda f: any(x["type"] == "move_ack" for x in f)
                and any(x["type"] == "MoveRejectedEvent" for x in f),
            )
            ack = next(x for x in frames if x["type"] == "move_ack")
            self.assertFalse(ack["accepted"])

    def test_non_string_promotion_is_rejected_not_fatal(self) -> None:
        with self.client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "start", "provider": "random"})
            _receive_until(ws, lambda f: f[-1]["type"] == "GameStartEvent")

            ws.send_json({"type": "move", "from": "e2", "to": "e4", "promotion": 5})
            frames = _receive_until(ws, lambda f: any(x["type"] == "move_ack" for x in f))
            self.assertFalse(next(x for x in frames if x["type"] == "move_ack")["accepted"])

            ws.send_json({"type": "move", "from": "e2", "to": "e4"})
            frames = _receive_until(ws, lambda f: any(x["type"] == "move_ack" for x in f))
            self.assertTrue(next(x for x in frames if x["type"] == "move_ack")["accepted"])

    def test_bad_credentials_are_reported(self) -> None:
        with self.client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "start", "provider": "openai", "model_id": "gpt-4o", "api_key": "bad"})
            frame = ws.receive_json()
            self.assertEqual(frame, {"type": "error", "message": "API key should start with 'sk-'"})

    def test_move_without_game_is_an_error(self) -> None:
        with self.client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "move", "from": "e2", "to": "e4"})
            self.assertEqual(ws.receive_json()["message"], "No game has been started")

            ws.send_json({"type": "dance"})
            self.assertEqual(ws.receive_json()["type"], "error")

    def test_random_opponent_takes_no_credentials(self) -> None:
        with self.client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "start", "provider": "random"})
            _receive_until(ws, lambda f: f[-1]["type"] == "GameStartEvent")

            ws.send_json({"type": "credentials", "api_key": "sk-new"})
            frames = _receive_until(ws, lambda f: f[-1]["type"] == "error")
            self.assertIn("does not use credentials", frames[-1]["message"])


if __name__ == "__main__":
    unittest.main()
