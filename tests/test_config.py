import tempfile
import textwrap
import unittest
from pathlib import Path

from chessduel.config import default_config, load_config


class LoadConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "config.yaml"

    def _write(self, text: str) -> Path:
        self.path.write_text(textwrap.dedent(text), encoding="utf-8")
        return self.path

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config(self.path)

    def test_empty_file_uses_defaults(self) -> None:
        cfg = load_config(self._write(""))

        self.assertEqual(cfg.game.starting_seconds, 600)
        self.assertEqual(cfg.game.history_window, 7)
        self.assertEqual(cfg.game.temperature, 0.5)
        self.assertEqual(cfg.game.player_color, "white")
        self.assertIsNone(cfg.game.fallback_seed)
        self.assertEqual([m.id for m in cfg.providers["openai"].models],
                         ["gpt-4o", "gpt-4-turbo", "gpt-3.5-turbo"])

    def test_values_are_read(self) -> None:
        cfg = load_config(self._write("""
            game:
              starting_seconds: 300
              history_window: 4
              player_color: black
              fallback_seed: 9
              log_dir: /tmp/duel-logs
            providers:
              anthropic:
                api_key: sk-ant-xyz
                models:
                  - id: claude-sonnet-4-5
                    name: Claude Sonnet
                  - id: claude-haiku-4-5
        """))

        self.assertEqual(cfg.game.starting_seconds, 300)
        self.assertEqual(cfg.game.history_window, 4)
        self.assertEqual(cfg.game.player_color, "black")
        self.assertEqual(cfg.game.fallback_seed, 9)
        self.assertEqual(cfg.log_dir_path, Path("/tmp/duel-logs"))
        self.assertEqual(list(cfg.providers), ["anthropic"])
        self.assertEqual(cfg.providers["anthropic"].api_key, "sk-ant-xyz")
        self.assertEqual(cfg.find_model("anthropic", "claude-haiku-4-5").name, "claude-haiku-4-5")
        self.assertIsNone(cfg.find_model("anthropic", "gpt-4o"))

    def test_invalid_values_raise(self) -> None:
        cases = [
            "game:\n  player_color: green\n",
            "game:\n  starting_seconds: 0\n",
            "game:\n  history_window: -1\n",
            "game:\n  temperature: 3\n",
            "providers:\n  openai:\n    models:\n      - name: no id\n",
        ]
        for text in cases:
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    load_config(self._write(text))

    def test_all_models_flattens_providers(self) -> None:
        entries = default_config().all_models()
        self.assertEqual(entries[0][0], "openai")
        self.assertEqual(entries[0][1].name, "GPT-4o (Best quality)")


if __name__ == "__main__":
    unittest.main()
