import json
import unittest

from chessduel.board import IllegalMoveError, Position, apply_move, side_to_move
from chessduel.players.llm import (
    ExtractedMove,
    ExtractionFailure,
    MalformedResponseError,
    extract_move,
)


def _reply(frm: str, to: str, reasoning: str = "Control the centre", **move_extra) -> str:
    return json.dumps({"move": {"from": frm, "to": to, **move_extra}, "reasoning": reasoning})


class ExtractMoveTests(unittest.TestCase):
    def setUp(self) -> None:
        self.position, _ = apply_move(Position(), "e2", "e4")

    def test_valid_response_is_applied(self) -> None:
        result = extract_move(_reply("e7", "e5"), self.position)

        self.assertIsInstance(result, ExtractedMove)
        assert isinstance(result, ExtractedMove)
        self.assertEqual(result.move.uci, "e7e5")
        self.assertEqual(result.reasoning, "Control the centre")
        self.assertEqual(side_to_move(result.position), "white")
        self.assertEqual(result.position.moves, ("e2e4", "e7e5"))

    def test_input_position_is_untouched(self) -> None:
        before = self.position
        extract_move(_reply("e7", "e5"), self.position)
        self.assertEqual(self.position, before)
        self.assertEqual(side_to_move(self.position), "black")

    def test_code_fenced_json_is_accepted(self) -> None:
        raw = "```json\n" + _reply("g8", "f6") + "\n```"
        result = extract_move(raw, self.position)
        self.assertIsInstance(result, ExtractedMove)

    def test_null_promotion_is_accepted(self) -> None:
        result = extract_move(_reply("d7", "d5", promotion=None), self.position)
        self.assertIsInstance(result, ExtractedMove)

    def test_prose_is_malformed(self) -> None:
        result = extract_move("I'll play e5, a solid reply.", self.position)

        self.assertIsInstance(result, ExtractionFailure)
        assert isinstance(result, ExtractionFailure)
        self.assertIsInstance(result.error, MalformedResponseError)
        self.assertEqual(result.error.raw, "I'll play e5, a solid reply.")

    def test_wrong_shape_is_malformed(self) -> None:
        cases = [
            json.dumps({"move": "e7e5", "reasoning": "x"}),
            json.dumps({"move": {"from": "e7", "to": "e5"}}),
            json.dumps({"move": {"from": 52, "to": "e5"}, "reasoning": "x"}),
            json.dumps(["e7", "e5"]),
        ]
        for raw in cases:
            with self.subTest(raw=raw):
                result = extract_move(raw, self.position)
                self.assertIsInstance(result, ExtractionFailure)
                assert isinstance(result, ExtractionFailure)
                self.assertIsInstance(result.error, MalformedResponseError)

    def test_deeply_nested_json_is_malformed(self) -> None:
        raw = "[" * 200_000 + "]" * 200_000
        result = extract_move(raw, self.position)

        self.assertIsInstance(result, ExtractionFailure)
        assert isinstance(result, ExtractionFailure)
        self.assertIsInstance(result.error, MalformedResponseError)

    def test_unknown_promotion_piece_is_illegal(self) -> None:
        result = extract_move(_reply("e7", "e5", promotion="k"), self.position)
        self.assertIsInstance(result, ExtractionFailure)
        assert isinstance(result, ExtractionFailure)
        self.assertIsInstance(result.error, IllegalMoveError)

    def test_illegal_move_is_rejected(self) -> None:
        result = extract_move(_reply("e7", "e4"), self.position)

        self.assertIsInstance(result, ExtractionFailure)
        assert isinstance(result, ExtractionFailure)
        self.assertIsInstance(result.error, IllegalMoveError)

    def test_moving_the_wrong_colour_is_illegal(self) -> None:
        result = extract_move(_reply("d2", "d4"), self.position)
        self.assertIsInstance(result, ExtractionFailure)


if __name__ == "__main__":
    unittest.main()
