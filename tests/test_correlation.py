from __future__ import annotations

import sys
import unittest
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import correlation


class CorrelationCodecTests(unittest.TestCase):
    def test_round_trip_for_legal_refs(self) -> None:
        refs = [
            "a",
            "abc-123",
            "6f1c2d4e-9b7a-4c1e-8f00-1234567890ab",
            "UPPER-lower-0",
            "-",
            "x" * correlation.MAX_REF_LENGTH,
        ]
        for ref in refs:
            with self.subTest(ref=ref):
                self.assertEqual(ref, correlation.extract(correlation.embed(ref)))

    def test_extracts_from_rendered_message(self) -> None:
        text = (
            "💬 New message from Sara (+98 912)\n"
            "🆔 Chat ID: abc-123\n"
            "⏰ 2024-05-01 10:00\n\n"
            "📝 Message:\n"
            "🆔 Chat ID: someone-else"
        )
        self.assertEqual("abc-123", correlation.extract(text))

    def test_no_false_positives(self) -> None:
        samples = [
            "",
            "hello there",
            "Chat ID: abc-123",
            "🆔 Chat ID:",
            "🆔 Chat ID: ",
            "🆔 ChatID: abc-123",
            "🆔 chat id: abc-123",
            "🆔Chat ID: abc-123",
            "my 🆔 Chat ID: abc-123 is this",
            "🆔 Chat ID: abc_123",
            "🆔 Chat ID: abc 123",
            "🆔 Chat ID: " + "x" * (correlation.MAX_REF_LENGTH + 1),
            "🆔 Chat ID: <b>abc</b>",
        ]
        for text in samples:
            with self.subTest(text=text):
                self.assertIsNone(correlation.extract(text))

    def test_none_text(self) -> None:
        self.assertIsNone(correlation.extract(None))

    def test_embed_rejects_illegal_refs(self) -> None:
        for ref in ["", "abc_123", "a b", "abc\n🆔 Chat ID: x", "x" * (correlation.MAX_REF_LENGTH + 1)]:
            with self.subTest(ref=ref):
                with self.assertRaises(correlation.ConversationRefError):
                    correlation.embed(ref)


if __name__ == "__main__":
    unittest.main()
