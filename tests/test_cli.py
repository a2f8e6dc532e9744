"""
Tests for the command-line entry point.
"""

import io
import json
import logging
import os
import sys
import unittest
from unittest.mock import Mock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import cli
from models import TranscriptResult, TranscriptSegment


class TestCli(unittest.TestCase):

    def setUp(self):
        root = logging.getLogger()
        self.saved_handlers = root.handlers[:]
        self.saved_level = root.level
        self.service = Mock()
        self.out = io.StringIO()

    def tearDown(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in self.saved_handlers:
            root.addHandler(handler)
        root.setLevel(self.saved_level)

    def test_text_output_and_exit_zero(self):
        self.service.resolve.return_value = TranscriptResult(
            [TranscriptSegment("Hello", 0.0, 2.0), TranscriptSegment("Later", 3725.0, 1.0)],
            status="ok", strategy="timedtext_guess")

        code = cli.main(["https://www.youtube.com/watch?v=dQw4w9WgXcQ"], service=self.service, out=self.out)

        self.assertEqual(code, 0)
        self.assertEqual(self.out.getvalue().splitlines(), ["[0:00] Hello", "[1:02:05] Later"])
        self.assertEqual(self.service.resolve.call_args[0][0], "dQw4w9WgXcQ")

    def test_json_output(self):
        self.service.resolve.return_value = TranscriptResult(
            [TranscriptSegment("Hi", 1.5, 2.0)], status="ok", strategy="signed_track_url")

        code = cli.main(["dQw4w9WgXcQ", "--format", "json", "--lang", "de", "--timeout", "10"],
                        service=self.service, out=self.out)

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(self.out.getvalue())["segments"][0]["start"], 1.5)
        kwargs = self.service.resolve.call_args[1]
        self.assertEqual(kwargs["preferred_lang"], "de")
        self.assertEqual(kwargs["timeout"], 10.0)

    def test_empty_exit_one(self):
        self.service.resolve.return_value = TranscriptResult(status="empty")
        self.assertEqual(cli.main(["dQw4w9WgXcQ"], service=self.service, out=self.out), 1)
        self.assertIn("No transcript available", self.out.getvalue())

    def test_invalid_exit_two(self):
        self.service.resolve.return_value = TranscriptResult(status="error", error="Malformed video ID")
        self.assertEqual(cli.main(["bogus"], service=self.service, out=self.out), 2)
        self.assertEqual(self.service.resolve.call_args[0][0], "bogus")


if __name__ == "__main__":
    unittest.main()
