"""
Unit tests for log_events.py event helper functions.

Tests the evt() function and StageTimer context manager for:
- Consistent event emission on the logger passed in
- Outcome reporting (success, empty, error)
- Bound request context on every record
"""

import unittest
import logging
import json
from io import StringIO

# Add parent directory to path for imports
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from log_events import evt, StageTimer
from logging_setup import JsonFormatter, bind_logger


class LogCaptureTestCase(unittest.TestCase):
    """Captures JSON lines written to a dedicated logger."""

    def setUp(self):
        self.log_buffer = StringIO()
        self.handler = logging.StreamHandler(self.log_buffer)
        self.handler.setFormatter(JsonFormatter())
        self.logger = logging.getLogger(f"tests.log_events.{self.id()}")
        self.logger.addHandler(self.handler)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

    def tearDown(self):
        self.logger.removeHandler(self.handler)
        self.handler.close()

    def records(self):
        return [json.loads(line) for line in self.log_buffer.getvalue().splitlines() if line.strip()]


class TestEvtFunction(LogCaptureTestCase):

    def test_evt_basic_event_emission(self):
        evt(self.logger, "test_event", field1="value1", field2=42)

        record = self.records()[0]
        self.assertEqual(record["event"], "test_event")
        self.assertEqual(record["field1"], "value1")
        self.assertEqual(record["field2"], 42)
        self.assertEqual(record["lvl"], "INFO")
        self.assertNotIn("detail", record)

    def test_evt_custom_level(self):
        evt(self.logger, "warned", level=logging.WARNING)
        self.assertEqual(self.records()[0]["lvl"], "WARNING")

    def test_evt_respects_logger_level(self):
        self.logger.setLevel(logging.WARNING)
        evt(self.logger, "quiet")
        self.assertEqual(self.records(), [])

    def test_evt_on_bound_logger_carries_context(self):
        log = bind_logger(self.logger, video_id="abc12345678")
        evt(log, "bound_event", strategy="signed_track_url")

        record = self.records()[0]
        self.assertEqual(record["video_id"], "abc12345678")
        self.assertEqual(record["strategy"], "signed_track_url")
        self.assertEqual(len(record["request_id"]), 12)


class TestStageTimer(LogCaptureTestCase):

    def test_success_emits_start_and_result(self):
        with StageTimer(self.logger, "signed_track_url", attempt=1):
            pass

        start, result = self.records()
        self.assertEqual(start["event"], "stage_start")
        self.assertEqual(start["stage"], "signed_track_url")
        self.assertEqual(start["attempt"], 1)
        self.assertEqual(result["event"], "stage_result")
        self.assertEqual(result["outcome"], "success")
        self.assertIsInstance(result["dur_ms"], int)
        self.assertGreaterEqual(result["dur_ms"], 0)

    def test_set_outcome_reports_empty(self):
        with StageTimer(self.logger, "timedtext_guess") as timer:
            timer.set_outcome("empty", segments=0)

        result = self.records()[-1]
        self.assertEqual(result["outcome"], "empty")
        self.assertEqual(result["segments"], 0)

    def test_exception_reports_error_and_propagates(self):
        with self.assertRaises(ValueError):
            with StageTimer(self.logger, "embed_page_fallback"):
                raise ValueError("bad blob")

        result = self.records()[-1]
        self.assertEqual(result["outcome"], "error")
        self.assertEqual(result["detail"], "ValueError: bad blob")


if __name__ == '__main__':
    unittest.main()
