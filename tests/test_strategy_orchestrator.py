"""
Tests for StrategyOrchestrator: first-success ordering, containment, cancellation.
"""

import os
import sys
import threading
import unittest
from unittest.mock import Mock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import TranscriptSegment
from strategy_orchestrator import StrategyOrchestrator


def _segments(count):
    return [TranscriptSegment(text=f"cue {i}", start=float(i), duration=1.0) for i in range(count)]


class TestStrategyOrchestrator(unittest.TestCase):

    def setUp(self):
        self.ctx = Mock()
        self.ctx.log = Mock()

    def test_stops_at_first_non_empty_strategy(self):
        first = Mock(return_value=[])
        second = Mock(return_value=[])
        third = Mock(return_value=_segments(3))
        fourth = Mock(return_value=_segments(5))
        orchestrator = StrategyOrchestrator([("a", first), ("b", second), ("c", third), ("d", fourth)])

        result = orchestrator.run("abc12345678", self.ctx)

        self.assertEqual(len(result.segments), 3)
        self.assertEqual(result.strategy, "c")
        self.assertEqual(result.attempted, ["a", "b", "c"])
        first.assert_called_once_with("abc12345678", self.ctx)
        fourth.assert_not_called()

    def test_all_empty_yields_empty_result(self):
        orchestrator = StrategyOrchestrator([("a", Mock(return_value=[])), ("b", Mock(return_value=None))])

        result = orchestrator.run("abc12345678", self.ctx)

        self.assertFalse(result)
        self.assertEqual(result.segments, [])
        self.assertIsNone(result.strategy)
        self.assertEqual(result.attempted, ["a", "b"])

    def test_crashing_strategy_is_treated_as_empty(self):
        crashing = Mock(side_effect=RuntimeError("boom"))
        fallback = Mock(return_value=_segments(1))
        orchestrator = StrategyOrchestrator([("crash", crashing), ("ok", fallback)])

        result = orchestrator.run("abc12345678", self.ctx)

        self.assertEqual(result.strategy, "ok")
        self.ctx.log.exception.assert_called_once()

    def test_cancel_checked_between_strategies(self):
        cancel = threading.Event()

        def cancel_then_empty(video_id, ctx):
            cancel.set()
            return []

        later = Mock(return_value=_segments(2))
        orchestrator = StrategyOrchestrator([("first", cancel_then_empty), ("later", later)])

        result = orchestrator.run("abc12345678", self.ctx, cancel_event=cancel)

        self.assertTrue(result.cancelled)
        self.assertEqual(result.segments, [])
        later.assert_not_called()

    def test_from_names_keeps_configured_order(self):
        registry = {"x": Mock(), "y": Mock(), "z": Mock()}
        orchestrator = StrategyOrchestrator.from_names(["z", "missing", "x"], registry=registry)
        self.assertEqual(orchestrator.names, ["z", "x"])

    def test_from_names_uses_strategy_registry(self):
        orchestrator = StrategyOrchestrator.from_names(["timedtext_guess", "signed_track_url"])
        self.assertEqual(orchestrator.names, ["timedtext_guess", "signed_track_url"])


if __name__ == "__main__":
    unittest.main()
