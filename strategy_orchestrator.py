"""
StrategyOrchestrator: run strategies in order, stop at the first non-empty result.

The only state is the index of the next strategy. A strategy returning
one or more segments ends the run; an empty result advances the index;
running off the end yields an empty result. Strategies never run in
parallel and are never retried here.
"""

from typing import Callable, List, Optional, Sequence, Tuple

from error_handler import classify_strategy_error, error_detail
from log_events import evt, StageTimer
from logging_setup import get_logger
from models import TranscriptSegment

NamedStrategy = Tuple[str, Callable]


class OrchestratorResult:
    """Segments plus the name of the strategy that produced them."""

    def __init__(self, segments: Optional[List[TranscriptSegment]] = None, strategy: Optional[str] = None,
                 attempted: Optional[List[str]] = None, cancelled: bool = False):
        self.segments = segments or []
        self.strategy = strategy
        self.attempted = attempted or []
        self.cancelled = cancelled

    def __bool__(self) -> bool:
        return bool(self.segments)


class StrategyOrchestrator:
    """
    First-success scan over an ordered strategy list.

    Args:
        strategies: (name, callable) pairs; each callable takes (video_id, ctx)
    """

    def __init__(self, strategies: Sequence[NamedStrategy]):
        self.strategies = list(strategies)

    @classmethod
    def from_names(cls, names: Sequence[str], registry: Optional[dict] = None) -> 'StrategyOrchestrator':
        """Build from configured names; unknown names are dropped."""
        if registry is None:
            from strategies import STRATEGIES
            registry = STRATEGIES
        return cls([(name, registry[name]) for name in names if name in registry])

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.strategies]

    def run(self, video_id: str, ctx, log=None, cancel_event=None) -> OrchestratorResult:
        """
        Invoke strategies in order until one yields segments.

        Unexpected exceptions from a strategy are logged and treated as an
        empty result, so this never raises.
        """
        log = log if log is not None else getattr(ctx, "log", None) or get_logger(__name__)
        attempted: List[str] = []
        index = 0

        while index < len(self.strategies):
            if cancel_event is not None and cancel_event.is_set():
                evt(log, "orchestrator_cancelled", next_strategy=self.strategies[index][0])
                return OrchestratorResult(strategy=None, attempted=attempted, cancelled=True)

            name, run_strategy = self.strategies[index]
            attempted.append(name)
            segments: List[TranscriptSegment] = []

            with StageTimer(log, name, attempt=index + 1) as timer:
                try:
                    segments = list(run_strategy(video_id, ctx) or [])
                except Exception as e:
                    log.exception("", extra={"event": "strategy_crashed", "strategy": name,
                                             "reason": classify_strategy_error(e),
                                             "detail": error_detail(e)})
                    segments = []
                timer.set_outcome("success" if segments else "empty", segments=len(segments))

            if segments:
                evt(log, "orchestrator_success", strategy=name, segments=len(segments),
                    attempts=len(attempted))
                return OrchestratorResult(segments, strategy=name, attempted=attempted)

            index += 1

        evt(log, "orchestrator_exhausted", attempts=len(attempted))
        return OrchestratorResult(strategy=None, attempted=attempted)
