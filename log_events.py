"""
Event helper functions for structured JSON logging.

Every helper takes the logger to write to; pipeline code passes the
per-call logger bound by TranscriptService.resolve.
"""

import logging
import time
from typing import Any, Dict, Optional, Union

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def evt(log: LoggerLike, event: str, level: int = logging.INFO, **fields) -> None:
    """
    Emit a structured event with consistent field naming.

    Args:
        log: Logger or bound adapter to emit on
        event: The event type/name
        level: Logging level (INFO by default)
        **fields: Additional fields to include in the event

    Example:
        evt(log, "strategy_skipped", strategy="embed_page_fallback", reason="no_blob")
    """
    event_data = {"event": event}
    event_data.update(fields)
    log.log(level, "", extra=event_data)


class StageTimer:
    """
    Context manager for automatic stage timing with structured logging.

    Emits stage_start on entry and stage_result on exit with duration.
    The body may call set_outcome() to report "empty" instead of "success";
    an exception always reports "error" and is not suppressed.

    Example:
        with StageTimer(log, "signed_track_url") as timer:
            segments = run()
            timer.set_outcome("success" if segments else "empty", segments=len(segments))
    """

    def __init__(self, log: LoggerLike, stage: str, **context_fields):
        self.log = log
        self.stage = stage
        self.context_fields = context_fields
        self.start_time: Optional[float] = None
        self.outcome = "success"
        self.result_fields: Dict[str, Any] = {}

    def set_outcome(self, outcome: str, **fields) -> None:
        self.outcome = outcome
        self.result_fields.update(fields)

    def __enter__(self):
        self.start_time = time.monotonic()
        evt(self.log, "stage_start", stage=self.stage, **self.context_fields)
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if self.start_time is None:
            duration_ms = 0
        else:
            duration_ms = int((time.monotonic() - self.start_time) * 1000)

        event_fields = {
            "stage": self.stage,
            "outcome": self.outcome,
            "dur_ms": duration_ms,
            **self.context_fields,
            **self.result_fields,
        }
        if exc_type is not None:
            event_fields["outcome"] = "error"
            event_fields["detail"] = f"{exc_type.__name__}: {str(exc_value)}"

        evt(self.log, "stage_result", **event_fields)

        return False
