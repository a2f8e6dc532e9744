"""
TranscriptService: the single entry point of the transcript pipeline.

resolve(video_id) validates the id, runs the strategy orchestrator with a
fresh fetcher, context and bound logger, and normalizes the outcome to
{segments, status}. It never raises: invalid input is status "error",
everything upstream that fails or finds nothing is status "empty".
"""

import dataclasses
import logging
import time
from typing import Callable, Optional, Sequence

import requests

from error_handler import InvalidVideoId, error_detail
from log_events import evt
from logging_setup import bind_logger
from models import (
    STATUS_EMPTY,
    STATUS_ERROR,
    STATUS_OK,
    TranscriptResult,
    validate_video_id,
)
from page_fetcher import PageFetcher
from strategies import StrategyContext
from strategy_orchestrator import OrchestratorResult, StrategyOrchestrator
from transcript_config import TranscriptConfig


class TranscriptService:
    """
    Facade over the strategy orchestrator.

    Args:
        config: TranscriptConfig (loaded from the environment if omitted)
        session_factory: returns the requests session used for one call;
            by default each call gets its own session, closed afterwards
        strategies: explicit (name, callable) list overriding the configured order
    """

    def __init__(
        self,
        config: Optional[TranscriptConfig] = None,
        session_factory: Optional[Callable[[], requests.Session]] = None,
        strategies: Optional[Sequence] = None,
    ):
        self.config = config or TranscriptConfig.from_env()
        self.session_factory = session_factory
        if strategies is not None:
            self.orchestrator = StrategyOrchestrator(strategies)
        else:
            self.orchestrator = StrategyOrchestrator.from_names(self.config.strategy_order)

    def resolve(
        self,
        video_id: str,
        logger: Optional[logging.Logger] = None,
        timeout: Optional[float] = None,
        cancel_event=None,
        preferred_lang: Optional[str] = None,
    ) -> TranscriptResult:
        """
        Obtain a time-aligned transcript for one video.

        Args:
            video_id: 11-character video id (URLs are not accepted here)
            logger: logger to bind request context onto; nothing global is touched
            timeout: overall budget in seconds (defaults to config.deadline)
            cancel_event: object with is_set(), e.g. threading.Event
            preferred_lang: overrides config.preferred_lang for this call

        Returns:
            TranscriptResult with status "ok", "empty" or "error"
        """
        log = bind_logger(logger, video_id=video_id if isinstance(video_id, str) and video_id else None)

        try:
            validate_video_id(video_id)
        except InvalidVideoId as e:
            evt(log, "transcript_invalid_input", level=logging.WARNING, detail=str(e))
            return TranscriptResult(segments=[], status=STATUS_ERROR, error=str(e))

        config = self.config
        if preferred_lang:
            config = dataclasses.replace(config, preferred_lang=preferred_lang)

        budget = timeout if timeout is not None else config.deadline
        fetcher = PageFetcher(
            session=self.session_factory() if self.session_factory else None,
            timeout=config.fetch_timeout,
            retries=config.fetch_retries,
            deadline=time.monotonic() + budget,
            cancel_event=cancel_event,
            log=log,
            proxy=config.http_proxy,
        )

        started = time.monotonic()
        evt(log, "transcript_resolve_start", strategies=self.orchestrator.names,
            preferred_lang=config.preferred_lang)
        try:
            ctx = StrategyContext(fetcher, config, log)
            outcome = self.orchestrator.run(video_id, ctx, log=log, cancel_event=cancel_event)
        except Exception as e:
            log.exception("", extra={"event": "transcript_resolve_crashed", "detail": error_detail(e)})
            outcome = OrchestratorResult()
        finally:
            fetcher.close()

        if outcome.segments:
            result = TranscriptResult(segments=outcome.segments, status=STATUS_OK, strategy=outcome.strategy)
        else:
            result = TranscriptResult(segments=[], status=STATUS_EMPTY)

        evt(log, "transcript_resolve_result", outcome=result.status, strategy=result.strategy,
            segments=len(result.segments), requests=fetcher.request_count,
            cancelled=outcome.cancelled or None, dur_ms=int((time.monotonic() - started) * 1000))
        return result
