"""
Core logging infrastructure for the transcript pipeline.

Provides minimal JSON logging, a rate-limit filter, third-party noise
suppression and per-call bound loggers. Request context (video_id,
request_id) travels on the logger a caller passes down, never on
module-level state.
"""

import json
import logging
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Set, MutableMapping, Tuple
from collections import defaultdict


# Fields emitted first, in this order, when present on a record
_ORDERED_FIELDS = (
    'video_id', 'request_id', 'stage', 'strategy', 'event', 'outcome', 'dur_ms', 'detail',
)

_STANDARD_FIELDS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime', 'ts', 'lvl',
} | set(_ORDERED_FIELDS)


class ContextLogger(logging.LoggerAdapter):
    """
    LoggerAdapter that merges its bound context with per-call `extra`.

    The stock adapter replaces `extra` outright; this one keeps both so
    evt() fields and bound request context end up on the same record.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get('extra') or {})
        kwargs['extra'] = extra
        return msg, kwargs

    def bind(self, **context) -> 'ContextLogger':
        """Return a new adapter with additional bound fields."""
        merged = dict(self.extra or {})
        merged.update({k: v for k, v in context.items() if v is not None})
        return ContextLogger(self.logger, merged)


def bind_logger(logger: Optional[logging.Logger] = None, **context) -> ContextLogger:
    """
    Build a per-call logger carrying request context.

    Args:
        logger: Logger or adapter to wrap (defaults to the 'transcript' logger)
        **context: Fields attached to every record, e.g. video_id

    Returns:
        ContextLogger with a fresh request_id unless one was supplied
    """
    if isinstance(logger, ContextLogger):
        return logger.bind(**context)
    base = logger if logger is not None else logging.getLogger('transcript')
    if isinstance(base, logging.LoggerAdapter):
        base = base.logger
    context.setdefault('request_id', uuid.uuid4().hex[:12])
    return ContextLogger(base, {k: v for k, v in context.items() if v is not None})


class JsonFormatter(logging.Formatter):
    """
    JSON formatter with standardized field order.

    Produces single-line JSON with stable schema:
    ts, lvl, video_id, request_id, stage, strategy, event, outcome, dur_ms, detail
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as single-line JSON."""
        try:
            dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
            timestamp = dt.strftime('%Y-%m-%dT%H:%M:%S') + f'.{int(dt.microsecond / 1000):03d}Z'

            log_data = {
                'ts': timestamp,
                'lvl': record.levelname
            }

            for field in _ORDERED_FIELDS:
                value = getattr(record, field, None)
                if value is not None:
                    log_data[field] = value

            # Any other extra passed via logger.info(extra=...)
            for attr_name, attr_value in record.__dict__.items():
                if (attr_name.startswith('_') or attr_name in _STANDARD_FIELDS
                        or attr_value is None or callable(attr_value)):
                    continue
                log_data[attr_name] = attr_value

            if 'detail' not in log_data and record.getMessage():
                log_data['detail'] = record.getMessage()

            if record.exc_info:
                log_data['exc'] = self.formatException(record.exc_info)

            return json.dumps(log_data, separators=(',', ':'), ensure_ascii=False, default=str)

        except Exception:
            return json.dumps({
                'ts': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
                'lvl': record.levelname,
                'detail': str(record.msg),
            })


class RateLimitFilter(logging.Filter):
    """
    Rate limiting filter to prevent log spam.

    Limits messages to `per_key` per key per `window_sec` sliding window.
    Emits a suppression marker the first time a key goes over its limit.
    """

    def __init__(self, per_key: int = 5, window_sec: int = 60):
        super().__init__()
        self.per_key = per_key
        self.window_sec = window_sec
        self.counts: Dict[str, list] = defaultdict(list)
        self.suppressed: Set[str] = set()
        self._lock = threading.Lock()

    def _get_message_key(self, record: logging.LogRecord) -> str:
        # Structured events share an empty message, so key them on event name
        event = getattr(record, 'event', None)
        if event:
            return f"{record.levelname}:evt:{event}:{getattr(record, 'request_id', '')}"
        return f"{record.levelname}:{record.getMessage()[:100]}"

    def _cleanup_old_entries(self, key: str, now: float):
        cutoff = now - self.window_sec
        self.counts[key] = [ts for ts in self.counts[key] if ts > cutoff]

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            key = self._get_message_key(record)
            now = time.time()

            with self._lock:
                self._cleanup_old_entries(key, now)

                if len(self.counts[key]) < self.per_key:
                    self.counts[key].append(now)
                    self.suppressed.discard(key)
                    return True

                if key not in self.suppressed:
                    self.suppressed.add(key)
                    record.msg = f"{record.getMessage()} [suppressed]"
                    record.args = ()
                    return True

                return False

        except Exception:
            return True


def configure_logging(log_level: str = "INFO", use_json: bool = True) -> logging.Logger:
    """
    Configure console logging for an entry point (CLI or web app).

    Library code never calls this; it only logs through the logger it
    was handed.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        use_json: Whether to use JSON formatting (True) or basic formatting (False)

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    handler = logging.StreamHandler()

    if use_json:
        formatter = JsonFormatter()
        handler.addFilter(RateLimitFilter())
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    _suppress_library_noise()

    return root_logger


def _suppress_library_noise():
    """Suppress verbose logging from third-party libraries."""
    library_levels = {
        'urllib3': logging.WARNING,
        'requests': logging.WARNING,
        'werkzeug': logging.WARNING,
    }

    for library, level in library_levels.items():
        logging.getLogger(library).setLevel(level)


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
