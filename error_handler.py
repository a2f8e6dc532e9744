"""
Error taxonomy for the transcript pipeline and failure classification for logs.

FetchError, ParseError and SchemaMiss never escape a strategy; they are
downgraded to "no segments" at the strategy boundary. InvalidVideoId is the
only error a caller ever observes, and only as status="error".
"""

from typing import Any, Optional

import requests


class TranscriptError(Exception):
    """Base class for all pipeline errors."""


class FetchError(TranscriptError):
    """Network failure, timeout, non-2xx status, cancellation or deadline."""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None,
                 reason: str = "network"):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.reason = reason


class ParseError(TranscriptError):
    """Malformed JSON/XML at a given decoding step."""

    def __init__(self, message: str, step: str = "unknown"):
        super().__init__(message)
        self.step = step


class SchemaMiss(TranscriptError):
    """An expected key is absent from a traversed JSON tree."""

    def __init__(self, key_path: str):
        super().__init__(f"missing key: {key_path}")
        self.key_path = key_path


class InvalidVideoId(TranscriptError):
    """Empty or malformed video id, rejected before any network call."""

    def __init__(self, message: str, video_id: Any = None):
        super().__init__(message)
        self.video_id = video_id


def classify_strategy_error(error: BaseException) -> str:
    """
    Map an exception raised inside a strategy to a short label for logging.

    Returns one of: fetch_<reason>, parse_<step>, schema_miss, lookup_error,
    invalid_input, unexpected.
    """
    if isinstance(error, FetchError):
        if error.reason == "status" and error.status_code:
            return f"fetch_status_{error.status_code}"
        return f"fetch_{error.reason}"
    if isinstance(error, ParseError):
        return f"parse_{error.step}"
    if isinstance(error, SchemaMiss):
        return "schema_miss"
    if isinstance(error, InvalidVideoId):
        return "invalid_input"
    if isinstance(error, requests.exceptions.Timeout):
        return "fetch_timeout"
    if isinstance(error, requests.exceptions.RequestException):
        return "fetch_network"
    if isinstance(error, (KeyError, IndexError, TypeError)):
        return "lookup_error"
    return "unexpected"


def error_detail(error: BaseException, limit: int = 160) -> str:
    """`Type: message`, truncated for log lines."""
    return f"{type(error).__name__}: {str(error)[:limit]}"
