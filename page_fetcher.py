"""
PageFetcher: raw watch/embed pages, caption track bodies and internal RPC calls.

Every request carries realistic browser headers and a bounded timeout
capped by the per-call deadline. Non-2xx statuses, timeouts, network
errors and cancellation all surface as FetchError; retry and fallback
belong to the strategies and the orchestrator, so by default each fetch
is a single attempt.
"""

import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urlparse, urlunparse, parse_qs

import requests
from tenacity import Retrying, stop_after_attempt, wait_exponential_jitter, retry_if_exception

from error_handler import FetchError, ParseError, InvalidVideoId
from log_events import evt
from logging_setup import get_logger
from user_agent_manager import UserAgentManager

PAGE_URLS = {
    "watch": "https://www.youtube.com/watch?v={video_id}&hl=en",
    "embed": "https://www.youtube.com/embed/{video_id}?hl=en",
}

DEFAULT_TIMEOUT = 15
RETRY_BACKOFF_MIN = 0.5
RETRY_BACKOFF_MAX = 2.0
RETRYABLE_STATUSES = {429, 500, 502, 503, 504}

# Pages served instead of content when the request looks automated
_BLOCKING_MARKERS = (
    "before you continue to youtube",
    "consent.youtube.com",
    "unusual traffic",
    "verify you are human",
    "captcha",
)


# --- Helper Functions ---

def mask_url_for_logging(url: str) -> str:
    """Mask sensitive query parameters in URLs for logging."""
    try:
        parsed = urlparse(url)
        if not parsed.query:
            return url
        params = parse_qs(parsed.query, keep_blank_values=True)
        sensitive_params = {'key', 'token', 'auth', 'session', 'sig', 'signature', 'params'}
        masked_params = {
            key: ['***MASKED***'] * len(values) if key.lower() in sensitive_params else values
            for key, values in params.items()
        }
        return urlunparse(parsed._replace(query=urlencode(masked_params, doseq=True)))
    except ValueError:
        return f"{url.split('?')[0]}?***MASKED_QUERY***" if '?' in url else url


def looks_like_blocking_page(html: str) -> bool:
    """Detect consent walls and captcha interstitials."""
    head = (html or "")[:20000].lower()
    return any(marker in head for marker in _BLOCKING_MARKERS)


def create_session(proxy: Optional[str] = None) -> requests.Session:
    """HTTP session with the consent cookie pre-set so the interstitial is skipped."""
    session = requests.Session()
    session.cookies.set("CONSENT", "YES+cb", domain=".youtube.com")
    if proxy:
        session.proxies.update({"http": proxy, "https": proxy})
    return session


def _is_transient(error: BaseException) -> bool:
    if isinstance(error, FetchError):
        return error.status_code in RETRYABLE_STATUSES
    return isinstance(error, (requests.exceptions.Timeout, requests.exceptions.ConnectionError))


class PageFetcher:
    """
    Fetches pages and RPC payloads for one resolve() call.

    Args:
        session: requests-compatible session (created if omitted)
        timeout: per-fetch timeout in seconds
        retries: transport retries per fetch (0 = single attempt)
        deadline: absolute time.monotonic() value after which fetches fail fast
        cancel_event: object with is_set(); checked before every attempt
        log: logger or bound adapter
        user_agents: header source
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = 0,
        deadline: Optional[float] = None,
        cancel_event=None,
        log=None,
        user_agents: Optional[UserAgentManager] = None,
        proxy: Optional[str] = None,
    ):
        self._owns_session = session is None
        self.session = session if session is not None else create_session(proxy)
        self.timeout = timeout
        self.retries = max(0, int(retries))
        self.deadline = deadline
        self.cancel_event = cancel_event
        self.log = log if log is not None else get_logger(__name__)
        self.user_agents = user_agents or UserAgentManager()
        self.request_count = 0

    # --- Public operations ---

    def fetch(self, video_id: str, variant: str = "watch") -> str:
        """Fetch the raw HTML of the watch or embed page for a video."""
        if not video_id:
            raise InvalidVideoId("Video ID required", video_id)
        if variant not in PAGE_URLS:
            raise ValueError(f"unknown page variant: {variant}")

        url = PAGE_URLS[variant].format(video_id=video_id)
        resp = self._request("GET", url)
        html = resp.text or ""
        if looks_like_blocking_page(html):
            evt(self.log, "page_blocking_detected", variant=variant, content_preview=html[:100])
        evt(self.log, "page_fetched", variant=variant, status_code=resp.status_code, bytes=len(html))
        return html

    def fetch_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        """GET an arbitrary URL (caption tracks, timed-text) and return its body."""
        resp = self._request("GET", url, headers=headers)
        return resp.text or ""

    def fetch_json(self, url: str, method: str = "POST", headers: Optional[Dict[str, str]] = None,
                   body: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call an internal JSON RPC endpoint.

        Returns:
            The decoded JSON value

        Raises:
            FetchError: transport failure or non-2xx status
            ParseError: body is not JSON
        """
        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)
        resp = self._request(method.upper(), url, headers=request_headers, body=body)
        try:
            return resp.json()
        except (ValueError, RecursionError) as e:
            raise ParseError(f"RPC response is not JSON: {str(e)[:100]}", step="rpc_json") from e

    def close(self) -> None:
        """Close the session if this fetcher created it."""
        if self._owns_session:
            self.session.close()

    def abort(self) -> None:
        """Close the underlying session so in-flight reads fail promptly."""
        self.session.close()

    # --- Internals ---

    def _check_cancelled(self, url: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise FetchError("fetch cancelled", url=url, reason="cancelled")

    def _effective_timeout(self, url: str) -> float:
        if self.deadline is None:
            return self.timeout
        remaining = self.deadline - time.monotonic()
        if remaining <= 0:
            raise FetchError("deadline exceeded before fetch", url=url, reason="deadline")
        return min(self.timeout, remaining)

    def _request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None,
                 body: Optional[Dict[str, Any]] = None) -> requests.Response:
        request_headers = self.user_agents.get_headers(headers)
        safe_url = mask_url_for_logging(url)

        retrying = Retrying(
            stop=stop_after_attempt(self.retries + 1),
            wait=wait_exponential_jitter(initial=RETRY_BACKOFF_MIN, max=RETRY_BACKOFF_MAX),
            retry=retry_if_exception(_is_transient),
            reraise=True,
            before_sleep=lambda s: evt(self.log, "fetch_retry", url=safe_url,
                                       attempt=s.attempt_number, sleep_s=round(s.next_action.sleep, 2)),
        )

        try:
            for attempt in retrying:
                with attempt:
                    self._check_cancelled(url)
                    timeout = self._effective_timeout(url)
                    self.request_count += 1
                    resp = self.session.request(
                        method, url, headers=request_headers, json=body, timeout=timeout,
                    )
                    if not 200 <= resp.status_code < 300:
                        raise FetchError(
                            f"HTTP {resp.status_code} for {safe_url}",
                            url=url, status_code=resp.status_code, reason="status",
                        )
                    return resp
        except FetchError as e:
            evt(self.log, "fetch_failed", url=safe_url, reason=e.reason, status_code=e.status_code)
            raise
        except requests.exceptions.Timeout as e:
            evt(self.log, "fetch_failed", url=safe_url, reason="timeout")
            raise FetchError(f"timeout fetching {safe_url}", url=url, reason="timeout") from e
        except requests.exceptions.RequestException as e:
            evt(self.log, "fetch_failed", url=safe_url, reason="network", error=str(e)[:120])
            raise FetchError(f"network error fetching {safe_url}: {str(e)[:120]}", url=url,
                             reason="network") from e
