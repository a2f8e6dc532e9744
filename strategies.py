"""
Transcript extraction strategies.

Each strategy has the uniform signature `strategy(video_id, ctx) -> segments`
and is wrapped by a boundary that turns FetchError, ParseError, SchemaMiss and
lookup errors into an empty list. A strategy may try several candidate URLs,
tokens or client profiles internally and returns on the first non-empty parse.

StrategyContext is built fresh for every resolve() call. It carries the
fetcher, configuration and bound logger, and memoises the watch/embed pages
so later strategies reuse what earlier ones already downloaded.
"""

import functools
import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from blob_extractor import extract_assignment, extract_innertube_api_key, extract_player_response, extract_ytcfg
from caption_track_selector import caption_tracks_from_player_response, choose
from deep_key_search import get_path
from error_handler import FetchError, SchemaMiss, TranscriptError, classify_strategy_error, error_detail
from log_events import evt
from models import CaptionTrack, TranscriptSegment
from timedtext_service import fetch_first_segments, fetch_guessed_timedtext, fetch_track_segments, normalize_track_url
from transcript_config import TranscriptConfig
from youtubei_service import (
    PROFILES,
    TRANSCRIPT_PARAMS_PATH,
    extract_transcript_params,
    fetch_transcript_with_profiles,
    mint_transcript_params,
    resolve_profiles,
)

Strategy = Callable[[str, "StrategyContext"], List[TranscriptSegment]]

# name -> boundary-wrapped strategy, in definition order
STRATEGIES: Dict[str, Strategy] = {}

_CAPTION_TRACKS_RE = re.compile(r'\\?"captionTracks\\?"\s*:\s*\[')
_TIMEDTEXT_BASE_URL_RE = re.compile(r'"baseUrl"\s*:\s*"([^"]*timedtext[^"]*)"')
_MAX_ARRAY_CANDIDATES = 64


class StrategyContext:
    """Per-call collaborators and page memo shared by the strategies of one resolve()."""

    def __init__(self, fetcher, config: Optional[TranscriptConfig] = None, log=None):
        self.fetcher = fetcher
        self.config = config or TranscriptConfig()
        self.log = log if log is not None else fetcher.log
        self.profiles = resolve_profiles(self.config.client_profiles) or [PROFILES["desktop"]]
        self._pages: Dict[Tuple[str, str], Any] = {}
        self._parsed: Dict[Tuple[str, str, str], Any] = {}

    @property
    def preferred_lang(self) -> str:
        return self.config.preferred_lang

    @property
    def max_depth(self) -> int:
        return self.config.max_search_depth

    def page(self, video_id: str, variant: str) -> str:
        """Page HTML, fetched at most once per call; a failed fetch fails the same way again."""
        key = (video_id, variant)
        if key not in self._pages:
            try:
                self._pages[key] = self.fetcher.fetch(video_id, variant)
            except FetchError as e:
                self._pages[key] = e
        cached = self._pages[key]
        if isinstance(cached, FetchError):
            raise FetchError(str(cached), url=cached.url, status_code=cached.status_code,
                             reason=cached.reason)
        return cached

    def _memo(self, video_id: str, variant: str, kind: str, build: Callable[[str], Any]) -> Any:
        key = (video_id, variant, kind)
        if key not in self._parsed:
            self._parsed[key] = build(self.page(video_id, variant))
        return self._parsed[key]

    def player_response(self, video_id: str, variant: str) -> Optional[dict]:
        return self._memo(video_id, variant, "player_response",
                          lambda html: extract_player_response(html, max_depth=self.max_depth))

    def initial_data(self, video_id: str) -> Optional[Any]:
        return self._memo(video_id, "watch", "initial_data",
                          lambda html: extract_assignment(html, "ytInitialData"))

    def ytcfg(self, video_id: str, variant: str) -> dict:
        return self._memo(video_id, variant, "ytcfg", lambda html: extract_ytcfg(html) or {})


def strategy(name: str):
    """Register a strategy under `name` and wrap it in the error boundary."""
    def decorator(func: Strategy) -> Strategy:
        @functools.wraps(func)
        def wrapper(video_id: str, ctx: StrategyContext) -> List[TranscriptSegment]:
            try:
                return list(func(video_id, ctx) or [])
            except (TranscriptError, KeyError, IndexError, TypeError, ValueError) as e:
                evt(ctx.log, "strategy_failed", strategy=name,
                    reason=classify_strategy_error(e), detail=error_detail(e))
                return []

        wrapper.strategy_name = name
        STRATEGIES[name] = wrapper
        return wrapper

    return decorator


# --- Helpers ---

def _tracks_flow(video_id: str, ctx: StrategyContext, variant: str, name: str) -> List[TranscriptSegment]:
    """page -> player response -> caption tracks -> chosen track -> segments."""
    player_response = ctx.player_response(video_id, variant)
    if player_response is None:
        evt(ctx.log, "strategy_skipped", strategy=name, reason="no_player_response")
        return []

    playability = get_path(player_response, "playabilityStatus.status")
    if playability and playability != "OK":
        evt(ctx.log, "player_not_playable", strategy=name, playability=playability)

    tracks = caption_tracks_from_player_response(player_response, max_depth=ctx.max_depth)
    track = choose(tracks, ctx.preferred_lang)
    if track is None:
        evt(ctx.log, "strategy_skipped", strategy=name, reason="no_caption_tracks")
        return []

    evt(ctx.log, "caption_track_selected", strategy=name, lang=track.language_code,
        kind=track.kind or None, available=len(tracks))
    return fetch_track_segments(ctx.fetcher, track.base_url, ctx.log, video_id=video_id)


def _unescape_js(text: str) -> str:
    return (
        text.replace('\\"', '"')
        .replace("\\/", "/")
        .replace("\\u0026", "&")
        .replace("\\\\", "\\")
    )


def _parse_array_at(text: str, start: int) -> Optional[list]:
    """Parse the JSON array opening at `start`, trying successive closing brackets."""
    for count, match in enumerate(re.finditer(r"\]", text[start:])):
        if count >= _MAX_ARRAY_CANDIDATES:
            break
        try:
            value = json.loads(text[start:start + match.end()])
        except (ValueError, RecursionError):
            continue
        if isinstance(value, list):
            return value
    return None


def caption_urls_from_raw_html(html: str) -> List[str]:
    """
    Caption track URLs recovered from raw, possibly JS-escaped, page text.

    Reads the captionTracks array when it parses after unescaping;
    otherwise falls back to every baseUrl that points at timedtext.
    """
    urls: List[str] = []
    for text in (html, _unescape_js(html)):
        for match in _CAPTION_TRACKS_RE.finditer(text):
            raw_tracks = _parse_array_at(text, match.end() - 1)
            for raw in raw_tracks or []:
                track = CaptionTrack.from_json(raw)
                if track is not None and track.base_url not in urls:
                    urls.append(track.base_url)
        if urls:
            return urls

    for text in (html, _unescape_js(html)):
        for match in _TIMEDTEXT_BASE_URL_RE.finditer(text):
            if match.group(1) not in urls:
                urls.append(match.group(1))
        if urls:
            break
    return urls


# --- Strategies, in default order ---

@strategy("signed_track_url")
def signed_track_url(video_id: str, ctx: StrategyContext) -> List[TranscriptSegment]:
    """Caption track URL from the watch page's player response."""
    return _tracks_flow(video_id, ctx, "watch", "signed_track_url")


@strategy("embed_page_fallback")
def embed_page_fallback(video_id: str, ctx: StrategyContext) -> List[TranscriptSegment]:
    """Same flow against the embed page, which sometimes keeps caption data the watch page drops."""
    return _tracks_flow(video_id, ctx, "embed", "embed_page_fallback")


@strategy("innertube_transcript_rpc")
def innertube_transcript_rpc(video_id: str, ctx: StrategyContext) -> List[TranscriptSegment]:
    """get_transcript RPC using the API key and token found on the watch page."""
    html = ctx.page(video_id, "watch")
    ytcfg = ctx.ytcfg(video_id, "watch")

    initial_data = ctx.initial_data(video_id)
    params = extract_transcript_params(initial_data, max_depth=ctx.max_depth) if initial_data else None
    if not params:
        raise SchemaMiss(TRANSCRIPT_PARAMS_PATH)

    api_key = extract_innertube_api_key(html, ytcfg)
    if not api_key:
        evt(ctx.log, "innertube_api_key_default", strategy="innertube_transcript_rpc")
        api_key = ctx.config.innertube_api_key

    return fetch_transcript_with_profiles(
        ctx.fetcher, api_key, params, ctx.profiles, video_id, ctx.log,
        client_version=ytcfg.get("INNERTUBE_CLIENT_VERSION"),
        visitor_data=ytcfg.get("VISITOR_DATA"),
    )


@strategy("innertube_fresh_params")
def innertube_fresh_params(video_id: str, ctx: StrategyContext) -> List[TranscriptSegment]:
    """Mint a transcript token through the `next` RPC, then call get_transcript with it."""
    api_key = None
    ytcfg: dict = {}
    page_params = None
    try:
        html = ctx.page(video_id, "watch")
        ytcfg = ctx.ytcfg(video_id, "watch")
        api_key = extract_innertube_api_key(html, ytcfg)
        initial_data = ctx.initial_data(video_id)
        if initial_data:
            page_params = extract_transcript_params(initial_data, max_depth=ctx.max_depth)
    except FetchError as e:
        if e.reason in ("cancelled", "deadline"):
            raise
        evt(ctx.log, "watch_page_unavailable", strategy="innertube_fresh_params", reason=e.reason)

    if page_params and not ctx.config.always_mint_params:
        evt(ctx.log, "strategy_skipped", strategy="innertube_fresh_params", reason="page_token_present")
        return []

    api_key = api_key or ctx.config.innertube_api_key
    client_version = ytcfg.get("INNERTUBE_CLIENT_VERSION")
    visitor_data = ytcfg.get("VISITOR_DATA")

    params = mint_transcript_params(
        ctx.fetcher, api_key, video_id, ctx.profiles[0], max_depth=ctx.max_depth,
        client_version=client_version, visitor_data=visitor_data,
    )
    evt(ctx.log, "transcript_params_minted", strategy="innertube_fresh_params")
    return fetch_transcript_with_profiles(
        ctx.fetcher, api_key, params, ctx.profiles, video_id, ctx.log,
        client_version=client_version, visitor_data=visitor_data,
    )


@strategy("timedtext_guess")
def timedtext_guess(video_id: str, ctx: StrategyContext) -> List[TranscriptSegment]:
    """Conventional timed-text URLs, no token needed."""
    return fetch_guessed_timedtext(ctx.fetcher, video_id, ctx.preferred_lang, ctx.log)


@strategy("embed_trick_caption_url")
def embed_trick_caption_url(video_id: str, ctx: StrategyContext) -> List[TranscriptSegment]:
    """Last resort: first caption URL found anywhere in the raw embed page, fetched as-is."""
    html = ctx.page(video_id, "embed")
    urls = caption_urls_from_raw_html(html)
    if not urls:
        raise SchemaMiss("captionTracks")
    first = normalize_track_url(urls[0])
    return fetch_first_segments(ctx.fetcher, [first], ctx.log,
                                referer=f"https://www.youtube.com/watch?v={video_id}")
