"""
Timed-text fetching: caption track URLs and conventional guessed URLs.

- A track URL is tried as a JSON3 query variant first, then as-is.
- Without any track list, a small fixed set of conventional timed-text
  URLs (language/kind variants) is tried in order.
- A candidate that fails to fetch or parse is logged and skipped; the
  first non-empty parse wins.
"""

from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlencode, urljoin, urlparse, urlunparse, parse_qsl

from error_handler import TranscriptError, classify_strategy_error
from log_events import evt
from models import TranscriptSegment
from page_fetcher import mask_url_for_logging
from segment_parsers import parse_timed_text

YOUTUBE_ORIGIN = "https://www.youtube.com"
TIMEDTEXT_BASE = "https://www.youtube.com/api/timedtext"


def normalize_track_url(url: str) -> str:
    """Undo JS/HTML escaping left in scraped URLs and make them absolute."""
    cleaned = (
        url.replace("\\u0026", "&")
        .replace("\\/", "/")
        .replace("&amp;", "&")
        .strip()
    )
    return urljoin(YOUTUBE_ORIGIN + "/", cleaned)


def with_query_param(url: str, name: str, value: str) -> str:
    """Return `url` with query parameter `name` set to `value` (replacing any existing one)."""
    parsed = urlparse(url)
    params = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k != name]
    params.append((name, value))
    return urlunparse(parsed._replace(query=urlencode(params)))


def track_url_candidates(base_url: str) -> List[str]:
    """JSON3 variant first, then the raw track URL."""
    raw = normalize_track_url(base_url)
    if dict(parse_qsl(urlparse(raw).query)).get("fmt") == "json3":
        return [raw]
    return [with_query_param(raw, "fmt", "json3"), raw]


def guess_timedtext_urls(video_id: str, preferred_lang: str = "en") -> List[str]:
    """Conventional timed-text URLs differing only by language/kind."""
    variants: List[Tuple[str, Optional[str]]] = [(preferred_lang, None), (preferred_lang, "asr")]
    if preferred_lang != "en":
        variants += [("en", None), ("en", "asr")]

    urls = []
    for lang, kind in variants:
        query = {"v": video_id, "lang": lang}
        if kind:
            query["kind"] = kind
        query["fmt"] = "json3"
        urls.append(f"{TIMEDTEXT_BASE}?{urlencode(query)}")
    return urls


def fetch_first_segments(fetcher, urls: Sequence[str], log, referer: Optional[str] = None) -> List[TranscriptSegment]:
    """
    Fetch each URL in turn and return the first non-empty parse.

    FetchError/ParseError/SchemaMiss on a candidate moves on to the next.
    """
    headers = {"Referer": referer} if referer else None
    for url in urls:
        safe_url = mask_url_for_logging(url)
        try:
            body = fetcher.fetch_text(url, headers=headers)
            segments = parse_timed_text(body)
        except TranscriptError as e:
            evt(log, "timedtext_candidate_failed", url=safe_url, reason=classify_strategy_error(e))
            continue
        if segments:
            evt(log, "timedtext_candidate_success", url=safe_url, segments=len(segments))
            return segments
        evt(log, "timedtext_candidate_empty", url=safe_url)
    return []


def fetch_track_segments(fetcher, base_url: str, log, video_id: Optional[str] = None) -> List[TranscriptSegment]:
    """Fetch and parse one caption track (JSON3 variant, then raw URL)."""
    referer = f"{YOUTUBE_ORIGIN}/watch?v={video_id}" if video_id else None
    return fetch_first_segments(fetcher, track_url_candidates(base_url), log, referer=referer)


def fetch_guessed_timedtext(fetcher, video_id: str, preferred_lang: str, log) -> List[TranscriptSegment]:
    """Try the conventional timed-text URLs without any token or track list."""
    referer = f"{YOUTUBE_ORIGIN}/watch?v={video_id}"
    return fetch_first_segments(fetcher, guess_timedtext_urls(video_id, preferred_lang), log, referer=referer)
