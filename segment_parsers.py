"""
Decoders from caption payloads to TranscriptSegment lists.

- XML timed-text: <text start="S" dur="D">content</text>
- JSON3 timed-text: {"events": [{"tStartMs", "dDurationMs", "segs": [{"utf8"}]}]}
- get_transcript RPC responses (cue groups, and the newer segment list)

The server does not announce the format reliably, so parse_timed_text()
tries JSON3 first and falls back to XML on a JSON decode failure.
Segments whose text is empty after decoding and trimming are dropped.
"""

import json
import re
from typing import Any, List, Optional

from deep_key_search import get_path
from error_handler import ParseError, SchemaMiss
from models import TranscriptSegment

_TEXT_NODE_RE = re.compile(r"<text\b([^>]*?)(?<!/)>(.*?)</text>", re.DOTALL)
_ATTR_RE = re.compile(r"""([A-Za-z_:][-\w:.]*)\s*=\s*(?:"([^"]*)"|'([^']*)')""")
_INNER_TAG_RE = re.compile(r"<[^>]+>")

_ENTITIES = {
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
}
_ENTITY_RE = re.compile("|".join(re.escape(e) for e in _ENTITIES))

# Where a get_transcript response keeps its transcriptRenderer
_RENDERER_ACTION_PATHS = (
    "updateEngagementPanelAction.content.transcriptRenderer",
    "showTranscriptAction.panelContent.transcriptRenderer",
)
_CUE_GROUPS_PATH = "body.transcriptBodyRenderer.cueGroups"
_SEGMENT_LIST_PATH = "content.transcriptSearchPanelRenderer.body.transcriptSegmentListRenderer.initialSegments"


def decode_entities(text: str) -> str:
    """
    Decode exactly &amp; &lt; &gt; &quot; &#39;.

    &amp; goes first, so double-escaped cues such as `&amp;#39;` come out as `'`.
    """
    return _ENTITY_RE.sub(lambda m: _ENTITIES[m.group(0)], text.replace("&amp;", "&"))


def _clean_text(text: str) -> str:
    return text.replace("\r\n", " ").replace("\n", " ").strip()


def _seconds(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    seconds = float(value)
    return seconds if seconds > 0 else 0.0


def _ms_to_seconds(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    seconds = float(value) / 1000.0
    return seconds if seconds > 0 else 0.0


def parse_timed_text_xml(text: str) -> List[TranscriptSegment]:
    """
    Parse XML timed-text into segments, in document order.

    Raises:
        ParseError: the body is not XML at all
    """
    body = (text or "").strip()
    if not body.startswith("<"):
        raise ParseError("timed-text body is not XML", step="xml")

    segments = []
    for match in _TEXT_NODE_RE.finditer(body):
        attrs = {m.group(1): m.group(2) if m.group(2) is not None else m.group(3)
                 for m in _ATTR_RE.finditer(match.group(1))}
        if "start" not in attrs:
            continue
        try:
            start = _seconds(attrs.get("start"))
            duration = _seconds(attrs.get("dur"))
        except ValueError:
            continue
        content = _INNER_TAG_RE.sub("", match.group(2))
        cue = _clean_text(decode_entities(content))
        if cue:
            segments.append(TranscriptSegment(text=cue, start=start, duration=duration))
    return segments


def parse_timed_text_json3(text: str) -> List[TranscriptSegment]:
    """
    Parse JSON3 timed-text.

    Events without a `segs` array, or whose joined text trims to nothing,
    are dropped. Times are converted from milliseconds to seconds.

    Raises:
        ParseError: the body is not JSON
        SchemaMiss: the JSON has no `events` array
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError, RecursionError) as e:
        raise ParseError(f"timed-text body is not JSON: {str(e)[:80]}", step="json3") from e

    events = data.get("events") if isinstance(data, dict) else None
    if not isinstance(events, list):
        raise SchemaMiss("events")

    segments = []
    for event in events:
        if not isinstance(event, dict) or not isinstance(event.get("segs"), list):
            continue
        cue = "".join(
            seg["utf8"] for seg in event["segs"]
            if isinstance(seg, dict) and isinstance(seg.get("utf8"), str)
        ).strip()
        if not cue:
            continue
        try:
            start = _ms_to_seconds(event.get("tStartMs"))
            duration = _ms_to_seconds(event.get("dDurationMs"))
        except (TypeError, ValueError):
            continue
        segments.append(TranscriptSegment(text=cue, start=start, duration=duration))
    return segments


def parse_timed_text(text: str) -> List[TranscriptSegment]:
    """JSON3 first; XML if the body does not decode as JSON."""
    try:
        return parse_timed_text_json3(text)
    except ParseError:
        return parse_timed_text_xml(text)


def find_transcript_renderer(data: Any) -> Optional[dict]:
    """Locate the transcriptRenderer node of a get_transcript response."""
    if not isinstance(data, dict):
        return None
    actions = data.get("actions")
    if isinstance(actions, list):
        for action in actions:
            for path in _RENDERER_ACTION_PATHS:
                renderer = get_path(action, path)
                if isinstance(renderer, dict):
                    return renderer
    renderer = get_path(data, "content.transcriptRenderer")
    return renderer if isinstance(renderer, dict) else None


def _cue_label_text(cue_renderer: dict) -> str:
    for key in ("label", "cue"):
        label = cue_renderer.get(key)
        if not isinstance(label, dict):
            continue
        if isinstance(label.get("simpleText"), str):
            return label["simpleText"]
        runs = label.get("runs")
        if isinstance(runs, list) and runs and isinstance(runs[0], dict):
            text = runs[0].get("text")
            return text if isinstance(text, str) else ""
    return ""


def _parse_cue_groups(cue_groups: list) -> List[TranscriptSegment]:
    segments = []
    for group in cue_groups:
        cue_renderer = get_path(group, "transcriptCueGroupRenderer.cues.0.transcriptCueRenderer")
        if not isinstance(cue_renderer, dict):
            continue
        cue = _clean_text(_cue_label_text(cue_renderer))
        if not cue:
            continue
        try:
            start = _ms_to_seconds(cue_renderer.get("startOffsetMs"))
            duration = _ms_to_seconds(cue_renderer.get("durationMs"))
        except (TypeError, ValueError):
            continue
        segments.append(TranscriptSegment(text=cue, start=start, duration=duration))
    return segments


def _parse_segment_list(initial_segments: list) -> List[TranscriptSegment]:
    segments = []
    for item in initial_segments:
        renderer = get_path(item, "transcriptSegmentRenderer")
        if not isinstance(renderer, dict):
            continue
        runs = get_path(renderer, "snippet.runs") or []
        cue = _clean_text("".join(
            r["text"] for r in runs if isinstance(r, dict) and isinstance(r.get("text"), str)
        ))
        if not cue:
            continue
        try:
            start = _ms_to_seconds(renderer.get("startMs"))
            if renderer.get("endMs") not in (None, ""):
                duration = max(0.0, _ms_to_seconds(renderer.get("endMs")) - start)
            else:
                duration = _ms_to_seconds(renderer.get("durationMs"))
        except (TypeError, ValueError):
            continue
        segments.append(TranscriptSegment(text=cue, start=start, duration=duration))
    return segments


def parse_innertube_cue_groups(data: Any) -> List[TranscriptSegment]:
    """
    Parse a get_transcript RPC response.

    Reads body.transcriptBodyRenderer.cueGroups; responses that use the
    newer transcriptSegmentListRenderer layout are read from there instead.

    Raises:
        SchemaMiss: no transcriptRenderer, or it holds neither layout
    """
    renderer = find_transcript_renderer(data)
    if renderer is None:
        raise SchemaMiss("transcriptRenderer")

    cue_groups = get_path(renderer, _CUE_GROUPS_PATH)
    if isinstance(cue_groups, list):
        return _parse_cue_groups(cue_groups)

    initial_segments = get_path(renderer, _SEGMENT_LIST_PATH)
    if isinstance(initial_segments, list):
        return _parse_segment_list(initial_segments)

    raise SchemaMiss(_CUE_GROUPS_PATH)
