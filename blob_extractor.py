"""
BlobExtractor: pull embedded JSON objects out of page HTML.

A page may end the `var ytInitialPlayerResponse = {...}` assignment with a
semicolon, a closing </script> tag or a bare newline, and which one shows
up varies between renders. Each terminator is tried in that priority
order; a candidate that fails to parse never stops the others.
"""

import json
import re
from typing import Any, Optional, Pattern, Sequence, Tuple

from deep_key_search import find_value

# Terminators in priority order: semicolon, script tag, newline
TERMINATORS: Tuple[Tuple[str, Pattern], ...] = (
    ("semicolon", re.compile(r"\}\s*;")),
    ("script_tag", re.compile(r"\}\s*;?\s*</script>", re.IGNORECASE)),
    ("newline", re.compile(r"\}[ \t]*;?[ \t]*\r?\n")),
)

# Candidate end positions tried per assignment and terminator
MAX_CANDIDATES = 64

_API_KEY_PATTERNS = (
    re.compile(r'"INNERTUBE_API_KEY"\s*:\s*"([^"]+)"'),
    re.compile(r'INNERTUBE_API_KEY\\"\s*:\s*\\"([^\\"]+)\\"'),
    re.compile(r'"innertubeApiKey"\s*:\s*"([^"]+)"'),
)


def _assignment_starts(html: str, variable_name: str) -> Sequence[int]:
    """Offsets of the opening brace of every `<name> = {` assignment."""
    pattern = re.compile(
        r"(?:window\s*\[\s*['\"]" + re.escape(variable_name) + r"['\"]\s*\]|\b"
        + re.escape(variable_name) + r")\s*=\s*(\{)"
    )
    return [m.start(1) for m in pattern.finditer(html)]


def _parse_between(html: str, start: int, terminator: Pattern) -> Optional[Any]:
    """Try successive terminator matches after `start` until one yields valid JSON."""
    for count, match in enumerate(terminator.finditer(html, start)):
        if count >= MAX_CANDIDATES:
            break
        candidate = html[start:match.start() + 1]
        try:
            return json.loads(candidate)
        except (ValueError, RecursionError):
            continue
    return None


def extract_assignment(html: str, variable_name: str) -> Optional[Any]:
    """
    Extract and parse the JSON object assigned to `variable_name`.

    Args:
        html: Raw page text
        variable_name: e.g. "ytInitialPlayerResponse" or "ytInitialData"

    Returns:
        The parsed JSON value, or None when no terminator yields parseable
        JSON. Absence is an expected outcome, not an error.
    """
    if not html or not variable_name:
        return None

    starts = _assignment_starts(html, variable_name)
    if not starts:
        return None

    for _name, terminator in TERMINATORS:
        for start in starts:
            value = _parse_between(html, start, terminator)
            if value is not None:
                return value
    return None


def extract_ytcfg(html: str) -> Optional[dict]:
    """
    Merge every `ytcfg.set({...})` object on the page into one dict.

    Later calls win on key conflicts, matching how the page applies them.
    """
    if not html:
        return None
    merged = {}
    terminator = re.compile(r"\}\s*\)\s*;?")
    for match in re.finditer(r"ytcfg\.set\s*\(\s*(\{)", html):
        value = _parse_between(html, match.start(1), terminator)
        if isinstance(value, dict):
            merged.update(value)
    return merged or None


def extract_innertube_api_key(html: str, ytcfg: Optional[dict] = None) -> Optional[str]:
    """API key for the internal RPC endpoints, from ytcfg or the raw page text."""
    if ytcfg and isinstance(ytcfg.get("INNERTUBE_API_KEY"), str):
        return ytcfg["INNERTUBE_API_KEY"]
    for pattern in _API_KEY_PATTERNS:
        match = pattern.search(html or "")
        if match:
            return match.group(1).strip()
    return None


def extract_player_response(html: str, max_depth: int = 1000) -> Optional[dict]:
    """
    Player response from a watch or embed page.

    Watch pages assign ytInitialPlayerResponse directly; embed pages often
    only carry it as the JSON string `embedded_player_response` in ytcfg.
    """
    blob = extract_assignment(html, "ytInitialPlayerResponse")
    if isinstance(blob, dict):
        return blob

    ytcfg = extract_ytcfg(html)
    if ytcfg:
        embedded = find_value(ytcfg, "embedded_player_response", max_depth=max_depth)
        if isinstance(embedded, str):
            try:
                decoded = json.loads(embedded)
            except (ValueError, RecursionError):
                decoded = None
            if isinstance(decoded, dict):
                return decoded
        elif isinstance(embedded, dict):
            return embedded
    return None
