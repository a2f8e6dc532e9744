"""
Data model for the transcript acquisition pipeline.

Segments, caption tracks and the result object handed back to callers.
None of these are persisted; each call builds its own.
"""

import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from error_handler import InvalidVideoId

VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")

# watch?v=, youtu.be/, embed/ and shorts/ forms
_VIDEO_URL_RE = re.compile(
    r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/)"
    r"([A-Za-z0-9_-]{11})"
)

STATUS_OK = "ok"
STATUS_EMPTY = "empty"
STATUS_ERROR = "error"


@dataclass
class TranscriptSegment:
    """A single caption cue: text plus start/duration in seconds."""
    text: str
    start: float
    duration: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CaptionTrack:
    """Per-language pointer to a timed-text resource."""
    base_url: str
    language_code: str
    kind: str = ""

    @classmethod
    def from_json(cls, data: Any) -> Optional["CaptionTrack"]:
        """Build a track from a player-response `captionTracks` entry, or None if unusable."""
        if not isinstance(data, dict):
            return None
        base_url = data.get("baseUrl") or data.get("url")
        if not isinstance(base_url, str) or not base_url:
            return None
        language_code = data.get("languageCode") or ""
        return cls(
            base_url=base_url,
            language_code=str(language_code),
            kind=str(data.get("kind") or ""),
        )


@dataclass
class TranscriptResult:
    """What TranscriptService.resolve hands back: segments plus a status."""
    segments: List[TranscriptSegment] = field(default_factory=list)
    status: str = STATUS_EMPTY
    strategy: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "segments": [s.to_dict() for s in self.segments],
            "status": self.status,
        }
        if self.strategy:
            data["strategy"] = self.strategy
        if self.error:
            data["error"] = self.error
        return data


def validate_video_id(video_id: Any) -> str:
    """
    Return the video id unchanged if it is well formed.

    Raises:
        InvalidVideoId: for None, non-strings, empty strings and anything
            that is not exactly 11 characters of [A-Za-z0-9_-].
    """
    if not isinstance(video_id, str) or not video_id:
        raise InvalidVideoId("Video ID required", video_id)
    if not VIDEO_ID_RE.match(video_id):
        raise InvalidVideoId("Malformed video ID", video_id)
    return video_id


def extract_video_id(text: Optional[str]) -> Optional[str]:
    """Pull a video id out of a bare id or a watch/short/embed URL."""
    if not text:
        return None
    text = text.strip()
    if VIDEO_ID_RE.match(text):
        return text
    match = _VIDEO_URL_RE.search(text)
    return match.group(1) if match else None
