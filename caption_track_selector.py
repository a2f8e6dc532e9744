"""
CaptionTrackSelector: pick the caption track to fetch.

Auto-generated tracks often carry a regional suffix (en-US) rather than a
bare "en", so a prefix match counts as a language match.
"""

from typing import Any, List, Optional, Sequence

from deep_key_search import get_path, find_value
from models import CaptionTrack

CAPTION_TRACKS_PATH = "captions.playerCaptionsTracklistRenderer.captionTracks"


def choose(tracks: Sequence[CaptionTrack], preferred_lang: str = "en") -> Optional[CaptionTrack]:
    """
    Choose a track by language preference.

    1. first track whose language_code equals or starts with preferred_lang
    2. otherwise the first track
    3. None for an empty list
    """
    if not tracks:
        return None
    if preferred_lang:
        for track in tracks:
            if (track.language_code or "").startswith(preferred_lang):
                return track
    return tracks[0]


def caption_tracks_from_player_response(player_response: Any, max_depth: int = 1000) -> List[CaptionTrack]:
    """
    Read the caption track list out of a player-response blob.

    Tries the usual path first, then searches the tree for a captionTracks
    list. Unusable entries (no baseUrl) are skipped.
    """
    raw_tracks = get_path(player_response, CAPTION_TRACKS_PATH)
    if not isinstance(raw_tracks, list):
        raw_tracks = find_value(player_response, "captionTracks", max_depth=max_depth)
    if not isinstance(raw_tracks, list):
        return []

    tracks = []
    for raw in raw_tracks:
        track = CaptionTrack.from_json(raw)
        if track is not None:
            tracks.append(track)
    return tracks
