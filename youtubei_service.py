"""
Internal RPC (youtubei) client for transcript requests.

This module provides:
- Client profiles (desktop web, mobile web) tried in order for get_transcript
- Transcript token lookup in ytInitialData via DeepKeySearch
- Fresh token minting through the `next` endpoint using only the video id

Profile values were tuned against an undocumented service and are kept in
one table so they can be swapped without touching the call sites.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from deep_key_search import find_value
from error_handler import TranscriptError, SchemaMiss, classify_strategy_error
from log_events import evt
from models import TranscriptSegment
from segment_parsers import parse_innertube_cue_groups
from user_agent_manager import UserAgentManager

YOUTUBEI_BASE = "https://www.youtube.com/youtubei/v1"
TRANSCRIPT_PARAMS_PATH = "getTranscriptEndpoint.params"


@dataclass
class ClientProfile:
    """Client identity presented to the internal RPC endpoints."""
    name: str
    client_name: str
    client_version: str
    user_agent: str
    platform: str
    origin: str = "https://www.youtube.com"


# Multi-client profile configurations
PROFILES = {
    "desktop": ClientProfile(
        name="desktop",
        client_name="WEB",
        client_version="2.20240726.00.00",
        user_agent=UserAgentManager.USER_AGENT_CONFIG["default"],
        platform="DESKTOP",
    ),
    "mobile": ClientProfile(
        name="mobile",
        client_name="MWEB",
        client_version="2.20240726.01.00",
        user_agent=UserAgentManager.USER_AGENT_CONFIG["mobile"],
        platform="MOBILE",
        origin="https://m.youtube.com",
    ),
}


def resolve_profiles(names: Sequence[str]) -> List[ClientProfile]:
    """Profiles for the configured names, unknown names skipped."""
    return [PROFILES[name] for name in names if name in PROFILES]


def build_context(profile: ClientProfile, client_version: Optional[str] = None,
                  visitor_data: Optional[str] = None, hl: str = "en") -> Dict[str, Any]:
    """The `context` object every youtubei request carries."""
    client = {
        "clientName": profile.client_name,
        "clientVersion": client_version or profile.client_version,
        "hl": hl,
        "gl": "US",
        "platform": profile.platform,
        "userAgent": profile.user_agent,
    }
    if visitor_data:
        client["visitorData"] = visitor_data
    return {"client": client}


def rpc_headers(profile: ClientProfile, video_id: str, client_version: Optional[str] = None,
                visitor_data: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "User-Agent": profile.user_agent,
        "Origin": profile.origin,
        "Referer": f"{profile.origin}/watch?v={video_id}",
        "X-Youtube-Client-Version": client_version or profile.client_version,
        "X-Goog-AuthUser": "0",
    }
    if visitor_data:
        headers["X-Goog-Visitor-Id"] = visitor_data
    return headers


def rpc_url(endpoint: str, api_key: Optional[str]) -> str:
    query = {"prettyPrint": "false"}
    if api_key:
        query = {"key": api_key, **query}
    return f"{YOUTUBEI_BASE}/{endpoint}?{urlencode(query)}"


def extract_transcript_params(initial_data: Any, max_depth: int = 1000) -> Optional[str]:
    """Transcript token from ytInitialData (or any response tree), if present."""
    params = find_value(initial_data, TRANSCRIPT_PARAMS_PATH, max_depth=max_depth)
    return params if isinstance(params, str) and params else None


def request_transcript(fetcher, api_key: Optional[str], params: str, profile: ClientProfile,
                       video_id: str, client_version: Optional[str] = None,
                       visitor_data: Optional[str] = None) -> List[TranscriptSegment]:
    """
    POST get_transcript with one client profile and parse the cue groups.

    Raises:
        FetchError, ParseError, SchemaMiss
    """
    version = client_version if profile.client_name == "WEB" else None
    body = {
        "context": build_context(profile, version, visitor_data),
        "params": params,
    }
    data = fetcher.fetch_json(
        rpc_url("get_transcript", api_key),
        method="POST",
        headers=rpc_headers(profile, video_id, version, visitor_data),
        body=body,
    )
    return parse_innertube_cue_groups(data)


def fetch_transcript_with_profiles(fetcher, api_key: Optional[str], params: str,
                                   profiles: Sequence[ClientProfile], video_id: str, log,
                                   client_version: Optional[str] = None,
                                   visitor_data: Optional[str] = None) -> List[TranscriptSegment]:
    """Try each client profile in order; first non-empty parse wins."""
    for profile in profiles:
        try:
            segments = request_transcript(
                fetcher, api_key, params, profile, video_id,
                client_version=client_version, visitor_data=visitor_data,
            )
        except TranscriptError as e:
            evt(log, "youtubei_profile_failed", profile=profile.name, reason=classify_strategy_error(e))
            continue
        if segments:
            evt(log, "youtubei_profile_success", profile=profile.name, segments=len(segments))
            return segments
        evt(log, "youtubei_profile_empty", profile=profile.name)
    return []


def mint_transcript_params(fetcher, api_key: Optional[str], video_id: str, profile: ClientProfile,
                           max_depth: int = 1000, client_version: Optional[str] = None,
                           visitor_data: Optional[str] = None) -> str:
    """
    Obtain a fresh transcript token from the `next` endpoint.

    Raises:
        FetchError, ParseError: the call failed
        SchemaMiss: the response carries no getTranscriptEndpoint.params
    """
    version = client_version if profile.client_name == "WEB" else None
    data = fetcher.fetch_json(
        rpc_url("next", api_key),
        method="POST",
        headers=rpc_headers(profile, video_id, version, visitor_data),
        body={"context": build_context(profile, version, visitor_data), "videoId": video_id},
    )
    params = extract_transcript_params(data, max_depth=max_depth)
    if not params:
        raise SchemaMiss(TRANSCRIPT_PARAMS_PATH)
    return params
