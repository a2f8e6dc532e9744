"""
Tests for the internal RPC client: profiles, request shape, token minting.
"""

import logging
import os
import sys
import unittest
from unittest.mock import Mock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from error_handler import FetchError, SchemaMiss
from fake_http import cue_groups_response, initial_data_with_token
from youtubei_service import (
    PROFILES,
    build_context,
    extract_transcript_params,
    fetch_transcript_with_profiles,
    mint_transcript_params,
    request_transcript,
    resolve_profiles,
    rpc_url,
)

log = logging.getLogger("tests.youtubei_service")


class TestProfiles(unittest.TestCase):

    def test_resolve_profiles_keeps_order_and_skips_unknown(self):
        profiles = resolve_profiles(["mobile", "tv", "desktop"])
        self.assertEqual([p.name for p in profiles], ["mobile", "desktop"])

    def test_build_context(self):
        context = build_context(PROFILES["desktop"], visitor_data="VISITOR")
        client = context["client"]
        self.assertEqual(client["clientName"], "WEB")
        self.assertEqual(client["clientVersion"], PROFILES["desktop"].client_version)
        self.assertEqual(client["visitorData"], "VISITOR")

    def test_rpc_url(self):
        self.assertEqual(rpc_url("get_transcript", "K"),
                         "https://www.youtube.com/youtubei/v1/get_transcript?key=K&prettyPrint=false")
        self.assertNotIn("key=", rpc_url("next", None))


class TestTranscriptParams(unittest.TestCase):

    def test_extract_from_initial_data(self):
        self.assertEqual(extract_transcript_params(initial_data_with_token("TOK")), "TOK")

    def test_missing_or_empty(self):
        self.assertIsNone(extract_transcript_params({"contents": {}}))
        self.assertIsNone(extract_transcript_params({"getTranscriptEndpoint": {"params": ""}}))

    def test_mint_posts_video_id(self):
        fetcher = Mock()
        fetcher.fetch_json.return_value = initial_data_with_token("FRESH")

        params = mint_transcript_params(fetcher, "KEY", "abc12345678", PROFILES["desktop"])

        self.assertEqual(params, "FRESH")
        url = fetcher.fetch_json.call_args[0][0]
        self.assertIn("/youtubei/v1/next", url)
        self.assertEqual(fetcher.fetch_json.call_args[1]["body"]["videoId"], "abc12345678")

    def test_mint_without_token_is_schema_miss(self):
        fetcher = Mock()
        fetcher.fetch_json.return_value = {"contents": {}}
        with self.assertRaises(SchemaMiss):
            mint_transcript_params(fetcher, "KEY", "abc12345678", PROFILES["desktop"])


class TestTranscriptRequests(unittest.TestCase):

    def test_request_transcript_shape(self):
        fetcher = Mock()
        fetcher.fetch_json.return_value = cue_groups_response([("hello", 0, 1000)])

        segments = request_transcript(fetcher, "KEY", "PARAMS", PROFILES["mobile"], "abc12345678",
                                      client_version="2.2099")

        self.assertEqual(segments[0].text, "hello")
        kwargs = fetcher.fetch_json.call_args[1]
        self.assertEqual(kwargs["body"]["params"], "PARAMS")
        # page client version only applies to the desktop web client
        self.assertEqual(kwargs["body"]["context"]["client"]["clientVersion"], PROFILES["mobile"].client_version)
        self.assertEqual(kwargs["headers"]["Origin"], "https://m.youtube.com")

    def test_profiles_tried_until_one_returns_segments(self):
        fetcher = Mock()
        fetcher.fetch_json.side_effect = [
            FetchError("HTTP 400", status_code=400, reason="status"),
            cue_groups_response([("second", 0, 1000)]),
        ]

        segments = fetch_transcript_with_profiles(
            fetcher, "KEY", "PARAMS", [PROFILES["desktop"], PROFILES["mobile"]], "abc12345678", log)

        self.assertEqual([s.text for s in segments], ["second"])
        self.assertEqual(fetcher.fetch_json.call_count, 2)

    def test_all_profiles_failing_returns_empty(self):
        fetcher = Mock()
        fetcher.fetch_json.return_value = {"responseContext": {}}

        segments = fetch_transcript_with_profiles(
            fetcher, "KEY", "PARAMS", [PROFILES["desktop"], PROFILES["mobile"]], "abc12345678", log)

        self.assertEqual(segments, [])
        self.assertEqual(fetcher.fetch_json.call_count, 2)


if __name__ == "__main__":
    unittest.main()
