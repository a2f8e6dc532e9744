#!/usr/bin/env python3
"""
Command-line transcript fetcher.

Usage:
    python cli.py <video id or URL> [--lang en] [--format json|text] [--timeout 60]

Exit codes: 0 transcript found, 1 no transcript available, 2 invalid input.
"""

import argparse
import json
import sys

from logging_setup import configure_logging, get_logger
from models import STATUS_ERROR, STATUS_OK, extract_video_id
from transcript_config import TranscriptConfig
from transcript_service import TranscriptService

EXIT_CODES = {STATUS_OK: 0, STATUS_ERROR: 2}


def _format_timestamp(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours:d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:d}:{secs:02d}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch a time-aligned transcript for a video")
    parser.add_argument("video", help="video id or watch/short/embed URL")
    parser.add_argument("--lang", default=None, help="preferred caption language (default: config)")
    parser.add_argument("--format", choices=("json", "text"), default="text", dest="output_format")
    parser.add_argument("--timeout", type=float, default=None, help="overall budget in seconds")
    return parser


def main(argv=None, service: TranscriptService = None, out=None) -> int:
    args = build_parser().parse_args(argv)
    out = out or sys.stdout

    config = TranscriptConfig.from_env()
    configure_logging(log_level=config.log_level, use_json=config.log_format == "json")
    service = service or TranscriptService(config=config)

    video_id = extract_video_id(args.video) or args.video
    result = service.resolve(
        video_id,
        logger=get_logger("transcript.cli"),
        timeout=args.timeout,
        preferred_lang=args.lang,
    )

    if args.output_format == "json":
        out.write(json.dumps(result.to_dict(), ensure_ascii=False, indent=2) + "\n")
    elif result.status == STATUS_OK:
        for segment in result.segments:
            out.write(f"[{_format_timestamp(segment.start)}] {segment.text}\n")
    elif result.status == STATUS_ERROR:
        out.write(f"Invalid input: {result.error}\n")
    else:
        out.write("No transcript available\n")

    return EXIT_CODES.get(result.status, 1)


if __name__ == "__main__":
    sys.exit(main())
