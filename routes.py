import logging

from flask import Blueprint, current_app, jsonify, request

from models import STATUS_EMPTY, STATUS_ERROR, extract_video_id

transcript_routes = Blueprint("transcript_routes", __name__)

logger = logging.getLogger(__name__)


def _service():
    return current_app.extensions["transcript_service"]


@transcript_routes.route("/api/transcript")
def get_transcript():
    """
    GET /api/transcript?videoId=<id> (or url=<watch/short/embed url>)

    200 {"transcript": [...], "status": "ok" | "empty"} or
    400 {"transcript": [], "status": "error", "error": ...}
    """
    raw = request.args.get("videoId") or request.args.get("url") or ""
    if not raw.strip():
        return jsonify({"transcript": [], "status": STATUS_ERROR, "error": "Video ID required"}), 400

    # Unrecognized input goes through as-is so the service rejects it with its own message
    video_id = extract_video_id(raw) or raw.strip()
    lang = request.args.get("lang") or None

    result = _service().resolve(video_id, logger=logger, preferred_lang=lang)

    body = {
        "transcript": [segment.to_dict() for segment in result.segments],
        "status": result.status,
    }
    if result.status == STATUS_ERROR:
        body["error"] = result.error or "Invalid video ID"
        return jsonify(body), 400
    if result.status == STATUS_EMPTY:
        body["error"] = "No transcript available"
    else:
        body["strategy"] = result.strategy
    return jsonify(body), 200


@transcript_routes.route("/api/health")
def health_check():
    service = _service()
    return jsonify({
        "status": "healthy",
        "strategies": service.orchestrator.names,
        "config": service.config.to_dict(),
    })
