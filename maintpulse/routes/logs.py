"""GET /logs: the in-memory log buffer, for push and backend troubleshooting."""
import logging

from flask import Blueprint, Response, jsonify, request

from maintpulse.log_buffer import DEFAULT_CAPACITY, get_recent_logs

log = logging.getLogger("maintpulse.routes.logs")

bp = Blueprint("logs", __name__)

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_FORMATS = ("json", "text")


@bp.route("/logs")
def get_logs():
    """
    Query: tail (lines, 1..buffer capacity, default 200), level (minimum
    level name), format (json or text).
    """
    tail = request.args.get("tail", default=200, type=int)
    tail = max(1, min(DEFAULT_CAPACITY, tail))

    level = (request.args.get("level") or "").strip().upper() or None
    if level is not None and level not in _LEVELS:
        return jsonify({"error": f"level must be one of {', '.join(_LEVELS)}"}), 400

    fmt = (request.args.get("format") or "json").strip().lower()
    if fmt not in _FORMATS:
        return jsonify({"error": "format must be json or text"}), 400

    entries = get_recent_logs(limit=tail, min_level=level)
    if fmt == "text":
        body = "".join(f"{e['message']}\n" for e in entries)
        return Response(body, mimetype="text/plain; charset=utf-8")
    return jsonify({"lines": entries, "count": len(entries), "level": level})
