import logging

from flask import Blueprint, request, jsonify

from maintpulse import state

log = logging.getLogger("maintpulse.routes.settings")

bp = Blueprint("settings", __name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def apply_log_level(level_name: str):
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.getLogger().setLevel(level)


@bp.route("/settings")
def get_settings():
    return jsonify(state.settings.to_dict())


@bp.route("/settings", methods=["POST"])
def update_settings():
    """Alert and intake settings apply from the next login on."""
    data = request.json or {}

    if "log_level" in data:
        level = str(data["log_level"]).upper()
        if level not in _LOG_LEVELS:
            return jsonify({"error": f"log_level must be one of {', '.join(_LOG_LEVELS)}"}), 400
        state.settings.log_level = level
        apply_log_level(level)

    if "alert_ms" in data:
        try:
            state.settings.alert_ms = max(1000, int(data["alert_ms"]))
        except (ValueError, TypeError):
            return jsonify({"error": "alert_ms must be an integer"}), 400

    if "id_strategy" in data:
        if data["id_strategy"] not in ("time", "uuid"):
            return jsonify({"error": "id_strategy must be time or uuid"}), 400
        state.settings.id_strategy = data["id_strategy"]

    if "dedupe" in data:
        state.settings.dedupe = bool(data["dedupe"])

    log.info("Settings updated: %s", state.settings.to_dict())
    return jsonify(state.settings.to_dict())
