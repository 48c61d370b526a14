import logging

from flask import Blueprint, jsonify

from maintpulse import state

log = logging.getLogger("maintpulse.routes.alerts")

bp = Blueprint("alerts", __name__)


@bp.route("/alerts")
def list_alerts():
    """Active transient alerts plus push connection status."""
    return jsonify(state.hub.to_dict())


@bp.route("/alerts/<alert_id>/dismiss", methods=["POST"])
def dismiss_alert(alert_id):
    removed = state.hub.dismiss(alert_id)
    return jsonify({"ok": removed > 0})


@bp.route("/alerts/reconnect", methods=["POST"])
def reconnect():
    started = state.hub.reconnect()
    return jsonify({"ok": started, "state": state.hub.state})
