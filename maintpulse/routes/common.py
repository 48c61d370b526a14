"""Helpers shared by the dashboard blueprints."""
import logging

from flask import jsonify

from maintpulse import state
from maintpulse.http_client import ApiError

log = logging.getLogger("maintpulse.routes.common")


def require_login():
    """Return a 401 response when nobody is logged in, else None."""
    if state.session is None or not state.session.is_logged_in:
        return jsonify({"error": "not logged in"}), 401
    return None


def api_error(exc: ApiError):
    # Transport failures have no status of their own.
    return jsonify({"error": exc.message}), exc.status or 502
