import logging

from flask import Blueprint, jsonify

from maintpulse import state
from maintpulse.api import NotificationsApi
from maintpulse.http_client import ApiError
from maintpulse.routes.common import api_error, require_login

log = logging.getLogger("maintpulse.routes.notifications")

bp = Blueprint("notifications", __name__)


@bp.route("/notifications")
def list_notifications():
    denied = require_login()
    if denied:
        return denied
    with state.http.scope() as scope:
        try:
            items = NotificationsApi(scope).list()
        except ApiError as exc:
            return api_error(exc)
    return jsonify([n.to_dict() for n in items])


@bp.route("/notifications/lastfour")
def recent_notifications():
    denied = require_login()
    if denied:
        return denied
    with state.http.scope() as scope:
        try:
            items = NotificationsApi(scope).last_four()
        except ApiError as exc:
            return api_error(exc)
    return jsonify([n.to_dict() for n in items])


@bp.route("/notifications/<notif_id>")
def open_notification(notif_id):
    """Fetch one notification; opening it marks it read."""
    denied = require_login()
    if denied:
        return denied
    with state.http.scope() as scope:
        try:
            notif = NotificationsApi(scope).open(notif_id)
        except ApiError as exc:
            return api_error(exc)
    return jsonify(notif.to_dict())


@bp.route("/notifications/<notif_id>/read", methods=["PATCH"])
def mark_read(notif_id):
    denied = require_login()
    if denied:
        return denied
    with state.http.scope() as scope:
        try:
            NotificationsApi(scope).mark_read(notif_id)
        except ApiError as exc:
            return api_error(exc)
    return jsonify({"ok": True})


@bp.route("/notifications/<notif_id>", methods=["DELETE"])
def delete_notification(notif_id):
    denied = require_login()
    if denied:
        return denied
    with state.http.scope() as scope:
        try:
            NotificationsApi(scope).delete(notif_id)
        except ApiError as exc:
            return api_error(exc)
    log.info("Deleted notification %s", notif_id)
    return jsonify({"ok": True})
