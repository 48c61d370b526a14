import logging

from flask import Blueprint, request, jsonify

from maintpulse import state
from maintpulse.api import AuthApi
from maintpulse.http_client import ApiError
from maintpulse.models import ROLES
from maintpulse.routes.common import api_error, require_login

log = logging.getLogger("maintpulse.routes.auth")

bp = Blueprint("auth", __name__)


@bp.route("/session")
def get_session():
    return jsonify(state.session.to_dict())


@bp.route("/login", methods=["POST"])
def login():
    data = request.json or {}
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    if not email or not password:
        return jsonify({"error": "email and password are required"}), 400

    with state.http.scope() as scope:
        try:
            result = AuthApi(scope).login(email, password)
        except ApiError as exc:
            return api_error(exc)
    state.session.login(result.user_id, result.token, result.role)
    return jsonify(state.session.to_dict())


@bp.route("/signup", methods=["POST"])
def signup():
    form = request.form
    missing = [f for f in ("email", "name", "password", "role") if not form.get(f)]
    if missing:
        return jsonify({"error": f"missing field(s): {', '.join(missing)}"}), 400
    if form["role"] not in ROLES:
        return jsonify({"error": f"role must be one of {ROLES}"}), 400

    image = None
    upload = request.files.get("image")
    if upload and upload.filename:
        image = (upload.filename, upload.stream, upload.mimetype)

    with state.http.scope() as scope:
        try:
            result = AuthApi(scope).signup(
                form["email"], form["name"], form["password"], form["role"], image=image)
        except ApiError as exc:
            return api_error(exc)
    state.session.login(result.user_id, result.token, result.role)
    log.info("Signed up %s as %s", form["email"], result.role)
    return jsonify(state.session.to_dict())


@bp.route("/logout", methods=["POST"])
def logout():
    state.session.logout()
    return jsonify({"ok": True})


@bp.route("/me")
def current_user():
    denied = require_login()
    if denied:
        return denied
    with state.http.scope() as scope:
        try:
            user = AuthApi(scope).current_user()
        except ApiError as exc:
            return api_error(exc)
    return jsonify({"user": user})
