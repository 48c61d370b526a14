"""
maintpulse agent entrypoint.

Reads configuration from the environment into the shared state module,
builds the session store, HTTP client and notification hub, restores the
persisted session, registers the Flask blueprints and serves the local
dashboard API.
"""
import logging
import os

from flask import Flask, Response, jsonify

from maintpulse import state
from maintpulse.http_client import HttpClient
from maintpulse.hub import NotificationHub
from maintpulse.local_storage import LocalStorage
from maintpulse.log_buffer import install_log_handler
from maintpulse.models import ClientSettings
from maintpulse.routes import alerts as alerts_bp
from maintpulse.routes import auth as auth_bp
from maintpulse.routes import logs as logs_bp
from maintpulse.routes import notifications as notifications_bp
from maintpulse.routes import settings as settings_bp
from maintpulse.session import SessionStore

log = logging.getLogger("maintpulse.agent")


def build_runtime(settings: ClientSettings, storage: LocalStorage | None = None,
                  http=None, channel_factory=None, timer_factory=None):
    """Create the live objects and publish them on the state module."""
    if storage is None:
        storage = LocalStorage(os.path.join(settings.state_dir, "local_storage.json"))
    session = SessionStore(storage, timer_factory=timer_factory)
    client = HttpClient(settings.backend_url, session=session, http=http)
    hub = NotificationHub(session, settings, channel_factory=channel_factory,
                          timer_factory=timer_factory)

    state.settings = settings
    state.session = session
    state.http = client
    state.hub = hub
    return session, client, hub


def create_app() -> Flask:
    app = Flask(__name__)

    app.register_blueprint(auth_bp.bp)
    app.register_blueprint(notifications_bp.bp)
    app.register_blueprint(alerts_bp.bp)
    app.register_blueprint(logs_bp.bp)
    app.register_blueprint(settings_bp.bp)

    @app.route("/openapi.json")
    def openapi_json():
        from maintpulse.openapi_spec import get_openapi_dict
        return jsonify(get_openapi_dict())

    @app.route("/openapi.yaml")
    def openapi_yaml():
        from maintpulse.openapi_spec import get_openapi_yaml
        return Response(get_openapi_yaml(), mimetype="application/yaml")

    return app


def main():
    settings = ClientSettings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
    )
    install_log_handler()

    if not settings.backend_url:
        log.warning("MAINTPULSE_BACKEND_URL is not set; backend calls will fail")
    if not settings.asset_url:
        log.warning("MAINTPULSE_ASSET_URL is not set; the push connection will fail")

    session, _, hub = build_runtime(settings)
    session.restore()
    hub.start()
    log.info("backend=%s push=%s state_dir=%s",
             settings.backend_url, settings.asset_url, settings.state_dir)

    app = create_app()
    try:
        app.run(host="127.0.0.1", port=settings.port)
    finally:
        hub.close()


if __name__ == "__main__":
    main()
