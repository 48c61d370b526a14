"""
Wires the push path to the session.

While someone is logged in the hub owns exactly one PushChannel, one
NotificationIntake and one AlertPresenter for them. Logging out (or the
session expiring) closes all three; logging in as someone else, or with a
different role, replaces them. Nothing on the push path outlives the
session it was built for.
"""
import logging
import threading

from maintpulse.alerts import AlertPresenter
from maintpulse.channel import PushChannel
from maintpulse.models import DISCONNECTED, ClientSettings
from maintpulse.notifications import NotificationIntake
from maintpulse.session import SessionStore

log = logging.getLogger("maintpulse.hub")

RECONNECTING_BANNER = "Reconnecting to notifications..."


class NotificationHub:

    def __init__(self, session: SessionStore, settings: ClientSettings,
                 channel_factory=None, timer_factory=None):
        self.session = session
        self.settings = settings
        self._channel_factory = channel_factory or PushChannel
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._key: tuple[str, str | None] | None = None
        self.channel: PushChannel | None = None
        self.presenter: AlertPresenter | None = None
        self.intake: NotificationIntake | None = None
        self._intake_sub = None
        self._session_sub = None

    def start(self):
        """Follow the session from now on, and catch up with its current state."""
        if self._session_sub is None:
            self._session_sub = self.session.subscribe(self._on_session)
        self._on_session(self.session)

    def close(self):
        if self._session_sub is not None:
            self._session_sub.unsubscribe()
            self._session_sub = None
        with self._lock:
            parts = self._detach_locked()
        self._teardown(*parts)

    # ── Views ─────────────────────────────────────────────────

    @property
    def connected(self) -> bool:
        channel = self.channel
        return channel is not None and channel.connected

    @property
    def state(self) -> str:
        channel = self.channel
        return channel.state if channel is not None else DISCONNECTED

    @property
    def banner(self) -> str | None:
        if self.channel is not None and not self.connected:
            return RECONNECTING_BANNER
        return None

    @property
    def channels(self) -> list[str]:
        channel = self.channel
        return sorted(channel.channels) if channel is not None else []

    def alerts(self) -> list[dict]:
        presenter = self.presenter
        return presenter.snapshot() if presenter is not None else []

    def dismiss(self, alert_id: str) -> int:
        presenter = self.presenter
        return presenter.dismiss(alert_id) if presenter is not None else 0

    def reconnect(self) -> bool:
        channel = self.channel
        return channel.reconnect() if channel is not None else False

    def to_dict(self) -> dict:
        return {
            "connected": self.connected,
            "state": self.state,
            "banner": self.banner,
            "channels": self.channels,
            "alerts": self.alerts(),
        }

    # ── Session following ─────────────────────────────────────

    def _on_session(self, session: SessionStore):
        key = (session.user_id, session.role) if session.is_logged_in else None
        with self._lock:
            if key == self._key:
                return
            old = self._detach_locked()
            new_channel = self._attach_locked(key) if key is not None else None
        self._teardown(*old)
        if new_channel is not None:
            new_channel.start()

    def _attach_locked(self, key):
        identity, role = key
        s = self.settings
        presenter = AlertPresenter(duration_ms=s.alert_ms, exit_ms=s.exit_ms,
                                   timer_factory=self._timer_factory)
        intake = NotificationIntake(presenter, id_strategy=s.id_strategy, dedupe=s.dedupe)
        channel = self._channel_factory(
            s.asset_url, identity, role,
            retry_attempts=s.retry_attempts,
            retry_delay=s.retry_delay,
            transports=s.transports,
            socketio_path=s.socketio_path,
        )
        self._intake_sub = intake.attach(channel)
        self._key = key
        self.channel, self.presenter, self.intake = channel, presenter, intake
        log.info("Notification path opened for %s (%s)", identity, role)
        return channel

    def _detach_locked(self):
        parts = (self.channel, self.presenter, self._intake_sub)
        self._key = None
        self.channel = self.presenter = self.intake = None
        self._intake_sub = None
        return parts

    def _teardown(self, channel, presenter, intake_sub):
        if intake_sub is not None:
            intake_sub.unsubscribe()
        if channel is not None:
            channel.close()
        if presenter is not None:
            presenter.close()
        if channel is not None:
            log.info("Notification path closed for %s", channel.identity)
