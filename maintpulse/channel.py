"""
Persistent Socket.IO connection to the push-notification service.

One PushChannel exists per logged-in identity. It connects to the asset
service's Socket.IO endpoint and, every time the connection comes up, joins
the rooms the server broadcasts to:

  join       <identity>   personal room, always
  join_role  <role>       role room, only for Supervisor and Admin

Room membership is server-side state tied to one transport session, so it
is rebuilt in full after every (re)connect and forgotten on every drop.

The server then emits:

  notification  {"_id"?, "type", "title", "message", "createdAt"}

which is handed to every subscriber as the raw payload.

State machine:

  disconnected -> connecting -> connected
  connected -> reconnecting -> connected          (transport drop)
  connecting/reconnecting -> disconnected         (retry budget spent, or close())

Reconnection is owned here, not by the Socket.IO library: the client is
created with reconnection=False and connect_and_maintain() retries up to
retry_attempts times, retry_delay seconds apart. A fresh client object is
used for every attempt. Listeners see one reconnecting state per failed
attempt; after a drop, the drop itself stands for the first one.
"""
import logging
import threading

import socketio

from maintpulse.models import (
    CONNECTED, CONNECTING, DISCONNECTED, RECONNECTING, ROLE_CHANNEL_ROLES,
    ConnectionState,
)
from maintpulse.subscriptions import ListenerRegistry, Subscription

log = logging.getLogger("maintpulse.channel")

_CONNECT_TIMEOUT = 5      # seconds to wait for the namespace handshake


def _default_client_factory():
    return socketio.Client(reconnection=False, logger=False, engineio_logger=False)


def role_channel_for(role: str | None) -> str | None:
    """The role room to join, or None for roles without one."""
    return role if role in ROLE_CHANNEL_ROLES else None


def expected_channels(identity: str, role: str | None) -> frozenset[str]:
    rooms = {identity}
    role_room = role_channel_for(role)
    if role_room:
        rooms.add(role_room)
    return frozenset(rooms)


class PushChannel:
    """
    Manages the push connection for one identity.

    Thread-safety: _client, _channels and state are guarded by _lock.
    Listeners are always called outside the lock.
    """

    def __init__(self, url: str, identity: str, role: str | None = None, *,
                 retry_attempts: int = 5, retry_delay: float = 1.0,
                 transports=("polling", "websocket"), socketio_path: str = "/socket.io/",
                 client_factory=None, sleep=None):
        self.url = url
        self.identity = identity
        self.role = role
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.transports = tuple(transports)
        self.socketio_path = socketio_path
        self._client_factory = client_factory or _default_client_factory
        self._sleep = sleep

        self._lock = threading.Lock()
        self._client = None
        self._channels: set[str] = set()
        self._running = False
        self._closed = False
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.state: ConnectionState = DISCONNECTED
        self.connected_event = threading.Event()

        self._notification_listeners = ListenerRegistry("notification")
        self._state_listeners = ListenerRegistry("connection-state")

    # ── Public API ────────────────────────────────────────────

    @property
    def connected(self) -> bool:
        return self.connected_event.is_set()

    @property
    def channels(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._channels)

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, callback) -> Subscription:
        """Call callback(payload) for every pushed notification."""
        return self._notification_listeners.subscribe(callback)

    def on_state(self, callback) -> Subscription:
        """Call callback(state) on every state transition, repeats included."""
        return self._state_listeners.subscribe(callback)

    def start(self):
        """Start the connect loop on a daemon thread."""
        with self._lock:
            if self._closed:
                raise RuntimeError(f"push channel for {self.identity} is closed")
            if self._thread is not None and self._thread.is_alive():
                return
            self._running = True
            self._stop.clear()
            self._thread = threading.Thread(
                target=self.connect_and_maintain, daemon=True,
                name=f"push-{self.identity}")
        self._thread.start()

    def reconnect(self) -> bool:
        """Restart a channel that gave up after its retry budget."""
        with self._lock:
            if self._closed or (self._thread is not None and self._thread.is_alive()):
                return False
        log.info("Reconnect requested for %s", self.identity)
        self.start()
        return True

    def close(self):
        """Release the transport; no further retries are scheduled."""
        with self._lock:
            already = self._closed
            self._closed = True
            self._running = False
            client, self._client = self._client, None
            self._channels.clear()
        self._stop.set()
        if client is not None:
            try:
                client.disconnect()
            except Exception as exc:
                log.debug("Error disconnecting push client: %s", exc)
        if not already:
            log.info("Push connection for %s closed", self.identity)
            self._set_state(DISCONNECTED)

    def join(self, timeout: float | None = None):
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    # ── Connect loop ──────────────────────────────────────────

    def connect_and_maintain(self):
        """
        Blocking loop: connect, wait for the transport to drop, retry.
        Returns when closed or when retry_attempts retries in a row failed.
        """
        attempt = 0         # retry currently running; 0 is the first connect
        announced = False   # a drop already reported the retry now running
        self._set_state(CONNECTING)
        while self._running:
            try:
                client = self._open()
            except Exception as exc:
                if not self._running:
                    return
                if attempt:
                    log.warning("Push retry %d/%d to %s failed: %s",
                                attempt, self.retry_attempts, self.url, exc)
                else:
                    log.warning("Push connection to %s failed: %s", self.url, exc)
                if attempt >= self.retry_attempts:
                    log.error("Push connection to %s: %d retries failed, giving up",
                              self.url, attempt)
                    with self._lock:
                        self._running = False
                    self._set_state(DISCONNECTED)
                    return
                attempt += 1
                if not announced:
                    self._set_state(RECONNECTING)
                announced = False
                self._pause()
                continue

            attempt = 0
            announced = False
            client.wait()
            self._forget(client)
            if not self._running:
                return
            attempt = 1
            announced = True
            log.info("Push connection to %s dropped: retrying in %.1fs",
                     self.url, self.retry_delay)
            self._set_state(RECONNECTING)
            self._pause()

    def _open(self):
        client = self._client_factory()
        client.on("connect", lambda *_: self._on_connect(client))
        client.on("disconnect", lambda *_: self._on_disconnect(client))
        client.on("connect_error", lambda *args: log.warning(
            "Push connect error from %s: %s", self.url, args[0] if args else "unknown"))
        client.on("notification", self._on_notification)
        with self._lock:
            if not self._running:
                raise RuntimeError("channel stopped")
            self._client = client
        try:
            client.connect(
                self.url,
                transports=list(self.transports),
                socketio_path=self.socketio_path,
                wait_timeout=_CONNECT_TIMEOUT,
            )
        except Exception:
            with self._lock:
                if self._client is client:
                    self._client = None
                    self._channels.clear()
            raise
        return client

    # ── Socket.IO handlers ────────────────────────────────────

    def _on_connect(self, client):
        with self._lock:
            if self._client is not client or not self._running:
                return
            # Joins are the first thing sent on a new connection.
            self._channels = set()
            client.emit("join", self.identity)
            self._channels.add(self.identity)
            role_room = role_channel_for(self.role)
            if role_room:
                client.emit("join_role", role_room)
                self._channels.add(role_room)
            rooms = sorted(self._channels)
        log.info("Push connected to %s as %s, joined %s", self.url, self.identity, rooms)
        self._set_state(CONNECTED)

    def _on_disconnect(self, client):
        with self._lock:
            if self._client is client:
                self._channels.clear()
        self.connected_event.clear()

    def _on_notification(self, payload=None, *_):
        log.debug("Push notification for %s: %r", self.identity, payload)
        self._notification_listeners.fire(payload)

    # ── Internals ─────────────────────────────────────────────

    def _forget(self, client):
        with self._lock:
            if self._client is client:
                self._client = None
            self._channels.clear()
        self.connected_event.clear()

    def _set_state(self, state: ConnectionState):
        with self._lock:
            if self._closed and state != DISCONNECTED:
                return
            self.state = state
        if state == CONNECTED:
            self.connected_event.set()
        else:
            self.connected_event.clear()
        self._state_listeners.fire(state)

    def _pause(self):
        if self._sleep is not None:
            self._sleep(self.retry_delay)
        else:
            self._stop.wait(self.retry_delay)
