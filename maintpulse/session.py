"""
Process-wide session: who is logged in, with which bearer token and role,
and until when.

The store is created once by the agent and handed to everything that needs
it (request scopes, the notification hub); nothing reaches for it as a
global. Only login(), logout() and the expiry timer mutate it.

Local storage keeps a minimal projection ({"role": ...}) under "userData".
The token and user id are never written to disk, so a restart always needs
a fresh login; restore() only brings back the role hint.
"""
import logging
import threading
from datetime import datetime, timedelta, timezone

from maintpulse.local_storage import LocalStorage
from maintpulse.models import PersistedSession
from maintpulse.subscriptions import ListenerRegistry, Subscription

log = logging.getLogger("maintpulse.session")

STORAGE_KEY = "userData"
DEFAULT_TTL = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_expiration(value) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SessionStore:
    """
    Holds identity, credential, role and expiry.

    Exactly one expiry timer is pending while logged in. Every login bumps a
    generation counter and the timer carries the generation it was scheduled
    for, so a timer that fires after logout or after a newer login is a no-op
    even if cancel() lost the race.
    """

    def __init__(self, storage: LocalStorage, timer_factory=None, clock=None):
        self._storage = storage
        self._timer_factory = timer_factory or threading.Timer
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._timer = None
        self._generation = 0
        self._listeners = ListenerRegistry("session")

        self.user_id: str | None = None
        self.token: str | None = None
        self.role: str | None = None
        self.expiration: datetime | None = None
        self.restored_role: str | None = None

    # ── Accessors ─────────────────────────────────────────────

    @property
    def is_logged_in(self) -> bool:
        return bool(self.token)

    def auth_header(self) -> dict:
        token = self.token
        return {"Authorization": f"Bearer {token}"} if token else {}

    def subscribe(self, callback) -> Subscription:
        """Call callback(store) after every login, logout and expiry."""
        return self._listeners.subscribe(callback)

    def to_dict(self) -> dict:
        return {
            "isLoggedIn": self.is_logged_in,
            "userId": self.user_id,
            "role": self.role,
            "expiration": self.expiration.isoformat() if self.expiration else None,
            "restoredRole": self.restored_role,
        }

    # ── Lifecycle ─────────────────────────────────────────────

    def login(self, user_id: str, token: str, role: str,
              expiration: datetime | None = None):
        """Set the session and (re)schedule its single expiry transition."""
        with self._lock:
            now = self._clock()
            if expiration is None:
                expiration = now + DEFAULT_TTL
            elif expiration.tzinfo is None:
                expiration = expiration.replace(tzinfo=timezone.utc)
            remaining = max(0.0, (expiration - now).total_seconds())

            self._cancel_timer()
            self._generation += 1
            generation = self._generation
            self.user_id = user_id
            self.token = token
            self.role = role
            self.expiration = expiration
            self._persist(PersistedSession(role=role))

            timer = self._timer_factory(remaining, self._expire, args=(generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()
        log.info("Logged in as %s (%s), session expires at %s",
                 user_id, role, expiration.isoformat())
        self._listeners.fire(self)

    def logout(self):
        """Clear the session. Calling it again is a no-op."""
        with self._lock:
            changed = self._clear()
        if changed:
            log.info("Logged out")
            self._listeners.fire(self)

    def restore(self) -> PersistedSession | None:
        """
        Read the persisted projection at start-up.

        A role-only entry (the only shape ever written) sets restored_role but
        cannot log in since no credential was kept. An entry that also carries
        userId, token and a future expiration logs in with those values.
        Anything else is discarded. Never raises.
        """
        raw = self._storage.get_item(STORAGE_KEY)
        if raw is None:
            return None
        persisted = PersistedSession.from_dict(raw)
        if persisted is None:
            log.info("Discarding malformed persisted session")
            self._forget()
            return None

        if persisted.token and persisted.user_id:
            expiration = _parse_expiration(persisted.expiration)
            if expiration is None or expiration <= self._clock():
                log.info("Discarding expired persisted session")
                self._forget()
                return None
            self.restored_role = persisted.role
            self.login(persisted.user_id, persisted.token, persisted.role, expiration)
            return persisted

        self.restored_role = persisted.role
        log.info("Restored role %s from local storage (login required)", persisted.role)
        return persisted

    # ── Internals ─────────────────────────────────────────────

    def _expire(self, generation: int):
        with self._lock:
            if generation != self._generation or not self.token:
                return
            changed = self._clear()
        if changed:
            log.info("Session expired")
            self._listeners.fire(self)

    def _clear(self) -> bool:
        changed = self.token is not None or self.user_id is not None
        self._cancel_timer()
        self._generation += 1
        self.user_id = None
        self.token = None
        self.role = None
        self.expiration = None
        self._forget()
        return changed

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _persist(self, projection: PersistedSession):
        try:
            self._storage.set_item(STORAGE_KEY, projection.to_dict())
        except OSError as exc:
            log.warning("Could not persist session to local storage: %s", exc)

    def _forget(self):
        try:
            self._storage.remove_item(STORAGE_KEY)
        except OSError as exc:
            log.warning("Could not clear persisted session: %s", exc)
