import os
from dataclasses import dataclass
from typing import Any, Literal

Role = Literal["Admin", "Supervisor", "Technician", "Viewer"]
ROLES: tuple[str, ...] = ("Admin", "Supervisor", "Technician", "Viewer")

# Roles that also receive the broadcast for their role channel
ROLE_CHANNEL_ROLES: tuple[str, ...] = ("Supervisor", "Admin")

NotificationType = Literal["overdue", "downtime", "assigned", "pm_due", "done", "other"]

ConnectionState = Literal["disconnected", "connecting", "connected", "reconnecting"]
DISCONNECTED: ConnectionState = "disconnected"
CONNECTING: ConnectionState = "connecting"
CONNECTED: ConnectionState = "connected"
RECONNECTING: ConnectionState = "reconnecting"


@dataclass
class NotificationEvent:
    """A notification as pushed over the Socket.IO ``notification`` event."""
    id: str | None
    type: str = "other"
    title: str = ""
    message: str = ""
    createdAt: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> "NotificationEvent":
        raw_id = d.get("id") or d.get("_id")
        return cls(
            id=str(raw_id) if raw_id else None,
            type=str(d.get("type") or "other"),
            title=str(d.get("title", "")),
            message=str(d.get("message", "")),
            createdAt=str(d.get("createdAt", "")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "createdAt": self.createdAt,
        }


@dataclass
class StoredNotification:
    """A row of the backend's durable notification store."""
    id: str
    type: str = "other"
    title: str = ""
    message: str = ""
    createdAt: str = ""
    read: bool = False

    @classmethod
    def from_dict(cls, d: dict) -> "StoredNotification":
        return cls(
            id=str(d.get("id") or d.get("_id") or ""),
            type=str(d.get("type") or "other"),
            title=str(d.get("title", "")),
            message=str(d.get("message", "")),
            createdAt=str(d.get("createdAt", "")),
            read=bool(d.get("read", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "createdAt": self.createdAt,
            "read": self.read,
        }


@dataclass(frozen=True)
class AlertCategory:
    icon: str
    css_class: str


@dataclass(eq=False)
class PresentedAlert:
    """
    Presentation-only projection of a NotificationEvent.

    Compared by identity: two alerts may share an id (time-based ids
    collide under bursts) and each must still be removed exactly once.
    """
    event: NotificationEvent
    category: AlertCategory
    duration_ms: int
    shown_at: float
    exiting: bool = False

    @property
    def id(self) -> str:
        return self.event.id or ""

    def to_dict(self, now: float | None = None) -> dict:
        out = self.event.to_dict()
        out["category"] = self.category.css_class
        out["icon"] = self.category.icon
        out["exiting"] = self.exiting
        if now is not None:
            elapsed_ms = int((now - self.shown_at) * 1000)
            out["remaining_ms"] = max(0, self.duration_ms - elapsed_ms)
        return out


@dataclass
class PersistedSession:
    """
    What survives in local storage between runs.

    Only the role is ever written. user_id, token and expiration are read
    back when an older entry carries them, but never written.
    """
    role: str
    user_id: str | None = None
    token: str | None = None
    expiration: str | None = None

    @classmethod
    def from_dict(cls, d: Any) -> "PersistedSession | None":
        if not isinstance(d, dict):
            return None
        role = d.get("role")
        if role not in ROLES:
            return None
        return cls(
            role=role,
            user_id=d.get("userId"),
            token=d.get("token"),
            expiration=d.get("expiration"),
        )

    def to_dict(self) -> dict:
        return {"role": self.role}


@dataclass
class LoginResult:
    user_id: str
    token: str
    role: str

    @classmethod
    def from_dict(cls, d: Any) -> "LoginResult":
        """Raises ValueError unless the reply carries an id, a token and a known role."""
        if not isinstance(d, dict):
            raise ValueError("login reply is not an object")
        user_id = d.get("id") or d.get("userId")
        token = d.get("token")
        role = d.get("role")
        if not user_id or not token:
            raise ValueError("login reply has no user id or token")
        if role not in ROLES:
            raise ValueError(f"login reply has unknown role {role!r}")
        return cls(user_id=str(user_id), token=str(token), role=role)


@dataclass
class ClientSettings:
    """
    Runtime configuration for the notification client.

    Endpoints:
      backend_url   : REST backend base URL (notifications, auth, user)
      asset_url     : push/asset service base URL (Socket.IO endpoint)

    Push connection (explicit, never library defaults):
      retry_attempts: reconnect attempts before giving up
      retry_delay   : seconds between attempts
      transports    : transport order tried by the Socket.IO client
      socketio_path : Socket.IO handshake path

    Alerts:
      alert_ms      : visible lifetime of a transient alert
      exit_ms       : exit transition before an expired alert is removed
      id_strategy   : "time" (ms timestamp) or "uuid" for events without an id
      dedupe        : drop pushes whose server id was already presented
    """
    backend_url: str = ""
    asset_url: str = ""
    state_dir: str = ""
    port: int = 8000
    log_level: str = "INFO"

    retry_attempts: int = 5
    retry_delay: float = 1.0
    transports: tuple[str, ...] = ("polling", "websocket")
    socketio_path: str = "/socket.io/"

    alert_ms: int = 10000
    exit_ms: int = 300
    id_strategy: Literal["time", "uuid"] = "time"
    dedupe: bool = False

    @classmethod
    def from_env(cls, environ=None) -> "ClientSettings":
        env = os.environ if environ is None else environ
        strategy = env.get("MAINTPULSE_ID_STRATEGY", "time").strip().lower()
        return cls(
            backend_url=env.get("MAINTPULSE_BACKEND_URL", "").rstrip("/"),
            asset_url=env.get("MAINTPULSE_ASSET_URL", "").rstrip("/"),
            state_dir=env.get("MAINTPULSE_STATE_DIR",
                              os.path.join(os.path.expanduser("~"), ".maintpulse")),
            port=int(env.get("MAINTPULSE_PORT", "8000")),
            log_level=env.get("MAINTPULSE_LOG_LEVEL", "INFO").upper(),
            alert_ms=int(env.get("MAINTPULSE_ALERT_MS", "10000")),
            id_strategy="uuid" if strategy == "uuid" else "time",
        )

    def to_dict(self):
        return {
            "backend_url": self.backend_url,
            "asset_url": self.asset_url,
            "state_dir": self.state_dir,
            "port": self.port,
            "log_level": self.log_level,
            "retry_attempts": self.retry_attempts,
            "retry_delay": self.retry_delay,
            "transports": list(self.transports),
            "socketio_path": self.socketio_path,
            "alert_ms": self.alert_ms,
            "exit_ms": self.exit_ms,
            "id_strategy": self.id_strategy,
            "dedupe": self.dedupe,
        }
