"""
Thin wrappers over the backend endpoints the notification surface uses.

Each wrapper borrows a RequestScope from its caller, so cancelling the
caller's scope cancels whatever the wrapper has in flight. Errors are the
scope's ApiError / RequestCancelled, passed through untouched. An auth
reply that succeeds but carries no usable credential becomes a 502 ApiError.
"""
from __future__ import annotations

import logging

from maintpulse.http_client import GENERIC_ERROR, ApiError, FormData, RequestScope
from maintpulse.models import LoginResult, StoredNotification

log = logging.getLogger("maintpulse.api")


class NotificationsApi:
    """The durable notification store (source of truth for read state)."""

    def __init__(self, scope: RequestScope):
        self.scope = scope

    def list(self) -> list[StoredNotification]:
        data = self.scope.send("/notifications")
        return [StoredNotification.from_dict(n) for n in data.get("notifications") or []]

    def last_four(self) -> list[StoredNotification]:
        data = self.scope.send("/notifications/lastfour")
        return [StoredNotification.from_dict(n) for n in data.get("notifications") or []]

    def get(self, notif_id: str) -> StoredNotification:
        data = self.scope.send(f"/notifications/{notif_id}")
        return StoredNotification.from_dict(data.get("notification") or {})

    def mark_read(self, notif_id: str) -> dict:
        return self.scope.send(f"/notifications/{notif_id}/read", "PATCH")

    def delete(self, notif_id: str) -> dict:
        return self.scope.send(f"/notifications/{notif_id}", "DELETE")

    def open(self, notif_id: str) -> StoredNotification:
        """Fetch one notification and mark it read if it was unread."""
        notif = self.get(notif_id)
        if not notif.read:
            self.mark_read(notif_id)
            log.debug("Marked notification %s read", notif_id)
        return notif


class AuthApi:

    def __init__(self, scope: RequestScope):
        self.scope = scope

    def login(self, email: str, password: str) -> LoginResult:
        data = self.scope.send("/auth/login", "POST", {"email": email, "password": password})
        return self._login_result(data)

    def signup(self, email: str, name: str, password: str, role: str,
               image=None) -> LoginResult:
        """
        Create an account. image, when given, is a requests file tuple
        (filename, fileobj, content_type) sent as the "image" part.
        """
        form = FormData(fields={
            "email": email,
            "name": name,
            "password": password,
            "role": role,
        })
        if image is not None:
            form.files["image"] = image
        data = self.scope.send("/auth/signup", "POST", form)
        return self._login_result(data)

    def current_user(self) -> dict | None:
        data = self.scope.send("/user")
        return data.get("user")

    def _login_result(self, data) -> LoginResult:
        # A 2xx reply without a usable credential is a backend fault.
        try:
            return LoginResult.from_dict(data)
        except ValueError as exc:
            log.warning("Rejecting auth reply: %s", exc)
            self.scope.error = GENERIC_ERROR
            raise ApiError(GENERIC_ERROR, status=502) from exc
