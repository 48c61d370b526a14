"""
Authenticated request/response calls to the maintenance backend.

HttpClient holds what every call shares (base URL, the requests.Session,
the session store for the bearer token). Each consumer (a dashboard route
handler, a background refresh, a test) opens its own RequestScope and closes
it when it is done. A scope tracks its in-flight calls and its own loading
and error state; closing it cancels only its calls.

requests cannot interrupt a call that is already blocked on the socket, so
cancellation means the result is discarded: a cancelled call raises
RequestCancelled and never touches the scope's loading/error state.
"""
import json
import logging
import threading
from dataclasses import dataclass, field

import requests

from maintpulse.session import SessionStore

log = logging.getLogger("maintpulse.http_client")

GENERIC_ERROR = "Something went wrong, please try again."
TRANSPORT_ERROR = "Could not reach the server, please try again."
_DEFAULT_TIMEOUT = 10


class ApiError(Exception):
    """A failed call: non-2xx status or transport failure."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


class RequestCancelled(Exception):
    """The owning scope was closed before the call settled."""


@dataclass
class FormData:
    """
    Multipart body. files maps field name to a requests file tuple,
    e.g. {"image": ("pump.png", fileobj, "image/png")}.
    """
    fields: dict = field(default_factory=dict)
    files: dict = field(default_factory=dict)


class _Call:
    def __init__(self, method: str, url: str):
        self.method = method
        self.url = url
        self.cancelled = threading.Event()


class HttpClient:

    def __init__(self, base_url: str, session: SessionStore | None = None,
                 http: requests.Session | None = None, timeout: float = _DEFAULT_TIMEOUT):
        self.base_url = (base_url or "").rstrip("/")
        self.session = session
        self.http = http or requests.Session()
        self.timeout = timeout

    def url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def scope(self) -> "RequestScope":
        return RequestScope(self)


class RequestScope:
    """
    One consumer's view of the client: send(), is_loading, error,
    clear_error(), close(). Usable as a context manager.
    """

    def __init__(self, client: HttpClient):
        self._client = client
        self._lock = threading.Lock()
        self._active: list[_Call] = []
        self._closed = False
        self.error: str | None = None

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return bool(self._active)

    @property
    def closed(self) -> bool:
        return self._closed

    def clear_error(self):
        with self._lock:
            self.error = None

    def close(self):
        """Cancel every in-flight call of this scope. Idempotent."""
        with self._lock:
            self._closed = True
            calls, self._active = self._active, []
        for call in calls:
            call.cancelled.set()
        if calls:
            log.debug("Cancelled %d in-flight request(s)", len(calls))

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ── Calls ─────────────────────────────────────────────────

    def send(self, endpoint: str, method: str = "GET", body=None,
             headers: dict | None = None):
        """
        Issue one call and return the parsed JSON payload.

        JSON bodies (dict, list or pre-encoded str) get
        Content-Type: application/json unless the caller sets it. FormData
        and bytes bodies go out with the caller's headers verbatim so the
        transport can set its own multipart boundary.
        """
        url = self._client.url(endpoint)
        call = _Call(method, url)
        with self._lock:
            if self._closed:
                raise RequestCancelled(f"{method} {url}: scope is closed")
            self._active.append(call)

        req_headers, data, files = self._prepare(body, headers)
        try:
            resp = self._client.http.request(
                method, url, data=data, files=files,
                headers=req_headers, timeout=self._client.timeout,
            )
        except requests.RequestException as exc:
            if call.cancelled.is_set():
                raise RequestCancelled(f"{method} {url} cancelled") from exc
            log.warning("%s %s failed: %s", method, url, exc)
            self._settle(call, TRANSPORT_ERROR)
            raise ApiError(TRANSPORT_ERROR) from exc

        try:
            if call.cancelled.is_set():
                raise RequestCancelled(f"{method} {url} cancelled")
            return self._handle_response(call, resp)
        finally:
            resp.close()

    def _prepare(self, body, headers):
        caller = dict(headers or {})
        files = None
        if isinstance(body, FormData):
            req_headers = caller
            data = body.fields
            files = body.files or None
        elif isinstance(body, (bytes, bytearray)):
            req_headers = caller
            data = body
        else:
            req_headers = {"Content-Type": "application/json", **caller}
            if body is None or isinstance(body, str):
                data = body
            else:
                data = json.dumps(body)

        session = self._client.session
        if session is not None and "Authorization" not in req_headers:
            req_headers.update(session.auth_header())
        return req_headers, data, files

    def _handle_response(self, call: _Call, resp: requests.Response):
        payload = None
        if resp.content:
            try:
                payload = resp.json()
            except ValueError:
                payload = None
        else:
            payload = {}

        if not resp.ok:
            message = GENERIC_ERROR
            if isinstance(payload, dict) and payload.get("message"):
                message = str(payload["message"])
            log.warning("%s %s -> %s: %s", call.method, call.url, resp.status_code, message)
            self._settle(call, message)
            raise ApiError(message, status=resp.status_code)

        if payload is None:
            log.warning("%s %s returned a non-JSON body", call.method, call.url)
            self._settle(call, GENERIC_ERROR)
            raise ApiError(GENERIC_ERROR, status=resp.status_code)

        self._settle(call)
        return payload

    def _settle(self, call: _Call, error: str | None = None):
        with self._lock:
            if call.cancelled.is_set():
                raise RequestCancelled(f"{call.method} {call.url} cancelled")
            self._active = [c for c in self._active if c is not call]
            if error is not None:
                self.error = error
