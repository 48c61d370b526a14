"""Fakes shared by the test modules: timers, Socket.IO client, HTTP transport."""
import json
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

import requests
from socketio.exceptions import ConnectionError as SocketConnectionError

from maintpulse.models import CONNECTED, DISCONNECTED
from maintpulse.subscriptions import ListenerRegistry

EPOCH = datetime(2026, 1, 5, 8, 0, 0, tzinfo=timezone.utc)


# ── Timers and clocks ─────────────────────────────────────────

class ManualTimer:
    """threading.Timer look-alike that only fires when the test says so."""

    def __init__(self, factory, interval, function, args=None, kwargs=None):
        self.factory = factory
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.deadline = None
        self.cancelled = False
        self.fired = False

    def start(self):
        self.deadline = self.factory.now + self.interval

    def cancel(self):
        self.cancelled = True

    @property
    def pending(self):
        return self.deadline is not None and not self.cancelled and not self.fired

    def fire(self):
        if not self.pending:
            return False
        self.fired = True
        self.function(*self.args, **self.kwargs)
        return True


class ManualTimers:
    """Timer factory plus a simulated clock (seconds since EPOCH)."""

    def __init__(self):
        self.now = 0.0
        self.timers: list[ManualTimer] = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = ManualTimer(self, interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    def pending(self):
        return [t for t in self.timers if t.pending]

    def clock(self):
        return self.now

    def utc(self):
        return EPOCH + timedelta(seconds=self.now)

    def advance(self, seconds: float):
        """Move the clock forward, firing due timers in deadline order."""
        target = self.now + seconds
        while True:
            due = [t for t in self.pending() if t.deadline <= target]
            if not due:
                break
            nxt = min(due, key=lambda t: t.deadline)
            self.now = nxt.deadline
            nxt.fire()
        self.now = target


# ── Socket.IO ─────────────────────────────────────────────────

class FakeSocketClient:
    """
    One scripted connection attempt.

      "fail"  connect() raises
      "drop"  connects, then wait() returns at once (transport dropped)
      "hold"  connects, wait() runs the factory's on_hold hook, then returns
    """

    def __init__(self, factory, outcome):
        self.factory = factory
        self.outcome = outcome
        self.handlers = {}
        self.emitted = []
        self.connected = False
        self.disconnected = False

    def on(self, event, handler=None):
        self.handlers[event] = handler

    def connect(self, url, transports=None, socketio_path=None, wait_timeout=None):
        self.factory.connect_calls.append(
            {"url": url, "transports": transports, "socketio_path": socketio_path})
        if self.outcome == "fail":
            raise SocketConnectionError("Connection refused by the server")
        self.connected = True
        self.handlers["connect"]()

    def emit(self, event, data=None):
        self.emitted.append((event, data))
        self.factory.emitted.append((event, data))

    def wait(self):
        if self.outcome == "hold" and self.factory.on_hold is not None:
            self.factory.on_hold(self)
        if self.connected:
            self.connected = False
            self.handlers["disconnect"]()

    def disconnect(self):
        self.disconnected = True

    def server_push(self, event, payload):
        self.handlers[event](payload)


class FakeSocketFactory:

    def __init__(self, outcomes, on_hold=None):
        self.outcomes = list(outcomes)
        self.on_hold = on_hold
        self.clients: list[FakeSocketClient] = []
        self.connect_calls = []
        self.emitted = []

    def __call__(self):
        outcome = self.outcomes.pop(0) if self.outcomes else "fail"
        client = FakeSocketClient(self, outcome)
        self.clients.append(client)
        return client


# ── HTTP ──────────────────────────────────────────────────────

class FakeBackend(requests.adapters.BaseAdapter):
    """Transport adapter answering from a (method, path) routing table."""

    def __init__(self):
        super().__init__()
        self.routes = {}
        self.requests: list[requests.PreparedRequest] = []

    def add(self, method, path, status=200, json_body=None, body=None, hook=None):
        self.routes[(method, path)] = {
            "status": status, "json": json_body, "body": body, "hook": hook,
        }

    def send(self, request, **kwargs):
        self.requests.append(request)
        route = self.routes.get((request.method, urlparse(request.url).path))
        if route is None:
            raise requests.ConnectionError(f"no route for {request.method} {request.url}")
        if route["hook"] is not None:
            route["hook"](request)
        resp = requests.Response()
        resp.status_code = route["status"]
        if route["json"] is not None:
            resp._content = json.dumps(route["json"]).encode()
            resp.headers["Content-Type"] = "application/json"
        else:
            resp._content = route["body"] or b""
        resp._content_consumed = True
        resp.encoding = "utf-8"
        resp.url = request.url
        resp.request = request
        return resp

    def close(self):
        pass

    def last(self, method=None):
        for req in reversed(self.requests):
            if method is None or req.method == method:
                return req
        return None


BACKEND_URL = "http://backend.test/api"


def backend_session(backend: FakeBackend) -> requests.Session:
    http = requests.Session()
    http.mount("http://backend.test", backend)
    return http


# ── Push channel ──────────────────────────────────────────────

class FakeChannel:
    """Stands in for PushChannel; records lifecycle calls."""

    def __init__(self, url, identity, role=None, **options):
        self.url = url
        self.identity = identity
        self.role = role
        self.options = options
        self.started = False
        self.closed = False
        self.state = DISCONNECTED
        self.listeners = ListenerRegistry("notification")

    @property
    def connected(self):
        return self.state == CONNECTED

    @property
    def channels(self):
        return frozenset({self.identity}) if self.connected else frozenset()

    def subscribe(self, callback):
        return self.listeners.subscribe(callback)

    def start(self):
        self.started = True

    def reconnect(self):
        return not self.closed

    def close(self):
        self.closed = True
        self.state = DISCONNECTED


class ChannelFactory:
    def __init__(self):
        self.made: list[FakeChannel] = []

    def __call__(self, url, identity, role=None, **options):
        channel = FakeChannel(url, identity, role, **options)
        self.made.append(channel)
        return channel
