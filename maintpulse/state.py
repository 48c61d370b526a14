"""
Shared runtime objects for the maintpulse agent.

agent.py builds these once at start-up; route modules import this module
and read the attributes at call time. The components themselves never look
here: the session store, HTTP client and hub are passed to whatever needs
them.
"""
from typing import TYPE_CHECKING
from maintpulse.models import ClientSettings
if TYPE_CHECKING:
    from maintpulse.http_client import HttpClient
    from maintpulse.hub import NotificationHub
    from maintpulse.session import SessionStore

# ── Runtime config (set by agent.py at startup) ──────────────
settings: ClientSettings = ClientSettings()

# ── Live objects ──────────────────────────────────────────────
session: "SessionStore | None" = None
http: "HttpClient | None" = None
hub: "NotificationHub | None" = None
