import pytest

from maintpulse.http_client import HttpClient
from maintpulse.local_storage import LocalStorage
from maintpulse.session import SessionStore
from tests.helpers import BACKEND_URL, FakeBackend, ManualTimers, backend_session


@pytest.fixture
def timers():
    return ManualTimers()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "local_storage.json"))


@pytest.fixture
def session(storage, timers):
    return SessionStore(storage, timer_factory=timers, clock=timers.utc)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend, session):
    return HttpClient(BACKEND_URL, session=session, http=backend_session(backend))
