import time

import pytest
from fastapi.testclient import TestClient

from authgate.db import InMemoryDB
from authgate.main import create_app
from authgate.services.sessions import SessionRegistry

TIMEOUT = 15 * 60
INTERVAL = 5 * 60


class FakeClock:
    """Manually advanced replacement for time.time()"""

    def __init__(self, start: float | None = None):
        self.now = time.time() if start is None else start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0, minutes: float = 0) -> None:
        self.now += seconds + minutes * 60


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    reg = SessionRegistry(inactivity_timeout_seconds=TIMEOUT, cleanup_interval_seconds=INTERVAL, clock=clock)
    yield reg
    reg.stop_cleanup()


@pytest.fixture
def db():
    return InMemoryDB()


@pytest.fixture
def client(registry, db):
    # Not entered as a context manager: the sweeper thread stays off and tests call registry.sweep()
    return TestClient(create_app(registry=registry, db=db))


def login(client, emailid="user@example.com", password="user123"):
    resp = client.post("/auth/login", json={"emailid": emailid, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
