"""Pytest fixtures for backend tests."""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

START_MS = 1_767_000_000_000
MINUTE_MS = 60 * 1000


def _set_default_env() -> None:
    os.environ.setdefault("ENABLE_SCHEDULER", "false")
    os.environ.setdefault("VOTING_WINDOW_MINUTES", "10")
    os.environ.setdefault("ELECTION_RETENTION_HOURS", "2")


_set_default_env()


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, value: int = START_MS) -> None:
        self.value = value

    def __call__(self) -> int:
        return self.value

    def advance(self, minutes: float) -> None:
        self.value += int(minutes * MINUTE_MS)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock):
    """Election store backed by process memory."""
    from app.services.election_store import ElectionStore, MemoryElectionAdapter

    return ElectionStore(MemoryElectionAdapter(), clock=clock)


@pytest.fixture
def service(store):
    from app.services.election_service import ElectionService

    return ElectionService(store)


@pytest.fixture(scope="session")
def client() -> TestClient:
    """Create a FastAPI test client."""
    from app.main import app

    return TestClient(app)


@pytest.fixture
def api(client: TestClient, store):
    """Test client wired to a fresh in-memory election store."""
    from app.dependencies import set_election_store

    set_election_store(store)
    yield client
    set_election_store(None)
