"""FastAPI dependency injection helpers."""

from __future__ import annotations

import threading

from fastapi import Depends

from app.services.election_service import ElectionService
from app.services.election_store import ElectionStore, get_adapter

_store: ElectionStore | None = None
_store_lock = threading.Lock()


def get_election_store() -> ElectionStore:
    """Return the process-wide election store, building it on first use."""
    global _store
    with _store_lock:
        if _store is None:
            _store = ElectionStore(get_adapter())
        return _store


def set_election_store(store: ElectionStore | None) -> None:
    """Replace the process-wide store (tests and scripts)."""
    global _store
    with _store_lock:
        _store = store


def get_election_service(
    store: ElectionStore = Depends(get_election_store),
) -> ElectionService:
    return ElectionService(store)
