"""Service package exports with lazy loading."""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "ElectionService": "app.services.election_service",
    "ElectionStore": "app.services.election_store",
    "MemoryElectionAdapter": "app.services.election_store",
    "SupabaseElectionAdapter": "app.services.election_store",
    "WinnerResult": "app.services.condorcet",
    "calculate_pairwise_matrix": "app.services.condorcet",
    "derive_status": "app.services.lifecycle",
    "determine_condorcet_winner": "app.services.condorcet",
    "resolve_winner": "app.services.condorcet",
}

__all__ = sorted(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(_EXPORTS[name])
    return getattr(module, name)
