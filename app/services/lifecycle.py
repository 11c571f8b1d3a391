"""Election status derivation."""

from __future__ import annotations

from app.config import settings
from app.schemas.election import Election, ElectionStatus

TERMINAL_STATES: frozenset[str] = frozenset({"completed", "cancelled"})


def voting_ends_at(election: Election, window_ms: int | None = None) -> int:
    """Return the epoch-ms instant the voting window closes."""
    window = settings.voting_window_ms if window_ms is None else window_ms
    return election.vote_start_time + window


def derive_status(
    election: Election, now: int, window_ms: int | None = None
) -> ElectionStatus:
    """Compute the election status at ``now`` (epoch ms).

    An explicit ``state`` always takes precedence; otherwise the status
    follows the voting window opened at ``vote_start_time``.
    """
    if election.state is not None:
        return election.state
    if now < election.vote_start_time:
        return "nomination"
    if now < voting_ends_at(election, window_ms):
        return "voting"
    return "completed"


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATES
