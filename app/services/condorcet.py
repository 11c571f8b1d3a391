"""Pairwise (Condorcet) winner determination over ranked ballots.

Everything here is a pure function of ``(nominations, votes)``: inputs are
never mutated and repeated calls on the same snapshot return the same result,
so the functions are safe to call from concurrent request handlers.
"""

from __future__ import annotations

import itertools
from collections.abc import Sequence
from dataclasses import dataclass

from app.schemas.election import Nomination, Vote, WinnerMethod

PairwiseMatrix = dict[str, dict[str, int]]


@dataclass(frozen=True)
class WinnerResult:
    """Outcome of winner resolution."""

    winner_id: str | None
    method: WinnerMethod | None = None
    tie_broken: bool = False


def _effective_ranks(rankings: Sequence[str]) -> dict[str, int]:
    # First occurrence wins if a ballot repeats an id.
    ranks: dict[str, int] = {}
    for position, nomination_id in enumerate(rankings):
        ranks.setdefault(nomination_id, position)
    return ranks


def calculate_pairwise_matrix(
    nominations: Sequence[Nomination], votes: Sequence[Vote]
) -> PairwiseMatrix:
    """Count, for every ordered pair ``(a, b)``, the ballots preferring ``a`` to ``b``.

    A nomination missing from a ballot sits at a virtual rank equal to the
    ballot length, below everything the voter ranked. When both members of a
    pair are missing the ballot expresses no preference between them and
    counts for neither direction. Ballot entries that are not nominations are
    ignored.

    Returns a nested mapping ``matrix[a][b]`` holding every ordered pair of
    distinct nomination ids.
    """
    candidate_ids = [nomination.id for nomination in nominations]
    matrix: PairwiseMatrix = {
        a: {b: 0 for b in candidate_ids if b != a} for a in candidate_ids
    }

    for vote in votes:
        ranks = _effective_ranks(vote.rankings)
        bottom = len(vote.rankings)
        for a, b in itertools.combinations(candidate_ids, 2):
            rank_a = ranks.get(a, bottom)
            rank_b = ranks.get(b, bottom)
            if rank_a < rank_b:
                matrix[a][b] += 1
            elif rank_b < rank_a:
                matrix[b][a] += 1

    return matrix


def head_to_head_wins(matrix: PairwiseMatrix) -> dict[str, int]:
    """Return how many opponents each nomination strictly beats."""
    return {
        candidate: sum(
            1 for other, count in row.items() if count > matrix[other][candidate]
        )
        for candidate, row in matrix.items()
    }


def pairwise_support(matrix: PairwiseMatrix) -> dict[str, int]:
    """Return the total ballots preferring each nomination over any opponent."""
    return {candidate: sum(row.values()) for candidate, row in matrix.items()}


def _condorcet_winners(matrix: PairwiseMatrix) -> list[str]:
    return [
        candidate
        for candidate, row in matrix.items()
        if all(count > matrix[other][candidate] for other, count in row.items())
    ]


def resolve_winner(
    nominations: Sequence[Nomination], votes: Sequence[Vote]
) -> WinnerResult:
    """Pick the winner and report whether the fallback ordering was needed.

    A nomination that strictly beats every other one head-to-head wins
    outright. Without such a nomination (a preference cycle, or ties) the
    winner is the first nomination by: most head-to-head wins, most
    aggregate pairwise support, earliest ``created_at``, smallest id.
    ``tie_broken`` is set only when the last two keys decided it.
    """
    if not nominations:
        return WinnerResult(winner_id=None)
    if len(nominations) == 1:
        return WinnerResult(winner_id=nominations[0].id, method="condorcet")

    matrix = calculate_pairwise_matrix(nominations, votes)
    winners = _condorcet_winners(matrix)
    if winners:
        return WinnerResult(winner_id=winners[0], method="condorcet")

    wins = head_to_head_wins(matrix)
    support = pairwise_support(matrix)

    def strength(nomination: Nomination) -> tuple[int, int]:
        return (-wins[nomination.id], -support[nomination.id])

    ranked = sorted(
        nominations,
        key=lambda nomination: (*strength(nomination), nomination.created_at, nomination.id),
    )
    # Only creation time or id separated the top two.
    tie_broken = strength(ranked[0]) == strength(ranked[1])
    return WinnerResult(
        winner_id=ranked[0].id, method="pairwise_fallback", tie_broken=tie_broken
    )


def determine_condorcet_winner(
    nominations: Sequence[Nomination], votes: Sequence[Vote]
) -> str | None:
    """Return the winning nomination id, or None when there are no nominations."""
    return resolve_winner(nominations, votes).winner_id
