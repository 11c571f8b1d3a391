"""Print the head-to-head tallies and winner of a stored election."""

from __future__ import annotations

import argparse
import itertools
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Tally the ranked ballots of one election.",
    )
    parser.add_argument(
        "election_id",
        type=str,
        help="Id of the election to tally.",
    )
    parser.add_argument(
        "--finalize",
        action="store_true",
        help="Also mark the election completed and cache the winner.",
    )
    return parser.parse_args()


def format_matrix(names: dict[str, str], matrix: dict[str, dict[str, int]]) -> list[str]:
    """Render one line per pair of nominations with a recorded preference."""
    lines = []
    for first, second in itertools.combinations(matrix, 2):
        count = matrix[first][second]
        against = matrix[second][first]
        if count or against:
            lines.append(f"{names[first]} vs {names[second]}: {count}-{against}")
    return lines


def main() -> None:
    """CLI entry point."""
    args = parse_args()

    from app.services.condorcet import calculate_pairwise_matrix, resolve_winner
    from app.services.election_store import ElectionStore, get_adapter

    store = ElectionStore(get_adapter())
    # Plain reads skip the retention check so tallying never deletes anything.
    if args.finalize:
        election = store.get_election(args.election_id)
    else:
        election = store.adapter.get_election(args.election_id)
    if election is None:
        print(f"Election {args.election_id} not found", file=sys.stderr)
        sys.exit(1)

    names = {n.id: n.restaurant_name for n in election.nominations}
    matrix = calculate_pairwise_matrix(election.nominations, election.votes)
    print(f"{election.name}: {len(election.nominations)} nominations, {len(election.votes)} ballots")
    for line in format_matrix(names, matrix):
        print(line)

    result = resolve_winner(election.nominations, election.votes)
    if result.winner_id is None:
        print("No winner (no nominations)")
    else:
        print(f"Winner: {names[result.winner_id]} ({result.method})")

    if args.finalize:
        store.finalize_election(election.id)
        print("Election finalized")


if __name__ == "__main__":
    main()
