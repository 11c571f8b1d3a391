"""Restaurant election lifecycle: admission control over the election store."""

from __future__ import annotations

import uuid
from typing import Any

from app.schemas.election import (
    BallotEntry,
    BallotView,
    Election,
    ElectionCreate,
    ElectionDetail,
    ElectionSummary,
    Nomination,
    NominationCreate,
    Vote,
)
from app.services.condorcet import WinnerResult, calculate_pairwise_matrix, resolve_winner
from app.services.election_store import ElectionStore
from app.services.lifecycle import derive_status, is_terminal, voting_ends_at
from app.utils.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    StorageError,
    VotingWindowError,
)


def new_id() -> str:
    """Return a collision-resistant identifier for elections and nominations."""
    return uuid.uuid4().hex


def _same_name(left: str, right: str) -> bool:
    return left.strip().lower() == right.strip().lower()


class ElectionService:
    """Validate requests against election state before touching the store."""

    def __init__(self, store: ElectionStore) -> None:
        self.store = store

    @property
    def now(self) -> int:
        return self.store.clock()

    def _load(self, election_id: str) -> Election:
        election = self.store.get_election(election_id)
        if election is None:
            raise NotFoundError("Election")
        return election

    def _load_authorized(self, election_id: str, codeword: str | None) -> Election:
        election = self._load(election_id)
        if codeword is None or election.group_codeword != codeword:
            raise ForbiddenError("Invalid codeword")
        return election

    @staticmethod
    def _stored(election: Election | None) -> Election:
        # The record vanished between the admission check and the write.
        if election is None:
            raise NotFoundError("Election")
        return election

    def create(self, payload: ElectionCreate) -> Election:
        """Create an election in its nomination phase."""
        if not payload.name.strip() or not payload.admin_name.strip():
            raise InvalidInputError("Missing fields")
        election = Election(
            id=new_id(),
            name=payload.name.strip(),
            group_codeword=payload.group_codeword,
            admin_name=payload.admin_name.strip(),
            ballot_visibility=payload.ballot_visibility,
            vote_start_time=payload.vote_start_time,
            created_at=self.now,
        )
        self.store.create_election(election)
        if self.store.get_election(election.id) is None:
            raise StorageError("Election create did not persist")
        return election

    def _result_for(self, election: Election, status: str) -> WinnerResult:
        if status != "completed":
            return WinnerResult(winner_id=None)
        if election.winner:
            return WinnerResult(
                winner_id=election.winner,
                method=election.winner_method,
                tie_broken=election.tie_broken,
            )
        return resolve_winner(election.nominations, election.votes)

    def list_summaries(self) -> list[ElectionSummary]:
        """Return every live election, newest first, with a display winner."""
        now = self.now
        elections = sorted(
            self.store.get_all_elections(), key=lambda e: e.created_at, reverse=True
        )
        summaries = []
        for election in elections:
            status = derive_status(election, now)
            winner_name = None
            winner_id = self._result_for(election, status).winner_id
            if winner_id:
                nomination = next(
                    (n for n in election.nominations if n.id == winner_id), None
                )
                winner_name = nomination.restaurant_name if nomination else "Unknown"
            summaries.append(
                ElectionSummary(
                    id=election.id,
                    name=election.name,
                    admin_name=election.admin_name,
                    ballot_visibility=election.ballot_visibility,
                    vote_start_time=election.vote_start_time,
                    status=status,
                    nomination_count=len(election.nominations),
                    winner_name=winner_name,
                )
            )
        return summaries

    def detail(self, election_id: str) -> ElectionDetail:
        """Return the election room view for the current moment.

        Rankings are hidden once a secret election completes; open elections
        expose the pairwise matrix and named ballots after completion.
        """
        election = self._load(election_id)
        status = derive_status(election, self.now)
        result = self._result_for(election, status)
        completed = status == "completed"
        is_open = election.ballot_visibility == "open"

        votes = election.votes
        if completed and not is_open:
            votes = [
                Vote(voter_name=vote.voter_name, rankings=[], created_at=vote.created_at)
                for vote in votes
            ]

        matrix = None
        ballots = None
        if completed and is_open:
            matrix = calculate_pairwise_matrix(election.nominations, election.votes)
            names = {n.id: n.restaurant_name for n in election.nominations}
            ballots = [
                BallotView(
                    voter_name=vote.voter_name,
                    rankings=[
                        BallotEntry(
                            nomination_id=nomination_id,
                            restaurant_name=names.get(nomination_id, "Unknown"),
                        )
                        for nomination_id in vote.rankings
                    ],
                )
                for vote in election.votes
            ]

        return ElectionDetail(
            id=election.id,
            name=election.name,
            admin_name=election.admin_name,
            ballot_visibility=election.ballot_visibility,
            vote_start_time=election.vote_start_time,
            voting_ends_at=voting_ends_at(election),
            participants=election.participants,
            nominations=election.nominations,
            votes=votes,
            status=status,
            state=election.state,
            winner=result.winner_id,
            winner_method=result.method,
            tie_broken=result.tie_broken,
            ballots=ballots,
            matrix=matrix,
            created_at=election.created_at,
        )

    def join(self, election_id: str, name: str, codeword: str) -> dict[str, Any]:
        self._load_authorized(election_id, codeword)
        if not name.strip():
            raise InvalidInputError("Name is required")
        self._stored(self.store.add_participant(election_id, name.strip()))
        return {"success": True}

    def _ensure_open(self, election: Election) -> None:
        if is_terminal(derive_status(election, self.now)):
            raise ConflictError("Election is closed", code="ELECTION_CLOSED")

    def _ensure_voting(self, election: Election) -> None:
        status = derive_status(election, self.now)
        if status == "cancelled":
            raise ConflictError("Election is closed", code="ELECTION_CLOSED")
        if status == "nomination":
            raise VotingWindowError("Voting has not started", code="VOTING_NOT_STARTED")
        if status != "voting":
            raise VotingWindowError("Voting closed", code="VOTING_CLOSED")

    @staticmethod
    def _ensure_known(election: Election, rankings: list[str]) -> None:
        known = {n.id for n in election.nominations}
        unknown = [nomination_id for nomination_id in rankings if nomination_id not in known]
        if unknown:
            raise InvalidInputError(f"Unknown nomination: {unknown[0]}")

    def nominate(self, election_id: str, payload: NominationCreate) -> Nomination:
        """Add a restaurant; write-ins are accepted during voting as well."""
        election = self._load_authorized(election_id, payload.group_codeword)
        self._ensure_open(election)

        nomination = Nomination(
            id=new_id(),
            nominator_name=payload.nominator_name.strip(),
            restaurant_name=payload.restaurant_name.strip(),
            is_write_in=payload.is_write_in,
            metadata=payload.metadata,
            created_at=self.now,
        )
        self._stored(
            self.store.add_nomination(election_id, nomination, guard=self._ensure_open)
        )
        return nomination

    def withdraw_nomination(
        self, election_id: str, nomination_id: str, requester_name: str, codeword: str
    ) -> dict[str, Any]:
        """Remove a nomination; only its nominator or the admin may do so."""
        election = self._load_authorized(election_id, codeword)
        self._ensure_open(election)
        nomination = next((n for n in election.nominations if n.id == nomination_id), None)
        if nomination is None:
            raise NotFoundError("Nomination")

        is_owner = _same_name(nomination.nominator_name, requester_name)
        is_admin = _same_name(election.admin_name, requester_name)
        if not is_owner and not is_admin:
            raise ForbiddenError("Not authorized")

        self._stored(
            self.store.remove_nomination(election_id, nomination_id, guard=self._ensure_open)
        )
        return {"success": True}

    def vote(
        self, election_id: str, voter_name: str, rankings: list[str], codeword: str
    ) -> dict[str, Any]:
        """Validate and record a ranked ballot inside the voting window.

        The window and nomination checks run again under the election's
        write lock, so a ballot never lands after finalize or cancel.
        """
        election = self._load_authorized(election_id, codeword)
        self._ensure_voting(election)

        voter = voter_name.strip()
        if not voter:
            raise InvalidInputError("Voter name is required")
        if len(set(rankings)) != len(rankings):
            raise InvalidInputError("Rankings must not repeat a nomination")
        self._ensure_known(election, rankings)

        def _admit(current: Election) -> None:
            self._ensure_voting(current)
            self._ensure_known(current, rankings)

        self._stored(self.store.add_vote(election_id, voter, rankings, guard=_admit))
        return {"success": True}

    def start_voting(self, election_id: str, codeword: str | None) -> dict[str, Any]:
        election = self._load_authorized(election_id, codeword)
        self._ensure_open(election)
        self._stored(self.store.start_voting(election_id, guard=self._ensure_open))
        return {"success": True}

    def finalize(self, election_id: str, codeword: str | None) -> dict[str, Any]:
        """Complete the election; the codeword is only checked when supplied."""
        election = self._load(election_id)
        if codeword and election.group_codeword != codeword:
            raise ForbiddenError("Invalid codeword")
        self._stored(self.store.finalize_election(election_id))
        return {"success": True}

    def cancel(self, election_id: str, codeword: str, requester_name: str) -> dict[str, Any]:
        election = self._load_authorized(election_id, codeword or None)
        if not requester_name or not _same_name(election.admin_name, requester_name):
            raise ForbiddenError("Admin only")
        self._stored(self.store.cancel_election(election_id))
        return {"success": True}
