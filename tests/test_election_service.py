"""Election lifecycle service tests."""

from __future__ import annotations

import pytest

from app.schemas.election import ElectionCreate, NominationCreate
from app.services.condorcet import calculate_pairwise_matrix, resolve_winner
from app.services.election_service import ElectionService
from app.utils.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    VotingWindowError,
)

CODEWORD = "woodpecker"


def create(service: ElectionService, clock, visibility: str = "secret", start_in: int = 5):
    return service.create(
        ElectionCreate(
            name="Friday lunch",
            vote_start_time=clock() + start_in * 60 * 1000,
            group_codeword=CODEWORD,
            admin_name="Ada",
            ballot_visibility=visibility,
        )
    )


def nominate(service: ElectionService, election_id: str, who: str, place: str, **extra):
    return service.nominate(
        election_id,
        NominationCreate(
            nominator_name=who, restaurant_name=place, group_codeword=CODEWORD, **extra
        ),
    )


@pytest.fixture
def election(service: ElectionService, clock):
    return create(service, clock)


def test_create_assigns_unique_ids(service: ElectionService, clock) -> None:
    """Elections should get distinct uuid-style identifiers."""
    first = create(service, clock)
    second = create(service, clock)
    assert first.id != second.id
    assert len(first.id) == 32
    assert first.created_at == clock()
    assert first.ballot_visibility == "secret"


def test_unknown_election_is_not_found(service: ElectionService) -> None:
    with pytest.raises(NotFoundError):
        service.detail("missing")


def test_wrong_codeword_is_forbidden(service: ElectionService, election) -> None:
    """Every codeword-guarded action should reject a wrong codeword."""
    with pytest.raises(ForbiddenError):
        service.join(election.id, "Bo", "nope")
    with pytest.raises(ForbiddenError):
        service.vote(election.id, "Bo", [], "nope")
    with pytest.raises(ForbiddenError):
        service.start_voting(election.id, None)


def test_join_registers_participant(service: ElectionService, election) -> None:
    service.join(election.id, "Bo", CODEWORD)
    service.join(election.id, "bo", CODEWORD)
    assert service.detail(election.id).participants == ["Bo"]


def test_withdraw_permissions(service: ElectionService, election) -> None:
    """Only the nominator or the admin may withdraw a nomination."""
    first = nominate(service, election.id, "Bo", "Noodle Bar")
    second = nominate(service, election.id, "Cy", "Taco Shack")

    with pytest.raises(ForbiddenError):
        service.withdraw_nomination(election.id, first.id, "Cy", CODEWORD)
    with pytest.raises(NotFoundError):
        service.withdraw_nomination(election.id, "missing", "Bo", CODEWORD)

    service.withdraw_nomination(election.id, first.id, "BO", CODEWORD)
    service.withdraw_nomination(election.id, second.id, "ada", CODEWORD)
    assert service.detail(election.id).nominations == []


def test_vote_before_window_is_rejected(service: ElectionService, election) -> None:
    with pytest.raises(VotingWindowError) as exc_info:
        service.vote(election.id, "Bo", [], CODEWORD)
    assert exc_info.value.code == "VOTING_NOT_STARTED"


def test_vote_after_window_is_rejected(service: ElectionService, election, clock) -> None:
    clock.advance(5 + 10)
    with pytest.raises(VotingWindowError) as exc_info:
        service.vote(election.id, "Bo", [], CODEWORD)
    assert exc_info.value.code == "VOTING_CLOSED"


def test_vote_validates_ballot(service: ElectionService, election, clock) -> None:
    """Ballots with repeated or unknown nominations should be refused."""
    noodle = nominate(service, election.id, "Bo", "Noodle Bar")
    clock.advance(5)
    with pytest.raises(InvalidInputError):
        service.vote(election.id, "Bo", [noodle.id, noodle.id], CODEWORD)
    with pytest.raises(InvalidInputError):
        service.vote(election.id, "Bo", ["ghost"], CODEWORD)
    with pytest.raises(InvalidInputError):
        service.vote(election.id, "   ", [noodle.id], CODEWORD)
    assert service.vote(election.id, "Bo", [noodle.id], CODEWORD) == {"success": True}


def test_vote_on_cancelled_election_is_rejected(service: ElectionService, election, clock) -> None:
    clock.advance(6)
    service.cancel(election.id, CODEWORD, "Ada")
    with pytest.raises(ConflictError):
        service.vote(election.id, "Bo", [], CODEWORD)


def test_write_in_allowed_during_voting(service: ElectionService, election, clock) -> None:
    """Write-ins should be accepted after voting opens."""
    clock.advance(6)
    write_in = nominate(service, election.id, "Bo", "Late Pizza", is_write_in=True)
    assert write_in.is_write_in
    assert [n.id for n in service.detail(election.id).nominations] == [write_in.id]


def test_nominating_into_closed_election_is_rejected(
    service: ElectionService, election, clock
) -> None:
    clock.advance(5 + 10)
    with pytest.raises(ConflictError):
        nominate(service, election.id, "Bo", "Too Late Diner")


def test_cancel_is_admin_only(service: ElectionService, election) -> None:
    with pytest.raises(ForbiddenError):
        service.cancel(election.id, CODEWORD, "Bo")
    with pytest.raises(ForbiddenError):
        service.cancel(election.id, "", "Ada")
    service.cancel(election.id, CODEWORD, "ADA")
    assert service.detail(election.id).status == "cancelled"


def test_start_voting_opens_window_now(service: ElectionService, election, clock) -> None:
    service.start_voting(election.id, CODEWORD)
    detail = service.detail(election.id)
    assert detail.status == "voting"
    assert detail.voting_ends_at == clock() + 10 * 60 * 1000


def test_finalize_checks_codeword_only_when_given(service: ElectionService, election) -> None:
    """Finalizing without a codeword is allowed; a wrong one is not."""
    nominate(service, election.id, "Bo", "Noodle Bar")
    with pytest.raises(ForbiddenError):
        service.finalize(election.id, "nope")
    service.finalize(election.id, None)
    detail = service.detail(election.id)
    assert detail.status == "completed"
    assert detail.winner is not None


def _run_cycle(service: ElectionService, election, clock) -> dict[str, str]:
    ids = {}
    for who, place in [("Ada", "A"), ("Bo", "B"), ("Cy", "C")]:
        ids[place] = nominate(service, election.id, who, place).id
        clock.advance(0.5)
    clock.advance(5)
    for voter, order in [("Ada", "ABC"), ("Bo", "BCA"), ("Cy", "CAB")]:
        service.vote(election.id, voter, [ids[p] for p in order], CODEWORD)
    return ids


def test_secret_election_hides_rankings_when_completed(
    service: ElectionService, election, clock
) -> None:
    ids = _run_cycle(service, election, clock)
    assert service.detail(election.id).votes[0].rankings == [ids["A"], ids["B"], ids["C"]]

    clock.advance(10)
    detail = service.detail(election.id)
    assert detail.status == "completed"
    assert all(vote.rankings == [] for vote in detail.votes)
    assert detail.matrix is None
    assert detail.ballots is None
    assert detail.winner == ids["A"]


def test_open_election_exposes_matrix_and_ballots(service: ElectionService, clock) -> None:
    """Completed open elections should show head-to-head counts and named ballots."""
    election = create(service, clock, visibility="open")
    ids = _run_cycle(service, election, clock)
    assert service.detail(election.id).matrix is None

    clock.advance(10)
    detail = service.detail(election.id)
    assert detail.matrix[ids["A"]][ids["B"]] == 2
    assert detail.matrix[ids["B"]][ids["A"]] == 1
    assert detail.ballots[0].voter_name == "Ada"
    assert [entry.restaurant_name for entry in detail.ballots[1].rankings] == ["B", "C", "A"]


def test_detail_does_not_persist_computed_winner(
    service: ElectionService, election, clock
) -> None:
    _run_cycle(service, election, clock)
    clock.advance(10)
    assert service.detail(election.id).winner is not None
    assert service.store.get_election(election.id).winner is None


def test_list_summaries_newest_first_with_winner_name(service: ElectionService, clock) -> None:
    older = create(service, clock)
    nominate(service, older.id, "Bo", "Noodle Bar")
    clock.advance(1)
    newer = create(service, clock, start_in=30)
    clock.advance(5)

    summaries = service.list_summaries()
    assert [s.id for s in summaries] == [newer.id, older.id]
    assert summaries[0].status == "nomination"
    assert summaries[0].winner_name is None

    clock.advance(10)
    summaries = service.list_summaries()
    assert summaries[1].status == "completed"
    assert summaries[1].nomination_count == 1
    assert summaries[1].winner_name == "Noodle Bar"


def _finalize_after_admission(service: ElectionService, election_id: str) -> None:
    """Make the next admission read be followed by a committed finalize."""
    store = service.store
    original_get = store.get_election

    def get_then_finalize(requested_id: str):
        snapshot = original_get(requested_id)
        store.get_election = original_get
        store.finalize_election(election_id)
        return snapshot

    store.get_election = get_then_finalize


def test_ballot_racing_finalize_is_rejected(service: ElectionService, clock) -> None:
    """A ballot admitted before finalize commits must not be stored after it."""
    election = create(service, clock, visibility="open")
    ids = _run_cycle(service, election, clock)
    before = service.store.get_election(election.id)

    _finalize_after_admission(service, election.id)
    with pytest.raises(VotingWindowError) as exc_info:
        service.vote(election.id, "Dee", [ids["B"], ids["A"]], CODEWORD)
    assert exc_info.value.code == "VOTING_CLOSED"

    stored = service.store.get_election(election.id)
    assert stored.state == "completed"
    assert stored.votes == before.votes
    detail = service.detail(election.id)
    assert detail.winner == resolve_winner(stored.nominations, stored.votes).winner_id
    assert detail.matrix == calculate_pairwise_matrix(stored.nominations, stored.votes)


def test_ballot_racing_cancel_is_rejected(service: ElectionService, election, clock) -> None:
    noodle = nominate(service, election.id, "Bo", "Noodle Bar")
    clock.advance(6)
    store = service.store
    original_get = store.get_election

    def get_then_cancel(requested_id: str):
        snapshot = original_get(requested_id)
        store.get_election = original_get
        store.cancel_election(requested_id)
        return snapshot

    store.get_election = get_then_cancel
    with pytest.raises(ConflictError):
        service.vote(election.id, "Bo", [noodle.id], CODEWORD)
    assert store.get_election(election.id).votes == []


def test_nomination_racing_finalize_is_rejected(service: ElectionService, election) -> None:
    _finalize_after_admission(service, election.id)
    with pytest.raises(ConflictError):
        nominate(service, election.id, "Bo", "Noodle Bar")
    assert service.store.get_election(election.id).nominations == []


def test_withdrawal_after_completion_is_rejected(
    service: ElectionService, election, clock
) -> None:
    """Once the window closes, withdrawing must not change the winner."""
    first = nominate(service, election.id, "Bo", "A")
    clock.advance(0.5)
    second = nominate(service, election.id, "Cy", "B")
    clock.advance(5)
    service.vote(election.id, "Ada", [first.id, second.id], CODEWORD)
    clock.advance(10)
    assert service.detail(election.id).winner == first.id

    with pytest.raises(ConflictError) as exc_info:
        service.withdraw_nomination(election.id, first.id, "Ada", CODEWORD)
    assert exc_info.value.code == "ELECTION_CLOSED"
    assert service.detail(election.id).winner == first.id


def test_withdrawal_after_cancel_is_rejected(service: ElectionService, election) -> None:
    noodle = nominate(service, election.id, "Bo", "Noodle Bar")
    service.cancel(election.id, CODEWORD, "Ada")
    with pytest.raises(ConflictError):
        service.withdraw_nomination(election.id, noodle.id, "Bo", CODEWORD)


def test_computed_winner_reports_its_method(service: ElectionService, election, clock) -> None:
    """A winner computed on read should carry the method that produced it."""
    _run_cycle(service, election, clock)
    clock.advance(10)
    detail = service.detail(election.id)
    assert detail.winner_method == "pairwise_fallback"
    assert detail.tie_broken is True


def test_cached_winner_reports_stored_method(service: ElectionService, election) -> None:
    nominate(service, election.id, "Bo", "Noodle Bar")
    service.finalize(election.id, CODEWORD)
    detail = service.detail(election.id)
    assert detail.winner_method == "condorcet"
    assert detail.tie_broken is False
