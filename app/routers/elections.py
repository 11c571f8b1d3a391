"""Election endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from app.dependencies import get_election_service
from app.schemas.election import (
    CancelRequest,
    CodewordRequest,
    Election,
    ElectionCreate,
    ElectionDetail,
    ElectionSummary,
    JoinRequest,
    Nomination,
    NominationCreate,
    NominationDelete,
    VoteCreate,
)
from app.services.election_service import ElectionService

router = APIRouter()


@router.post("", response_model=Election, response_model_exclude={"group_codeword"})
def create_election(
    payload: ElectionCreate,
    service: ElectionService = Depends(get_election_service),
) -> Election:
    """Create a new election in its nomination phase."""
    return service.create(payload)


@router.get("")
def list_elections(
    service: ElectionService = Depends(get_election_service),
) -> list[ElectionSummary]:
    """List live elections, newest first."""
    return service.list_summaries()


@router.get("/{election_id}")
def get_election(
    election_id: str,
    response: Response,
    service: ElectionService = Depends(get_election_service),
) -> ElectionDetail:
    """Return the election room view."""
    response.headers["Cache-Control"] = "no-store, max-age=0"
    return service.detail(election_id)


@router.post("/{election_id}/join")
def join_election(
    election_id: str,
    payload: JoinRequest,
    service: ElectionService = Depends(get_election_service),
) -> dict:
    """Register a participant display name."""
    return service.join(election_id, payload.name, payload.group_codeword)


@router.post("/{election_id}/nominate")
def nominate(
    election_id: str,
    payload: NominationCreate,
    service: ElectionService = Depends(get_election_service),
) -> Nomination:
    """Nominate a restaurant."""
    return service.nominate(election_id, payload)


@router.delete("/{election_id}/nominate")
def withdraw_nomination(
    election_id: str,
    payload: NominationDelete,
    service: ElectionService = Depends(get_election_service),
) -> dict:
    """Withdraw a nomination (nominator or admin)."""
    return service.withdraw_nomination(
        election_id,
        nomination_id=payload.nomination_id,
        requester_name=payload.requester_name,
        codeword=payload.group_codeword,
    )


@router.post("/{election_id}/vote")
def vote(
    election_id: str,
    payload: VoteCreate,
    service: ElectionService = Depends(get_election_service),
) -> dict:
    """Cast or replace a ranked ballot."""
    return service.vote(election_id, payload.voter_name, payload.rankings, payload.group_codeword)


@router.post("/{election_id}/start")
def start_voting(
    election_id: str,
    payload: CodewordRequest,
    service: ElectionService = Depends(get_election_service),
) -> dict:
    """Open the voting window now."""
    return service.start_voting(election_id, payload.group_codeword)


@router.post("/{election_id}/finalize")
def finalize_election(
    election_id: str,
    payload: CodewordRequest,
    service: ElectionService = Depends(get_election_service),
) -> dict:
    """Close voting and cache the winner."""
    return service.finalize(election_id, payload.group_codeword)


@router.post("/{election_id}/cancel")
def cancel_election(
    election_id: str,
    payload: CancelRequest,
    service: ElectionService = Depends(get_election_service),
) -> dict:
    """Cancel an election (admin only)."""
    return service.cancel(election_id, payload.group_codeword, payload.requester_name)
