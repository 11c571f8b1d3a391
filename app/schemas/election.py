"""Election schemas."""

from typing import Literal

from pydantic import BaseModel, Field

ElectionStatus = Literal["nomination", "voting", "completed", "cancelled"]
BallotVisibility = Literal["secret", "open"]
WinnerMethod = Literal["condorcet", "pairwise_fallback"]


class RestaurantMetadata(BaseModel):
    """Optional place details attached to a nomination."""

    address: str | None = None
    rating: float | None = None
    review_count: int | None = None
    photo: str | None = None
    price_level: str | None = None


class Nomination(BaseModel):
    """A restaurant nominated into an election."""

    id: str
    nominator_name: str
    restaurant_name: str
    is_write_in: bool = False
    metadata: RestaurantMetadata | None = None
    created_at: int


class Vote(BaseModel):
    """A ranked ballot; index 0 is the most preferred nomination id."""

    voter_name: str
    rankings: list[str] = Field(default_factory=list)
    created_at: int = 0


class Election(BaseModel):
    """Stored election document."""

    id: str
    name: str
    group_codeword: str
    admin_name: str
    ballot_visibility: BallotVisibility = "secret"
    vote_start_time: int
    participants: list[str] = Field(default_factory=list)
    nominations: list[Nomination] = Field(default_factory=list)
    votes: list[Vote] = Field(default_factory=list)
    state: ElectionStatus | None = None
    winner: str | None = None
    winner_method: WinnerMethod | None = None
    tie_broken: bool = False
    created_at: int


class ElectionCreate(BaseModel):
    """Request body for creating an election."""

    name: str = Field(..., min_length=1, max_length=80)
    vote_start_time: int = Field(..., gt=0)
    group_codeword: str = Field(..., min_length=1)
    admin_name: str = Field(..., min_length=1, max_length=50)
    ballot_visibility: BallotVisibility = "secret"


class CodewordRequest(BaseModel):
    """Request body carrying only the shared group codeword."""

    group_codeword: str | None = None


class JoinRequest(BaseModel):
    """Request body for joining an election room."""

    name: str = Field(..., min_length=1, max_length=50)
    group_codeword: str


class NominationCreate(BaseModel):
    """Request body for nominating a restaurant."""

    nominator_name: str = Field(..., min_length=1, max_length=50)
    restaurant_name: str = Field(..., min_length=1, max_length=120)
    group_codeword: str
    is_write_in: bool = False
    metadata: RestaurantMetadata | None = None


class NominationDelete(BaseModel):
    """Request body for withdrawing a nomination."""

    nomination_id: str
    requester_name: str = Field(..., min_length=1)
    group_codeword: str


class VoteCreate(BaseModel):
    """Request body for casting a ranked ballot."""

    voter_name: str = Field(..., min_length=1, max_length=50)
    rankings: list[str]
    group_codeword: str


class CancelRequest(BaseModel):
    """Request body for cancelling an election (admin only)."""

    group_codeword: str
    requester_name: str


class ElectionSummary(BaseModel):
    """Election list entry."""

    id: str
    name: str
    admin_name: str
    ballot_visibility: BallotVisibility
    vote_start_time: int
    status: ElectionStatus
    nomination_count: int
    winner_name: str | None = None


class BallotEntry(BaseModel):
    """One ranked choice on an open ballot."""

    nomination_id: str
    restaurant_name: str


class BallotView(BaseModel):
    """A named ballot shown once an open election completes."""

    voter_name: str
    rankings: list[BallotEntry]


class ElectionDetail(BaseModel):
    """Election room payload; never carries the group codeword."""

    id: str
    name: str
    admin_name: str
    ballot_visibility: BallotVisibility
    vote_start_time: int
    voting_ends_at: int
    participants: list[str]
    nominations: list[Nomination]
    votes: list[Vote]
    status: ElectionStatus
    state: ElectionStatus | None = None
    winner: str | None = None
    winner_method: WinnerMethod | None = None
    tie_broken: bool = False
    ballots: list[BallotView] | None = None
    matrix: dict[str, dict[str, int]] | None = None
    created_at: int
