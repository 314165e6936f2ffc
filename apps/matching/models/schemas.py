"""
Pydantic models for API request/response validation.
"""

from typing import Optional, List
from pydantic import BaseModel, Field, field_validator

from matching.utils.constants import MAX_PLAYERS_PER_MATCH


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str
    database: dict


class ErrorResponse(BaseModel):
    """Structured failure body returned for every reported error."""

    result: bool = False
    reason: str
    kind: str
    detail: str


class CreateMatchRequest(BaseModel):
    """Request a stadium for a group of players."""

    activity_type: str = Field(..., min_length=1)
    players: List[str] = Field(..., min_length=1, max_length=MAX_PLAYERS_PER_MATCH)

    @field_validator("activity_type")
    @classmethod
    def strip_activity_type(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("activity_type must not be blank")
        return v


class CreateMatchResponse(BaseModel):
    """Match placed in a stadium."""

    result: bool = True
    match_id: str
    stadium: str


class MatchRecord(BaseModel):
    """Match data."""

    match_id: str
    initiator_id: str
    activity_type: str
    players: List[str]
    stadium: str
    created_at: Optional[str] = None


class MatchResponse(BaseModel):
    """Single match lookup."""

    result: bool = True
    match: MatchRecord


class MatchListResponse(BaseModel):
    """All matches."""

    result: bool = True
    docs: List[MatchRecord]


class ResultResponse(BaseModel):
    """Bare success acknowledgement."""

    result: bool = True


class StadiumCreate(BaseModel):
    """Register a stadium."""

    name: str = Field(..., min_length=1)
    available_type: List[str] = Field(..., min_length=1)
    belong_at: str = Field(..., min_length=1)
    max_players: int = Field(..., ge=0)


class StadiumRecord(BaseModel):
    """Stadium data with current capacity."""

    id: int
    name: str
    available_types: List[str]
    belong_at: str
    max_capacity: int
    occupied_capacity: int
    remaining_capacity: int
    matchings: List[str]
    modified_at: Optional[str] = None


class StadiumResponse(BaseModel):
    """Single stadium lookup."""

    result: bool = True
    stadium: StadiumRecord


class StadiumListResponse(BaseModel):
    """All stadiums."""

    result: bool = True
    docs: List[StadiumRecord]


class UserInfoResponse(BaseModel):
    """User profile with match linkage."""

    result: bool = True
    id: str
    name: Optional[str] = None
    rank: int = 0
    unit: str
    description: Optional[str] = None
    match_ongoing: Optional[str] = None
    match_history: List[str] = []
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
