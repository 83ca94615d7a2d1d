"""
API request / response schemas
"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from core.team import Team


# ============ Team ============

class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    display_name: Optional[str] = Field(default=None, max_length=128)
    color: Union[int, str] = Field(default="#FFFFFF", description="#RRGGBB or 24-bit int")


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=64)
    display_name: Optional[str] = Field(default=None, max_length=128)
    color: Optional[Union[int, str]] = None


class TeamResponse(BaseModel):
    team_id: int
    name: str
    display_name: str
    color: str
    members: List[str]
    created_at: Optional[datetime] = None

    @classmethod
    def from_team(cls, team: Team) -> "TeamResponse":
        return cls(
            team_id=team.id,
            name=team.name,
            display_name=team.display_name,
            color=team.hex_color,
            members=sorted(team.members),
            created_at=team.created_at
        )


# ============ Membership ============

class MembershipRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=128)


class MembershipResponse(BaseModel):
    participant_id: str
    team_id: int


# ============ Points ============

class PointsDelta(BaseModel):
    delta: int


class PointsValue(BaseModel):
    value: int


class BalanceResponse(BaseModel):
    key: str
    balance: int


class ResetResponse(BaseModel):
    reset: bool


# ============ Scoreboard ============

class ScoreboardTeamRow(BaseModel):
    rank: int
    team_id: int
    name: str
    display_name: str
    color: str
    member_count: int
    points: int


class ScoreboardParticipantRow(BaseModel):
    rank: int
    participant_id: str
    display_name: str
    team_id: Optional[int] = None
    points: int


class ScoreboardResponse(BaseModel):
    generated_at: str
    teams: List[ScoreboardTeamRow]
    participants: List[ScoreboardParticipantRow]
