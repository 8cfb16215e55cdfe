from pydantic import BaseModel, ConfigDict, Field, StrictInt
from typing import List, Optional
from datetime import datetime


class PlayerCreate(BaseModel):
    name: str


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class TournamentCreate(BaseModel):
    name: str


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    status: str
    created_at: Optional[datetime] = None


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    player1_id: int
    player2_id: int
    score1: Optional[int] = None
    score2: Optional[int] = None
    round: str
    status: str


class MatchScoreResponse(MatchResponse):
    # Only set once a final has been completed
    winner: Optional[PlayerResponse] = None


class TournamentDetail(TournamentResponse):
    players: List[PlayerResponse] = []
    matches: List[MatchResponse] = []


class RosterAdd(BaseModel):
    player_id: int


class GenerateMatchesRequest(BaseModel):
    group_count: Optional[int] = None
    # Fixes the shuffle, mostly useful for tests and replays
    seed: Optional[int] = None


class ScoreUpdate(BaseModel):
    # StrictInt so "2" or 2.5 are rejected instead of coerced
    score1: StrictInt = Field(ge=0)
    score2: StrictInt = Field(ge=0)


class StandingsEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: int
    name: str
    group: str
    played: int
    wins: int
    draws: int
    losses: int
    goals_for: int
    goals_against: int
    goal_diff: int
    points: int
