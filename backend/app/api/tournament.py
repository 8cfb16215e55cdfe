from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.core.database import get_db
from backend.app.schemas.tournament_schema import (
    GenerateMatchesRequest,
    MatchResponse,
    PlayerResponse,
    RosterAdd,
    StandingsEntry,
    TournamentCreate,
    TournamentDetail,
    TournamentResponse,
)
from backend.app.services.progression_service import progression_service
from backend.app.services.standings_service import standings_service
from backend.app.services.tournament_service import TournamentDetails, tournament_service

router = APIRouter()


def to_detail(details: TournamentDetails) -> TournamentDetail:
    return TournamentDetail(
        **TournamentResponse.model_validate(details.tournament).model_dump(),
        players=[PlayerResponse.model_validate(p) for p in details.players],
        matches=[MatchResponse.model_validate(m) for m in details.matches],
    )


@router.post("", response_model=TournamentResponse, status_code=status.HTTP_201_CREATED)
async def create_tournament(payload: TournamentCreate, db: AsyncSession = Depends(get_db)):
    return await tournament_service.create_tournament(db, payload.name)


@router.get("", response_model=List[TournamentDetail])
async def list_tournaments(db: AsyncSession = Depends(get_db)):
    """All tournaments, newest first, with their players and matches."""
    return [to_detail(d) for d in await tournament_service.list_tournaments_with_details(db)]


@router.get("/{id}", response_model=TournamentDetail)
async def get_tournament(id: int, db: AsyncSession = Depends(get_db)):
    return to_detail(await tournament_service.get_details(db, id))


@router.delete("/{id}")
async def delete_tournament(id: int, db: AsyncSession = Depends(get_db)):
    await tournament_service.delete_tournament(db, id)
    return {"message": "Tournament deleted successfully"}


@router.post("/{id}/players")
async def add_player(id: int, payload: RosterAdd, db: AsyncSession = Depends(get_db)):
    await tournament_service.add_player(db, id, payload.player_id)
    return {"tournament_id": id, "player_id": payload.player_id}


@router.delete("/{id}/players/{player_id}")
async def remove_player(id: int, player_id: int, db: AsyncSession = Depends(get_db)):
    """Only allowed while the tournament is still pending."""
    await tournament_service.remove_player(db, id, player_id)
    return {"message": "Player removed from tournament successfully"}


@router.post("/{id}/generate-matches", response_model=List[MatchResponse])
async def generate_matches(
    id: int,
    payload: Optional[GenerateMatchesRequest] = None,
    db: AsyncSession = Depends(get_db)
):
    payload = payload or GenerateMatchesRequest()
    return await tournament_service.generate_matches(db, id, payload.group_count, payload.seed)


@router.get("/{id}/standings", response_model=List[StandingsEntry])
async def get_standings(id: int, db: AsyncSession = Depends(get_db)):
    await tournament_service.get_tournament(db, id)
    standings = await standings_service.compute_standings(db, id)
    return [StandingsEntry(**s.to_dict()) for s in standings]


@router.get("/{id}/winner", response_model=Optional[PlayerResponse])
async def get_winner(id: int, db: AsyncSession = Depends(get_db)):
    await tournament_service.get_tournament(db, id)
    return await tournament_service.get_winner(db, id)


@router.post("/{id}/progress", response_model=TournamentResponse)
async def progress_tournament(id: int, db: AsyncSession = Depends(get_db)):
    """Re-evaluates the bracket from the stored results."""
    return await progression_service.refresh(db, id)
