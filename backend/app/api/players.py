from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from backend.app.core.database import get_db
from backend.app.schemas.tournament_schema import PlayerCreate, PlayerResponse
from backend.app.services.tournament_service import player_service

router = APIRouter()


@router.post("", response_model=PlayerResponse)
async def create_player(payload: PlayerCreate, db: AsyncSession = Depends(get_db)):
    return await player_service.create_player(db, payload.name)


@router.get("", response_model=List[PlayerResponse])
async def list_players(db: AsyncSession = Depends(get_db)):
    return await player_service.list_players(db)
