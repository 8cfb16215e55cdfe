from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.schemas.tournament_schema import MatchResponse, MatchScoreResponse, PlayerResponse, ScoreUpdate
from backend.app.services.progression_service import progression_service

router = APIRouter()


@router.put("/{id}/score", response_model=MatchScoreResponse)
async def update_match_score(id: int, payload: ScoreUpdate, db: AsyncSession = Depends(get_db)):
    """
    Records a result and lets the bracket progress from it.

    Malformed bodies (non-integer or negative scores) fail request validation
    and come back as 422. Well-formed scores the rules refuse, such as a level
    knockout result, come back as 400. A completed tournament answers 409.
    """
    result = await progression_service.update_match_score(db, id, payload.score1, payload.score2)
    response = MatchResponse.model_validate(result.match).model_dump()
    if result.winner:
        response["winner"] = PlayerResponse.model_validate(result.winner)
    return MatchScoreResponse(**response)
