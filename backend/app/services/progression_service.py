"""
Progression Service - Score Updates & Bracket Progression

Entry point for every match result. It:
- validates and stores the score
- seeds the knockout round once the group stage is done
- advances knockout winners and completes the tournament
- attaches the tournament winner when a final is reported

One call runs in one transaction and is serialised per tournament, so two
results arriving together cannot both see "all quarters done" and build
the semifinals twice.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from backend.app.core.errors import ConflictError, InconsistentStateError, NotFoundError, ValidationError
from backend.app.models.enums import MatchRound, MatchStatus, TournamentStatus, is_group_round
from backend.app.models.match_model import Match
from backend.app.models.player_model import Player
from backend.app.services.bracket_service import BracketService, bracket_service
from backend.app.services.knockout_service import KnockoutService, knockout_service
from backend.app.services.tournament_service import TournamentService, tournament_service

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    match: Match
    winner: Optional[Player] = None


def validate_score(value, label: str) -> int:
    # bool is an int subclass, but True is not a score
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{label} must be a whole number, got {value!r}")
    if value < 0:
        raise ValidationError(f"{label} cannot be negative")
    return value


class ProgressionService:
    def __init__(
        self,
        bracket: BracketService = None,
        knockout: KnockoutService = None,
        tournaments: TournamentService = None,
    ):
        self.bracket = bracket or bracket_service
        self.knockout = knockout or knockout_service
        self.tournaments = tournaments or tournament_service
        # An entry lives only while some run holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, tournament_id: int) -> asyncio.Lock:
        lock = self._locks.get(tournament_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[tournament_id] = lock
        return lock

    async def _get_match(self, db: AsyncSession, match_id: int, refresh: bool = False) -> Optional[Match]:
        query = select(Match).where(Match.id == match_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def _progress(self, db: AsyncSession, tournament_id: int, group_changed: bool):
        if group_changed:
            await self.bracket.try_generate_knockout_matches(db, tournament_id)
        # Always: covers quarter->semi, semi->final and final->completed
        await self.knockout.try_advance_knockout(db, tournament_id)

    async def update_match_score(self, db: AsyncSession, match_id: int, score1, score2) -> MatchResult:
        score1 = validate_score(score1, "score1")
        score2 = validate_score(score2, "score2")

        match = await self._get_match(db, match_id)
        if not match:
            raise NotFoundError(f"Match {match_id} not found")

        tournament_id = match.tournament_id
        async with self.lock_for(tournament_id):
            try:
                # Row lock on the tournament for backends that support FOR UPDATE
                tournament = await self.tournaments.get_tournament(db, tournament_id, for_update=True)
                if tournament.status == TournamentStatus.COMPLETED:
                    raise ConflictError(f"Tournament {tournament_id} is already completed")

                # Another run may have replaced or dropped this row while we waited
                match = await self._get_match(db, match_id, refresh=True)
                if not match:
                    raise NotFoundError(f"Match {match_id} not found")
                if not is_group_round(match.round) and score1 == score2:
                    raise ValidationError(f"{match.round} matches need a winner, {score1}-{score2} is level")

                match.score1 = score1
                match.score2 = score2
                match.status = MatchStatus.COMPLETED.value
                await db.flush()

                updated = await self._get_match(db, match_id, refresh=True)
                if not updated:
                    raise InconsistentStateError(f"Match {match_id} not found after update")
                if updated.status != MatchStatus.COMPLETED:
                    raise InconsistentStateError(f"Match {match_id} not marked completed after update")

                await self._progress(db, tournament_id, is_group_round(updated.round))

                # Single atomic commit for the score and everything it triggered
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await db.refresh(updated)
        logger.info(f"Match {match_id} ({updated.round}) recorded {score1}-{score2}")

        winner = None
        if updated.round == MatchRound.FINAL and updated.status == MatchStatus.COMPLETED:
            try:
                winner = await self.tournaments.get_winner(db, tournament_id)
            except Exception as e:
                logger.warning(f"Failed to fetch winner after final completion: {e}")

        return MatchResult(match=updated, winner=winner)

    async def refresh(self, db: AsyncSession, tournament_id: int):
        """Re-runs progression for a tournament without touching any score."""
        async with self.lock_for(tournament_id):
            try:
                tournament = await self.tournaments.get_tournament(db, tournament_id, for_update=True)
                await self._progress(db, tournament_id, group_changed=True)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        await db.refresh(tournament)
        return tournament


progression_service = ProgressionService()
