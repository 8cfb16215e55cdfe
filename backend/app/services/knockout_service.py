"""
Knockout Service - Bracket Advancement

Moves winners through the knockout rounds:
  quarter -> semi -> final -> tournament completed

Every step is re-checked on each call and reconciles rows against the
current results, so calling it after any score update (group or knockout,
relevant or not) is always safe.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from backend.app.core.config import LeagueRules, rules as default_rules
from backend.app.models.enums import MatchRound, MatchStatus, TournamentStatus
from backend.app.models.match_model import Match
from backend.app.models.tournament_model import Tournament
from backend.app.services.bracket_service import (
    delete_rounds,
    invalidate_downstream,
    load_round,
    reconcile_round,
)

logger = logging.getLogger(__name__)


def round_winners(matches: List[Match]) -> Optional[List[int]]:
    """Winners in match order, or None if any match is unplayed or level."""
    winners = []
    for m in matches:
        if m.status != MatchStatus.COMPLETED:
            return None
        winner = m.winner_id()
        if winner is None:
            logger.warning(
                f"{m.round} match {m.id} is completed without a winner "
                f"({m.score1}-{m.score2}); not advancing"
            )
            return None
        winners.append(winner)
    return winners


class KnockoutService:
    def __init__(self, rules: LeagueRules = None):
        self.rules = rules or default_rules

    async def try_advance_knockout(self, db: AsyncSession, tournament_id: int):
        """Runs the three advancement checks in order. Never commits."""
        await self._advance_quarters(db, tournament_id)
        await self._advance_semis(db, tournament_id)
        await self._complete_if_final_played(db, tournament_id)

    async def _advance_quarters(self, db: AsyncSession, tournament_id: int):
        quarters = await load_round(db, tournament_id, MatchRound.QUARTER)
        if len(quarters) != 4:
            return

        winners = round_winners(quarters)
        if winners is None:
            return

        # Winner QF1 vs Winner QF4, Winner QF2 vs Winner QF3
        desired = [(winners[0], winners[3]), (winners[1], winners[2])]
        changed = await reconcile_round(db, tournament_id, MatchRound.SEMI, desired)
        if changed:
            logger.info(f"Tournament {tournament_id}: semifinals set from quarterfinal winners")
            await invalidate_downstream(db, tournament_id, MatchRound.SEMI)

    async def _advance_semis(self, db: AsyncSession, tournament_id: int):
        semis = await load_round(db, tournament_id, MatchRound.SEMI)
        if len(semis) != 2:
            return

        winners = round_winners(semis)
        if winners is None:
            return

        if await reconcile_round(db, tournament_id, MatchRound.FINAL, [(winners[0], winners[1])]):
            logger.info(f"Tournament {tournament_id}: final set {winners[0]} vs {winners[1]}")

        if self.rules.third_place_match:
            losers = [m.loser_id() for m in semis]
            await reconcile_round(db, tournament_id, MatchRound.THIRD_PLACE, [(losers[0], losers[1])])
        else:
            await delete_rounds(db, tournament_id, [MatchRound.THIRD_PLACE])

    async def _complete_if_final_played(self, db: AsyncSession, tournament_id: int):
        finals = await load_round(db, tournament_id, MatchRound.FINAL)
        if len(finals) != 1 or finals[0].status != MatchStatus.COMPLETED:
            return

        result = await db.execute(select(Tournament).where(Tournament.id == tournament_id))
        tournament = result.scalar_one_or_none()
        if tournament and tournament.status != TournamentStatus.COMPLETED:
            tournament.status = TournamentStatus.COMPLETED.value
            await db.flush()
            logger.info(f"🏆 Tournament {tournament_id} Completed!")


knockout_service = KnockoutService()
