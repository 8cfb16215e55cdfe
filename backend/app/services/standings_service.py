"""
Standings Service - Group Table Calculation

Folds completed group-stage matches into one stats line per rostered player.
Nothing is persisted; the table is rebuilt from the matches every time it is
asked for, so it can never drift from the results.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from backend.app.models.enums import GROUP_ROUND_PREFIX, MatchRound, MatchStatus
from backend.app.models.match_model import Match
from backend.app.models.player_model import Player
from backend.app.models.tournament_model import TournamentPlayer

logger = logging.getLogger(__name__)

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1

# Label for rostered players that have no group match at all
FALLBACK_GROUP = "Overall"


@dataclass
class PlayerStats:
    player_id: int
    name: str
    group: Optional[str] = None
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_diff: int = 0
    points: int = 0

    def to_dict(self):
        return asdict(self)


def group_label(round_label: str) -> str:
    """'group-2' -> 'GROUP 2', legacy 'group' -> 'GROUP'."""
    return round_label.replace(GROUP_ROUND_PREFIX, "Group ").upper()


def tie_break_key(stats: PlayerStats):
    return (stats.points, stats.goal_diff, stats.goals_for)


def sort_standings(stats: List[PlayerStats]) -> List[PlayerStats]:
    # sorted() is stable, also with reverse=True, so full ties keep roster order
    return sorted(stats, key=tie_break_key, reverse=True)


def group_matches_query(tournament_id: int):
    return (
        select(Match)
        .where(
            Match.tournament_id == tournament_id,
            or_(Match.round.like(f"{GROUP_ROUND_PREFIX}%"), Match.round == MatchRound.GROUP.value),
        )
        .order_by(Match.id.asc())
    )


def apply_result(home: PlayerStats, away: PlayerStats, score1: int, score2: int):
    """Folds one completed match into both stat lines."""
    home.played += 1
    away.played += 1
    home.goals_for += score1
    home.goals_against += score2
    away.goals_for += score2
    away.goals_against += score1

    if score1 > score2:
        home.wins += 1
        away.losses += 1
        home.points += POINTS_FOR_WIN
    elif score2 > score1:
        away.wins += 1
        home.losses += 1
        away.points += POINTS_FOR_WIN
    else:
        home.draws += 1
        away.draws += 1
        home.points += POINTS_FOR_DRAW
        away.points += POINTS_FOR_DRAW


def build_standings(players: List[Player], group_matches: List[Match]) -> List[PlayerStats]:
    """
    Pure part of the calculation.

    players: roster in registration order.
    group_matches: every group match of the tournament (any status), ordered by id.
    """
    stats: Dict[int, PlayerStats] = {
        p.id: PlayerStats(player_id=p.id, name=p.name) for p in players
    }

    # First group match that mentions a player decides their group
    for m in group_matches:
        for pid in (m.player1_id, m.player2_id):
            line = stats.get(pid)
            if line is not None and line.group is None:
                line.group = group_label(m.round)
    for line in stats.values():
        if line.group is None:
            line.group = FALLBACK_GROUP

    for m in group_matches:
        if m.status != MatchStatus.COMPLETED or m.score1 is None or m.score2 is None:
            continue
        home = stats.get(m.player1_id)
        away = stats.get(m.player2_id)
        if home is None or away is None:
            logger.debug(f"Skipping match {m.id}: player not on roster")
            continue
        apply_result(home, away, m.score1, m.score2)

    for line in stats.values():
        line.goal_diff = line.goals_for - line.goals_against

    return sort_standings(list(stats.values()))


class StandingsService:
    """Read-only: computes standings, never writes."""

    async def get_roster(self, db: AsyncSession, tournament_id: int) -> List[Player]:
        result = await db.execute(
            select(Player)
            .join(TournamentPlayer, TournamentPlayer.player_id == Player.id)
            .where(TournamentPlayer.tournament_id == tournament_id)
            .order_by(TournamentPlayer.registered_at.asc(), TournamentPlayer.player_id.asc())
        )
        return list(result.scalars().all())

    async def get_group_matches(self, db: AsyncSession, tournament_id: int) -> List[Match]:
        result = await db.execute(group_matches_query(tournament_id))
        return list(result.scalars().all())

    async def compute_standings(self, db: AsyncSession, tournament_id: int) -> List[PlayerStats]:
        players = await self.get_roster(db, tournament_id)
        if not players:
            return []
        group_matches = await self.get_group_matches(db, tournament_id)
        return build_standings(players, group_matches)


standings_service = StandingsService()
