import random
import logging
from dataclasses import dataclass, field
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import delete
from typing import List, Optional

from backend.app.core.config import LeagueRules, rules as default_rules
from backend.app.core.errors import (
    ConflictError,
    InsufficientParticipantsError,
    NotFoundError,
    ValidationError,
)
from backend.app.models.enums import MatchRound, MatchStatus, TournamentStatus, group_round
from backend.app.models.match_model import Match
from backend.app.models.player_model import Player
from backend.app.models.tournament_model import Tournament, TournamentPlayer
from backend.app.services.standings_service import standings_service

logger = logging.getLogger(__name__)


@dataclass
class TournamentDetails:
    tournament: Tournament
    players: List[Player] = field(default_factory=list)
    matches: List[Match] = field(default_factory=list)


def clean_name(name, max_length: int, what: str) -> str:
    if not isinstance(name, str):
        raise ValidationError(f"{what} name must be a string")
    name = name.strip()
    if not name:
        raise ValidationError(f"{what} name cannot be empty")
    if len(name) > max_length:
        raise ValidationError(f"{what} name cannot exceed {max_length} characters")
    return name


def round_robin_pairs(player_ids: List[int]):
    """Every unique pairing once, in roster order."""
    pairs = []
    for i in range(len(player_ids)):
        for j in range(i + 1, len(player_ids)):
            pairs.append((player_ids[i], player_ids[j]))
    return pairs


def deal_into_groups(player_ids: List[int], group_count: int) -> List[List[int]]:
    groups = [[] for _ in range(group_count)]
    for idx, pid in enumerate(player_ids):
        groups[idx % group_count].append(pid)
    return groups


class PlayerService:
    def __init__(self, rules: LeagueRules = None):
        self.rules = rules or default_rules

    async def create_player(self, db: AsyncSession, name: str) -> Player:
        player = Player(name=clean_name(name, self.rules.player_name_max_length, "Player"))
        db.add(player)
        await db.commit()
        await db.refresh(player)
        return player

    async def list_players(self, db: AsyncSession) -> List[Player]:
        result = await db.execute(select(Player).order_by(Player.name.asc(), Player.id.asc()))
        return list(result.scalars().all())

    async def get_player(self, db: AsyncSession, player_id: int) -> Player:
        result = await db.execute(select(Player).where(Player.id == player_id))
        player = result.scalar_one_or_none()
        if not player:
            raise NotFoundError(f"Player {player_id} not found")
        return player


class TournamentService:
    def __init__(self, rules: LeagueRules = None):
        self.rules = rules or default_rules

    async def create_tournament(self, db: AsyncSession, name: str) -> Tournament:
        tournament = Tournament(
            name=clean_name(name, self.rules.tournament_name_max_length, "Tournament"),
            status=TournamentStatus.PENDING.value
        )
        db.add(tournament)
        await db.commit()
        await db.refresh(tournament)
        return tournament

    async def get_tournament(self, db: AsyncSession, tournament_id: int, for_update: bool = False) -> Tournament:
        query = select(Tournament).where(Tournament.id == tournament_id)
        if for_update:
            # Locking read: always take the current row, not the cached one
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        tournament = result.scalar_one_or_none()
        if not tournament:
            raise NotFoundError(f"Tournament {tournament_id} not found")
        return tournament

    async def get_matches(self, db: AsyncSession, tournament_id: int) -> List[Match]:
        result = await db.execute(
            select(Match).where(Match.tournament_id == tournament_id).order_by(Match.id.asc())
        )
        return list(result.scalars().all())

    async def get_details(self, db: AsyncSession, tournament_id: int) -> TournamentDetails:
        tournament = await self.get_tournament(db, tournament_id)
        return TournamentDetails(
            tournament=tournament,
            players=await standings_service.get_roster(db, tournament_id),
            matches=await self.get_matches(db, tournament_id),
        )

    async def list_tournaments_with_details(self, db: AsyncSession) -> List[TournamentDetails]:
        result = await db.execute(select(Tournament).order_by(Tournament.id.desc()))
        details = []
        for t in result.scalars().all():
            details.append(TournamentDetails(
                tournament=t,
                players=await standings_service.get_roster(db, t.id),
                matches=await self.get_matches(db, t.id),
            ))
        return details

    # --- Roster ---

    async def _get_membership(self, db: AsyncSession, tournament_id: int, player_id: int) -> Optional[TournamentPlayer]:
        result = await db.execute(
            select(TournamentPlayer).where(
                TournamentPlayer.tournament_id == tournament_id,
                TournamentPlayer.player_id == player_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_player(self, db: AsyncSession, tournament_id: int, player_id: int) -> TournamentPlayer:
        tournament = await self.get_tournament(db, tournament_id)
        result = await db.execute(select(Player).where(Player.id == player_id))
        if not result.scalar_one_or_none():
            raise NotFoundError(f"Player {player_id} not found")

        if tournament.status != TournamentStatus.PENDING:
            raise ConflictError("Players can only join pending tournaments")
        if await self._get_membership(db, tournament_id, player_id):
            raise ConflictError(f"Player {player_id} is already in tournament {tournament_id}")

        membership = TournamentPlayer(tournament_id=tournament_id, player_id=player_id)
        db.add(membership)
        await db.commit()
        return membership

    async def remove_player(self, db: AsyncSession, tournament_id: int, player_id: int):
        tournament = await self.get_tournament(db, tournament_id)
        if tournament.status != TournamentStatus.PENDING:
            raise ConflictError("Can only remove players from pending tournaments")

        membership = await self._get_membership(db, tournament_id, player_id)
        if not membership:
            raise NotFoundError(f"Player {player_id} not found in tournament {tournament_id}")

        await db.delete(membership)
        await db.commit()

    # --- Match generation ---

    def resolve_group_count(self, player_count: int, group_count: Optional[int]) -> int:
        if group_count is None:
            return self.rules.default_group_count(player_count)
        if group_count not in self.rules.allowed_group_counts:
            raise ValidationError(
                f"Group count must be one of {self.rules.allowed_group_counts}, got {group_count}"
            )
        if player_count < 2 * group_count:
            raise ValidationError(
                f"{player_count} players cannot fill {group_count} groups of at least 2"
            )
        return group_count

    async def generate_matches(
        self,
        db: AsyncSession,
        tournament_id: int,
        group_count: Optional[int] = None,
        seed: Optional[int] = None
    ) -> List[Match]:
        """
        Clears the tournament's matches and creates the round-robin group stage.
        Players are shuffled, then dealt into groups one at a time.
        """
        tournament = await self.get_tournament(db, tournament_id, for_update=True)
        if tournament.status == TournamentStatus.COMPLETED:
            raise ConflictError("Tournament is already completed")

        roster = await standings_service.get_roster(db, tournament_id)
        if len(roster) < 2:
            raise InsufficientParticipantsError("Need at least 2 players to generate matches")

        group_count = self.resolve_group_count(len(roster), group_count)

        player_ids = [p.id for p in roster]
        random.Random(seed).shuffle(player_ids)

        try:
            await db.execute(delete(Match).where(Match.tournament_id == tournament_id))

            matches_to_create = []
            for idx, group in enumerate(deal_into_groups(player_ids, group_count), start=1):
                if len(group) < 2:
                    continue
                for p1, p2 in round_robin_pairs(group):
                    matches_to_create.append(Match(
                        tournament_id=tournament_id,
                        player1_id=p1,
                        player2_id=p2,
                        round=group_round(idx),
                        status=MatchStatus.SCHEDULED.value,
                    ))

            # Bulk insert is faster
            db.add_all(matches_to_create)
            tournament.status = TournamentStatus.IN_PROGRESS.value
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            f"Tournament {tournament_id}: generated {len(matches_to_create)} group matches "
            f"for {len(player_ids)} players in {group_count} group(s)"
        )
        return await self.get_matches(db, tournament_id)

    # --- Results ---

    async def get_winner(self, db: AsyncSession, tournament_id: int) -> Optional[Player]:
        """Player on the winning side of the completed final, if there is one."""
        result = await db.execute(
            select(Match)
            .where(
                Match.tournament_id == tournament_id,
                Match.round == MatchRound.FINAL.value,
                Match.status == MatchStatus.COMPLETED.value,
            )
            .order_by(Match.id.asc())
        )
        final = result.scalars().first()
        if not final:
            return None

        winner_id = final.winner_id()
        if winner_id is None:
            return None

        result = await db.execute(select(Player).where(Player.id == winner_id))
        return result.scalar_one_or_none()

    async def delete_tournament(self, db: AsyncSession, tournament_id: int):
        """Deletes matches, then the roster, then the tournament itself."""
        await self.get_tournament(db, tournament_id)
        try:
            await db.execute(delete(Match).where(Match.tournament_id == tournament_id))
            await db.execute(delete(TournamentPlayer).where(TournamentPlayer.tournament_id == tournament_id))
            await db.execute(delete(Tournament).where(Tournament.id == tournament_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(f"Tournament {tournament_id} deleted")


player_service = PlayerService()
tournament_service = TournamentService()
