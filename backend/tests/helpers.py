import os
import tempfile
import unittest
from typing import Dict, List, Optional

from sqlalchemy import or_, and_
from sqlalchemy.future import select

from backend.app.core.database import Database
from backend.app.models.match_model import Match
from backend.app.models.tournament_model import Tournament
from backend.app.services.progression_service import progression_service
from backend.app.services.tournament_service import player_service, tournament_service


def temp_database(directory: str) -> Database:
    return Database(f"sqlite+aiosqlite:///{os.path.join(directory, 'test.sqlite3')}")


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Fresh SQLite file per test, one session shared by the test body."""

    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.database = temp_database(self._tmp.name)
        await self.database.create_all()
        self.db = self.database.session()

    async def asyncTearDown(self):
        await self.db.close()
        await self.database.dispose()
        self._tmp.cleanup()

    async def make_tournament(self, names: List[str], title: str = "Spring Cup"):
        """Creates a tournament and registers one new player per name."""
        tournament = await tournament_service.create_tournament(self.db, title)
        players: Dict[str, int] = {}
        for name in names:
            player = await player_service.create_player(self.db, name)
            await tournament_service.add_player(self.db, tournament.id, player.id)
            players[name] = player.id
        return tournament, players

    async def matches(self, tournament_id: int, round_label: Optional[str] = None) -> List[Match]:
        query = select(Match).where(Match.tournament_id == tournament_id)
        if round_label:
            query = query.where(Match.round == round_label)
        result = await self.db.execute(query.order_by(Match.id.asc()))
        return list(result.scalars().all())

    async def find_match(self, tournament_id: int, a: int, b: int, round_label: Optional[str] = None) -> Match:
        query = select(Match).where(
            Match.tournament_id == tournament_id,
            or_(
                and_(Match.player1_id == a, Match.player2_id == b),
                and_(Match.player1_id == b, Match.player2_id == a),
            ),
        )
        if round_label:
            query = query.where(Match.round == round_label)
        result = await self.db.execute(query)
        return result.scalars().one()

    async def play(self, tournament_id: int, a: int, b: int, goals_a: int, goals_b: int, round_label: Optional[str] = None):
        """Reports 'a goals_a - goals_b b' whichever side of the row a is on."""
        match = await self.find_match(tournament_id, a, b, round_label)
        if match.player1_id == a:
            return await progression_service.update_match_score(self.db, match.id, goals_a, goals_b)
        return await progression_service.update_match_score(self.db, match.id, goals_b, goals_a)

    async def tournament_status(self, tournament_id: int) -> str:
        result = await self.db.execute(
            select(Tournament).where(Tournament.id == tournament_id).execution_options(populate_existing=True)
        )
        return result.scalar_one().status

    def add_match(self, tournament_id: int, p1: int, p2: int, round_label: str,
                  score1: Optional[int] = None, score2: Optional[int] = None) -> Match:
        status = "completed" if score1 is not None else "scheduled"
        match = Match(
            tournament_id=tournament_id,
            player1_id=p1,
            player2_id=p2,
            score1=score1,
            score2=score2,
            round=round_label,
            status=status,
        )
        self.db.add(match)
        return match
