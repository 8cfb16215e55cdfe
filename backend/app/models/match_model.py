from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint
from backend.app.core.database import Base
from backend.app.models.enums import MatchStatus


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        CheckConstraint("player1_id <> player2_id", name="ck_matches_distinct_players"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False, index=True)

    player1_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    player2_id = Column(Integer, ForeignKey("players.id"), nullable=False)

    # Null until the match is completed
    score1 = Column(Integer, nullable=True)
    score2 = Column(Integer, nullable=True)

    # "group-1", "group-2", ... (or legacy "group"), "quarter", "semi", "final", "third-place"
    round = Column(String(32), nullable=False)
    status = Column(String(32), nullable=False, default=MatchStatus.SCHEDULED.value)

    @property
    def participants(self):
        return (self.player1_id, self.player2_id)

    def winner_id(self):
        """Id of the player on the winning side, None if unplayed or level."""
        if self.status != MatchStatus.COMPLETED or self.score1 is None or self.score2 is None:
            return None
        if self.score1 > self.score2:
            return self.player1_id
        if self.score2 > self.score1:
            return self.player2_id
        return None

    def loser_id(self):
        winner = self.winner_id()
        if winner is None:
            return None
        return self.player2_id if winner == self.player1_id else self.player1_id
