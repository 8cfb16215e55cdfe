from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from backend.app.core.database import Base
from backend.app.models.enums import TournamentStatus


class Tournament(Base):
    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    # pending -> in_progress -> completed, never reversed
    status = Column(String(32), nullable=False, default=TournamentStatus.PENDING.value)


class TournamentPlayer(Base):
    """Roster membership. The composite key keeps each pair unique."""
    __tablename__ = "tournament_players"

    tournament_id = Column(Integer, ForeignKey("tournaments.id"), primary_key=True)
    player_id = Column(Integer, ForeignKey("players.id"), primary_key=True)
    registered_at = Column(DateTime(timezone=True), server_default=func.now())
