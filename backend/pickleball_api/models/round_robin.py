from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class RoundRobinMatch(SQLModel, table=True):
    """Scheduled pairing. Written once when round-robin starts; removed only by reset."""

    __tablename__ = "round_robin_matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", index=True)
    round_number: int
    team1_id: int = Field(foreign_key="teams.id")
    team2_id: int = Field(foreign_key="teams.id")


class RoundRobinScore(SQLModel, table=True):
    """Zero or one row per match. Absence means unplayed (version 0)."""

    __tablename__ = "round_robin_scores"

    match_id: int = Field(foreign_key="round_robin_matches.id", primary_key=True)
    score1: Optional[int] = None
    score2: Optional[int] = None
    version: int = Field(default=0)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
