from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

PLAYOFF_STATUS_NONE = "none"
PLAYOFF_STATUS_ACTIVE = "playoff"


class PlayoffState(SQLModel, table=True):
    __tablename__ = "playoff_state"

    tournament_id: int = Field(foreign_key="tournaments.id", primary_key=True)
    status: str = Field(default=PLAYOFF_STATUS_ACTIVE)  # none | playoff
    playoff_team_count: int
    bracket_size: int  # 2 | 4 | 8
    # Team ids ranked 1..N; fixed at creation
    seed_order: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    best_of_three: bool = Field(default=False)
    bronze_best_of_three: bool = Field(default=False)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PlayoffScore(SQLModel, table=True):
    """Up to three games per bracket match, guarded by an optimistic version counter."""

    __tablename__ = "playoff_scores"

    tournament_id: int = Field(foreign_key="tournaments.id", primary_key=True)
    round_number: int = Field(primary_key=True)
    match_number: int = Field(primary_key=True)
    game1_score1: Optional[int] = None
    game1_score2: Optional[int] = None
    game2_score1: Optional[int] = None
    game2_score2: Optional[int] = None
    game3_score1: Optional[int] = None
    game3_score2: Optional[int] = None
    version: int = Field(default=0)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
