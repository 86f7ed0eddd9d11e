from datetime import date, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from pickleball_api.models.team import Team


class TournamentStatus(str, Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TournamentPhase(str, Enum):
    """Lifecycle phase. A tournament without a state row is in REGISTRATION."""

    REGISTRATION = "registration"
    ROUND_ROBIN = "tournament"
    PLAYOFF = "playoff"


class Tournament(SQLModel, table=True):
    __tablename__ = "tournaments"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    location: Optional[str] = None
    start_date: Optional[date] = None
    status: str = Field(default=TournamentStatus.UPCOMING.value)  # upcoming | live | completed | archived

    # Display-only metadata
    format_type: Optional[str] = None
    skill_cap: Optional[str] = None
    fee: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    teams: List["Team"] = Relationship(back_populates="tournament")


class TournamentSettings(SQLModel, table=True):
    __tablename__ = "tournament_settings"

    tournament_id: int = Field(foreign_key="tournaments.id", primary_key=True)
    max_teams: int = Field(default=12)
    rounds: int = Field(default=6)
    playoff_teams: Optional[int] = Field(default=None)  # None = every team, capped at 8
    playoff_best_of_three: bool = Field(default=False)  # Gold final
    playoff_bronze_best_of_three: bool = Field(default=False)
    dupr_required: bool = Field(default=False)
    dupr_tier: Optional[str] = Field(default=None)  # Required rating-account tier for registration
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TournamentState(SQLModel, table=True):
    __tablename__ = "tournament_state"

    tournament_id: int = Field(foreign_key="tournaments.id", primary_key=True)
    phase: str = Field(default=TournamentPhase.REGISTRATION.value)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
