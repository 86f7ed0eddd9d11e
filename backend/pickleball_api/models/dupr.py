"""Audit tables for matches reported to the external rating provider."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

SUBMITTED = "submitted"
UPDATED = "updated"
DELETED = "deleted"

VERIFIED = "verified"
VERIFY_FAILED = "verify_failed"


class DuprMatchSubmission(SQLModel, table=True):
    """One row per batch submission attempt, successful or not."""

    __tablename__ = "dupr_match_submissions"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", index=True)
    submitted_by: str
    dupr_env: str = Field(default="uat")
    endpoint: str
    match_count: int = Field(default=0)
    status_code: Optional[int] = None
    success: bool = Field(default=False)
    response: Optional[str] = None  # Raw JSON/text body as returned
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DuprSubmittedMatch(SQLModel, table=True):
    __tablename__ = "dupr_submitted_matches"
    __table_args__ = (SAUniqueConstraint("identifier", "dupr_env", name="uq_submitted_identifier_env"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: Optional[int] = Field(default=None, foreign_key="tournaments.id", index=True)
    submission_id: Optional[int] = Field(default=None, foreign_key="dupr_match_submissions.id")
    submitted_by: str
    dupr_env: str = Field(default="uat")
    dupr_match_id: Optional[int] = None
    dupr_match_code: Optional[str] = None
    identifier: str
    event_name: str
    bracket_name: Optional[str] = None
    location: Optional[str] = None
    match_date: str  # YYYY-MM-DD
    format: str = Field(default="DOUBLES")
    match_type: str = Field(default="SIDEOUT")
    club_id: Optional[int] = None

    team_a_player1: str
    team_a_player2: Optional[str] = None
    team_b_player1: str
    team_b_player2: Optional[str] = None
    team_a_player1_dupr: str
    team_a_player2_dupr: Optional[str] = None
    team_b_player1_dupr: str
    team_b_player2_dupr: Optional[str] = None

    team_a_game1: int
    team_b_game1: int
    team_a_game2: Optional[int] = None
    team_b_game2: Optional[int] = None
    team_a_game3: Optional[int] = None
    team_b_game3: Optional[int] = None
    team_a_game4: Optional[int] = None
    team_b_game4: Optional[int] = None
    team_a_game5: Optional[int] = None
    team_b_game5: Optional[int] = None

    status: str = Field(default=SUBMITTED)  # submitted | updated | deleted
    last_status_code: Optional[int] = None
    last_response: Optional[str] = None

    verification_status: Optional[str] = Field(default=None)  # verified | verify_failed | None
    verification_response: Optional[str] = None
    verified_at: Optional[datetime] = None

    deleted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
