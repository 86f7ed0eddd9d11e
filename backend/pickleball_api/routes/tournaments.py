"""
Tournament lifecycle endpoints: settings, phase, start round robin, start
playoff, archive, reset.
"""
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from pickleball_api.auth import authenticate, require_admin
from pickleball_api.database import get_session
from pickleball_api.errors import ValidationError
from pickleball_api.models.tournament import TournamentPhase, TournamentSettings
from pickleball_api.models.user import User
from pickleball_api.services import tournament_lifecycle as lifecycle

router = APIRouter()


class SettingsResponse(BaseModel):
    tournament_id: int
    phase: str
    max_teams: int
    rounds: int
    playoff_teams: Optional[int]
    playoff_best_of_three: bool
    playoff_bronze_best_of_three: bool
    dupr_required: bool
    dupr_tier: Optional[str]


class SettingsUpdate(BaseModel):
    max_teams: Optional[int] = Field(default=None, ge=4)
    rounds: Optional[int] = Field(default=None, ge=1, le=50)
    playoff_teams: Optional[int] = Field(default=None, ge=2, le=8)
    playoff_best_of_three: Optional[bool] = None
    playoff_bronze_best_of_three: Optional[bool] = None
    dupr_required: Optional[bool] = None
    dupr_tier: Optional[str] = None


class StateResponse(BaseModel):
    tournament_id: int
    status: str
    phase: str
    playoff_active: bool


def _settings_response(settings: TournamentSettings, phase: TournamentPhase) -> SettingsResponse:
    return SettingsResponse(
        tournament_id=settings.tournament_id,
        phase=phase.value,
        max_teams=settings.max_teams,
        rounds=settings.rounds,
        playoff_teams=settings.playoff_teams,
        playoff_best_of_three=settings.playoff_best_of_three,
        playoff_bronze_best_of_three=settings.playoff_bronze_best_of_three,
        dupr_required=settings.dupr_required,
        dupr_tier=settings.dupr_tier,
    )


@router.get("/tournaments/{tournament_id}/settings", response_model=SettingsResponse)
def get_tournament_settings(
    tournament_id: int,
    _user_id: str = Depends(authenticate),
    session: Session = Depends(get_session),
):
    lifecycle.get_tournament_or_404(session, tournament_id)
    return _settings_response(
        lifecycle.get_settings(session, tournament_id), lifecycle.get_phase(session, tournament_id)
    )


@router.put("/tournaments/{tournament_id}/settings", response_model=SettingsResponse)
def update_tournament_settings(
    tournament_id: int,
    update: SettingsUpdate,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Settings are frozen once round robin has started."""
    lifecycle.get_tournament_or_404(session, tournament_id)
    phase = lifecycle.get_phase(session, tournament_id)
    if phase != TournamentPhase.REGISTRATION:
        raise ValidationError("Settings cannot change after the tournament has started")

    settings = lifecycle.get_settings(session, tournament_id)
    for key, value in update.model_dump(exclude_unset=True).items():
        if value is None and key not in ("playoff_teams", "dupr_tier"):
            continue
        setattr(settings, key, value)
    settings.updated_at = datetime.now(timezone.utc)
    session.add(settings)
    session.commit()
    session.refresh(settings)
    return _settings_response(settings, phase)


@router.get("/tournaments/{tournament_id}/state", response_model=StateResponse)
def get_tournament_state(
    tournament_id: int,
    _user_id: str = Depends(authenticate),
    session: Session = Depends(get_session),
):
    tournament = lifecycle.get_tournament_or_404(session, tournament_id)
    return StateResponse(
        tournament_id=tournament_id,
        status=tournament.status,
        phase=lifecycle.get_phase(session, tournament_id).value,
        playoff_active=lifecycle.get_active_playoff(session, tournament_id) is not None,
    )


@router.post("/tournaments/{tournament_id}/round-robin/start")
def start_round_robin(
    tournament_id: int,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    result = lifecycle.start_round_robin(session, tournament_id)
    return {"success": True, **result}


@router.post("/tournaments/{tournament_id}/playoff/start")
def start_playoff(
    tournament_id: int,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    playoff = lifecycle.start_playoff(session, tournament_id)
    return {
        "success": True,
        "playoff_team_count": playoff.playoff_team_count,
        "bracket_size": playoff.bracket_size,
        "seed_order": playoff.seed_order,
    }


@router.post("/tournaments/{tournament_id}/archive")
def archive_tournament(
    tournament_id: int,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    tournament = lifecycle.archive_tournament(session, tournament_id)
    return {"success": True, "status": tournament.status}


@router.post("/tournaments/{tournament_id}/reset")
def reset_tournament(
    tournament_id: int,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    lifecycle.reset_tournament(session, tournament_id)
    return {"success": True, "phase": TournamentPhase.REGISTRATION.value}
