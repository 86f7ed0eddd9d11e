"""
Rating provider (DUPR) endpoints: tournament submission, submission log,
submitted-match administration, verification and reconciliation.

All endpoints are admin-only.
"""
from typing import Any, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session, select

from pickleball_api.auth import require_admin
from pickleball_api.database import get_session
from pickleball_api.models.user import User
from pickleball_api.services import rating_submission as submission
from pickleball_api.services.rating_provider import RatingProviderClient, get_rating_provider
from pickleball_api.services.tournament_lifecycle import get_tournament_or_404

router = APIRouter()


class SubmitTournamentRequest(BaseModel):
    force: bool = False


class PlayerPair(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player1_id: Optional[str] = Field(default=None, alias="player1Id")
    player2_id: Optional[str] = Field(default=None, alias="player2Id")


class ManualMatchCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_name: str = Field(default="", alias="eventName")
    bracket_name: Optional[str] = Field(default=None, alias="bracketName")
    location: Optional[str] = None
    match_date: str = Field(default="", alias="matchDate")
    tournament_id: Optional[int] = Field(default=None, alias="tournamentId")
    identifier: Optional[str] = None
    team_a: PlayerPair = Field(default_factory=PlayerPair, alias="teamA")
    team_b: PlayerPair = Field(default_factory=PlayerPair, alias="teamB")
    games: List[Any] = Field(default_factory=list)


class SubmittedMatchUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_name: Optional[str] = Field(default=None, alias="eventName")
    bracket_name: Optional[str] = Field(default=None, alias="bracketName")
    location: Optional[str] = None
    match_date: Optional[str] = Field(default=None, alias="matchDate")
    games: List[Any] = Field(default_factory=list)


class VerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tournament_id: Optional[int] = Field(default=None, alias="tournamentId")


class ReconcileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[Any] = Field(default=None, alias="startDate")
    end_date: Optional[Any] = Field(default=None, alias="endDate")
    offset: Optional[int] = None
    limit: Optional[int] = None


def _with_names(session: Session, rows) -> List[dict]:
    ids = {r.submitted_by for r in rows}
    names = {}
    if ids:
        names = {u.id: u.display_name for u in session.exec(select(User).where(User.id.in_(ids))).all()}
    return [submission.submitted_match_to_dict(r, names.get(r.submitted_by)) for r in rows]


@router.post("/tournaments/{tournament_id}/dupr-submit")
def submit_tournament_to_dupr(
    tournament_id: int,
    background_tasks: BackgroundTasks,
    body: Optional[SubmitTournamentRequest] = None,
    admin: User = Depends(require_admin),
    client: RatingProviderClient = Depends(get_rating_provider),
    session: Session = Depends(get_session),
):
    """Submit every decided match in one batch, then verify in the background."""
    force = bool(body and body.force)
    result = submission.submit_tournament(session, client, admin, tournament_id, force=force)
    background_tasks.add_task(submission.verify_in_background, client, tournament_id)
    return result


@router.get("/tournaments/{tournament_id}/dupr-submissions")
def list_dupr_submissions(
    tournament_id: int,
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    get_tournament_or_404(session, tournament_id)
    attempts = submission.list_submission_attempts(session, tournament_id)
    return {
        "submissions": [
            {
                "id": a.id,
                "submittedBy": a.submitted_by,
                "duprEnv": a.dupr_env,
                "endpoint": a.endpoint,
                "matchCount": a.match_count,
                "statusCode": a.status_code,
                "success": a.success,
                "createdAt": a.created_at.isoformat(),
            }
            for a in attempts
        ]
    }


@router.get("/dupr/submitted-matches")
def list_submitted_matches(
    _admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    rows = submission.list_submitted_matches(session, 500)
    players = submission.eligible_players(session)
    return {
        "matches": _with_names(session, rows),
        "eligiblePlayers": [
            {"id": p.id, "displayName": p.display_name, "email": p.email, "duprId": p.dupr_id} for p in players
        ],
    }


@router.post("/dupr/submitted-matches")
def create_submitted_match(
    body: ManualMatchCreate,
    admin: User = Depends(require_admin),
    client: RatingProviderClient = Depends(get_rating_provider),
    session: Session = Depends(get_session),
):
    row = submission.create_manual_match(
        session,
        client,
        admin,
        event_name=body.event_name,
        match_date=body.match_date,
        team_a_ids=[body.team_a.player1_id, body.team_a.player2_id],
        team_b_ids=[body.team_b.player1_id, body.team_b.player2_id],
        games=body.games,
        bracket_name=body.bracket_name,
        location=body.location,
        identifier=body.identifier,
        tournament_id=body.tournament_id,
    )
    return {"success": True, "created": submission.submitted_match_to_dict(row, admin.display_name)}


@router.post("/dupr/submitted-matches/verify")
def verify_submitted_matches(
    body: Optional[VerifyRequest] = None,
    _admin: User = Depends(require_admin),
    client: RatingProviderClient = Depends(get_rating_provider),
    session: Session = Depends(get_session),
):
    tournament_id = body.tournament_id if body else None
    summary = submission.verify_submitted_matches(session, client, tournament_id)
    return {"success": True, **summary}


@router.patch("/dupr/submitted-matches/{match_id}")
def edit_submitted_match(
    match_id: int,
    body: SubmittedMatchUpdate,
    admin: User = Depends(require_admin),
    client: RatingProviderClient = Depends(get_rating_provider),
    session: Session = Depends(get_session),
):
    row = submission.edit_submitted_match(
        session,
        client,
        admin,
        match_id,
        games=body.games,
        event_name=body.event_name,
        bracket_name=body.bracket_name,
        location=body.location,
        match_date=body.match_date,
    )
    return {"success": True, "match": submission.submitted_match_to_dict(row)}


@router.delete("/dupr/submitted-matches/{match_id}")
def delete_submitted_match(
    match_id: int,
    admin: User = Depends(require_admin),
    client: RatingProviderClient = Depends(get_rating_provider),
    session: Session = Depends(get_session),
):
    return submission.delete_submitted_match(session, client, admin, match_id)


@router.post("/dupr/reconcile")
def reconcile_submitted_matches(
    body: Optional[ReconcileRequest] = None,
    admin: User = Depends(require_admin),
    client: RatingProviderClient = Depends(get_rating_provider),
    session: Session = Depends(get_session),
):
    body = body or ReconcileRequest()
    return submission.reconcile(
        session,
        client,
        admin,
        start_date=body.start_date,
        end_date=body.end_date,
        offset=body.offset,
        limit=body.limit,
    )


@router.get("/dupr/club-membership")
def club_membership(
    admin: User = Depends(require_admin),
    client: RatingProviderClient = Depends(get_rating_provider),
):
    return submission.club_membership_status(client, admin)
