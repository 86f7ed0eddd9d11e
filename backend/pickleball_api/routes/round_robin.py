from collections import defaultdict
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session

from pickleball_api.auth import authenticate, get_requester
from pickleball_api.database import get_session
from pickleball_api.errors import ForbiddenError
from pickleball_api.models.user import User
from pickleball_api.services import tournament_lifecycle as lifecycle
from pickleball_api.services.score_updates import submit_round_robin_score

router = APIRouter()


class RoundRobinScoreUpdate(BaseModel):
    """Both scores set records a result; both omitted clears it."""

    model_config = ConfigDict(populate_by_name=True)

    score1: Optional[int] = Field(default=None, ge=0, strict=True)
    score2: Optional[int] = Field(default=None, ge=0, strict=True)
    expected_version: int = Field(alias="expectedVersion", ge=0, strict=True)


class RoundRobinMatchItem(BaseModel):
    id: int
    round_number: int
    team1_id: int
    team2_id: int
    team1_name: str
    team2_name: str
    score1: Optional[int] = None
    score2: Optional[int] = None
    version: int = 0


class TeamItem(BaseModel):
    id: int
    name: str
    player_count: int
    rating: float


class RoundRobinView(BaseModel):
    tournament_id: int
    phase: str
    rounds: Dict[int, List[RoundRobinMatchItem]]
    teams: List[TeamItem]
    standings: List[dict]


@router.get("/tournaments/{tournament_id}/round-robin", response_model=RoundRobinView)
def get_round_robin(
    tournament_id: int,
    _user_id: str = Depends(authenticate),
    session: Session = Depends(get_session),
):
    """Schedule with current scores/versions, teams and live standings."""
    lifecycle.get_tournament_or_404(session, tournament_id)
    teams = lifecycle.load_teams(session, tournament_id)
    names = {t.team_id: t.name for t in teams}
    scores = lifecycle.round_robin_scores_by_match(session, tournament_id)

    rounds: Dict[int, List[RoundRobinMatchItem]] = defaultdict(list)
    for match in lifecycle.list_round_robin_matches(session, tournament_id):
        score = scores.get(match.id)
        rounds[match.round_number].append(
            RoundRobinMatchItem(
                id=match.id,
                round_number=match.round_number,
                team1_id=match.team1_id,
                team2_id=match.team2_id,
                team1_name=names.get(match.team1_id, "Unknown team"),
                team2_name=names.get(match.team2_id, "Unknown team"),
                score1=score.score1 if score else None,
                score2=score.score2 if score else None,
                version=score.version if score else 0,
            )
        )

    standings = lifecycle.compute_tournament_standings(session, tournament_id, teams)
    return RoundRobinView(
        tournament_id=tournament_id,
        phase=lifecycle.get_phase(session, tournament_id).value,
        rounds=dict(rounds),
        teams=[TeamItem(id=t.team_id, name=t.name, player_count=t.player_count, rating=t.rating) for t in teams],
        standings=[row.to_dict() for row in standings],
    )


@router.put("/tournaments/{tournament_id}/round-robin/matches/{match_id}/score")
def update_round_robin_score(
    tournament_id: int,
    match_id: int,
    update: RoundRobinScoreUpdate,
    user_id: str = Depends(authenticate),
    requester: Optional[User] = Depends(get_requester),
    session: Session = Depends(get_session),
):
    if requester is None:
        raise ForbiddenError("Profile required")
    result = submit_round_robin_score(
        session,
        tournament_id,
        match_id,
        update.score1,
        update.score2,
        update.expected_version,
        user_id,
        requester.is_admin,
    )
    return result.to_dict()
