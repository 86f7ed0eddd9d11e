from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session

from pickleball_api.auth import authenticate, get_requester
from pickleball_api.database import get_session
from pickleball_api.errors import ForbiddenError
from pickleball_api.models.playoff import PLAYOFF_STATUS_NONE
from pickleball_api.models.user import User
from pickleball_api.services import tournament_lifecycle as lifecycle
from pickleball_api.services.bracket import allows_extra_games, round_label
from pickleball_api.services.score_updates import submit_playoff_score

router = APIRouter()


class GameInput(BaseModel):
    score1: Optional[int] = Field(default=None, ge=0, strict=True)
    score2: Optional[int] = Field(default=None, ge=0, strict=True)


class PlayoffScoreUpdate(BaseModel):
    """Up to three games; an empty list (or all-empty games) clears the score."""

    model_config = ConfigDict(populate_by_name=True)

    games: List[GameInput] = Field(default_factory=list, max_length=3)
    expected_version: int = Field(alias="expectedVersion", ge=0, strict=True)


@router.get("/tournaments/{tournament_id}/playoff")
def get_playoff(
    tournament_id: int,
    _user_id: str = Depends(authenticate),
    session: Session = Depends(get_session),
):
    """Fully resolved bracket, recomputed from the stored scores on every read."""
    lifecycle.get_tournament_or_404(session, tournament_id)
    playoff = lifecycle.get_active_playoff(session, tournament_id)
    if playoff is None:
        return {"tournament_id": tournament_id, "status": PLAYOFF_STATUS_NONE, "bracket": None}

    bracket = lifecycle.load_bracket(session, playoff)
    versions = {
        (s.round_number, s.match_number): s.version for s in lifecycle.list_playoff_scores(session, tournament_id)
    }
    names = {t.team_id: t.name for t in lifecycle.load_teams(session, tournament_id)}

    body = bracket.to_dict()
    for match in body["rounds"] + [[body["bronze"]] if body["bronze"] else []]:
        for item in match:
            key = (item["round_number"], item["match_number"])
            item["version"] = versions.get(key, 0)
            item["label"] = round_label(bracket.bracket_size, *key)
            item["allows_extra_games"] = allows_extra_games(bracket, *key)
            item["team1_name"] = names.get(item["team1_id"])
            item["team2_name"] = names.get(item["team2_id"])

    return {
        "tournament_id": tournament_id,
        "status": playoff.status,
        "playoff_team_count": playoff.playoff_team_count,
        "seed_order": playoff.seed_order,
        "bracket": body,
    }


@router.put("/tournaments/{tournament_id}/playoff/rounds/{round_number}/matches/{match_number}/score")
def update_playoff_score(
    tournament_id: int,
    round_number: int,
    match_number: int,
    update: PlayoffScoreUpdate,
    user_id: str = Depends(authenticate),
    requester: Optional[User] = Depends(get_requester),
    session: Session = Depends(get_session),
):
    if requester is None:
        raise ForbiddenError("Profile required")
    result = submit_playoff_score(
        session,
        tournament_id,
        round_number,
        match_number,
        [(g.score1, g.score2) for g in update.games],
        update.expected_version,
        user_id,
        requester.is_admin,
    )
    return result.to_dict()
