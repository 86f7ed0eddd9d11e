"""Shared factories and fakes for the test suite."""
from datetime import date
from typing import Any, Dict, List, Optional

from jose import jwt
from sqlmodel import Session

from pickleball_api.models.team import Team, TeamMember
from pickleball_api.models.tournament import Tournament, TournamentSettings
from pickleball_api.models.user import User
from pickleball_api.services import tournament_lifecycle as lifecycle
from pickleball_api.services.rating_provider import ProviderResponse
from pickleball_api.services.score_updates import submit_playoff_score, submit_round_robin_score

TEST_JWT_SECRET = "test-secret"


class FakeRatingProvider:
    """Stands in for RatingProviderClient; records calls, returns canned responses."""

    def __init__(self):
        self.env = "uat"
        self.calls: List[tuple] = []
        self.memberships: List[Dict[str, Any]] = [{"clubId": 4242, "role": "DIRECTOR"}]
        self.batch_status = 200
        self.batch_body: Any = None
        self.batch_error: Optional[Exception] = None
        self.batch_reversed = False
        self.search_body: Any = {"result": {"matches": []}}
        self.search_error: Optional[Exception] = None
        self.create_body: Any = {"result": {"matchId": 9001, "matchCode": "MC9001"}}

    def url(self, name: str, **params) -> str:
        return f"https://dupr.test/{name}"

    def access_token(self) -> str:
        self.calls.append(("token",))
        return "fake-token"

    def get_user_clubs(self, dupr_id: str):
        self.calls.append(("clubs", dupr_id))
        return self.memberships

    def submit_batch(self, payloads):
        self.calls.append(("batch", payloads))
        if self.batch_error is not None:
            raise self.batch_error
        body = self.batch_body
        if body is None:
            body = {
                "result": [
                    {"identifier": p["identifier"], "matchId": 100 + i, "matchCode": f"C{100 + i}"}
                    for i, p in enumerate(payloads)
                ]
            }
            if self.batch_reversed:
                body["result"].reverse()
        return ProviderResponse(status=self.batch_status, body=body, endpoint=self.url("DUPR_MATCH_BATCH_URL"))

    def create_match(self, payload):
        self.calls.append(("create", payload))
        return ProviderResponse(status=200, body=self.create_body, endpoint=self.url("DUPR_MATCH_CREATE_URL"))

    def update_match(self, payload):
        self.calls.append(("update", payload))
        return ProviderResponse(status=200, body={"status": "SUCCESS"}, endpoint=self.url("DUPR_MATCH_UPDATE_URL"))

    def delete_match(self, match_code, identifier):
        self.calls.append(("delete", match_code, identifier))
        return ProviderResponse(status=200, body=None, endpoint=self.url("DUPR_MATCH_DELETE_URL"))

    def search_club_matches(self, club_id, start_epoch, end_epoch, offset=0, limit=50, timeout=10):
        self.calls.append(("search", club_id, start_epoch, end_epoch, offset, limit))
        if self.search_error is not None:
            raise self.search_error
        request_body = {"clubId": club_id, "startDate": start_epoch, "endDate": end_epoch}
        return request_body, ProviderResponse(
            status=200, body=self.search_body, endpoint=self.url("DUPR_CLUB_MATCH_SEARCH_URL")
        )

    def called(self, kind: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == kind]


def make_token(user_id: str) -> str:
    return jwt.encode({"sub": user_id}, TEST_JWT_SECRET, algorithm="HS256")


def auth(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


# ============================================================================
# Factories
# ============================================================================


def create_user(
    session: Session,
    user_id: str,
    is_admin: bool = False,
    dupr_id: Optional[str] = None,
    rating: Optional[float] = None,
    email: Optional[str] = None,
) -> User:
    user = User(
        id=user_id,
        email=email or f"{user_id}@example.com",
        display_name=user_id.replace("-", " ").title(),
        is_admin=is_admin,
        dupr_id=dupr_id,
        doubles_rating=rating,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def create_tournament(session: Session, **settings_values) -> Tournament:
    tournament = Tournament(title="Spring Classic", location="Riverside Courts", start_date=date(2026, 4, 18))
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    if settings_values:
        session.add(TournamentSettings(tournament_id=tournament.id, **settings_values))
        session.commit()
    return tournament


def create_team(session: Session, tournament_id: int, name: str, members: List[User]) -> Team:
    team = Team(tournament_id=tournament_id, name=name)
    session.add(team)
    session.commit()
    session.refresh(team)
    for user in members:
        session.add(TeamMember(team_id=team.id, user_id=user.id))
    session.commit()
    session.refresh(team)
    return team


def seed_teams(
    session: Session, tournament_id: int, count: int, with_dupr: bool = True, prefix: str = "player"
) -> List[Team]:
    """``count`` two-player teams; team i's players are rated so team 1 is strongest."""
    teams = []
    for i in range(1, count + 1):
        players = [
            create_user(
                session,
                f"{prefix}-{i}{suffix}",
                dupr_id=f"{prefix[0].upper()}{i}{suffix.upper()}" if with_dupr else None,
                rating=float(10 - i),
            )
            for suffix in ("a", "b")
        ]
        teams.append(create_team(session, tournament_id, f"Team {i}", players))
    return teams


def play_out_tournament(session: Session, tournament_id: int, teams: List[Team]) -> None:
    """
    Start and finish round robin and playoff. The earlier-created team wins
    every round-robin match; team1 wins every playoff match 11-5.
    """
    rank = {team.id: index for index, team in enumerate(teams)}
    lifecycle.start_round_robin(session, tournament_id)
    for match in lifecycle.list_round_robin_matches(session, tournament_id):
        if rank[match.team1_id] < rank[match.team2_id]:
            s1, s2 = 11, 5 + rank[match.team2_id]
        else:
            s1, s2 = 5 + rank[match.team1_id], 11
        submit_round_robin_score(session, tournament_id, match.id, s1, s2, 0, "admin-1", True)

    playoff = lifecycle.start_playoff(session, tournament_id)
    for round_number in range(1, playoff.bracket_size.bit_length()):
        bracket = lifecycle.load_bracket(session, playoff)
        for match in bracket.all_matches():
            if match.round_number != round_number or match.complete:
                continue
            submit_playoff_score(
                session, tournament_id, round_number, match.match_number, [(11, 5)], 0, "admin-1", True
            )
