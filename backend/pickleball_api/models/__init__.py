from pickleball_api.models.dupr import DuprMatchSubmission, DuprSubmittedMatch
from pickleball_api.models.playoff import PlayoffScore, PlayoffState
from pickleball_api.models.round_robin import RoundRobinMatch, RoundRobinScore
from pickleball_api.models.team import Team, TeamMember
from pickleball_api.models.tournament import (
    Tournament,
    TournamentPhase,
    TournamentSettings,
    TournamentState,
    TournamentStatus,
)
from pickleball_api.models.user import User

__all__ = [
    "User",
    "Tournament",
    "TournamentPhase",
    "TournamentSettings",
    "TournamentState",
    "TournamentStatus",
    "Team",
    "TeamMember",
    "RoundRobinMatch",
    "RoundRobinScore",
    "PlayoffState",
    "PlayoffScore",
    "DuprMatchSubmission",
    "DuprSubmittedMatch",
]
