# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from pickleball_api.models.dupr import DuprMatchSubmission, DuprSubmittedMatch  # noqa: F401
from pickleball_api.models.playoff import PlayoffScore, PlayoffState  # noqa: F401
from pickleball_api.models.round_robin import RoundRobinMatch, RoundRobinScore  # noqa: F401
from pickleball_api.models.team import Team, TeamMember  # noqa: F401
from pickleball_api.models.tournament import Tournament, TournamentSettings, TournamentState  # noqa: F401
from pickleball_api.models.user import User  # noqa: F401
