"""
Tournament lifecycle state machine.

    registration --start_round_robin--> tournament (round-robin)
    tournament   --start_playoff------> playoff
    playoff      --archive------------> status "completed"
    any          --reset--------------> registration (all generated data removed)

A tournament with no tournament_state row is in registration. Every
transition validates its preconditions first and then writes all of its
rows in a single commit, so a failed transition leaves nothing behind.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from pickleball_api.errors import InternalError, NotFoundError, ValidationError
from pickleball_api.models.playoff import PLAYOFF_STATUS_ACTIVE, PlayoffScore, PlayoffState
from pickleball_api.models.round_robin import RoundRobinMatch, RoundRobinScore
from pickleball_api.models.team import Team, TeamMember
from pickleball_api.models.tournament import (
    Tournament,
    TournamentPhase,
    TournamentSettings,
    TournamentState,
    TournamentStatus,
)
from pickleball_api.services.bracket import (
    MAX_PLAYOFF_TEAMS,
    Bracket,
    bracket_size_for,
    resolve_bracket,
)
from pickleball_api.services.round_robin_schedule import generate_round_robin_pairings, playable_pairings
from pickleball_api.services.standings import (
    MatchResult,
    StandingRow,
    TeamEntry,
    compute_standings,
    seed_order_from_standings,
)

logger = logging.getLogger(__name__)

MIN_ROUND_ROBIN_TEAMS = 4
MIN_PLAYOFF_TEAMS = 2
PLAYERS_PER_TEAM = 2
DEFAULT_ROUNDS = 6


@dataclass
class TeamSummary:
    team_id: int
    name: str
    player_count: int
    rating: float
    created_at: datetime
    member_ids: List[str] = field(default_factory=list)
    dupr_ids: List[str] = field(default_factory=list)
    member_names: Dict[str, str] = field(default_factory=dict)  # dupr_id -> display name


# ----------------------------------------------------------------------------
# Reads
# ----------------------------------------------------------------------------


def get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFoundError("Tournament not found")
    return tournament


def get_settings(session: Session, tournament_id: int) -> TournamentSettings:
    """Stored settings, or an unsaved defaults object."""
    settings = session.get(TournamentSettings, tournament_id)
    return settings or TournamentSettings(tournament_id=tournament_id)


def get_phase(session: Session, tournament_id: int) -> TournamentPhase:
    state = session.get(TournamentState, tournament_id)
    if state is None:
        return TournamentPhase.REGISTRATION
    return TournamentPhase(state.phase)


def get_active_playoff(session: Session, tournament_id: int) -> Optional[PlayoffState]:
    state = session.get(PlayoffState, tournament_id)
    if state is None or state.status != PLAYOFF_STATUS_ACTIVE:
        return None
    return state


def load_teams(session: Session, tournament_id: int) -> List[TeamSummary]:
    """Teams with member info, ordered by creation time."""
    teams = session.exec(
        select(Team).where(Team.tournament_id == tournament_id).order_by(Team.created_at, Team.id)
    ).all()

    summaries: List[TeamSummary] = []
    for team in teams:
        members = sorted(team.members, key=lambda m: (m.created_at, m.id or 0))
        users = [m.user for m in members if m.user is not None]
        names = [u.display_name or u.id for u in users]
        dupr_ids = [str(u.dupr_id).strip() for u in users if u.dupr_id and str(u.dupr_id).strip()]
        summaries.append(
            TeamSummary(
                team_id=team.id,
                name=team.name or (" / ".join(names) if names else "Open team"),
                player_count=len(members),
                rating=sum(u.doubles_rating or 0 for u in users),
                created_at=team.created_at,
                member_ids=[m.user_id for m in members],
                dupr_ids=dupr_ids,
                member_names={
                    str(u.dupr_id).strip(): (u.display_name or str(u.dupr_id).strip())
                    for u in users
                    if u.dupr_id and str(u.dupr_id).strip()
                },
            )
        )
    return summaries


def user_team_ids(session: Session, tournament_id: int, user_id: str) -> Set[int]:
    rows = session.exec(
        select(TeamMember.team_id)
        .join(Team, Team.id == TeamMember.team_id)
        .where(Team.tournament_id == tournament_id, TeamMember.user_id == user_id)
    ).all()
    return set(rows)


def list_round_robin_matches(session: Session, tournament_id: int) -> List[RoundRobinMatch]:
    return session.exec(
        select(RoundRobinMatch)
        .where(RoundRobinMatch.tournament_id == tournament_id)
        .order_by(RoundRobinMatch.round_number, RoundRobinMatch.id)
    ).all()


def round_robin_scores_by_match(session: Session, tournament_id: int) -> Dict[int, RoundRobinScore]:
    rows = session.exec(
        select(RoundRobinScore)
        .join(RoundRobinMatch, RoundRobinMatch.id == RoundRobinScore.match_id)
        .where(RoundRobinMatch.tournament_id == tournament_id)
    ).all()
    return {row.match_id: row for row in rows}


def list_playoff_scores(session: Session, tournament_id: int) -> List[PlayoffScore]:
    return session.exec(
        select(PlayoffScore)
        .where(PlayoffScore.tournament_id == tournament_id)
        .order_by(PlayoffScore.round_number, PlayoffScore.match_number)
    ).all()


def compute_tournament_standings(
    session: Session, tournament_id: int, teams: Optional[List[TeamSummary]] = None
) -> List[StandingRow]:
    if teams is None:
        teams = load_teams(session, tournament_id)
    scores = round_robin_scores_by_match(session, tournament_id)
    results = []
    for match in list_round_robin_matches(session, tournament_id):
        score = scores.get(match.id)
        results.append(
            MatchResult(
                team1_id=match.team1_id,
                team2_id=match.team2_id,
                score1=score.score1 if score else None,
                score2=score.score2 if score else None,
            )
        )
    return compute_standings([TeamEntry(t.team_id, t.name) for t in teams], results)


def load_bracket(session: Session, playoff: PlayoffState) -> Bracket:
    return resolve_bracket(
        seed_order=list(playoff.seed_order or []),
        bracket_size=playoff.bracket_size,
        scores=list_playoff_scores(session, playoff.tournament_id),
        best_of_three=playoff.best_of_three,
        bronze_best_of_three=playoff.bronze_best_of_three,
    )


# ----------------------------------------------------------------------------
# Transitions
# ----------------------------------------------------------------------------


def _commit_batch(session: Session, action: str, tournament_id: int) -> None:
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception(f"{action} failed for tournament {tournament_id}")
        raise InternalError(f"Failed to {action}") from exc


def _set_phase(session: Session, tournament_id: int, phase: TournamentPhase) -> None:
    now = datetime.now(timezone.utc)
    state = session.get(TournamentState, tournament_id)
    if state is None:
        state = TournamentState(tournament_id=tournament_id, phase=phase.value, started_at=now, updated_at=now)
    else:
        state.phase = phase.value
        state.updated_at = now
    session.add(state)


def _delete_round_robin(session: Session, tournament_id: int) -> None:
    for score in round_robin_scores_by_match(session, tournament_id).values():
        session.delete(score)
    session.flush()
    for match in list_round_robin_matches(session, tournament_id):
        session.delete(match)


def _delete_playoff_scores(session: Session, tournament_id: int) -> None:
    for score in list_playoff_scores(session, tournament_id):
        session.delete(score)


def start_round_robin(session: Session, tournament_id: int) -> Dict[str, int]:
    """
    Generate the round-robin schedule and enter the round-robin phase.

    Teams are ordered by summed member rating (desc), then creation time, only
    to balance the opening pairings.
    """
    tournament = get_tournament_or_404(session, tournament_id)
    if get_phase(session, tournament_id) != TournamentPhase.REGISTRATION:
        raise ValidationError("Tournament already started")

    teams = load_teams(session, tournament_id)
    if len(teams) < MIN_ROUND_ROBIN_TEAMS:
        raise ValidationError(f"At least {MIN_ROUND_ROBIN_TEAMS} teams are required")
    incomplete = [t.team_id for t in teams if t.player_count != PLAYERS_PER_TEAM]
    if incomplete:
        raise ValidationError("All teams must have two players", team_ids=incomplete)

    rounds = get_settings(session, tournament_id).rounds or DEFAULT_ROUNDS
    ordered = sorted(teams, key=lambda t: (-t.rating, t.created_at))
    schedule = generate_round_robin_pairings([t.team_id for t in ordered], rounds)
    pairings = playable_pairings(schedule)

    # Leftovers from an interrupted earlier attempt
    _delete_round_robin(session, tournament_id)
    for round_number, team1_id, team2_id in pairings:
        session.add(
            RoundRobinMatch(
                tournament_id=tournament_id,
                round_number=round_number,
                team1_id=team1_id,
                team2_id=team2_id,
            )
        )
    _set_phase(session, tournament_id, TournamentPhase.ROUND_ROBIN)
    tournament.status = TournamentStatus.LIVE.value
    tournament.updated_at = datetime.now(timezone.utc)
    session.add(tournament)
    _commit_batch(session, "start round robin", tournament_id)

    logger.info(
        f"Round robin started for tournament {tournament_id}: {len(teams)} teams, "
        f"{len(schedule)} rounds, {len(pairings)} matches"
    )
    return {"rounds": len(schedule), "matches": len(pairings), "teams": len(teams)}


def resolve_playoff_team_count(configured: Optional[int], team_count: int) -> int:
    """Configured value clamped to [2, min(8, team_count)]; unset means as many as fit."""
    upper = min(MAX_PLAYOFF_TEAMS, team_count)
    if configured is None or configured < MIN_PLAYOFF_TEAMS:
        return upper
    return min(configured, upper)


def start_playoff(session: Session, tournament_id: int) -> PlayoffState:
    get_tournament_or_404(session, tournament_id)
    phase = get_phase(session, tournament_id)
    if phase == TournamentPhase.PLAYOFF or get_active_playoff(session, tournament_id) is not None:
        raise ValidationError("Playoff already started")
    if phase != TournamentPhase.ROUND_ROBIN:
        raise ValidationError("Round robin not started")

    teams = load_teams(session, tournament_id)
    if len(teams) < MIN_PLAYOFF_TEAMS:
        raise ValidationError(f"At least {MIN_PLAYOFF_TEAMS} teams are required")

    settings = get_settings(session, tournament_id)
    team_count = resolve_playoff_team_count(settings.playoff_teams, len(teams))
    standings = compute_tournament_standings(session, tournament_id, teams)
    seed_order = seed_order_from_standings(standings, team_count)

    _delete_playoff_scores(session, tournament_id)
    playoff = session.get(PlayoffState, tournament_id) or PlayoffState(
        tournament_id=tournament_id, playoff_team_count=team_count, bracket_size=bracket_size_for(team_count)
    )
    playoff.status = PLAYOFF_STATUS_ACTIVE
    playoff.playoff_team_count = team_count
    playoff.bracket_size = bracket_size_for(team_count)
    playoff.seed_order = seed_order
    playoff.best_of_three = bool(settings.playoff_best_of_three)
    playoff.bronze_best_of_three = bool(settings.playoff_bronze_best_of_three)
    playoff.started_at = datetime.now(timezone.utc)
    session.add(playoff)
    _set_phase(session, tournament_id, TournamentPhase.PLAYOFF)
    _commit_batch(session, "start playoff", tournament_id)
    session.refresh(playoff)

    logger.info(
        f"Playoff started for tournament {tournament_id}: {team_count} teams, "
        f"bracket of {playoff.bracket_size}, seeds {seed_order}"
    )
    return playoff


def archive_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = get_tournament_or_404(session, tournament_id)
    playoff = get_active_playoff(session, tournament_id)
    if playoff is None:
        raise ValidationError("Playoff is not active")

    bracket = load_bracket(session, playoff)
    if not bracket.complete:
        raise ValidationError(
            "Complete gold and bronze matches before archiving",
            gold_complete=bracket.gold_complete,
            bronze_complete=bracket.bronze_complete,
        )

    tournament.status = TournamentStatus.COMPLETED.value
    tournament.updated_at = datetime.now(timezone.utc)
    session.add(tournament)
    _commit_batch(session, "archive tournament", tournament_id)
    session.refresh(tournament)
    logger.info(f"Tournament {tournament_id} archived; champion team {bracket.gold.winner_id}")
    return tournament


def reset_tournament(session: Session, tournament_id: int) -> None:
    """Remove every generated schedule/score row and return to registration."""
    tournament = get_tournament_or_404(session, tournament_id)

    _delete_round_robin(session, tournament_id)
    _delete_playoff_scores(session, tournament_id)
    playoff = session.get(PlayoffState, tournament_id)
    if playoff is not None:
        session.delete(playoff)
    state = session.get(TournamentState, tournament_id)
    if state is not None:
        session.delete(state)
    tournament.status = TournamentStatus.UPCOMING.value
    tournament.updated_at = datetime.now(timezone.utc)
    session.add(tournament)
    _commit_batch(session, "reset tournament", tournament_id)
    logger.info(f"Tournament {tournament_id} reset to registration")
