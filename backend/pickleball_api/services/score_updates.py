"""
Optimistic-concurrency score writes.

Each score row carries a ``version``. A client sends the version it last
saw; the write is applied only if the stored version still equals it, in a
single conditional statement:

  * expected 0  -> INSERT ... ON CONFLICT DO UPDATE ... WHERE version = 0
  * expected n  -> UPDATE ... WHERE version = n
  * clear       -> DELETE ... WHERE version = expected

A statement that touches no row means someone else wrote first; the caller
gets a 409 carrying the stored state so it can redisplay and retry.
Clearing a row that does not exist with expected 0 is a successful no-op.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy import delete, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, SQLModel, select

from pickleball_api.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from pickleball_api.models.playoff import PlayoffScore
from pickleball_api.models.round_robin import RoundRobinMatch, RoundRobinScore
from pickleball_api.models.tournament import TournamentPhase
from pickleball_api.services.bracket import GameScores, allows_extra_games
from pickleball_api.services.tournament_lifecycle import (
    get_active_playoff,
    get_phase,
    get_tournament_or_404,
    load_bracket,
    user_team_ids,
)

logger = logging.getLogger(__name__)

GamePair = Tuple[Optional[int], Optional[int]]


@dataclass
class ScoreWriteResult:
    version: int
    cleared: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"success": True, "version": self.version, "cleared": self.cleared}


# ----------------------------------------------------------------------------
# Conditional statements
# ----------------------------------------------------------------------------


def _insert_for(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Unsupported database dialect for score writes: {dialect}")


def _key_clause(model: Type[SQLModel], key: Dict[str, Any]) -> list:
    table = model.__table__
    return [table.c[name] == value for name, value in key.items()]


def _load_current(session: Session, model: Type[SQLModel], key: Dict[str, Any]) -> Optional[SQLModel]:
    stmt = select(model)
    for name, value in key.items():
        stmt = stmt.where(getattr(model, name) == value)
    return session.exec(stmt).first()


def versioned_write(
    session: Session,
    model: Type[SQLModel],
    key: Dict[str, Any],
    values: Dict[str, Any],
    expected_version: int,
) -> Optional[int]:
    """
    Apply ``values`` to the row at ``key`` iff its version equals
    ``expected_version``. Returns the new version, or None on mismatch
    (the transaction is rolled back in that case).
    """
    table = model.__table__
    now = datetime.now(timezone.utc)

    if expected_version == 0:
        insert = _insert_for(session)
        stmt = insert(table).values(**key, **values, version=1, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(key.keys()),
            set_={**values, "version": table.c.version + 1, "updated_at": now},
            where=table.c.version == 0,
        )
    else:
        stmt = (
            update(table)
            .where(*_key_clause(model, key), table.c.version == expected_version)
            .values(**values, version=table.c.version + 1, updated_at=now)
        )

    result = session.execute(stmt)
    if result.rowcount != 1:
        session.rollback()
        return None
    session.commit()
    return expected_version + 1


def versioned_delete(
    session: Session,
    model: Type[SQLModel],
    key: Dict[str, Any],
    expected_version: int,
) -> bool:
    """Delete the row at ``key`` iff its version matches. Absent + expected 0 counts as success."""
    table = model.__table__
    stmt = delete(table).where(*_key_clause(model, key), table.c.version == expected_version)
    result = session.execute(stmt)
    if result.rowcount == 1:
        session.commit()
        return True
    session.rollback()
    if expected_version == 0 and _load_current(session, model, key) is None:
        return True
    return False


# ----------------------------------------------------------------------------
# Round robin
# ----------------------------------------------------------------------------


def _round_robin_state(row: Optional[RoundRobinScore]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {"score1": row.score1, "score2": row.score2, "version": row.version}


def _check_score_value(value: Any, label: str) -> None:
    if value is None:
        return
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValidationError(f"{label} must be a non-negative integer")


def submit_round_robin_score(
    session: Session,
    tournament_id: int,
    match_id: int,
    score1: Optional[int],
    score2: Optional[int],
    expected_version: int,
    user_id: str,
    is_admin: bool,
) -> ScoreWriteResult:
    """Record (both scores set) or clear (both None) one round-robin result."""
    get_tournament_or_404(session, tournament_id)
    if get_phase(session, tournament_id) != TournamentPhase.ROUND_ROBIN:
        raise ValidationError("Round robin scoring is not open")

    if expected_version is None or expected_version < 0:
        raise ValidationError("expectedVersion must be a non-negative integer")
    _check_score_value(score1, "score1")
    _check_score_value(score2, "score2")
    if (score1 is None) != (score2 is None):
        raise ValidationError("Both scores are required")

    match = session.get(RoundRobinMatch, match_id)
    if match is None or match.tournament_id != tournament_id:
        raise NotFoundError("Match not found")

    if not is_admin:
        teams = user_team_ids(session, tournament_id, user_id)
        if match.team1_id not in teams and match.team2_id not in teams:
            raise ForbiddenError("Only players in this match can update the score")

    key = {"match_id": match_id}
    if score1 is None:
        if versioned_delete(session, RoundRobinScore, key, expected_version):
            logger.info(f"Round robin match {match_id} score cleared by {user_id}")
            return ScoreWriteResult(version=0, cleared=True)
    else:
        new_version = versioned_write(
            session, RoundRobinScore, key, {"score1": score1, "score2": score2}, expected_version
        )
        if new_version is not None:
            logger.info(f"Round robin match {match_id} score {score1}-{score2} (v{new_version}) by {user_id}")
            return ScoreWriteResult(version=new_version)

    current = _round_robin_state(_load_current(session, RoundRobinScore, key))
    logger.info(f"Version conflict on round robin match {match_id} (expected v{expected_version})")
    raise ConflictError("Score was updated by someone else", current=current)


# ----------------------------------------------------------------------------
# Playoff
# ----------------------------------------------------------------------------


def _playoff_state(row: Optional[PlayoffScore]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {"games": GameScores.from_record(row).to_dict(), "version": row.version}


def validate_games(games: Sequence[GamePair], allow_extra: bool) -> List[GamePair]:
    """
    Normalize to exactly three (score1, score2) pairs and enforce:
    both-or-neither per game, game 1 before any other game, games 2-3 only
    where best of three applies, game 3 only after a complete game 2.
    """
    padded: List[GamePair] = [tuple(g) if g is not None else (None, None) for g in list(games)[:3]]
    while len(padded) < 3:
        padded.append((None, None))
    if len(games) > 3:
        raise ValidationError("At most three games are allowed")

    for index, (s1, s2) in enumerate(padded, start=1):
        _check_score_value(s1, f"Game {index} score1")
        _check_score_value(s2, f"Game {index} score2")
        if (s1 is None) != (s2 is None):
            raise ValidationError(f"Game {index} needs both scores")

    filled = [s1 is not None for s1, _ in padded]
    if not filled[0] and any(filled[1:]):
        raise ValidationError("Game 1 scores are required")
    if not allow_extra and any(filled[1:]):
        raise ValidationError("Only game 1 is played in this match")
    if filled[2] and not filled[1]:
        raise ValidationError("Game 3 requires game 2")
    return padded


def submit_playoff_score(
    session: Session,
    tournament_id: int,
    round_number: int,
    match_number: int,
    games: Sequence[GamePair],
    expected_version: int,
    user_id: str,
    is_admin: bool,
) -> ScoreWriteResult:
    """Record or clear (no games) one bracket match's games."""
    get_tournament_or_404(session, tournament_id)
    playoff = get_active_playoff(session, tournament_id)
    if get_phase(session, tournament_id) != TournamentPhase.PLAYOFF or playoff is None:
        raise ValidationError("Playoff is not active")
    if expected_version is None or expected_version < 0:
        raise ValidationError("expectedVersion must be a non-negative integer")

    bracket = load_bracket(session, playoff)
    match = bracket.find_match(round_number, match_number)
    if match is None:
        raise NotFoundError("Match not found")

    if not is_admin:
        if match.team1_id is None or match.team2_id is None:
            raise ForbiddenError("Match teams are not set yet")
        teams = user_team_ids(session, tournament_id, user_id)
        if not any(match.has_team(team_id) for team_id in teams):
            raise ForbiddenError("Only players in this match can update the score")

    normalized = validate_games(games, allows_extra_games(bracket, round_number, match_number))
    key = {"tournament_id": tournament_id, "round_number": round_number, "match_number": match_number}

    if normalized[0][0] is None:
        if versioned_delete(session, PlayoffScore, key, expected_version):
            logger.info(f"Playoff r{round_number} m{match_number} cleared by {user_id}")
            return ScoreWriteResult(version=0, cleared=True)
    else:
        values: Dict[str, Any] = {}
        for index, (s1, s2) in enumerate(normalized, start=1):
            values[f"game{index}_score1"] = s1
            values[f"game{index}_score2"] = s2
        new_version = versioned_write(session, PlayoffScore, key, values, expected_version)
        if new_version is not None:
            played = [g for g in normalized if g[0] is not None]
            logger.info(f"Playoff r{round_number} m{match_number} games {played} (v{new_version}) by {user_id}")
            return ScoreWriteResult(version=new_version)

    current = _playoff_state(_load_current(session, PlayoffScore, key))
    logger.info(f"Version conflict on playoff r{round_number} m{match_number} (expected v{expected_version})")
    raise ConflictError("Score was updated by someone else", current=current)
