"""
Reporting finished matches to the external rating provider (DUPR).

Flow for a tournament:
  1. Preconditions (admin with linked DUPR account, tournament flagged for
     DUPR, round robin and playoff entered, bracket complete, no earlier
     successful submission unless forced).
  2. One payload per decided round-robin match and per decided playoff
     match. Matches where a team lacks two linked DUPR ids are skipped.
  3. Club role check, then a single batch POST. Every attempt is logged in
     dupr_match_submissions whatever the outcome.
  4. One dupr_submitted_matches audit row per payload, keyed by
     (identifier, dupr_env).
  5. Verification (background, repeatable): each unverified row is looked
     up in the club's match search around its date.

Individual audit rows can later be edited or deleted; the provider call
runs first and the local row follows only if it succeeded.
"""
import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from pickleball_api import database
from pickleball_api.auth import is_master_admin
from pickleball_api.errors import ForbiddenError, NotFoundError, UpstreamError, ValidationError
from pickleball_api.models.dupr import (
    DELETED,
    SUBMITTED,
    UPDATED,
    VERIFIED,
    VERIFY_FAILED,
    DuprMatchSubmission,
    DuprSubmittedMatch,
)
from pickleball_api.models.team import TeamMember
from pickleball_api.models.tournament import Tournament, TournamentPhase
from pickleball_api.models.user import User
from pickleball_api.services.bracket import Bracket, round_label
from pickleball_api.services.rating_provider import (
    SUBMITTER_ROLES,
    RatingProviderClient,
    RemoteMatchRef,
    as_int,
    configured_club_id,
    extract_remote_matches,
    normalize_remote_match,
    parse_match_meta,
)
from pickleball_api.services.standings import is_decided
from pickleball_api.services.tournament_lifecycle import (
    TeamSummary,
    get_active_playoff,
    get_phase,
    get_settings,
    get_tournament_or_404,
    list_round_robin_matches,
    load_bracket,
    load_teams,
    round_robin_scores_by_match,
)

logger = logging.getLogger(__name__)

MAX_GAMES = 5
MATCH_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
RECONCILE_DEFAULT_DAYS = 180
RECONCILE_DEFAULT_LIMIT = 50
RECONCILE_MAX_LIMIT = 100
RECONCILE_SAMPLE_SIZE = 50
VERIFY_SEARCH_LIMIT = 100
MISSING_DUPR_REASON = "Missing linked DUPR IDs on one or both teams"


def _json_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


def normalize_games(raw_games: Any) -> List[Tuple[int, int]]:
    """
    Keep at most five decided games, in order. Entries are ``{"teamA": int,
    "teamB": int}``; anything non-integer or tied is dropped.
    """
    if not isinstance(raw_games, (list, tuple)):
        return []
    games: List[Tuple[int, int]] = []
    for entry in list(raw_games)[:MAX_GAMES]:
        if not isinstance(entry, dict):
            continue
        team_a = entry.get("teamA")
        team_b = entry.get("teamB")
        if not is_decided(team_a, team_b):
            continue
        games.append((team_a, team_b))
    return games


def _game_columns(games: Sequence[Tuple[int, int]]) -> Dict[str, Optional[int]]:
    columns: Dict[str, Optional[int]] = {}
    for index in range(MAX_GAMES):
        team_a, team_b = games[index] if index < len(games) else (None, None)
        columns[f"team_a_game{index + 1}"] = team_a
        columns[f"team_b_game{index + 1}"] = team_b
    return columns


def _team_payload(player1: str, player2: Optional[str], scores: Sequence[Optional[int]], pad: bool) -> Dict[str, Any]:
    body: Dict[str, Any] = {"player1": player1, "player2": player2}
    for index, score in enumerate(scores, start=1):
        body[f"game{index}"] = score
    if pad:
        for index in range(len(scores) + 1, MAX_GAMES + 1):
            body[f"game{index}"] = None
    return body


def build_match_payload(
    *,
    event: str,
    match_date: str,
    location: Optional[str],
    bracket_name: str,
    identifier: str,
    club_id: int,
    team_a: Sequence[Optional[str]],
    team_b: Sequence[Optional[str]],
    games: Sequence[Tuple[int, int]],
    pad_games: bool = False,
    match_id: Optional[int] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if match_id is not None:
        payload["matchId"] = match_id
    payload.update(
        {
            "location": location,
            "matchDate": match_date,
            "format": "DOUBLES",
            "event": event,
            "bracket": bracket_name,
            "matchType": "SIDEOUT",
            "identifier": identifier,
            "clubId": club_id,
            "teamA": _team_payload(team_a[0], team_a[1], [g[0] for g in games], pad_games),
            "teamB": _team_payload(team_b[0], team_b[1], [g[1] for g in games], pad_games),
        }
    )
    return payload


# ----------------------------------------------------------------------------
# Submitter access
# ----------------------------------------------------------------------------


@dataclass
class SubmitAccess:
    dupr_env: str
    club_id: int


def ensure_can_submit(client: RatingProviderClient, requester: User, club_id: Optional[int] = None) -> SubmitAccess:
    """
    The requester must hold DIRECTOR or ORGANIZER in the configured club.
    The master admin account is exempt from the role lookup.
    """
    if not requester.dupr_id:
        raise ValidationError("Submitting admin must link a DUPR account first")
    if club_id is None:
        club_id = configured_club_id()

    client.access_token()
    access = SubmitAccess(dupr_env=client.env, club_id=club_id)
    if is_master_admin(requester):
        return access

    memberships = client.get_user_clubs(requester.dupr_id)
    membership = next((m for m in memberships if as_int(m.get("clubId")) == club_id), None)
    if membership is None:
        raise ForbiddenError("Submitting admin is not a member of configured DUPR club", clubId=club_id)
    role = str(membership.get("role") or "").upper()
    if role not in SUBMITTER_ROLES:
        raise ForbiddenError(
            "Submitting admin must be DUPR club DIRECTOR or ORGANIZER", clubId=club_id, role=role
        )
    return access


def club_membership_status(client: RatingProviderClient, requester: User) -> Dict[str, Any]:
    """Non-raising variant of ensure_can_submit for display."""
    try:
        access = ensure_can_submit(client, requester)
    except (ValidationError, ForbiddenError, UpstreamError) as exc:
        return {"canSubmit": False, "error": exc.message, **exc.extra}
    return {
        "canSubmit": True,
        "environment": access.dupr_env,
        "clubId": access.club_id,
        "masterAdmin": is_master_admin(requester),
    }


# ----------------------------------------------------------------------------
# Tournament submission
# ----------------------------------------------------------------------------


@dataclass
class PendingMatch:
    payload: Dict[str, Any]
    team_a: List[str]
    team_b: List[str]
    games: List[Tuple[int, int]]


@dataclass
class TournamentExport:
    matches: List[PendingMatch] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)


def _two_players(team: Optional[TeamSummary]) -> Optional[List[str]]:
    if team is None or len(team.dupr_ids) < 2:
        return None
    return team.dupr_ids[:2]


def collect_tournament_matches(
    session: Session,
    tournament: Tournament,
    bracket: Bracket,
    teams: Iterable[TeamSummary],
    club_id: int,
) -> TournamentExport:
    """Payloads for every decided round-robin and playoff match."""
    by_id = {t.team_id: t for t in teams}
    export = TournamentExport()
    match_date = tournament.start_date.isoformat()

    def add(identifier: str, bracket_name: str, team1_id: int, team2_id: int, games, skip_info):
        team_a = _two_players(by_id.get(team1_id))
        team_b = _two_players(by_id.get(team2_id))
        if team_a is None or team_b is None:
            export.skipped.append({**skip_info, "reason": MISSING_DUPR_REASON})
            return
        payload = build_match_payload(
            event=tournament.title,
            match_date=match_date,
            location=tournament.location,
            bracket_name=bracket_name,
            identifier=identifier,
            club_id=club_id,
            team_a=team_a,
            team_b=team_b,
            games=games,
        )
        export.matches.append(PendingMatch(payload=payload, team_a=team_a, team_b=team_b, games=list(games)))

    scores = round_robin_scores_by_match(session, tournament.id)
    for match in list_round_robin_matches(session, tournament.id):
        score = scores.get(match.id)
        if score is None or not is_decided(score.score1, score.score2):
            continue
        add(
            f"{tournament.id}:rr:{match.id}",
            f"Round Robin - Round {match.round_number}",
            match.team1_id,
            match.team2_id,
            [(score.score1, score.score2)],
            {"source": "round_robin", "matchId": match.id},
        )

    for match in bracket.all_matches():
        if match.team1_id is None or match.team2_id is None or not match.complete or not match.games_played:
            continue
        add(
            f"{tournament.id}:po:r{match.round_number}:m{match.match_number}",
            round_label(bracket.bracket_size, match.round_number, match.match_number),
            match.team1_id,
            match.team2_id,
            list(match.games_played),
            {"source": "playoff", "roundNumber": match.round_number, "matchNumber": match.match_number},
        )

    return export


def latest_successful_submission(session: Session, tournament_id: int) -> Optional[DuprMatchSubmission]:
    return session.exec(
        select(DuprMatchSubmission)
        .where(DuprMatchSubmission.tournament_id == tournament_id, DuprMatchSubmission.success == True)  # noqa: E712
        .order_by(DuprMatchSubmission.id.desc())
    ).first()


def list_submission_attempts(session: Session, tournament_id: int) -> List[DuprMatchSubmission]:
    return session.exec(
        select(DuprMatchSubmission)
        .where(DuprMatchSubmission.tournament_id == tournament_id)
        .order_by(DuprMatchSubmission.id.desc())
    ).all()


def _log_attempt(
    session: Session,
    tournament_id: int,
    requester: User,
    dupr_env: str,
    endpoint: str,
    match_count: int,
    status_code: Optional[int],
    success: bool,
    response: Any,
) -> DuprMatchSubmission:
    attempt = DuprMatchSubmission(
        tournament_id=tournament_id,
        submitted_by=requester.id,
        dupr_env=dupr_env,
        endpoint=endpoint,
        match_count=match_count,
        status_code=status_code,
        success=success,
        response=_json_text(response),
    )
    session.add(attempt)
    session.commit()
    session.refresh(attempt)
    logger.info(
        f"DUPR submission attempt {attempt.id} for tournament {tournament_id}: {match_count} matches, "
        f"status {status_code}, success={success}"
    )
    return attempt


def upsert_submitted_match(session: Session, dupr_env: str, values: Dict[str, Any]) -> DuprSubmittedMatch:
    """Insert or overwrite the audit row for (identifier, dupr_env). Caller commits."""
    row = session.exec(
        select(DuprSubmittedMatch).where(
            DuprSubmittedMatch.identifier == values["identifier"],
            DuprSubmittedMatch.dupr_env == dupr_env,
        )
    ).first()
    if row is None:
        row = DuprSubmittedMatch(dupr_env=dupr_env, **values)
    else:
        for key, value in values.items():
            setattr(row, key, value)
        row.deleted_at = None
        row.verification_status = None
        row.verification_response = None
        row.verified_at = None
        row.updated_at = datetime.now(timezone.utc)
    session.add(row)
    return row


def submit_tournament(
    session: Session,
    client: RatingProviderClient,
    requester: User,
    tournament_id: int,
    force: bool = False,
) -> Dict[str, Any]:
    if not requester.dupr_id:
        raise ValidationError("Submitting admin must link a DUPR account first")
    tournament = get_tournament_or_404(session, tournament_id)
    if not get_settings(session, tournament_id).dupr_required:
        raise ValidationError("Tournament is not marked as DUPR reported")
    if not tournament.start_date:
        raise ValidationError("Tournament start date is required before DUPR submission")
    if get_phase(session, tournament_id) == TournamentPhase.REGISTRATION:
        raise ValidationError("Round robin must be started before DUPR submission")
    playoff = get_active_playoff(session, tournament_id)
    if playoff is None:
        raise ValidationError("Playoff must be started before DUPR submission")
    club_id = configured_club_id()

    previous = latest_successful_submission(session, tournament_id)
    if previous is not None and not force:
        raise ValidationError(
            "Tournament was already submitted to DUPR", submittedAt=previous.created_at.isoformat()
        )

    bracket = load_bracket(session, playoff)
    if not bracket.complete:
        raise ValidationError("Playoff is not complete. Enter final scores before submitting to DUPR.")

    teams = load_teams(session, tournament_id)
    export = collect_tournament_matches(session, tournament, bracket, teams, club_id)
    if not export.matches:
        raise ValidationError("No completed matches available to submit", skipped=export.skipped)

    access = ensure_can_submit(client, requester, club_id)
    payloads = [m.payload for m in export.matches]
    endpoint = client.url("DUPR_MATCH_BATCH_URL")

    try:
        response = client.submit_batch(payloads)
    except UpstreamError:
        _log_attempt(
            session, tournament_id, requester, access.dupr_env, endpoint, len(payloads), None, False,
            {"error": "Network error while submitting to DUPR"},
        )
        raise

    attempt = _log_attempt(
        session, tournament_id, requester, access.dupr_env, response.endpoint, len(payloads),
        response.status, response.ok, response.body,
    )
    if not response.ok:
        raise UpstreamError("DUPR batch submission failed", status=response.status, details=response.body)

    names: Dict[str, str] = {}
    for team in teams:
        names.update(team.member_names)

    response_text = _json_text(response.body)
    for index, pending in enumerate(export.matches):
        payload = pending.payload
        meta = parse_match_meta(response.body, payload["identifier"], index)
        upsert_submitted_match(
            session,
            access.dupr_env,
            {
                "tournament_id": tournament_id,
                "submission_id": attempt.id,
                "submitted_by": requester.id,
                "dupr_match_id": meta.match_id,
                "dupr_match_code": meta.match_code,
                "identifier": meta.identifier or payload["identifier"],
                "event_name": payload["event"],
                "bracket_name": payload["bracket"],
                "location": payload["location"],
                "match_date": payload["matchDate"],
                "club_id": club_id,
                "team_a_player1": names.get(pending.team_a[0], pending.team_a[0]),
                "team_a_player2": names.get(pending.team_a[1], pending.team_a[1]),
                "team_b_player1": names.get(pending.team_b[0], pending.team_b[0]),
                "team_b_player2": names.get(pending.team_b[1], pending.team_b[1]),
                "team_a_player1_dupr": pending.team_a[0],
                "team_a_player2_dupr": pending.team_a[1],
                "team_b_player1_dupr": pending.team_b[0],
                "team_b_player2_dupr": pending.team_b[1],
                **_game_columns(pending.games),
                "status": SUBMITTED,
                "last_status_code": response.status,
                "last_response": response_text,
            },
        )
    session.commit()

    logger.info(
        f"Tournament {tournament_id} submitted to DUPR ({access.dupr_env}): "
        f"{len(payloads)} matches, {len(export.skipped)} skipped"
    )
    return {
        "success": True,
        "submitted": len(payloads),
        "skipped": export.skipped,
        "submissionId": attempt.id,
        "endpoint": response.endpoint,
        "environment": access.dupr_env,
        "response": response.body,
    }


# ----------------------------------------------------------------------------
# Verification and reconciliation
# ----------------------------------------------------------------------------


def find_remote(
    local: DuprSubmittedMatch, remotes: Iterable[Tuple[RemoteMatchRef, Dict[str, Any]]]
) -> Optional[Dict[str, Any]]:
    """Identifier first, then provider match id, then match code."""
    remotes = list(remotes)
    identifier = (local.identifier or "").strip() or None
    code = (local.dupr_match_code or "").strip() or None
    if identifier:
        for ref, raw in remotes:
            if ref.identifier == identifier:
                return raw
    if local.dupr_match_id is not None:
        for ref, raw in remotes:
            if ref.match_id == local.dupr_match_id:
                return raw
    if code:
        for ref, raw in remotes:
            if ref.match_code == code:
                return raw
    return None


def _day_window(match_date: str) -> Tuple[int, int]:
    day = date.fromisoformat(match_date)
    start = datetime.combine(day - timedelta(days=1), time.min, tzinfo=timezone.utc)
    end = datetime.combine(day + timedelta(days=1), time.max, tzinfo=timezone.utc)
    return int(start.timestamp()), int(end.timestamp())


def pending_verification(session: Session, tournament_id: Optional[int] = None) -> List[DuprSubmittedMatch]:
    stmt = select(DuprSubmittedMatch).where(
        DuprSubmittedMatch.status != DELETED,
        (DuprSubmittedMatch.verification_status == None)  # noqa: E711
        | (DuprSubmittedMatch.verification_status != VERIFIED),
    )
    if tournament_id is not None:
        stmt = stmt.where(DuprSubmittedMatch.tournament_id == tournament_id)
    return session.exec(stmt.order_by(DuprSubmittedMatch.id)).all()


def _mark(row: DuprSubmittedMatch, status: str, details: Any) -> None:
    row.verification_status = status
    row.verification_response = _json_text(details)
    row.verified_at = datetime.now(timezone.utc)
    row.updated_at = row.verified_at


def verify_submitted_matches(
    session: Session, client: RatingProviderClient, tournament_id: Optional[int] = None
) -> Dict[str, int]:
    """
    Look up every unverified audit row in the club's match search and mark
    it verified or verify_failed. Lookup errors never propagate.
    """
    rows = pending_verification(session, tournament_id)
    summary = {"checked": len(rows), "verified": 0, "failed": 0}
    if not rows:
        return summary

    searches: Dict[Tuple[int, str], Any] = {}
    for row in rows:
        club_id = row.club_id
        try:
            if club_id is None:
                club_id = configured_club_id()
            cache_key = (club_id, row.match_date)
            if cache_key not in searches:
                start, end = _day_window(row.match_date)
                _, response = client.search_club_matches(club_id, start, end, limit=VERIFY_SEARCH_LIMIT)
                raw = [m for m in extract_remote_matches(response.body) if isinstance(m, dict)]
                searches[cache_key] = [(normalize_remote_match(m), m) for m in raw]
            found = find_remote(row, searches[cache_key])
        except (UpstreamError, ValueError) as exc:
            message = exc.message if isinstance(exc, UpstreamError) else str(exc)
            details = exc.extra if isinstance(exc, UpstreamError) else {}
            _mark(row, VERIFY_FAILED, {"error": message, **details})
            summary["failed"] += 1
            logger.warning(f"Verification of submitted match {row.id} failed: {message}")
            session.add(row)
            continue

        if found is None:
            _mark(row, VERIFY_FAILED, {"error": "Match not found in DUPR club match search"})
            summary["failed"] += 1
            logger.info(f"Submitted match {row.id} ({row.identifier}) not found remotely")
        else:
            _mark(row, VERIFIED, found)
            ref = normalize_remote_match(found)
            if row.dupr_match_id is None and ref.match_id is not None:
                row.dupr_match_id = ref.match_id
            if not row.dupr_match_code and ref.match_code:
                row.dupr_match_code = ref.match_code
            summary["verified"] += 1
        session.add(row)

    session.commit()
    logger.info(f"Verification run: {summary}")
    return summary


def verify_in_background(client: RatingProviderClient, tournament_id: Optional[int] = None) -> None:
    """Entry point for FastAPI background tasks; owns its session."""
    with Session(database.engine) as session:
        try:
            verify_submitted_matches(session, client, tournament_id)
        except Exception:
            logger.exception(f"Background verification failed for tournament {tournament_id}")


def _epoch_seconds(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return max(0, int(value))
    if isinstance(value, str):
        text = value.strip()
        try:
            return max(0, int(float(text)))
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return default
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp())
    return default


def reconcile(
    session: Session,
    client: RatingProviderClient,
    requester: User,
    start_date: Any = None,
    end_date: Any = None,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Compare the club's remote matches against local audit rows."""
    access = ensure_can_submit(client, requester)

    now = int(datetime.now(timezone.utc).timestamp())
    start = _epoch_seconds(start_date, now - RECONCILE_DEFAULT_DAYS * 24 * 60 * 60)
    end = _epoch_seconds(end_date, now)
    offset = max(0, offset) if isinstance(offset, int) else 0
    limit = max(1, min(RECONCILE_MAX_LIMIT, limit)) if isinstance(limit, int) else RECONCILE_DEFAULT_LIMIT

    request_body, response = client.search_club_matches(access.club_id, start, end, offset=offset, limit=limit)
    remotes = [normalize_remote_match(m) for m in extract_remote_matches(response.body)]
    remotes = [r for r in remotes if r is not None]
    locals_ = list_submitted_matches(session)

    by_identifier = {m.identifier.strip(): m for m in locals_ if m.identifier}
    by_match_id = {m.dupr_match_id: m for m in locals_ if m.dupr_match_id is not None}
    by_code = {m.dupr_match_code.strip(): m for m in locals_ if m.dupr_match_code}

    matched = 0
    missing_locally: List[RemoteMatchRef] = []
    for remote in remotes:
        found = (
            (remote.identifier and by_identifier.get(remote.identifier))
            or (remote.match_id is not None and by_match_id.get(remote.match_id))
            or (remote.match_code and by_code.get(remote.match_code))
        )
        if found:
            matched += 1
        else:
            missing_locally.append(remote)

    def seen_remotely(local: DuprSubmittedMatch) -> bool:
        identifier = (local.identifier or "").strip() or None
        code = (local.dupr_match_code or "").strip() or None
        return any(
            (identifier and r.identifier == identifier)
            or (local.dupr_match_id is not None and r.match_id == local.dupr_match_id)
            or (code and r.match_code == code)
            for r in remotes
        )

    missing_remotely = [m for m in locals_ if not seen_remotely(m)]
    logger.info(
        f"Reconcile club {access.club_id}: {len(remotes)} remote, {len(locals_)} local, {matched} matched"
    )
    return {
        "success": True,
        "environment": access.dupr_env,
        "endpoint": response.endpoint,
        "request": request_body,
        "summary": {
            "remoteCount": len(remotes),
            "localCount": len(locals_),
            "matchedCount": matched,
            "remoteMissingInLocal": len(missing_locally),
            "localMissingInRemote": len(missing_remotely),
        },
        "remoteMissingInLocal": [r.to_dict() for r in missing_locally[:RECONCILE_SAMPLE_SIZE]],
        "localMissingInRemote": [
            {
                "id": m.id,
                "identifier": m.identifier,
                "duprMatchId": m.dupr_match_id,
                "duprMatchCode": m.dupr_match_code,
                "eventName": m.event_name,
                "matchDate": m.match_date,
                "status": m.status,
            }
            for m in missing_remotely[:RECONCILE_SAMPLE_SIZE]
        ],
    }


# ----------------------------------------------------------------------------
# Audit row administration
# ----------------------------------------------------------------------------


def list_submitted_matches(session: Session, limit: int = 1000) -> List[DuprSubmittedMatch]:
    limit = max(1, min(limit, 1000))
    return session.exec(
        select(DuprSubmittedMatch)
        .order_by(DuprSubmittedMatch.created_at.desc(), DuprSubmittedMatch.id.desc())
        .limit(limit)
    ).all()


def eligible_players(session: Session) -> List[User]:
    """Registered players with a linked DUPR account."""
    return session.exec(
        select(User)
        .join(TeamMember, TeamMember.user_id == User.id)
        .where(User.dupr_id != None)  # noqa: E711
        .distinct()
        .order_by(User.display_name)
    ).all()


def submitted_match_to_dict(row: DuprSubmittedMatch, submitted_by_name: Optional[str] = None) -> Dict[str, Any]:
    def team(side: str) -> Dict[str, Any]:
        out = {
            "player1": getattr(row, f"team_{side}_player1"),
            "player2": getattr(row, f"team_{side}_player2"),
            "player1Dupr": getattr(row, f"team_{side}_player1_dupr"),
            "player2Dupr": getattr(row, f"team_{side}_player2_dupr"),
        }
        for index in range(1, MAX_GAMES + 1):
            out[f"game{index}"] = getattr(row, f"team_{side}_game{index}")
        return out

    return {
        "id": row.id,
        "tournamentId": row.tournament_id,
        "duprEnv": row.dupr_env,
        "duprMatchId": row.dupr_match_id,
        "duprMatchCode": row.dupr_match_code,
        "identifier": row.identifier,
        "eventName": row.event_name,
        "bracketName": row.bracket_name,
        "location": row.location,
        "matchDate": row.match_date,
        "format": row.format,
        "matchType": row.match_type,
        "clubId": row.club_id,
        "teamA": team("a"),
        "teamB": team("b"),
        "status": row.status,
        "lastStatusCode": row.last_status_code,
        "submittedBy": row.submitted_by,
        "submittedByName": submitted_by_name,
        "createdAt": row.created_at.isoformat() if row.created_at else None,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
        "deletedAt": row.deleted_at.isoformat() if row.deleted_at else None,
        "verificationStatus": row.verification_status,
        "verificationResponse": row.verification_response,
        "verifiedAt": row.verified_at.isoformat() if row.verified_at else None,
    }


def _require_match_date(value: str) -> str:
    if not value or not MATCH_DATE_RE.match(value):
        raise ValidationError("matchDate must be YYYY-MM-DD")
    return value


def create_manual_match(
    session: Session,
    client: RatingProviderClient,
    requester: User,
    *,
    event_name: str,
    match_date: str,
    team_a_ids: Sequence[Optional[str]],
    team_b_ids: Sequence[Optional[str]],
    games: Any,
    bracket_name: Optional[str] = None,
    location: Optional[str] = None,
    identifier: Optional[str] = None,
    tournament_id: Optional[int] = None,
) -> DuprSubmittedMatch:
    """Report a one-off match between registered players through the create endpoint."""
    event_name = (event_name or "").strip()
    match_date = (match_date or "").strip()
    bracket_name = (bracket_name or "").strip()
    location = (location or "").strip()
    if not event_name:
        raise ValidationError("eventName is required")
    _require_match_date(match_date)

    team_a_ids = [(p or "").strip() for p in list(team_a_ids) + [None, None]][:2]
    team_b_ids = [(p or "").strip() for p in list(team_b_ids) + [None, None]][:2]
    if not team_a_ids[0] or not team_b_ids[0]:
        raise ValidationError("Each team requires player1")
    normalized = normalize_games(games)
    if not normalized:
        raise ValidationError("At least one valid game score is required")

    selected = [p for p in team_a_ids + team_b_ids if p]
    if len(set(selected)) != len(selected):
        raise ValidationError("A player cannot be used twice in the same match")
    players = {u.id: u for u in eligible_players(session)}
    if any(p not in players for p in selected):
        raise ValidationError("Players must be registered site users with linked DUPR accounts")

    def dupr(user_id: str) -> Optional[str]:
        return players[user_id].dupr_id if user_id else None

    def name(user_id: str) -> Optional[str]:
        return (players[user_id].display_name or players[user_id].dupr_id) if user_id else None

    access = ensure_can_submit(client, requester)
    identifier = (identifier or "").strip() or f"manual:{uuid.uuid4().hex[:12]}"
    payload = build_match_payload(
        event=event_name,
        match_date=match_date,
        location=location or None,
        bracket_name=bracket_name or "Manual",
        identifier=identifier,
        club_id=access.club_id,
        team_a=[dupr(team_a_ids[0]), dupr(team_a_ids[1])],
        team_b=[dupr(team_b_ids[0]), dupr(team_b_ids[1])],
        games=normalized,
        pad_games=True,
    )
    response = client.create_match(payload)
    meta = parse_match_meta(response.body, identifier, 0)

    row = upsert_submitted_match(
        session,
        access.dupr_env,
        {
            "tournament_id": tournament_id,
            "submission_id": None,
            "submitted_by": requester.id,
            "dupr_match_id": meta.match_id,
            "dupr_match_code": meta.match_code,
            "identifier": meta.identifier or identifier,
            "event_name": event_name,
            "bracket_name": bracket_name or None,
            "location": location or None,
            "match_date": match_date,
            "club_id": access.club_id,
            "team_a_player1": name(team_a_ids[0]),
            "team_a_player2": name(team_a_ids[1]),
            "team_b_player1": name(team_b_ids[0]),
            "team_b_player2": name(team_b_ids[1]),
            "team_a_player1_dupr": dupr(team_a_ids[0]),
            "team_a_player2_dupr": dupr(team_a_ids[1]),
            "team_b_player1_dupr": dupr(team_b_ids[0]),
            "team_b_player2_dupr": dupr(team_b_ids[1]),
            **_game_columns(normalized),
            "status": SUBMITTED,
            "last_status_code": response.status,
            "last_response": _json_text(response.body or {}),
        },
    )
    session.commit()
    session.refresh(row)
    logger.info(f"Manual DUPR match {row.identifier} created by {requester.id} ({access.dupr_env})")
    return row


def get_submitted_match_or_404(session: Session, match_id: int) -> DuprSubmittedMatch:
    row = session.get(DuprSubmittedMatch, match_id)
    if row is None:
        raise NotFoundError("Match not found")
    return row


def edit_submitted_match(
    session: Session,
    client: RatingProviderClient,
    requester: User,
    match_id: int,
    *,
    games: Any,
    event_name: Optional[str] = None,
    bracket_name: Optional[str] = None,
    location: Optional[str] = None,
    match_date: Optional[str] = None,
) -> DuprSubmittedMatch:
    row = get_submitted_match_or_404(session, match_id)
    if row.status == DELETED:
        raise ValidationError("Cannot edit deleted matches")
    if row.dupr_match_id is None:
        raise ValidationError("This record cannot be edited because DUPR match id is missing")

    normalized = normalize_games(games)
    if not normalized:
        raise ValidationError("At least one valid game score is required")
    event_name = (event_name or row.event_name or "").strip()
    bracket_name = (bracket_name or row.bracket_name or "").strip()
    location = (location or row.location or "").strip()
    match_date = (match_date or row.match_date or "").strip()
    if not event_name:
        raise ValidationError("eventName is required")
    _require_match_date(match_date)

    access = ensure_can_submit(client, requester)
    payload = build_match_payload(
        event=event_name,
        match_date=match_date,
        location=location or None,
        bracket_name=bracket_name or "Manual",
        identifier=row.identifier,
        club_id=access.club_id,
        team_a=[row.team_a_player1_dupr, row.team_a_player2_dupr],
        team_b=[row.team_b_player1_dupr, row.team_b_player2_dupr],
        games=normalized,
        pad_games=True,
        match_id=row.dupr_match_id,
    )
    response = client.update_match(payload)

    row.event_name = event_name
    row.bracket_name = bracket_name or None
    row.location = location or None
    row.match_date = match_date
    for column, value in _game_columns(normalized).items():
        setattr(row, column, value)
    row.status = UPDATED
    row.last_status_code = response.status
    row.last_response = _json_text(response.body or {})
    row.verification_status = None
    row.verification_response = None
    row.verified_at = None
    row.updated_at = datetime.now(timezone.utc)
    session.add(row)
    session.commit()
    session.refresh(row)
    logger.info(f"Submitted match {row.id} updated by {requester.id}")
    return row


def delete_submitted_match(
    session: Session, client: RatingProviderClient, requester: User, match_id: int
) -> Dict[str, Any]:
    row = get_submitted_match_or_404(session, match_id)
    if row.status == DELETED:
        return {"success": True, "alreadyDeleted": True}
    if not row.dupr_match_code or not row.identifier:
        raise ValidationError("This record cannot be deleted because DUPR match code is missing")

    ensure_can_submit(client, requester)
    response = client.delete_match(row.dupr_match_code, row.identifier)

    now = datetime.now(timezone.utc)
    row.status = DELETED
    row.deleted_at = now
    row.last_status_code = response.status
    row.last_response = _json_text(response.body or {})
    row.updated_at = now
    session.add(row)
    session.commit()
    logger.info(f"Submitted match {row.id} deleted by {requester.id}")
    return {"success": True}
