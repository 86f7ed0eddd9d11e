"""
Single-elimination bracket resolution.

Pure and stateless: given the fixed seed order, the bracket size and the
recorded playoff scores, rebuild the whole bracket from scratch (every
round, each match's winner/loser, the bronze match and overall completion).
Nothing is cached between calls; the bracket view, the archive check and
the rating submission all read the bracket through ``resolve_bracket``.

Slot mapping (seed numbers, adjacent pairs form round-1 matches):
    size 2 -> [1, 2]
    size 4 -> [1, 4, 2, 3]
    size 8 -> [1, 8, 4, 5, 2, 7, 3, 6]

A slot whose seed exceeds the number of playoff teams is empty; the team
opposite an empty slot advances without a score, in round 1 only.

Winner rules:
    * single-game match: game 1 scores are integers and unequal
    * best-of-three (gold final / bronze match when flagged): games are
      taken in order, skipping games with missing or equal scores, until one
      side reaches two wins. Fewer than two wins is incomplete, not a loss.

The bronze match is (final round, match 2) between the two semifinal
losers. A semifinal decided by a bye has no loser, so that bronze slot
stays empty and the bronze match is not required for completion.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

VALID_BRACKET_SIZES = (2, 4, 8)
MAX_PLAYOFF_TEAMS = 8

SLOT_SEEDS: Dict[int, List[int]] = {
    2: [1, 2],
    4: [1, 4, 2, 3],
    8: [1, 8, 4, 5, 2, 7, 3, 6],
}

GOLD_MATCH_NUMBER = 1
BRONZE_MATCH_NUMBER = 2

Game = Tuple[Optional[int], Optional[int]]


def bracket_size_for(team_count: int) -> int:
    """Smallest of 2/4/8 that holds ``team_count`` teams (capped at 8)."""
    if team_count <= 2:
        return 2
    if team_count <= 4:
        return 4
    return 8


def total_rounds_for(bracket_size: int) -> int:
    if bracket_size not in VALID_BRACKET_SIZES:
        raise ValueError(f"Unsupported bracket size: {bracket_size}")
    return bracket_size.bit_length() - 1


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class GameScores:
    """Up to three (score1, score2) pairs for one bracket match."""

    games: Tuple[Game, Game, Game] = ((None, None), (None, None), (None, None))

    @classmethod
    def from_record(cls, record: Any) -> "GameScores":
        """Build from a playoff score row (or any object with gameN_scoreM attributes)."""
        return cls(
            games=(
                (getattr(record, "game1_score1", None), getattr(record, "game1_score2", None)),
                (getattr(record, "game2_score1", None), getattr(record, "game2_score2", None)),
                (getattr(record, "game3_score1", None), getattr(record, "game3_score2", None)),
            )
        )

    @classmethod
    def of(cls, *pairs: Game) -> "GameScores":
        padded = list(pairs)[:3] + [(None, None)] * (3 - min(len(pairs), 3))
        return cls(games=tuple(padded))  # type: ignore[arg-type]

    def to_dict(self) -> Dict[str, Dict[str, Optional[int]]]:
        return {
            f"game{i}": {"score1": s1, "score2": s2}
            for i, (s1, s2) in enumerate(self.games, start=1)
        }


@dataclass(frozen=True)
class SeriesResult:
    complete: bool
    winner_side: Optional[int] = None  # 1 -> team1, 2 -> team2
    games_played: Tuple[Tuple[int, int], ...] = ()


INCOMPLETE = SeriesResult(complete=False)


def evaluate_single_game(scores: Optional[GameScores]) -> SeriesResult:
    if scores is None:
        return INCOMPLETE
    s1, s2 = scores.games[0]
    if not _is_int(s1) or not _is_int(s2) or s1 == s2:
        return INCOMPLETE
    return SeriesResult(complete=True, winner_side=1 if s1 > s2 else 2, games_played=((s1, s2),))


def evaluate_best_of_three(scores: Optional[GameScores]) -> SeriesResult:
    """First side to two game wins. Stops at the clinching game."""
    if scores is None:
        return INCOMPLETE
    wins1 = 0
    wins2 = 0
    played: List[Tuple[int, int]] = []
    for s1, s2 in scores.games:
        if not _is_int(s1) or not _is_int(s2) or s1 == s2:
            continue
        played.append((s1, s2))
        if s1 > s2:
            wins1 += 1
        else:
            wins2 += 1
        if wins1 >= 2 or wins2 >= 2:
            break
    if wins1 >= 2:
        return SeriesResult(complete=True, winner_side=1, games_played=tuple(played))
    if wins2 >= 2:
        return SeriesResult(complete=True, winner_side=2, games_played=tuple(played))
    return SeriesResult(complete=False, games_played=tuple(played))


@dataclass
class BracketMatch:
    round_number: int
    match_number: int
    team1_id: Optional[int]
    team2_id: Optional[int]
    score: Optional[GameScores] = None
    best_of_three: bool = False
    is_bronze: bool = False
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    games_played: Tuple[Tuple[int, int], ...] = ()

    @property
    def is_bye(self) -> bool:
        return (self.team1_id is None) != (self.team2_id is None)

    @property
    def complete(self) -> bool:
        return self.winner_id is not None

    def has_team(self, team_id: int) -> bool:
        return team_id is not None and team_id in (self.team1_id, self.team2_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round_number": self.round_number,
            "match_number": self.match_number,
            "team1_id": self.team1_id,
            "team2_id": self.team2_id,
            "best_of_three": self.best_of_three,
            "is_bronze": self.is_bronze,
            "is_bye": self.is_bye,
            "winner_id": self.winner_id,
            "loser_id": self.loser_id,
            "games_played": [list(g) for g in self.games_played],
            "score": self.score.to_dict() if self.score else None,
        }


@dataclass
class Bracket:
    bracket_size: int
    total_rounds: int
    best_of_three: bool
    bronze_best_of_three: bool
    rounds: List[List[BracketMatch]] = field(default_factory=list)
    bronze: Optional[BracketMatch] = None

    @property
    def gold(self) -> BracketMatch:
        return self.rounds[-1][0]

    @property
    def gold_complete(self) -> bool:
        return self.gold.complete

    @property
    def bronze_required(self) -> bool:
        """A bronze match is played only when both semifinals are real contests."""
        if self.bracket_size < 4:
            return False
        semis = self.rounds[self.total_rounds - 2]
        return not any(m.is_bye and m.round_number == 1 for m in semis)

    @property
    def bronze_complete(self) -> bool:
        if not self.bronze_required:
            return True
        return self.bronze is not None and self.bronze.complete

    @property
    def complete(self) -> bool:
        return self.gold_complete and self.bronze_complete

    def find_match(self, round_number: int, match_number: int) -> Optional[BracketMatch]:
        if self.bronze is not None and (round_number, match_number) == (
            self.bronze.round_number,
            self.bronze.match_number,
        ):
            return self.bronze
        if round_number < 1 or round_number > len(self.rounds):
            return None
        for match in self.rounds[round_number - 1]:
            if match.match_number == match_number:
                return match
        return None

    def all_matches(self) -> List[BracketMatch]:
        out = [m for rnd in self.rounds for m in rnd]
        if self.bronze is not None:
            out.append(self.bronze)
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bracket_size": self.bracket_size,
            "total_rounds": self.total_rounds,
            "best_of_three": self.best_of_three,
            "bronze_best_of_three": self.bronze_best_of_three,
            "rounds": [[m.to_dict() for m in rnd] for rnd in self.rounds],
            "bronze": self.bronze.to_dict() if self.bronze else None,
            "bronze_required": self.bronze_required,
            "gold_complete": self.gold_complete,
            "bronze_complete": self.bronze_complete,
            "complete": self.complete,
            "champion_id": self.gold.winner_id,
        }


def _decide(match: BracketMatch) -> None:
    """Fill winner/loser/games_played in place."""
    if match.team1_id is None and match.team2_id is None:
        return
    if match.is_bye:
        # Only round 1 can hold an unopposed team; later rounds wait on an undecided feeder.
        if match.round_number == 1:
            match.winner_id = match.team1_id if match.team1_id is not None else match.team2_id
        return
    if match.score is None:
        return

    result = evaluate_best_of_three(match.score) if match.best_of_three else evaluate_single_game(match.score)
    match.games_played = result.games_played if result.complete else ()
    if not result.complete:
        return
    if result.winner_side == 1:
        match.winner_id, match.loser_id = match.team1_id, match.team2_id
    else:
        match.winner_id, match.loser_id = match.team2_id, match.team1_id


def _score_map(scores: Iterable[Any]) -> Dict[Tuple[int, int], GameScores]:
    out: Dict[Tuple[int, int], GameScores] = {}
    for record in scores:
        out[(int(record.round_number), int(record.match_number))] = GameScores.from_record(record)
    return out


def resolve_bracket(
    seed_order: Sequence[int],
    bracket_size: int,
    scores: Iterable[Any],
    best_of_three: bool = False,
    bronze_best_of_three: bool = False,
) -> Bracket:
    """
    Compute the full bracket.

    Args:
        seed_order: Team ids, index 0 = seed 1.
        bracket_size: 2, 4 or 8.
        scores: Recorded playoff score rows (round_number, match_number, gameN_scoreM).
        best_of_three: Gold final is best-of-three.
        bronze_best_of_three: Bronze match is best-of-three.
    """
    total_rounds = total_rounds_for(bracket_size)
    score_map = _score_map(scores)

    slots: List[Optional[int]] = [
        seed_order[seed - 1] if seed - 1 < len(seed_order) else None for seed in SLOT_SEEDS[bracket_size]
    ]
    current: List[Tuple[Optional[int], Optional[int]]] = [
        (slots[i], slots[i + 1]) for i in range(0, len(slots), 2)
    ]

    bracket = Bracket(
        bracket_size=bracket_size,
        total_rounds=total_rounds,
        best_of_three=best_of_three,
        bronze_best_of_three=bronze_best_of_three,
    )

    for round_number in range(1, total_rounds + 1):
        is_final = round_number == total_rounds
        round_matches: List[BracketMatch] = []
        for index, (team1, team2) in enumerate(current):
            match_number = index + 1
            match = BracketMatch(
                round_number=round_number,
                match_number=match_number,
                team1_id=team1,
                team2_id=team2,
                score=score_map.get((round_number, match_number)),
                best_of_three=is_final and match_number == GOLD_MATCH_NUMBER and best_of_three,
            )
            _decide(match)
            round_matches.append(match)
        bracket.rounds.append(round_matches)

        if not is_final:
            winners = [m.winner_id for m in round_matches]
            current = [(winners[i], winners[i + 1]) for i in range(0, len(winners), 2)]

    if bracket_size >= 4:
        semis = bracket.rounds[total_rounds - 2]
        bronze = BracketMatch(
            round_number=total_rounds,
            match_number=BRONZE_MATCH_NUMBER,
            team1_id=semis[0].loser_id,
            team2_id=semis[1].loser_id,
            score=score_map.get((total_rounds, BRONZE_MATCH_NUMBER)),
            best_of_three=bronze_best_of_three,
            is_bronze=True,
        )
        _decide(bronze)
        bracket.bronze = bronze

    return bracket


def allows_extra_games(bracket: Bracket, round_number: int, match_number: int) -> bool:
    """Whether games 2/3 may be recorded for this match."""
    if round_number != bracket.total_rounds:
        return False
    if match_number == GOLD_MATCH_NUMBER:
        return bracket.best_of_three
    if match_number == BRONZE_MATCH_NUMBER and bracket.bracket_size >= 4:
        return bracket.bronze_best_of_three
    return False


def round_label(bracket_size: int, round_number: int, match_number: int) -> str:
    total_rounds = total_rounds_for(bracket_size)
    if round_number == total_rounds and match_number == BRONZE_MATCH_NUMBER and bracket_size >= 4:
        return "Bronze Match"
    if bracket_size == 2:
        return "Finals"
    if bracket_size == 4:
        return "Semi-finals" if round_number == 1 else "Finals"
    if bracket_size == 8:
        if round_number == 1:
            return "Quarter-finals"
        if round_number == 2:
            return "Semi-finals"
        return "Finals"
    return f"Round {round_number}"
