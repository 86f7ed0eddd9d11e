"""
Round-robin standings.

Pure: turns teams + recorded round-robin results into a ranking. Used for
the live standings table and for playoff seeding.

Only decided games (both scores integers and unequal) count. A tie or a
missing score contributes nothing: no win, no loss, no points, no game.

Ranking:
  1. wins, descending
  2. losses, ascending
  3. average point differential per decided game, descending
  4. display name, ascending
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class TeamEntry:
    team_id: int
    name: str


@dataclass(frozen=True)
class MatchResult:
    team1_id: int
    team2_id: int
    score1: Optional[int]
    score2: Optional[int]


@dataclass
class StandingRow:
    team_id: int
    name: str
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0
    games: int = 0

    @property
    def point_diff(self) -> int:
        return self.points_for - self.points_against

    @property
    def avg_diff(self) -> float:
        return self.point_diff / self.games if self.games else 0.0

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "name": self.name,
            "wins": self.wins,
            "losses": self.losses,
            "points_for": self.points_for,
            "points_against": self.points_against,
            "games": self.games,
            "avg_diff": self.avg_diff,
        }


def is_decided(score1: Optional[int], score2: Optional[int]) -> bool:
    return _is_int(score1) and _is_int(score2) and score1 != score2


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _sort_key(row: StandingRow) -> Tuple[int, int, float, str]:
    return (-row.wins, row.losses, -row.avg_diff, row.name)


def compute_standings(teams: Iterable[TeamEntry], results: Iterable[MatchResult]) -> List[StandingRow]:
    rows: Dict[int, StandingRow] = {t.team_id: StandingRow(team_id=t.team_id, name=t.name) for t in teams}

    for r in results:
        if not is_decided(r.score1, r.score2):
            continue
        t1 = rows.get(r.team1_id)
        t2 = rows.get(r.team2_id)
        if t1 is None or t2 is None:
            continue
        t1.points_for += r.score1
        t1.points_against += r.score2
        t2.points_for += r.score2
        t2.points_against += r.score1
        t1.games += 1
        t2.games += 1
        if r.score1 > r.score2:
            t1.wins += 1
            t2.losses += 1
        else:
            t2.wins += 1
            t1.losses += 1

    return sorted(rows.values(), key=_sort_key)


def seed_order_from_standings(standings: List[StandingRow], count: int) -> List[int]:
    """Top-``count`` team ids, rank 1 first."""
    return [row.team_id for row in standings[:count]]
