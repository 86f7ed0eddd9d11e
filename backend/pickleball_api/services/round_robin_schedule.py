"""
Round-robin pairing generation (circle method).

The first team stays fixed; the others rotate one position per round. With
an odd team count a ``None`` placeholder is added, and whoever is paired
with it sits out that round (no match row is produced for a bye).

Requesting more rounds than ``n - 1`` simply cycles through the same
rotation again.
"""
from typing import List, Optional, Sequence, Tuple

Pairing = Tuple[Optional[int], Optional[int]]


def generate_round_robin_pairings(team_ids: Sequence[int], rounds: int) -> List[List[Pairing]]:
    """
    Args:
        team_ids: Team ids in balancing order (strongest first).
        rounds: Number of rounds to generate (at least 1 is always produced).

    Returns:
        One list of pairings per round. A pairing with a ``None`` side is a bye.
    """
    ids: List[Optional[int]] = list(team_ids)
    if len(ids) < 2:
        return []
    if len(ids) % 2 == 1:
        ids.append(None)

    n = len(ids)
    half = n // 2
    fixed = ids[0]
    rotating = ids[1:]
    schedule: List[List[Pairing]] = []

    for _ in range(max(1, rounds)):
        left = [fixed] + rotating[: half - 1]
        right = list(reversed(rotating[half - 1:]))
        pairs: List[Pairing] = []
        for team1, team2 in zip(left, right):
            if team1 is None and team2 is None:
                continue
            pairs.append((team1, team2))
        schedule.append(pairs)
        rotating = [rotating[-1]] + rotating[:-1]

    return schedule


def playable_pairings(schedule: List[List[Pairing]]) -> List[Tuple[int, int, int]]:
    """Flatten to (round_number, team1_id, team2_id), dropping byes."""
    out: List[Tuple[int, int, int]] = []
    for round_index, pairs in enumerate(schedule, start=1):
        for team1, team2 in pairs:
            if team1 is None or team2 is None:
                continue
            out.append((round_index, team1, team2))
    return out
