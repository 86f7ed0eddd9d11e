"""Round-robin standings: decided games only, ranked by wins, losses, avg diff, name."""
from pickleball_api.services.standings import (
    MatchResult,
    TeamEntry,
    compute_standings,
    is_decided,
    seed_order_from_standings,
)


def _teams(*names):
    return [TeamEntry(team_id=i, name=name) for i, name in enumerate(names, start=1)]


def test_ranks_by_wins_then_losses():
    teams = _teams("Aces", "Dinks", "Volleys")
    results = [
        MatchResult(1, 2, 11, 5),
        MatchResult(1, 3, 11, 9),
        MatchResult(2, 3, 11, 3),
    ]

    standings = compute_standings(teams, results)

    assert [row.name for row in standings] == ["Aces", "Dinks", "Volleys"]
    aces = standings[0]
    assert (aces.wins, aces.losses) == (2, 0)
    assert aces.points_for == 22
    assert aces.points_against == 14
    assert aces.games == 2
    assert aces.avg_diff == 4.0


def test_tied_and_missing_scores_contribute_nothing():
    teams = _teams("Aces", "Dinks")
    results = [
        MatchResult(1, 2, 11, 11),
        MatchResult(1, 2, None, None),
        MatchResult(1, 2, 11, None),
    ]

    standings = compute_standings(teams, results)

    for row in standings:
        assert row.wins == 0
        assert row.losses == 0
        assert row.points_for == 0
        assert row.points_against == 0
        assert row.games == 0
        assert row.avg_diff == 0.0


def test_average_differential_then_name_break_ties():
    teams = _teams("Aces", "Baseline", "Chargers", "Dinks")
    results = [
        MatchResult(1, 3, 11, 1),  # Aces +10
        MatchResult(1, 4, 5, 11),  # Aces -6, Dinks +6
        MatchResult(2, 4, 11, 9),  # Baseline +2, Dinks -2
        MatchResult(2, 3, 9, 11),  # Baseline -2, Chargers +2
    ]

    standings = compute_standings(teams, results)

    # Everyone is 1-1. Aces and Dinks both average +2; name decides.
    assert [row.name for row in standings] == ["Aces", "Dinks", "Baseline", "Chargers"]
    assert standings[0].avg_diff == standings[1].avg_diff == 2.0
    assert standings[2].avg_diff == 0.0
    assert standings[3].avg_diff == -4.0


def test_teams_without_results_are_still_listed():
    teams = _teams("Aces", "Dinks", "Lobs")
    standings = compute_standings(teams, [MatchResult(1, 2, 11, 4)])

    assert len(standings) == 3
    lobs = next(row for row in standings if row.name == "Lobs")
    assert lobs.games == 0
    assert standings[-1].name == "Dinks"


def test_results_for_unknown_teams_are_ignored():
    teams = _teams("Aces", "Dinks")
    standings = compute_standings(teams, [MatchResult(1, 99, 11, 2)])

    assert all(row.games == 0 for row in standings)


def test_is_decided_rejects_bools_and_ties():
    assert is_decided(11, 9)
    assert not is_decided(11, 11)
    assert not is_decided(True, 0)
    assert not is_decided(None, 3)
    assert not is_decided("11", 9)


def test_seed_order_takes_top_n():
    teams = _teams("Aces", "Dinks", "Volleys")
    standings = compute_standings(teams, [MatchResult(3, 1, 11, 2), MatchResult(3, 2, 11, 2)])

    assert seed_order_from_standings(standings, 2) == [3, 1]
    assert seed_order_from_standings(standings, 8) == [3, 1, 2]
