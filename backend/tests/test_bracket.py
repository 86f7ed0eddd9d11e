"""Single-elimination bracket resolution from seed order + recorded scores."""
import pytest

from pickleball_api.models.playoff import PlayoffScore
from pickleball_api.services.bracket import (
    GameScores,
    allows_extra_games,
    bracket_size_for,
    evaluate_best_of_three,
    resolve_bracket,
    round_label,
    total_rounds_for,
)

SEEDS = [10, 20, 30, 40]


def score(round_number, match_number, *games):
    row = PlayoffScore(tournament_id=1, round_number=round_number, match_number=match_number)
    for index, (s1, s2) in enumerate(games, start=1):
        setattr(row, f"game{index}_score1", s1)
        setattr(row, f"game{index}_score2", s2)
    return row


@pytest.mark.parametrize(
    "team_count, expected",
    [(1, 2), (2, 2), (3, 4), (4, 4), (5, 8), (8, 8)],
)
def test_bracket_size_for(team_count, expected):
    assert bracket_size_for(team_count) == expected


def test_total_rounds_rejects_unknown_size():
    assert total_rounds_for(8) == 3
    with pytest.raises(ValueError):
        total_rounds_for(6)


def test_four_team_slots_and_empty_final():
    bracket = resolve_bracket(SEEDS, 4, [])

    first = bracket.rounds[0]
    assert (first[0].team1_id, first[0].team2_id) == (10, 40)
    assert (first[1].team1_id, first[1].team2_id) == (20, 30)
    assert bracket.gold.team1_id is None
    assert bracket.gold.team2_id is None
    assert bracket.bronze is not None
    assert not bracket.complete


def test_eight_team_slot_mapping():
    seeds = list(range(1, 9))
    bracket = resolve_bracket(seeds, 8, [])

    pairs = [(m.team1_id, m.team2_id) for m in bracket.rounds[0]]
    assert pairs == [(1, 8), (4, 5), (2, 7), (3, 6)]
    assert len(bracket.rounds) == 3


def test_winners_advance_and_bronze_gets_semifinal_losers():
    scores = [score(1, 1, (11, 3)), score(1, 2, (8, 11))]
    bracket = resolve_bracket(SEEDS, 4, scores)

    assert bracket.rounds[0][0].winner_id == 10
    assert bracket.rounds[0][0].loser_id == 40
    assert bracket.rounds[0][1].winner_id == 30
    assert (bracket.gold.team1_id, bracket.gold.team2_id) == (10, 30)
    assert (bracket.bronze.team1_id, bracket.bronze.team2_id) == (40, 20)
    assert bracket.bronze_required


def test_complete_requires_gold_and_bronze():
    scores = [score(1, 1, (11, 3)), score(1, 2, (8, 11)), score(2, 1, (11, 9))]
    bracket = resolve_bracket(SEEDS, 4, scores)

    assert bracket.gold_complete
    assert bracket.gold.winner_id == 10
    assert not bracket.bronze_complete
    assert not bracket.complete

    scores.append(score(2, 2, (4, 11)))
    bracket = resolve_bracket(SEEDS, 4, scores)
    assert bracket.bronze.winner_id == 20
    assert bracket.complete
    assert bracket.to_dict()["champion_id"] == 10


def test_tied_single_game_is_incomplete():
    bracket = resolve_bracket(SEEDS, 4, [score(1, 1, (11, 11))])

    assert bracket.rounds[0][0].winner_id is None
    assert bracket.gold.team1_id is None


def test_best_of_three_two_straight_wins():
    result = evaluate_best_of_three(GameScores.of((11, 5), (11, 7), (3, 11)))

    assert result.complete
    assert result.winner_side == 1
    assert result.games_played == ((11, 5), (11, 7))


def test_best_of_three_goes_the_distance():
    result = evaluate_best_of_three(GameScores.of((11, 5), (7, 11), (9, 11)))

    assert result.complete
    assert result.winner_side == 2
    assert len(result.games_played) == 3


def test_best_of_three_skips_undecided_games():
    result = evaluate_best_of_three(GameScores.of((11, 11), (11, 5), (11, 7)))

    assert result.complete
    assert result.winner_side == 1
    assert result.games_played == ((11, 5), (11, 7))


def test_best_of_three_single_win_is_not_a_result():
    result = evaluate_best_of_three(GameScores.of((11, 5)))

    assert not result.complete
    assert result.winner_side is None


def test_best_of_three_final_needs_two_wins():
    semis = [score(1, 1, (11, 3)), score(1, 2, (8, 11))]
    bracket = resolve_bracket(SEEDS, 4, semis + [score(2, 1, (11, 9))], best_of_three=True)

    assert bracket.gold.best_of_three
    assert not bracket.gold_complete
    assert bracket.gold.games_played == ()

    bracket = resolve_bracket(SEEDS, 4, semis + [score(2, 1, (11, 9), (5, 11), (11, 6))], best_of_three=True)
    assert bracket.gold.winner_id == 10
    assert bracket.gold.games_played == ((11, 9), (5, 11), (11, 6))


def test_three_teams_top_seed_gets_bye_and_no_bronze():
    bracket = resolve_bracket([10, 20, 30], 4, [score(1, 2, (11, 6))])

    bye = bracket.rounds[0][0]
    assert bye.is_bye
    assert bye.winner_id == 10
    assert bye.loser_id is None
    assert (bracket.gold.team1_id, bracket.gold.team2_id) == (10, 20)
    assert not bracket.bronze_required
    assert bracket.bronze.team1_id is None
    assert bracket.bronze.team2_id == 30

    bracket = resolve_bracket([10, 20, 30], 4, [score(1, 2, (11, 6)), score(2, 1, (7, 11))])
    assert bracket.gold.winner_id == 20
    assert bracket.complete


def test_five_teams_top_three_seeds_get_byes():
    seeds = [1, 2, 3, 4, 5]
    bracket = resolve_bracket(seeds, 8, [score(1, 2, (11, 4))])

    first = bracket.rounds[0]
    assert [m.is_bye for m in first] == [True, False, True, True]
    assert first[1].winner_id == 4
    semis = bracket.rounds[1]
    assert (semis[0].team1_id, semis[0].team2_id) == (1, 4)
    assert (semis[1].team1_id, semis[1].team2_id) == (2, 3)
    assert bracket.bronze_required


def test_two_team_bracket_is_just_a_final():
    bracket = resolve_bracket([10, 20], 2, [score(1, 1, (11, 2))])

    assert bracket.total_rounds == 1
    assert bracket.bronze is None
    assert not bracket.bronze_required
    assert bracket.gold.winner_id == 10
    assert bracket.complete


def test_scores_for_later_rounds_wait_on_feeders():
    # A final score recorded before the semifinals is kept but cannot decide anything
    bracket = resolve_bracket(SEEDS, 4, [score(2, 1, (11, 2))])

    assert bracket.gold.score is not None
    assert bracket.gold.winner_id is None


def test_resolution_is_deterministic():
    scores = [score(1, 1, (11, 3)), score(1, 2, (8, 11)), score(2, 1, (11, 9))]

    first = resolve_bracket(SEEDS, 4, scores).to_dict()
    second = resolve_bracket(SEEDS, 4, list(reversed(scores))).to_dict()
    assert first == second


def test_find_match_covers_bronze_and_rejects_unknown():
    bracket = resolve_bracket(SEEDS, 4, [])

    assert bracket.find_match(2, 2) is bracket.bronze
    assert bracket.find_match(1, 2) is bracket.rounds[0][1]
    assert bracket.find_match(3, 1) is None
    assert bracket.find_match(1, 5) is None


def test_extra_games_only_on_flagged_final_matches():
    bracket = resolve_bracket(SEEDS, 4, [], best_of_three=True, bronze_best_of_three=False)

    assert allows_extra_games(bracket, 2, 1)
    assert not allows_extra_games(bracket, 2, 2)
    assert not allows_extra_games(bracket, 1, 1)

    bracket = resolve_bracket(SEEDS, 4, [], best_of_three=False, bronze_best_of_three=True)
    assert not allows_extra_games(bracket, 2, 1)
    assert allows_extra_games(bracket, 2, 2)


@pytest.mark.parametrize(
    "size, round_number, match_number, label",
    [
        (2, 1, 1, "Finals"),
        (4, 1, 2, "Semi-finals"),
        (4, 2, 1, "Finals"),
        (4, 2, 2, "Bronze Match"),
        (8, 1, 3, "Quarter-finals"),
        (8, 2, 1, "Semi-finals"),
        (8, 3, 1, "Finals"),
        (8, 3, 2, "Bronze Match"),
    ],
)
def test_round_labels(size, round_number, match_number, label):
    assert round_label(size, round_number, match_number) == label
