from itertools import combinations

from pickleball_api.services.round_robin_schedule import generate_round_robin_pairings, playable_pairings


def _pair_set(pairs):
    return {frozenset(p) for p in pairs}


def test_even_field_meets_everyone_once():
    schedule = generate_round_robin_pairings([1, 2, 3, 4], rounds=3)

    assert len(schedule) == 3
    for pairs in schedule:
        assert len(pairs) == 2
        teams = [t for p in pairs for t in p]
        assert sorted(teams) == [1, 2, 3, 4]

    played = [frozenset(p) for pairs in schedule for p in pairs]
    assert len(played) == len(set(played))
    assert set(played) == _pair_set(combinations([1, 2, 3, 4], 2))


def test_first_round_pairs_strongest_with_weakest():
    schedule = generate_round_robin_pairings([1, 2, 3, 4, 5, 6], rounds=1)

    assert schedule[0][0] == (1, 6)


def test_odd_field_gives_one_bye_per_round():
    schedule = generate_round_robin_pairings([1, 2, 3, 4, 5], rounds=5)

    sitting_out = []
    for pairs in schedule:
        byes = [p for p in pairs if None in p]
        assert len(byes) == 1
        sitting_out.append(next(t for t in byes[0] if t is not None))
    assert sorted(sitting_out) == [1, 2, 3, 4, 5]

    flat = playable_pairings(schedule)
    assert len(flat) == 10
    assert _pair_set((t1, t2) for _, t1, t2 in flat) == _pair_set(combinations([1, 2, 3, 4, 5], 2))


def test_extra_rounds_cycle_the_rotation():
    schedule = generate_round_robin_pairings([1, 2, 3, 4], rounds=6)

    assert len(schedule) == 6
    assert schedule[3] == schedule[0]
    assert schedule[4] == schedule[1]


def test_degenerate_inputs():
    assert generate_round_robin_pairings([], rounds=3) == []
    assert generate_round_robin_pairings([7], rounds=3) == []
    assert len(generate_round_robin_pairings([1, 2], rounds=0)) == 1


def test_playable_pairings_numbers_rounds_from_one():
    schedule = generate_round_robin_pairings([1, 2, 3], rounds=3)
    flat = playable_pairings(schedule)

    assert [r for r, _, _ in flat] == [1, 2, 3]
    assert all(t1 is not None and t2 is not None for _, t1, t2 in flat)
