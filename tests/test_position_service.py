import random

from models import UNPLACED_POSITION
from services.position_service import (
    initial_positions,
    find_card_at,
    apply_position_swap,
    occupied_positions_are_distinct,
)


def test_initial_positions_are_sequential_per_player_then_card():
    assert initial_positions(["a", "b"], 2) == {"a": [0, 1], "b": [2, 3]}
    assert initial_positions(["a", "b", "c"], 1) == {"a": [0], "b": [1], "c": [2]}


def test_find_card_at():
    positions = {"a": [0, 1], "b": [2, 3]}

    assert find_card_at(positions, 3) == ("b", 1)
    assert find_card_at(positions, 7) is None
    assert find_card_at({"a": [UNPLACED_POSITION]}, UNPLACED_POSITION) is None


def test_move_onto_another_players_card_swaps():
    positions = {"a": [0, 1], "b": [2, 3]}

    result = apply_position_swap(positions, "a", 0, 3)

    assert result == {"a": [3, 1], "b": [2, 0]}
    assert positions == {"a": [0, 1], "b": [2, 3]}


def test_move_onto_own_other_card_swaps_within_hand():
    result = apply_position_swap({"a": [0, 1], "b": [2, 3]}, "a", 1, 0)

    assert result == {"a": [1, 0], "b": [2, 3]}


def test_move_to_free_slot_just_moves():
    result = apply_position_swap({"a": [UNPLACED_POSITION, 1], "b": [2]}, "a", 0, 0)

    assert result == {"a": [0, 1], "b": [2]}


def test_unplaced_card_displacing_another_sends_it_to_unplaced():
    result = apply_position_swap({"a": [UNPLACED_POSITION], "b": [0]}, "a", 0, 0)

    assert result == {"a": [0], "b": [UNPLACED_POSITION]}
    assert occupied_positions_are_distinct(result)


def test_move_to_same_position_changes_nothing():
    positions = {"a": [0, 1], "b": [2, 3]}

    assert apply_position_swap(positions, "b", 0, 2) == positions


def test_distinct_check_ignores_unplaced():
    assert occupied_positions_are_distinct({"a": [UNPLACED_POSITION], "b": [UNPLACED_POSITION, 0]})
    assert not occupied_positions_are_distinct({"a": [1], "b": [1]})


def test_random_move_sequences_keep_positions_distinct():
    rng = random.Random(2024)

    for _ in range(200):
        player_count = rng.randint(2, 10)
        cards_per_player = rng.choice([1, 2])
        player_ids = [f"p{i}" for i in range(player_count)]
        positions = initial_positions(player_ids, cards_per_player)
        slot_count = player_count * cards_per_player

        for _ in range(30):
            mover = rng.choice(player_ids)
            card_index = rng.randrange(cards_per_player)
            target = rng.randrange(slot_count)

            positions = apply_position_swap(positions, mover, card_index, target)

            assert positions[mover][card_index] == target
            assert occupied_positions_are_distinct(positions)
            assert sorted(p for hand in positions.values() for p in hand) == list(range(slot_count))
