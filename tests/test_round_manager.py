import random

import pytest

import core.round_manager as round_manager
from core.room_manager import RoomManager
from core.round_manager import RoundManager
from core.exceptions import (
    InsufficientPlayers,
    InvalidStateTransition,
    InvalidCardIndex,
    InvalidPosition,
    PlayerNotFound,
    ModeratorOnly,
)
from models import GameMode, RoomStatus
from services import deck_service
from services.position_service import occupied_positions_are_distinct


def hands(room):
    return {p.id: (list(p.cards), list(p.card_positions)) for p in room.players}


def sort_by_true_values(db, room):
    """Every player moves their cards so positions follow the real card values."""
    cards = sorted(
        (card, p.id, index)
        for p in RoomManager.get_room_by_id(db, room.id).players
        for index, card in enumerate(p.cards)
    )
    for rank, (_, player_id, card_index) in enumerate(cards):
        RoundManager.update_position(db, room.id, player_id, card_index, rank)


@pytest.fixture()
def seeded_deal(monkeypatch):
    """Deal from a known shuffle so tests can predict hands and the theme card."""
    def deal(player_ids, cards_per_player):
        return deck_service.deal_cards(player_ids, cards_per_player, random.Random(7))

    monkeypatch.setattr(round_manager, "deal_cards", deal)
    return deck_service.shuffle_deck(deck_service.create_deck(), random.Random(7))


def test_start_with_one_player_leaves_room_untouched(db, room):
    RoomManager.join_room(db, room.id, "Alice")

    with pytest.raises(InsufficientPlayers):
        RoundManager.start_round(db, room.id, room.moderator_token, GameMode.ADVENTUROUS)

    reloaded = RoomManager.get_room_by_id(db, room.id)
    assert reloaded.status == RoomStatus.WAITING
    assert reloaded.theme_card is None
    assert reloaded.state_version == 1
    assert all(p.cards == [] and p.card_positions == [] for p in reloaded.players)


def test_start_requires_moderator(db, two_player_room):
    with pytest.raises(ModeratorOnly):
        RoundManager.start_round(db, two_player_room.id, "wrong")


def test_adventurous_round_deals_two_cards_each(db, two_player_room, seeded_deal):
    room = RoundManager.start_round(db, two_player_room.id, two_player_room.moderator_token, GameMode.ADVENTUROUS)

    assert room.status == RoomStatus.PLAYING
    assert room.game_mode == GameMode.ADVENTUROUS
    dealt = hands(room)
    assert dealt["alice"] == (seeded_deal[0:2], [0, 1])
    assert dealt["bob"] == (seeded_deal[2:4], [2, 3])
    assert room.theme_card == seeded_deal[4]
    assert room.theme_interval == (seeded_deal[4] - 1) // 5
    assert room.card_order == []
    assert room.is_correct_order is None


def test_simplified_round_deals_one_card_each(db, two_player_room):
    RoomManager.join_room(db, two_player_room.id, "Carol", player_id="carol")

    room = RoundManager.start_round(db, two_player_room.id, two_player_room.moderator_token, GameMode.SIMPLIFIED)

    assert all(len(p.cards) == 1 for p in room.players)
    assert sorted(pos for p in room.players for pos in p.card_positions) == [0, 1, 2]


def test_start_twice_is_rejected(db, two_player_room):
    token = two_player_room.moderator_token
    RoundManager.start_round(db, two_player_room.id, token)
    before = hands(RoomManager.get_room_by_id(db, two_player_room.id))

    with pytest.raises(InvalidStateTransition):
        RoundManager.start_round(db, two_player_room.id, token)

    assert hands(RoomManager.get_room_by_id(db, two_player_room.id)) == before


def test_update_position_swaps_with_other_player(db, two_player_room):
    room = RoundManager.start_round(db, two_player_room.id, two_player_room.moderator_token, GameMode.ADVENTUROUS)

    room = RoundManager.update_position(db, room.id, "alice", 0, 3)

    positions = {p.id: p.card_positions for p in room.players}
    assert positions == {"alice": [3, 1], "bob": [2, 0]}


def test_update_position_swaps_within_own_hand(db, two_player_room):
    room = RoundManager.start_round(db, two_player_room.id, two_player_room.moderator_token, GameMode.ADVENTUROUS)

    room = RoundManager.update_position(db, room.id, "bob", 1, 2)

    positions = {p.id: p.card_positions for p in room.players}
    assert positions == {"alice": [0, 1], "bob": [3, 2]}


def test_update_position_validates_input(db, two_player_room):
    room = RoundManager.start_round(db, two_player_room.id, two_player_room.moderator_token, GameMode.ADVENTUROUS)

    with pytest.raises(InvalidCardIndex):
        RoundManager.update_position(db, room.id, "alice", 2, 0)
    with pytest.raises(InvalidPosition):
        RoundManager.update_position(db, room.id, "alice", 0, 4)
    with pytest.raises(PlayerNotFound):
        RoundManager.update_position(db, room.id, "ghost", 0, 0)


def test_spectator_cannot_move_cards(db, two_player_room):
    room = RoundManager.start_round(db, two_player_room.id, two_player_room.moderator_token)
    RoomManager.join_room(db, room.id, "Carol", player_id="carol")

    with pytest.raises(InvalidCardIndex):
        RoundManager.update_position(db, room.id, "carol", 0, 0)


def test_swap_onto_occupied_slot_after_mid_round_kick(db, two_player_room):
    RoomManager.join_room(db, two_player_room.id, "Carol", player_id="carol")
    room = RoundManager.start_round(db, two_player_room.id, two_player_room.moderator_token, GameMode.ADVENTUROUS)
    RoomManager.kick_player(db, room.id, "alice", room.moderator_token)

    # bob [2, 3], carol [4, 5]: four cards left but carol still sits on 5
    room = RoundManager.update_position(db, room.id, "bob", 0, 5)

    positions = {p.id: p.card_positions for p in room.players}
    assert positions == {"bob": [5, 3], "carol": [4, 2]}
    with pytest.raises(InvalidPosition):
        RoundManager.update_position(db, room.id, "bob", 0, 6)


def test_update_position_outside_playing_is_rejected(db, two_player_room):
    with pytest.raises(InvalidStateTransition):
        RoundManager.update_position(db, two_player_room.id, "alice", 0, 0)


def test_many_moves_never_share_a_slot(db, two_player_room):
    RoomManager.join_room(db, two_player_room.id, "Carol", player_id="carol")
    room = RoundManager.start_round(db, two_player_room.id, two_player_room.moderator_token, GameMode.ADVENTUROUS)
    rng = random.Random(11)

    for _ in range(40):
        mover = rng.choice(["alice", "bob", "carol"])
        room = RoundManager.update_position(db, room.id, mover, rng.randrange(2), rng.randrange(6))
        assert occupied_positions_are_distinct({p.id: p.card_positions for p in room.players})


def test_sorted_round_ends_correct(db, two_player_room):
    token = two_player_room.moderator_token
    room = RoundManager.start_round(db, two_player_room.id, token, GameMode.ADVENTUROUS)
    sort_by_true_values(db, room)

    room, is_correct, card_order = RoundManager.end_round(db, room.id, token)

    assert is_correct is True
    assert room.status == RoomStatus.ENDED
    assert room.is_correct_order is True
    assert [c["position"] for c in card_order] == [0, 1, 2, 3]
    assert [c["card_number"] for c in card_order] == sorted(c["card_number"] for c in card_order)
    assert room.card_order == card_order


def test_reverse_sorted_round_ends_incorrect(db, two_player_room):
    token = two_player_room.moderator_token
    room = RoundManager.start_round(db, two_player_room.id, token, GameMode.ADVENTUROUS)
    cards = sorted(
        ((card, p.id, index) for p in room.players for index, card in enumerate(p.cards)),
        reverse=True,
    )
    for rank, (_, player_id, card_index) in enumerate(cards):
        RoundManager.update_position(db, room.id, player_id, card_index, rank)

    _, is_correct, _ = RoundManager.end_round(db, room.id, token)

    assert is_correct is False


def test_scale_labels_show_up_in_reveal(db, two_player_room):
    token = two_player_room.moderator_token
    room = RoundManager.start_round(db, two_player_room.id, token, GameMode.SIMPLIFIED)

    RoundManager.set_scale_label(db, room.id, "alice", 0, "  lukewarm  ")
    _, _, card_order = RoundManager.end_round(db, room.id, token)

    labels = {c["player_id"]: c["scale_label"] for c in card_order}
    assert labels == {"alice": "lukewarm", "bob": ""}


def test_end_round_outside_playing_is_rejected(db, two_player_room):
    with pytest.raises(InvalidStateTransition):
        RoundManager.end_round(db, two_player_room.id, two_player_room.moderator_token)


def test_reset_clears_round_but_keeps_roster(db, two_player_room):
    token = two_player_room.moderator_token
    RoundManager.start_round(db, two_player_room.id, token)
    RoundManager.end_round(db, two_player_room.id, token)

    room = RoundManager.reset_round(db, two_player_room.id, token)

    assert room.status == RoomStatus.WAITING
    assert room.theme_card is None
    assert room.theme_interval is None
    assert room.card_order == []
    assert room.is_correct_order is None
    assert sorted(p.id for p in room.players) == ["alice", "bob"]
    assert all(p.cards == [] and p.card_positions == [] for p in room.players)


def test_reset_from_waiting_is_allowed_but_not_from_playing(db, two_player_room):
    token = two_player_room.moderator_token
    RoundManager.reset_round(db, two_player_room.id, token)

    RoundManager.start_round(db, two_player_room.id, token)
    with pytest.raises(InvalidStateTransition):
        RoundManager.reset_round(db, two_player_room.id, token)


def test_cards_in_order_is_available_mid_round(db, two_player_room):
    room = RoundManager.start_round(db, two_player_room.id, two_player_room.moderator_token)

    cards = RoundManager.get_cards_in_order(db, room.id)

    assert [c["position"] for c in cards] == [0, 1, 2, 3]
    assert RoomManager.get_room_by_id(db, room.id).status == RoomStatus.PLAYING
