import pytest

from core.exceptions import CorruptRoomDocument
from core.room_manager import RoomManager
from core.round_manager import RoundManager
from models import GameMode
from services.state_service import build_room_snapshot


def snapshot(db, room_id):
    return build_room_snapshot(RoomManager.get_room_by_id(db, room_id), 5000, reveal_all=True)


@pytest.fixture()
def playing_room(db, two_player_room):
    return RoundManager.start_round(
        db, two_player_room.id, two_player_room.moderator_token, GameMode.ADVENTUROUS
    )


def test_healthy_room_snapshot(db, playing_room):
    result = snapshot(db, playing_room.id)

    assert result.state_version == playing_room.state_version
    assert sorted(result.players) == ["alice", "bob"]


@pytest.mark.parametrize("bad_card", [0, 101])
def test_card_outside_deck_is_corrupt(db, two_player_room, bad_card):
    alice = two_player_room.get_player("alice")
    alice.cards = [bad_card]
    alice.card_positions = [0]
    db.commit()

    with pytest.raises(CorruptRoomDocument):
        snapshot(db, two_player_room.id)


def test_cards_and_positions_of_different_length_are_corrupt(db, playing_room):
    playing_room.get_player("bob").card_positions = [2]
    db.commit()

    with pytest.raises(CorruptRoomDocument):
        snapshot(db, playing_room.id)


def test_theme_interval_not_matching_theme_card_is_corrupt(db, playing_room):
    playing_room.theme_interval = (playing_room.theme_interval + 1) % 20
    db.commit()

    with pytest.raises(CorruptRoomDocument):
        snapshot(db, playing_room.id)


def test_two_cards_on_one_slot_while_playing_is_corrupt(db, playing_room):
    # bob holds slots 2 and 3
    playing_room.get_player("alice").card_positions = [2, 1]
    db.commit()

    with pytest.raises(CorruptRoomDocument):
        snapshot(db, playing_room.id)


def test_theme_card_in_waiting_room_is_corrupt(db, two_player_room):
    two_player_room.theme_card = 42
    two_player_room.theme_interval = 8
    db.commit()

    with pytest.raises(CorruptRoomDocument):
        snapshot(db, two_player_room.id)
