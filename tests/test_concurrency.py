"""
Two sessions on a file-backed SQLite database, interleaved by hand.

The shared in-memory engine from conftest hands every session the same
connection, so locking between requests only shows up on a real file.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from core.exceptions import ConcurrentUpdate
from core.locks import with_room_lock
from core.room_manager import RoomManager
from core.round_manager import RoundManager
from database import Base, configure_sqlite_locking, transactional
from models import GameMode, Room
from services.position_service import apply_position_swap, occupied_positions_are_distinct
from services.state_service import bump_state_version


def file_engine(path, locking):
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False, "timeout": 0.1},
    )
    if locking:
        configure_sqlite_locking(engine)
    Base.metadata.create_all(bind=engine)
    return engine


def start_two_player_round(session_factory):
    """alice holds slots [0, 1], bob holds [2, 3]"""
    with session_factory() as db:
        room = RoomManager.create_room(db)
        room_id, token = room.id, room.moderator_token
        RoomManager.join_room(db, room_id, "Alice", player_id="alice")
        RoomManager.join_room(db, room_id, "Bob", player_id="bob")
        RoundManager.start_round(db, room_id, token, GameMode.ADVENTUROUS)
    return room_id


def positions_in(session_factory, room_id):
    with session_factory() as db:
        room = RoomManager.get_room_by_id(db, room_id)
        return {p.id: list(p.card_positions) for p in room.players}


@transactional
def move_from_loaded_room(db, room, player_id, card_index, new_position):
    """Write back a move computed from a room loaded earlier, without re-reading it."""
    current = {p.id: list(p.card_positions) for p in room.players}
    updated = apply_position_swap(current, player_id, card_index, new_position)
    for p in room.players:
        if updated[p.id] != current[p.id]:
            p.card_positions = updated[p.id]
    bump_state_version(db, room, reason="position_updated")
    return room


@pytest.fixture()
def locking_sessions(tmp_path):
    engine = file_engine(tmp_path / "rooms.db", locking=True)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def plain_sessions(tmp_path):
    engine = file_engine(tmp_path / "rooms.db", locking=False)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def test_room_lock_blocks_other_writers_until_released(locking_sessions):
    room_id = start_two_player_round(locking_sessions)
    holder = locking_sessions()
    mover = locking_sessions()
    try:
        assert with_room_lock(room_id, holder).first() is not None

        with pytest.raises(OperationalError):
            RoundManager.update_position(mover, room_id, "bob", 0, 0)

        holder.rollback()
        RoundManager.update_position(mover, room_id, "bob", 0, 0)
    finally:
        holder.close()
        mover.close()

    assert positions_in(locking_sessions, room_id) == {"alice": [2, 1], "bob": [0, 3]}


def test_write_from_stale_read_is_rejected(plain_sessions):
    room_id = start_two_player_round(plain_sessions)
    stale = plain_sessions()
    fresh = plain_sessions()
    try:
        room = stale.query(Room).filter(Room.id == room_id).one()
        assert [p.id for p in room.players] == ["alice", "bob"]

        RoundManager.update_position(fresh, room_id, "bob", 0, 0)

        with pytest.raises(ConcurrentUpdate):
            move_from_loaded_room(stale, room, "alice", 0, 1)
    finally:
        stale.close()
        fresh.close()

    positions = positions_in(plain_sessions, room_id)
    assert positions == {"alice": [2, 1], "bob": [0, 3]}
    assert occupied_positions_are_distinct(positions)


def test_sequential_writes_in_one_session_keep_working(plain_sessions):
    room_id = start_two_player_round(plain_sessions)
    with plain_sessions() as db:
        RoundManager.update_position(db, room_id, "alice", 0, 3)
        room = RoundManager.update_position(db, room_id, "bob", 0, 0)
        version = room.state_version

    assert positions_in(plain_sessions, room_id) == {"alice": [3, 1], "bob": [0, 2]}
    with plain_sessions() as db:
        assert RoomManager.get_room_by_id(db, room_id).state_version == version
