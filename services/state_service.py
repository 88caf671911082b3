"""
State service: state_version bookkeeping, event log and room snapshots.

Clients poll GET /state; state_version lets them skip re-rendering when
nothing changed since the last poll.
"""
from typing import Any, Dict, Optional
import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session

from core.exceptions import CorruptRoomDocument
from models import EventLog, Room, RoomStatus
from schemas import PlayerSnapshot, RoomSnapshot
from services.theme_service import get_theme

logger = logging.getLogger(__name__)


def bump_state_version(db: Session, room: Room, reason: str) -> int:
    """
    Increment the room's state_version inside the caller's transaction.

    state_version is also the mapper's version_id_col, so the flush issues
    UPDATE rooms ... WHERE state_version = <value read>. A write computed from
    a snapshot that another request already replaced fails with StaleDataError.
    """
    room.state_version = (room.state_version or 0) + 1
    db.add(room)
    logger.debug(f"Room {room.id} state_version -> {room.state_version} ({reason})")
    return room.state_version


def record_event(db: Session, room_id: str, event_type: str, data: Optional[Dict[str, Any]] = None) -> EventLog:
    event = EventLog(room_id=room_id, event_type=event_type, data=data or {})
    db.add(event)
    return event


def build_room_snapshot(
    room: Room,
    polling_interval_ms: int,
    viewer_player_id: Optional[str] = None,
    reveal_all: bool = False
) -> RoomSnapshot:
    """
    Convert a Room row into a validated RoomSnapshot.

    While a round is being played only the viewer's own card values are
    visible; everyone else's show up as None (positions stay visible so the
    shared ordering can be rendered). The moderator view reveals all.

    Raises CorruptRoomDocument when the stored row violates the room shape.
    """
    hide_others = room.status == RoomStatus.PLAYING and not reveal_all

    players = {}
    for player in room.players:
        cards = list(player.cards or [])
        if hide_others and player.id != viewer_player_id:
            cards = [None] * len(cards)
        players[player.id] = {
            "name": player.name,
            "cards": cards,
            "card_positions": list(player.card_positions or []),
            "scale_labels": list(player.scale_labels or []),
            "joined_at": player.joined_at,
            "is_moderator": player.id == room.moderator_player_id,
        }

    try:
        theme = get_theme(room.theme_interval) if room.theme_interval is not None else None
        return RoomSnapshot(
            room_id=room.id,
            state=room.status,
            closed=room.closed,
            closed_at=room.closed_at,
            created_at=room.created_at,
            moderator_player_id=room.moderator_player_id,
            game_mode=room.game_mode,
            theme_card=room.theme_card,
            theme_interval=room.theme_interval,
            theme=theme,
            players={pid: PlayerSnapshot(**data) for pid, data in players.items()},
            card_order=room.card_order or [],
            is_correct_order=room.is_correct_order,
            kicked_players=list(room.kicked_players or []),
            state_version=room.state_version or 0,
            polling_interval_ms=polling_interval_ms,
        )
    except (ValidationError, ValueError) as e:
        logger.error(f"Room {room.id} failed snapshot validation: {e}")
        raise CorruptRoomDocument(f"Room {room.id} has malformed data") from e
