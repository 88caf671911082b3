"""
房間狀態機：集中管理所有狀態轉換

WAITING -> PLAYING -> ENDED -> WAITING -> ...

closed 是獨立的旗標：
- 只能在 WAITING 或 ENDED 時關閉（回合進行中關房會讓玩家卡住）
- 關閉後不能再有任何變更
"""
from sqlalchemy.orm import Session
import logging

from models import Room, RoomStatus, utcnow
from core.exceptions import InvalidStateTransition, RoomClosed
from services.state_service import bump_state_version, record_event

logger = logging.getLogger(__name__)


class RoomStateMachine:
    """Room 狀態轉換規則"""

    ALLOWED_TRANSITIONS = {
        RoomStatus.WAITING: {RoomStatus.PLAYING, RoomStatus.WAITING},
        RoomStatus.PLAYING: {RoomStatus.ENDED},
        RoomStatus.ENDED: {RoomStatus.WAITING},
    }

    CLOSABLE_STATES = {RoomStatus.WAITING, RoomStatus.ENDED}

    @classmethod
    def can_transition(cls, current: RoomStatus, target: RoomStatus) -> bool:
        return target in cls.ALLOWED_TRANSITIONS.get(current, set())

    @staticmethod
    def ensure_open(room: Room) -> None:
        if room.closed:
            raise RoomClosed(room.id)

    @classmethod
    def ensure_status(cls, room: Room, *expected: RoomStatus) -> None:
        """要求房間處於某些狀態之一，否則拋 InvalidStateTransition"""
        if room.status not in expected:
            allowed = ", ".join(status.value for status in expected)
            raise InvalidStateTransition(
                f"Room {room.id} is {room.status.value}, expected one of: {allowed}"
            )

    @classmethod
    def transition(cls, db: Session, room: Room, target: RoomStatus) -> Room:
        """
        轉換房間狀態（呼叫者必須已經用 with_room_lock 鎖住 room）

        效果：
        - 檢查房間未關閉
        - 檢查轉換合法
        - 更新狀態、state_version，記錄 ROOM_STATE_CHANGED 事件

        異常：
            RoomClosed: 房間已關閉
            InvalidStateTransition: 不允許的轉換
        """
        cls.ensure_open(room)

        current = room.status
        if not cls.can_transition(current, target):
            raise InvalidStateTransition(
                f"Room {room.id} cannot go from {current.value} to {target.value}"
            )

        room.status = target
        bump_state_version(db, room, reason=f"{current.value}->{target.value}")
        record_event(db, room.id, "ROOM_STATE_CHANGED", {
            "from": current.value,
            "to": target.value,
        })

        logger.info(f"Room {room.id}: {current.value} -> {target.value}")
        return room

    @classmethod
    def close(cls, db: Session, room: Room) -> Room:
        """關閉房間，不可逆"""
        cls.ensure_open(room)
        if room.status not in cls.CLOSABLE_STATES:
            raise InvalidStateTransition(
                f"Room {room.id} cannot be closed while {room.status.value}"
            )

        room.closed = True
        room.closed_at = utcnow()
        bump_state_version(db, room, reason="closed")
        record_event(db, room.id, "ROOM_CLOSED", {"status": room.status.value})

        logger.info(f"Room {room.id} closed")
        return room
