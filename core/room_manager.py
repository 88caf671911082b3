"""
Room Manager：管理 Room 的完整生命週期

職責：
1. 建立 Room（含主持人 token）
2. 玩家加入、離開、被踢
3. 關閉、刪除房間
4. 查詢 Room 資訊

原則：
- 單一職責：只管 Room 與名單，回合邏輯在 RoundManager
- 每個會修改資料的方法：鎖住 Room -> 檢查前置條件 -> 計算 -> 一次 commit
- 任何前置條件不符都直接拋異常，不會留下部分寫入
"""
from sqlalchemy.orm import Session
from typing import Optional, Tuple
import logging
import secrets

from models import Room, Player, RoomStatus, utcnow
from core.state_machine import RoomStateMachine
from core.locks import with_room_lock
from core.exceptions import (
    RoomNotFound,
    PlayerNotFound,
    PlayerKicked,
    ModeratorOnly,
    Forbidden,
    RoomFull,
)
from services.naming_service import (
    generate_room_code,
    generate_player_id,
    generate_moderator_token,
)
from services.state_service import bump_state_version, record_event
from database import transactional, get_settings

logger = logging.getLogger(__name__)


def normalize_room_id(room_id: str) -> str:
    return (room_id or "").strip().upper()


def is_moderator(room: Room, moderator_token: Optional[str]) -> bool:
    if not moderator_token:
        return False
    return secrets.compare_digest(room.moderator_token, moderator_token)


class RoomManager:
    """Room 生命週期管理器"""

    @staticmethod
    def lock_room(db: Session, room_id: str) -> Room:
        """鎖住並重新讀取 Room（read-modify-write 的 read）"""
        room = with_room_lock(normalize_room_id(room_id), db).first()
        if not room:
            raise RoomNotFound(room_id)
        return room

    @staticmethod
    def require_moderator(room: Room, moderator_token: Optional[str]) -> None:
        if not is_moderator(room, moderator_token):
            raise ModeratorOnly(f"Only the moderator of room {room.id} can do this")

    @staticmethod
    @transactional
    def create_room(db: Session) -> Room:
        """
        建立新房間

        流程：
        1. 生成唯一的 8 位房間代碼（碰撞就重新生成）
        2. 建立 WAITING、沒有玩家、未關閉的 Room
        3. 記錄事件

        返回：
            Room（moderator_token 只在這裡交給建立者）
        """
        code = generate_room_code()
        while db.query(Room).filter(Room.id == code).first():
            logger.warning(f"Room code collision detected, regenerating: {code}")
            code = generate_room_code()

        room = Room(
            id=code,
            status=RoomStatus.WAITING,
            closed=False,
            created_at=utcnow(),
            moderator_token=generate_moderator_token(),
            card_order=[],
            kicked_players=[],
            state_version=0,
        )
        db.add(room)
        db.flush()

        record_event(db, room.id, "ROOM_CREATED", {"code": code})
        logger.info(f"Created room {room.id}")

        return room

    @staticmethod
    @transactional
    def join_room(
        db: Session,
        room_id: str,
        name: str,
        player_id: Optional[str] = None,
        moderator_token: Optional[str] = None,
    ) -> Tuple[Player, bool]:
        """
        玩家加入房間（任何狀態都可以加入；回合進行中加入的人下一回合才拿牌）

        前置條件：
        1. 房間存在（RoomNotFound）
        2. 身分不在被踢名單（PlayerKicked）
        3. 房間未關閉（RoomClosed）
        4. 房間未滿（RoomFull）

        參數：
            player_id: 前端保存的身分；沒有就生成新的
            moderator_token: 主持人自己也要拿牌時帶上

        返回：
            (Player, 是否為新加入)；已在房間內的身分直接返回原本的 Player
        """
        room = RoomManager.lock_room(db, room_id)

        if player_id and player_id in (room.kicked_players or []):
            raise PlayerKicked(room.id, player_id)
        RoomStateMachine.ensure_open(room)

        if player_id:
            existing = room.get_player(player_id)
            if existing:
                logger.info(f"Player {player_id} re-entered room {room.id}")
                return existing, False

        wants_moderator_seat = moderator_token is not None
        if wants_moderator_seat:
            RoomManager.require_moderator(room, moderator_token)

        max_players = get_settings().max_players
        if len(room.players) >= max_players:
            raise RoomFull(f"Room {room.id} already has {max_players} players")

        player = Player(
            id=player_id or generate_player_id(),
            room_id=room.id,
            name=name,
            cards=[],
            card_positions=[],
            scale_labels=[],
            joined_at=utcnow(),
        )
        room.players.append(player)

        if wants_moderator_seat and room.moderator_player_id is None:
            room.moderator_player_id = player.id

        bump_state_version(db, room, reason="player_joined")
        record_event(db, room.id, "PLAYER_JOINED", {
            "player_id": player.id,
            "name": name,
            "status": room.status.value,
        })

        logger.info(f"Player {player.id} ({name}) joined room {room.id} ({room.status.value})")
        return player, True

    @staticmethod
    @transactional
    def leave_room(db: Session, room_id: str, player_id: str) -> Room:
        """玩家自行離開（不會被加入被踢名單，之後可以再加入）"""
        room = RoomManager.lock_room(db, room_id)
        RoomStateMachine.ensure_open(room)

        player = room.get_player(player_id)
        if not player:
            raise PlayerNotFound(player_id)

        room.players.remove(player)
        if room.moderator_player_id == player_id:
            room.moderator_player_id = None

        bump_state_version(db, room, reason="player_left")
        record_event(db, room.id, "PLAYER_LEFT", {"player_id": player_id})

        logger.info(f"Player {player_id} left room {room.id}")
        return room

    @staticmethod
    @transactional
    def kick_player(db: Session, room_id: str, player_id: str, moderator_token: Optional[str]) -> Room:
        """
        踢出玩家（主持人 endpoint）

        效果：
        - 從名單移除
        - 加入被踢名單（永久，reset 也不會清除）
        - 重複踢同一個身分不會有任何變化

        異常：
            ModeratorOnly: token 不符
            Forbidden: 不能踢主持人自己的座位
            PlayerNotFound: 從沒看過這個身分
        """
        room = RoomManager.lock_room(db, room_id)
        RoomManager.require_moderator(room, moderator_token)
        RoomStateMachine.ensure_open(room)

        if player_id == room.moderator_player_id:
            raise Forbidden("The moderator cannot kick their own seat; leave instead")

        kicked = list(room.kicked_players or [])
        player = room.get_player(player_id)
        if not player and player_id not in kicked:
            raise PlayerNotFound(player_id)

        if player:
            room.players.remove(player)
        if player_id not in kicked:
            kicked.append(player_id)
            room.kicked_players = kicked

        bump_state_version(db, room, reason="player_kicked")
        record_event(db, room.id, "PLAYER_KICKED", {"player_id": player_id})

        logger.info(f"Player {player_id} kicked from room {room.id}")
        return room

    @staticmethod
    @transactional
    def close_room(db: Session, room_id: str, moderator_token: Optional[str]) -> Room:
        """關閉房間（WAITING 或 ENDED 才可以，不可逆）"""
        room = RoomManager.lock_room(db, room_id)
        RoomManager.require_moderator(room, moderator_token)
        return RoomStateMachine.close(db, room)

    @staticmethod
    @transactional
    def delete_room(db: Session, room_id: str, moderator_token: Optional[str]) -> None:
        """管理用：直接刪除房間、玩家與事件紀錄"""
        room = RoomManager.lock_room(db, room_id)
        RoomManager.require_moderator(room, moderator_token)
        db.delete(room)
        logger.info(f"Deleted room {room.id}")

    @staticmethod
    def get_room_by_id(db: Session, room_id: str) -> Room:
        """
        透過房間代碼取得 Room（唯讀，不上鎖）

        異常：
            RoomNotFound: Room 不存在
        """
        room = db.query(Room).filter(Room.id == normalize_room_id(room_id)).first()
        if not room:
            raise RoomNotFound(room_id)
        return room
