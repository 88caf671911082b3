"""
ORM 模型

一個 Room row 就是一份「房間文件」：回合狀態、主題牌、揭曉順序、被踢名單都在 Room 上，
玩家手牌與位置放在 Player 的 JSON 欄位。JSON 欄位一律整個重新指派（不要 in-place 修改），
SQLAlchemy 才會偵測到變更。
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    String,
)
from sqlalchemy.orm import relationship

from database import Base

UNPLACED_POSITION = 999


def utcnow():
    return datetime.now(timezone.utc)


class RoomStatus(str, enum.Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    ENDED = "ended"


class GameMode(str, enum.Enum):
    SIMPLIFIED = "simplified"
    ADVENTUROUS = "adventurous"

    @property
    def cards_per_player(self) -> int:
        return 1 if self is GameMode.SIMPLIFIED else 2


class Room(Base):
    __tablename__ = "rooms"

    id = Column(String(8), primary_key=True)
    status = Column(Enum(RoomStatus), nullable=False, default=RoomStatus.WAITING)
    closed = Column(Boolean, nullable=False, default=False)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    moderator_token = Column(String(64), nullable=False)
    moderator_player_id = Column(String(64), nullable=True)

    game_mode = Column(Enum(GameMode), nullable=True)
    theme_card = Column(Integer, nullable=True)
    theme_interval = Column(Integer, nullable=True)
    card_order = Column(JSON, nullable=False, default=list)
    is_correct_order = Column(Boolean, nullable=True)
    kicked_players = Column(JSON, nullable=False, default=list)

    # 每次成功寫入都 +1，輪詢的前端用來判斷畫面是否需要更新；
    # 同時是樂觀鎖的版本號：UPDATE rooms ... WHERE state_version = 讀到的值
    state_version = Column(Integer, nullable=False, default=0)

    # 版本號由 bump_state_version 遞增（只改玩家位置時也要讓 Room row 被 UPDATE）
    __mapper_args__ = {
        "version_id_col": state_version,
        "version_id_generator": False,
    }

    players = relationship(
        "Player",
        back_populates="room",
        cascade="all, delete-orphan",
        # 發牌順序 = 加入順序
        order_by=lambda: [Player.joined_at, Player.id],
    )
    events = relationship("EventLog", back_populates="room", cascade="all, delete-orphan")

    def get_player(self, player_id: str):
        for player in self.players:
            if player.id == player_id:
                return player
        return None


class Player(Base):
    __tablename__ = "players"

    id = Column(String(64), primary_key=True)
    room_id = Column(String(8), ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String(20), nullable=False)
    cards = Column(JSON, nullable=False, default=list)
    card_positions = Column(JSON, nullable=False, default=list)
    scale_labels = Column(JSON, nullable=False, default=list)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    room = relationship("Room", back_populates="players")


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(String(8), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(32), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    room = relationship("Room", back_populates="events")
