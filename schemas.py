"""
Pydantic schemas：API 的輸入輸出，以及從資料庫讀出的房間快照

RoomSnapshot 是持久層的邊界：ORM row 轉成快照時會做型別與不變量檢查，
不符合的資料直接拒絕，而不是把奇怪的形狀傳給前端。
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models import GameMode, RoomStatus, UNPLACED_POSITION


# ============ Room ============

class RoomCreateResponse(BaseModel):
    room_id: str
    moderator_token: str


class ActionResponse(BaseModel):
    status: str = "ok"
    state_version: int


# ============ Player ============

class PlayerJoin(BaseModel):
    name: str = Field(..., min_length=1, max_length=20)
    player_id: Optional[str] = Field(None, min_length=1, max_length=64)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class PlayerResponse(BaseModel):
    player_id: str
    room_id: str
    name: str
    is_moderator: bool = False


# ============ Round ============

class StartRoundRequest(BaseModel):
    game_mode: Optional[GameMode] = None


class PositionUpdate(BaseModel):
    player_id: str
    card_index: int = Field(..., ge=0)
    position: int = Field(..., ge=0)


class ScaleLabelUpdate(BaseModel):
    player_id: str
    card_index: int = Field(..., ge=0)
    label: str = Field("", max_length=100)


class CardEntry(BaseModel):
    player_id: str
    player_name: str
    card_number: int = Field(..., ge=1, le=100)
    card_index: int = Field(..., ge=0)
    position: int = Field(..., ge=0)
    scale_label: str = ""


class RoundEndResponse(BaseModel):
    is_correct: bool
    card_order: List[CardEntry]
    state_version: int


# ============ Snapshot ============

class ThemeInfo(BaseModel):
    interval: int = Field(..., ge=0, le=19)
    range: List[int]
    scale: str


class PlayerSnapshot(BaseModel):
    name: str
    # None = 這張牌對目前的觀看者隱藏
    cards: List[Optional[int]]
    card_positions: List[int]
    scale_labels: List[str] = []
    joined_at: datetime
    is_moderator: bool = False

    @field_validator("cards")
    @classmethod
    def cards_in_deck(cls, cards: List[Optional[int]]) -> List[Optional[int]]:
        for card in cards:
            if card is not None and not 1 <= card <= 100:
                raise ValueError(f"card {card} is outside 1..100")
        return cards

    @field_validator("card_positions")
    @classmethod
    def positions_non_negative(cls, positions: List[int]) -> List[int]:
        if any(position < 0 for position in positions):
            raise ValueError("card positions must be non-negative")
        return positions

    @model_validator(mode="after")
    def hand_shape_matches(self):
        if len(self.cards) != len(self.card_positions):
            raise ValueError(
                f"{len(self.cards)} cards but {len(self.card_positions)} positions"
            )
        return self


class RoomSnapshot(BaseModel):
    room_id: str = Field(..., min_length=8, max_length=8)
    state: RoomStatus
    closed: bool
    closed_at: Optional[datetime] = None
    created_at: datetime
    moderator_player_id: Optional[str] = None
    game_mode: Optional[GameMode] = None
    theme_card: Optional[int] = Field(None, ge=1, le=100)
    theme_interval: Optional[int] = Field(None, ge=0, le=19)
    theme: Optional[ThemeInfo] = None
    players: Dict[str, PlayerSnapshot]
    card_order: List[CardEntry] = []
    is_correct_order: Optional[bool] = None
    kicked_players: List[str] = []
    state_version: int
    polling_interval_ms: int

    @model_validator(mode="after")
    def round_fields_consistent(self):
        if self.state == RoomStatus.WAITING and self.theme_card is not None:
            raise ValueError("waiting room must not carry a theme card")
        if self.state != RoomStatus.WAITING and self.theme_card is None:
            raise ValueError(f"{self.state.value} room is missing its theme card")
        if self.theme_card is not None and self.theme_interval != (self.theme_card - 1) // 5:
            raise ValueError(
                f"theme interval {self.theme_interval} does not match card {self.theme_card}"
            )
        if self.state == RoomStatus.PLAYING:
            occupied = [
                position
                for player in self.players.values()
                for position in player.card_positions
                if position != UNPLACED_POSITION
            ]
            if len(occupied) != len(set(occupied)):
                raise ValueError("two cards occupy the same position")
        return self
