"""
Round Manager：管理一個回合從發牌到揭曉

職責：
1. 開始回合（發牌、翻主題牌）
2. 回合中移動牌的位置（交換策略）、寫尺度標籤
3. 結束回合（揭曉、驗證順序）
4. 重置回合（回到 WAITING，保留名單與被踢名單）

並發：
- 每個方法都先 with_room_lock 重新讀取 Room，計算後整份寫回，一次 commit
- 位置一律以資料庫中最新的資料為準，不採用前端快取的狀態
"""
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional, Tuple
import logging

from models import Room, GameMode, RoomStatus, UNPLACED_POSITION
from core.room_manager import RoomManager
from core.state_machine import RoomStateMachine
from core.exceptions import (
    InsufficientPlayers,
    TooManyPlayers,
    PlayerNotFound,
    InvalidCardIndex,
    InvalidPosition,
    InvalidStateTransition,
)
from services.deck_service import deal_cards, TOTAL_CARDS
from services.order_service import get_all_cards_in_order, validate_card_order
from services.position_service import (
    initial_positions,
    find_card_at,
    apply_position_swap,
    occupied_positions_are_distinct,
)
from services.state_service import bump_state_version, record_event
from services.theme_service import get_theme_interval
from database import transactional, get_settings

logger = logging.getLogger(__name__)


class RoundManager:
    """回合生命週期管理器"""

    @staticmethod
    @transactional
    def start_round(
        db: Session,
        room_id: str,
        moderator_token: Optional[str],
        game_mode: Optional[GameMode] = None,
    ) -> Room:
        """
        開始回合（WAITING -> PLAYING）

        前置條件：
        1. 主持人 token 正確
        2. 房間未關閉、狀態為 WAITING
        3. 玩家數量 >= min_players 且 <= max_players

        流程：
        1. 依加入順序發牌（SIMPLIFIED 每人 1 張，ADVENTUROUS 每人 2 張）
        2. 位置預先排成 0..N-1（依玩家、再依手牌順序）
        3. 翻主題牌，計算主題區間
        4. 清空上一回合的揭曉結果

        異常：
            InsufficientPlayers: 玩家不足
            TooManyPlayers: 超過房間上限
            InvalidStateTransition: 房間不是 WAITING
        """
        settings = get_settings()
        room = RoomManager.lock_room(db, room_id)
        RoomManager.require_moderator(room, moderator_token)
        RoomStateMachine.ensure_open(room)
        RoomStateMachine.ensure_status(room, RoomStatus.WAITING)

        mode = game_mode or GameMode(settings.default_game_mode)
        players = list(room.players)
        player_ids = [p.id for p in players]

        if len(players) < settings.min_players:
            raise InsufficientPlayers(
                f"Need at least {settings.min_players} players to start a round, got {len(players)}"
            )
        if len(players) > settings.max_players or len(players) * mode.cards_per_player >= TOTAL_CARDS:
            raise TooManyPlayers(
                f"At most {settings.max_players} players can play, got {len(players)}"
            )

        distribution, theme_card = deal_cards(player_ids, mode.cards_per_player)
        positions = initial_positions(player_ids, mode.cards_per_player)

        for player in players:
            player.cards = list(distribution[player.id])
            player.card_positions = list(positions[player.id])
            player.scale_labels = [""] * mode.cards_per_player

        room.game_mode = mode
        room.theme_card = theme_card
        room.theme_interval = get_theme_interval(theme_card)
        room.card_order = []
        room.is_correct_order = None

        RoomStateMachine.transition(db, room, RoomStatus.PLAYING)
        record_event(db, room.id, "ROUND_STARTED", {
            "game_mode": mode.value,
            "player_count": len(players),
            "theme_card": theme_card,
        })

        logger.info(
            f"Round started in room {room.id}: {len(players)} players, "
            f"mode={mode.value}, theme_card={theme_card}"
        )
        return room

    @staticmethod
    @transactional
    def update_position(
        db: Session,
        room_id: str,
        player_id: str,
        card_index: int,
        new_position: int,
    ) -> Room:
        """
        移動自己的一張牌（PLAYING 限定）

        交換策略：
        - 目標位置若已有別張牌（也可能是自己的另一張），那張牌換到原本的位置
        - 移動前後所有已放置的位置都不重複

        參數：
            card_index: 自己的第幾張牌
            new_position: 0..(目前手牌總數 - 1)，或任何一張牌目前所在的位置

        異常：
            PlayerNotFound: 玩家不在房間
            InvalidCardIndex: 沒有這張牌（包括回合中途加入、手上沒牌的人）
            InvalidPosition: 位置超出範圍
        """
        room = RoomManager.lock_room(db, room_id)
        RoomStateMachine.ensure_open(room)
        RoomStateMachine.ensure_status(room, RoomStatus.PLAYING)

        player = room.get_player(player_id)
        if not player:
            raise PlayerNotFound(player_id)

        cards = player.cards or []
        if not 0 <= card_index < len(cards):
            raise InvalidCardIndex(card_index, len(cards))

        current = {p.id: list(p.card_positions or []) for p in room.players}

        # 中途有人離開時位置會有空洞，仍在牌上的位置可以超出目前的張數
        slot_count = sum(len(p.cards or []) for p in room.players)
        occupied = find_card_at(current, new_position) is not None
        if not (0 <= new_position < slot_count or occupied):
            raise InvalidPosition(new_position, slot_count)

        updated = apply_position_swap(current, player_id, card_index, new_position)

        if not occupied_positions_are_distinct(updated):
            # 只有資料本來就壞掉時才會發生
            raise InvalidStateTransition(f"Room {room.id} has overlapping card positions")

        for p in room.players:
            if updated[p.id] != current[p.id]:
                p.card_positions = updated[p.id]

        bump_state_version(db, room, reason="position_updated")
        logger.info(
            f"Room {room.id}: player {player_id} moved card {card_index} "
            f"from {current[player_id][card_index]} to {new_position}"
        )
        return room

    @staticmethod
    @transactional
    def set_scale_label(
        db: Session,
        room_id: str,
        player_id: str,
        card_index: int,
        label: str,
    ) -> Room:
        """玩家為自己的牌寫下尺度上的描述（揭曉時一起顯示）"""
        room = RoomManager.lock_room(db, room_id)
        RoomStateMachine.ensure_open(room)
        RoomStateMachine.ensure_status(room, RoomStatus.PLAYING)

        player = room.get_player(player_id)
        if not player:
            raise PlayerNotFound(player_id)

        cards = player.cards or []
        if not 0 <= card_index < len(cards):
            raise InvalidCardIndex(card_index, len(cards))

        labels = list(player.scale_labels or [])
        labels.extend([""] * (len(cards) - len(labels)))
        labels[card_index] = label.strip()
        player.scale_labels = labels

        bump_state_version(db, room, reason="scale_label_updated")
        return room

    @staticmethod
    @transactional
    def end_round(db: Session, room_id: str, moderator_token: Optional[str]) -> Tuple[Room, bool, List[Dict[str, Any]]]:
        """
        結束回合（PLAYING -> ENDED）

        流程：
        1. 收集所有牌並依位置排序
        2. 驗證順序（相鄰牌嚴格遞增）
        3. 寫入 card_order、is_correct_order

        返回：
            (Room, 是否正確, 揭曉順序)
        """
        room = RoomManager.lock_room(db, room_id)
        RoomManager.require_moderator(room, moderator_token)
        RoomStateMachine.ensure_open(room)
        RoomStateMachine.ensure_status(room, RoomStatus.PLAYING)

        card_order = get_all_cards_in_order(room.players)
        is_correct = validate_card_order(card_order)

        room.card_order = card_order
        room.is_correct_order = is_correct

        RoomStateMachine.transition(db, room, RoomStatus.ENDED)
        record_event(db, room.id, "ROUND_ENDED", {
            "is_correct": is_correct,
            "unplaced": sum(1 for c in card_order if c["position"] == UNPLACED_POSITION),
        })

        logger.info(f"Round ended in room {room.id}: correct={is_correct}")
        return room, is_correct, card_order

    @staticmethod
    @transactional
    def reset_round(db: Session, room_id: str, moderator_token: Optional[str]) -> Room:
        """
        重置回合（ENDED/WAITING -> WAITING）

        效果：
        - 清空每位玩家的手牌、位置、標籤
        - 清空主題牌、揭曉結果
        - 名單與被踢名單保留
        """
        room = RoomManager.lock_room(db, room_id)
        RoomManager.require_moderator(room, moderator_token)
        RoomStateMachine.ensure_open(room)
        RoomStateMachine.ensure_status(room, RoomStatus.ENDED, RoomStatus.WAITING)

        for player in room.players:
            player.cards = []
            player.card_positions = []
            player.scale_labels = []

        room.theme_card = None
        room.theme_interval = None
        room.card_order = []
        room.is_correct_order = None

        RoomStateMachine.transition(db, room, RoomStatus.WAITING)
        record_event(db, room.id, "ROUND_RESET", {})

        logger.info(f"Round reset in room {room.id}")
        return room

    @staticmethod
    def get_cards_in_order(db: Session, room_id: str) -> List[Dict[str, Any]]:
        """主持人用：回合中目前的排列（不改變任何狀態）"""
        room = RoomManager.get_room_by_id(db, room_id)
        return get_all_cards_in_order(room.players)
