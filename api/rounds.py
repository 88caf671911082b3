"""
Round API Endpoints - 短輪詢版

重點：
1. 所有業務邏輯集中在 RoundManager
2. 每次寫入都會提升 state_version，前端靠 /state 獲取更新
3. 開始、結束、重置回合是主持人 endpoint；移動位置、寫標籤是玩家 endpoint
"""
from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from schemas import (
    StartRoundRequest,
    PositionUpdate,
    ScaleLabelUpdate,
    ActionResponse,
    RoundEndResponse,
    CardEntry,
)
from core.round_manager import RoundManager
from core.room_manager import RoomManager
from core.exceptions import HundoGameException

router = APIRouter(prefix="/api/rooms", tags=["rounds"])
logger = logging.getLogger(__name__)


@router.post("/{room_id}/rounds/start", response_model=ActionResponse)
def start_round(
    room_id: str,
    round_data: Optional[StartRoundRequest] = None,
    x_moderator_token: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """
    開始回合（主持人 endpoint）

    前置條件：
    - 房間狀態必須是 WAITING
    - 至少 2 位玩家

    效果：
    - 發牌、翻主題牌，狀態轉換 WAITING -> PLAYING
    - 重複呼叫會被拒絕（不會重新發牌）
    """
    try:
        game_mode = round_data.game_mode if round_data else None
        room = RoundManager.start_round(db, room_id, x_moderator_token, game_mode)
        return ActionResponse(state_version=room.state_version)

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to start round: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/rounds/position", response_model=ActionResponse)
def update_position(
    room_id: str,
    update: PositionUpdate,
    db: Session = Depends(get_db)
):
    """
    移動自己的一張牌（玩家 endpoint）

    交換策略：目標位置上的牌會換到原本的位置，所以任何時候都不會有兩張牌在同一個位置。
    """
    try:
        room = RoundManager.update_position(
            db,
            room_id,
            update.player_id,
            update.card_index,
            update.position
        )
        return ActionResponse(state_version=room.state_version)

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to update position: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/rounds/label", response_model=ActionResponse)
def set_scale_label(
    room_id: str,
    update: ScaleLabelUpdate,
    db: Session = Depends(get_db)
):
    """為自己的牌寫下尺度描述（玩家 endpoint）"""
    try:
        room = RoundManager.set_scale_label(
            db,
            room_id,
            update.player_id,
            update.card_index,
            update.label
        )
        return ActionResponse(state_version=room.state_version)

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to set scale label: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/rounds/end", response_model=RoundEndResponse)
def end_round(
    room_id: str,
    x_moderator_token: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """
    結束回合並揭曉（主持人 endpoint）

    返回：
        - is_correct: 大家排的順序是否正確
        - card_order: 依位置排序的所有牌
    """
    try:
        room, is_correct, card_order = RoundManager.end_round(db, room_id, x_moderator_token)
        return RoundEndResponse(
            is_correct=is_correct,
            card_order=[CardEntry(**card) for card in card_order],
            state_version=room.state_version
        )

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to end round: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/rounds/reset", response_model=ActionResponse)
def reset_round(
    room_id: str,
    x_moderator_token: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """
    開新回合前的重置（主持人 endpoint）

    效果：
    - 清空手牌與揭曉結果，狀態回到 WAITING
    - 名單、被踢名單保留
    """
    try:
        room = RoundManager.reset_round(db, room_id, x_moderator_token)
        return ActionResponse(state_version=room.state_version)

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to reset round: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{room_id}/rounds/cards", response_model=List[CardEntry])
def get_cards_in_order(
    room_id: str,
    x_moderator_token: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """主持人看目前的排列（回合中也可以，不會改變狀態）"""
    try:
        room = RoomManager.get_room_by_id(db, room_id)
        RoomManager.require_moderator(room, x_moderator_token)
        return RoundManager.get_cards_in_order(db, room_id)

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to get card order: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
