"""
Player API Endpoints

職責：
1. 玩家加入房間
2. 玩家離開房間
3. 主持人踢人
"""
from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
import logging

from database import get_db
from schemas import PlayerJoin, PlayerResponse, ActionResponse
from core.room_manager import RoomManager
from core.exceptions import HundoGameException

router = APIRouter(prefix="/api/rooms", tags=["players"])
logger = logging.getLogger(__name__)


@router.post("/{room_id}/join", response_model=PlayerResponse)
def join_room(
    room_id: str,
    player_data: PlayerJoin,
    x_moderator_token: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """
    加入房間（玩家 endpoint）

    前置條件：
    - 房間必須存在
    - 身分沒有被踢過
    - 房間未關閉

    流程：
    1. 前端有保存的 player_id 就帶上（重新整理頁面不用重新加入）
    2. 沒有的話由伺服器生成新的身分
    3. 主持人也想拿牌時，帶上 X-Moderator-Token
    """
    try:
        player, created = RoomManager.join_room(
            db,
            room_id,
            player_data.name,
            player_id=player_data.player_id,
            moderator_token=x_moderator_token,
        )

        return PlayerResponse(
            player_id=player.id,
            room_id=player.room_id,
            name=player.name,
            is_moderator=player.room.moderator_player_id == player.id,
        )

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to join room: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/players/{player_id}/leave", response_model=ActionResponse)
def leave_room(room_id: str, player_id: str, db: Session = Depends(get_db)):
    """玩家離開房間"""
    try:
        room = RoomManager.leave_room(db, room_id, player_id)
        return ActionResponse(state_version=room.state_version)

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to leave room: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/players/{player_id}/kick", response_model=ActionResponse)
def kick_player(
    room_id: str,
    player_id: str,
    x_moderator_token: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """
    踢出玩家（主持人 endpoint）

    效果：
    - 玩家從名單移除
    - 這個身分永遠不能再加入這個房間
    """
    try:
        room = RoomManager.kick_player(db, room_id, player_id, x_moderator_token)
        return ActionResponse(state_version=room.state_version)

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to kick player: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")
