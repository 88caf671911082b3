"""
Room API Endpoints - 短輪詢版

重點：
1. 所有業務邏輯集中在 RoomManager
2. 前端每 polling_interval_ms 呼叫一次 /state，靠 state_version 判斷是否需要重畫
3. 主持人操作需帶 X-Moderator-Token header
"""
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging

from database import get_db, get_settings
from schemas import RoomCreateResponse, RoomSnapshot, ActionResponse
from core.room_manager import RoomManager, is_moderator
from core.exceptions import HundoGameException
from services.state_service import build_room_snapshot
from services.theme_service import list_themes

router = APIRouter(prefix="/api", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.post("/rooms", response_model=RoomCreateResponse, status_code=201)
def create_room(db: Session = Depends(get_db)):
    """
    建立房間（主持人 endpoint）

    返回：
        - room_id: 8 位房間代碼（分享給玩家）
        - moderator_token: 主持人憑證，之後的主持人操作都要帶上
    """
    try:
        room = RoomManager.create_room(db)
        return RoomCreateResponse(room_id=room.id, moderator_token=room.moderator_token)

    except Exception as e:
        logger.error(f"Failed to create room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/rooms/{room_id}/state", response_model=RoomSnapshot)
def get_room_state(
    room_id: str,
    player_id: Optional[str] = Query(None),
    x_moderator_token: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """
    取得房間快照（輪詢用）

    可見性：
    - 主持人（帶正確 token）：看得到所有牌
    - 玩家（帶 player_id）：回合中只看得到自己的牌，其他人的牌值為 null
    - 關閉的房間仍會返回快照，closed=true
    """
    try:
        room = RoomManager.get_room_by_id(db, room_id)
        return build_room_snapshot(
            room,
            polling_interval_ms=get_settings().polling_interval_ms,
            viewer_player_id=player_id,
            reveal_all=is_moderator(room, x_moderator_token),
        )

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to get room state: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/rooms/{room_id}/close", response_model=ActionResponse)
def close_room(
    room_id: str,
    x_moderator_token: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """
    關閉房間（主持人 endpoint）

    前置條件：
    - 房間不在回合進行中（WAITING 或 ENDED）

    效果：
    - closed=true，之後所有變更操作都會失敗
    """
    try:
        room = RoomManager.close_room(db, room_id, x_moderator_token)
        return ActionResponse(state_version=room.state_version)

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to close room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/rooms/{room_id}", status_code=204)
def delete_room(
    room_id: str,
    x_moderator_token: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """刪除房間（管理用，連同玩家與事件紀錄）"""
    try:
        RoomManager.delete_room(db, room_id, x_moderator_token)

    except HundoGameException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to delete room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/themes")
def get_themes():
    """20 個主題尺度，每 5 張牌一個"""
    return list_themes()
