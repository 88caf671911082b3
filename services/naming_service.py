"""
命名服務：生成 Room Code、玩家身分、主持人 token

純計算邏輯，不涉及狀態轉換
"""
import secrets
import uuid


def generate_room_code() -> str:
    """
    生成 8 位大寫英數房間代碼（uuid4 截斷後轉大寫）

    範例：3F9A0C1B

    注意：
    - 不檢查唯一性（由呼叫者負責）
    """
    return uuid.uuid4().hex[:8].upper()


def generate_player_id() -> str:
    """玩家身分是不透明字串，系統從不解析它的結構"""
    return str(uuid.uuid4())


def generate_moderator_token() -> str:
    return secrets.token_urlsafe(24)
