"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

每個異常帶有：
- kind：穩定的錯誤種類字串，前端據此顯示訊息
- status_code：API 層轉成 HTTPException 時使用的狀態碼
"""


class HundoGameException(Exception):
    """所有遊戲異常的基類"""
    kind = "error"
    status_code = 400

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(detail)

    def to_detail(self) -> dict:
        return {"kind": self.kind, "message": self.detail}


# ============ NotFound ============

class NotFound(HundoGameException):
    kind = "not_found"
    status_code = 404


class RoomNotFound(NotFound):
    """房間不存在"""
    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class PlayerNotFound(NotFound):
    """玩家不存在"""
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


# ============ Forbidden ============

class Forbidden(HundoGameException):
    kind = "forbidden"
    status_code = 403


class PlayerKicked(Forbidden):
    """被踢出的身分不能再加入同一個房間"""
    def __init__(self, room_id, player_id):
        self.room_id = room_id
        self.player_id = player_id
        super().__init__(f"Player {player_id} was removed from room {room_id}")


class ModeratorOnly(Forbidden):
    """只有主持人可以執行的操作"""
    pass


# ============ 狀態轉換異常 ============

class InvalidStateTransition(HundoGameException):
    """非法的狀態轉換"""
    kind = "invalid_transition"
    status_code = 409


class RoomClosed(HundoGameException):
    """房間已關閉，不能再有任何變更"""
    kind = "room_closed"
    status_code = 410

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} is closed")


# ============ 玩家數量 ============

class InvalidPlayerCount(HundoGameException):
    """玩家數量不符合要求"""
    kind = "insufficient_players"
    status_code = 409


class InsufficientPlayers(InvalidPlayerCount):
    """開始回合至少需要 2 位玩家"""
    pass


class TooManyPlayers(InvalidPlayerCount):
    """玩家太多，牌堆發不完"""
    kind = "validation_failed"


# ============ 輸入驗證 ============

class ValidationFailed(HundoGameException):
    kind = "validation_failed"
    status_code = 422


class RoomFull(ValidationFailed):
    """房間已滿"""
    status_code = 409


class InvalidCardIndex(ValidationFailed):
    def __init__(self, card_index, card_count):
        self.card_index = card_index
        super().__init__(
            f"Card index {card_index} out of range (player holds {card_count} cards)"
        )


class InvalidPosition(ValidationFailed):
    def __init__(self, position, slot_count):
        self.position = position
        super().__init__(f"Position {position} out of range (0..{slot_count - 1})")


# ============ 持久層 ============

class CorruptRoomDocument(HundoGameException):
    """資料庫中的房間資料不符合型別（不信任讀出來的形狀）"""
    kind = "corrupt_document"
    status_code = 500


class ConcurrentUpdate(HundoGameException):
    """讀取後房間已被其他請求修改（state_version 不符），這次寫入作廢"""
    kind = "conflict"
    status_code = 409
