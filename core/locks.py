"""
並發控制工具

每一個會修改房間的操作都要先鎖住 Room row，再讀最新資料、計算、寫回。
多位玩家同時移動牌時，這一步保證彼此不會覆蓋對方的變更。

PostgreSQL 上是 SELECT ... FOR UPDATE 悲觀鎖。
SQLite 會忽略 FOR UPDATE；database.configure_sqlite_locking 讓每個 transaction
以 BEGIN IMMEDIATE 開始，讀取時就拿到整個資料庫的寫入鎖。

不論哪個資料庫，Room.state_version 都是 version_id_col：
寫回時若版本已被別人改掉會得到 StaleDataError（@transactional 轉成 ConcurrentUpdate），
不會出現 lost update。
"""
from sqlalchemy.orm import Session, Query

from models import Room


def with_room_lock(room_id: str, db: Session) -> Query:
    """
    鎖定一個 Room（行級鎖）

    使用場景：
    - 任何狀態轉換
    - 加入、離開、踢人
    - 回合中移動牌的位置

    範例：
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)
        room.status = RoomStatus.PLAYING

    參數：
        room_id: 房間代碼
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 取得結果）

    注意：
        - nowait=False 表示鎖被佔用時會等待
        - populate_existing 讓 session 裡已載入的物件也被最新資料覆蓋
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(Room).filter(
        Room.id == room_id
    ).populate_existing().with_for_update(nowait=False)
