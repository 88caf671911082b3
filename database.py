from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError
from pydantic_settings import BaseSettings
from functools import lru_cache, wraps
from typing import List
import logging

from core.exceptions import HundoGameException, ConcurrentUpdate

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./hundo_game.db"
    polling_interval_ms: int = 5000
    min_players: int = 2
    max_players: int = 10
    default_game_mode: str = "adventurous"
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"
        env_prefix = "HUNDO_"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()


def configure_sqlite_locking(sqlite_engine):
    """
    讓 SQLite 的每個 transaction 一開始就拿寫入鎖（BEGIN IMMEDIATE）

    pysqlite 預設要到第一個 INSERT/UPDATE 才送出 BEGIN，之前的 SELECT 不在
    transaction 裡，兩個請求可能根據同一份舊資料計算。BEGIN IMMEDIATE 之後，
    with_room_lock 的讀取和寫回在同一把鎖底下，其他寫入者要等 commit 或 rollback。
    """
    @event.listens_for(sqlite_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        # 交給下面的 begin 事件送 BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return sqlite_engine


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


# SQLite 需要 check_same_thread=False，FastAPI 會在 threadpool 中執行同步 endpoint
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if is_sqlite(settings.database_url) else {},
    pool_pre_ping=True
)
if is_sqlite(settings.database_url):
    configure_sqlite_locking(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency：提供 Database Session

    使用 yield 確保 session 在請求結束後會被關閉
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator：一次 read-modify-write 只會有一次 commit

    使用方式：
        @transactional
        def some_business_logic(db: Session, room_id: str):
            room = with_room_lock(room_id, db).first()
            room.status = RoomStatus.PLAYING
            # 不需要手動 commit

    如果函式內發生異常：
        - 自動 rollback，不會留下部分寫入
        - 遊戲規則異常（HundoGameException）只記 warning
        - Room 的 state_version 在讀取後已被別的請求改掉（StaleDataError）時，
          轉成 ConcurrentUpdate，客戶端重新整理後再送一次即可
        - 其他異常記 error 並附 traceback
        - 異常一律重新拋出，交由 API 層處理

    注意：
        - 第一個參數必須是 db: Session
        - 不要在函式內手動 commit
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except HundoGameException as e:
            logger.warning(f"Transaction rejected in {func.__name__}: {e}")
            db.rollback()
            raise
        except StaleDataError as e:
            logger.warning(f"Concurrent update detected in {func.__name__}: {e}")
            db.rollback()
            raise ConcurrentUpdate(str(e)) from e
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
