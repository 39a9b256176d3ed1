from functools import lru_cache
from pathlib import Path

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session

from src.config import get_settings


class Base(DeclarativeBase):
    pass


@lru_cache
def get_engine() -> Engine:
    url = get_settings().database_url
    if url.startswith("sqlite:///") and ":memory:" not in url:
        # SQLite will not create the parent directory on its own
        Path(url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, pool_pre_ping=True)


def get_sync_session() -> Session:
    return Session(get_engine())


def init_db() -> None:
    """建立所有資料表"""
    import src.models  # noqa: F401  register mappers

    Base.metadata.create_all(get_engine())
    logger.info("Database initialized")
