"""
Database Layer - Async SQLAlchemy engine + session factory over local SQLite.
"""
import logging
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from pic_budget import config as cfg

logger = logging.getLogger("pic-budget.db")


class Base(DeclarativeBase):
    pass


def make_engine(url: str = cfg.DATABASE_URL) -> AsyncEngine:
    return create_async_engine(url, echo=False)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = make_engine()

AsyncSessionLocal = make_session_factory(engine)


async def init_db(bind: AsyncEngine = engine) -> None:
    """Create the key-value table if it does not exist yet."""
    from pic_budget.models import orm_models  # noqa: F401
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized.")
