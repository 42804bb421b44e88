from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.utils.config_loader import load_app_config
from db.models import Base

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def configure_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    (Re)create the engine and session factory.

    Without an explicit URL the `database.url` setting is used
    (DATABASE_URL overrides it through the config loader).
    """
    global _engine, _session_factory

    url = database_url or load_app_config().database.url
    _engine = create_async_engine(url, echo=False, future=True)
    _session_factory = async_sessionmaker(
        _engine,
        expire_on_commit=False,
        class_=AsyncSession,
        autoflush=False,
        autocommit=False,
    )
    log.info("Database engine configured | dialect=%s", _engine.dialect.name)
    return _engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        configure_engine()
    return _engine


async def init_db() -> None:
    """
    Initialize database and create tables if they do not exist.
    Should be called once at startup.
    """
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Database initialized and tables created")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an AsyncSession per request,
    and ensures proper cleanup.
    """
    get_engine()
    db = _session_factory()
    try:
        yield db
    finally:
        await db.close()
