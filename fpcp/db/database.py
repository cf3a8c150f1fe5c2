from typing import Any, AsyncGenerator, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from fpcp.config import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    pass


def timeout_connect_args(database_url: str, timeout: int) -> Dict[str, Any]:
    """Driver arguments that bound connects and statements by ``timeout`` seconds."""
    url = make_url(database_url)
    backend, driver = url.get_backend_name(), url.get_driver_name()

    if backend == "sqlite":
        # busy timeout: how long to wait on a locked database
        return {"timeout": timeout}
    if backend == "postgresql":
        if driver == "asyncpg":
            return {"timeout": timeout, "command_timeout": timeout}
        return {
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000}",
        }
    return {}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    connect_args=timeout_connect_args(settings.database_url, settings.db_timeout_seconds),
)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

# 同步版本的資料庫連線（給排程與 job endpoint 使用）
sync_engine = create_engine(
    settings.sync_database_url,
    echo=settings.debug,
    connect_args=timeout_connect_args(
        settings.sync_database_url, settings.db_timeout_seconds
    ),
)
sync_session = sessionmaker(sync_engine, class_=Session, expire_on_commit=False)


async def init_db():
    import fpcp.models  # noqa: F401  register tables

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session


def get_sync_db() -> Generator[Session, None, None]:
    with sync_session() as session:
        yield session
