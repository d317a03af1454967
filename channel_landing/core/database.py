import os
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from channel_landing.core.config import settings

Base = declarative_base()


def _make_engine(url: str):
    # SQLite needs check_same_thread, Postgres must NOT have it
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_async_engine(url, connect_args=connect_args)


engine = _make_engine(settings.DATABASE_URL)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


def configure_engine(url: str) -> None:
    """Rebind the module engine and session factory to another database URL."""
    global engine
    engine = _make_engine(url)
    SessionLocal.configure(bind=engine)


def ensure_sqlite_dir(url: str) -> None:
    if "sqlite" in url and "///" in url:
        db_path = url.split("///")[1]
        db_dir = os.path.dirname(db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir)


async def init_models() -> None:
    """Create every table known to the metadata."""
    # register all models on Base.metadata
    import channel_landing.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
