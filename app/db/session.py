from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from app.core.config import settings


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine for a database URL.

    In-memory SQLite shares one connection so every session sees the same tables.
    """
    options: Dict[str, Any] = {"echo": False, "future": True}
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    else:
        # pool_pre_ping: check connection is alive before use.
        # pool_recycle: discard connections after this many seconds to avoid stale connections.
        options["pool_pre_ping"] = True
        options["pool_recycle"] = 300
    return create_async_engine(database_url, **options)


engine = build_engine(settings.database_url)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
