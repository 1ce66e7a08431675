from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

from cardclash.core.config import settings


def build_engine(db_url: str) -> AsyncEngine:
    new_engine = create_async_engine(db_url)

    if new_engine.dialect.name == "sqlite":
        # SQLite leaves foreign keys off unless asked per connection
        @event.listens_for(new_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(settings.db_url)


def new_session(bind: AsyncEngine | None = None) -> AsyncSession:
    return AsyncSession(
        bind or engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


async def get_db() -> AsyncGenerator[AsyncSession]:
    async with new_session() as session:
        yield session
