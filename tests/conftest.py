from __future__ import annotations

import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///./cardclash-test.db")
os.environ.setdefault("JWT_SECRET", "cardclash-test-secret")

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import SQLModel

from cardclash.core.change_feed import ChangeFeed
from cardclash.core.db import build_engine, new_session
from cardclash.core.store import RecordStore
from cardclash.models import battle, battle_participant, battle_turn, card  # noqa: F401
from tests.helpers import StoreFactory


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'cardclash.db'}")
    async with test_engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
async def make_store(engine: AsyncEngine, feed: ChangeFeed) -> AsyncIterator[StoreFactory]:
    """Each call opens a new session, like a separate client connection."""
    stores: list[RecordStore] = []

    def factory() -> RecordStore:
        store = RecordStore(new_session(engine), feed)
        stores.append(store)
        return store

    yield factory

    for store in stores:
        await store.db.close()


@pytest.fixture
def store(make_store: StoreFactory) -> RecordStore:
    return make_store()
