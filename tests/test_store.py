from __future__ import annotations

from pathlib import Path

import pytest
from sqlmodel import col

from cardclash.core.change_feed import ChangeFeed, ChangeFilter
from cardclash.core.db import build_engine, new_session
from cardclash.core.enums import ActionType, BattleStatus, ChangeEvent
from cardclash.core.errors import StoreConflictError, StoreUnavailableError
from cardclash.core.store import RecordStore
from cardclash.models.battle import Battle
from cardclash.models.battle_turn import BattleTurn
from tests.helpers import StoreFactory, start_battle


async def test_notifications_wait_for_commit(store: RecordStore, feed: ChangeFeed) -> None:
    with feed.subscribe(ChangeFilter(table="battles")) as subscription:
        battle = await store.insert(Battle())
        assert subscription.drain() == []

        await store.commit()

        notifications = subscription.drain()
        assert [n.event for n in notifications] == [ChangeEvent.INSERT]
        assert notifications[0].row_id == battle.id


async def test_rollback_discards_notifications(store: RecordStore, feed: ChangeFeed) -> None:
    with feed.subscribe(ChangeFilter(table="battles")) as subscription:
        await store.insert(Battle())
        await store.rollback()
        await store.commit()

        assert subscription.drain() == []
    assert await store.query(Battle) == []


async def test_filters_match_row_values(store: RecordStore, feed: ChangeFeed) -> None:
    first = await store.insert(Battle())
    second = await store.insert(Battle())
    await store.commit()

    with feed.subscribe(ChangeFilter(table="battles", match={"id": second.id})) as subscription:
        await store.update(Battle, col(Battle.id) == first.id, patch={"winner_id": None})
        await store.update(
            Battle, col(Battle.id) == second.id, patch={"status": BattleStatus.ACTIVE}
        )
        await store.commit()

        notifications = subscription.drain()
        assert len(notifications) == 1
        assert notifications[0].event == ChangeEvent.UPDATE
        assert notifications[0].data["status"] == BattleStatus.ACTIVE
    assert feed.subscriber_count == 0


async def test_conditional_update_matching_nothing(store: RecordStore) -> None:
    battle = await store.insert(Battle())
    await store.commit()

    updated = await store.update(
        Battle,
        col(Battle.id) == battle.id,
        col(Battle.status) == BattleStatus.ACTIVE,
        patch={"current_turn": 1},
    )

    assert updated is None


async def test_update_returns_fresh_row(store: RecordStore) -> None:
    battle = await store.insert(Battle())
    await store.commit()

    updated = await store.update(
        Battle, col(Battle.id) == battle.id, patch={"status": BattleStatus.COMPLETED}
    )

    assert updated is not None
    assert updated.status == BattleStatus.COMPLETED


async def test_duplicate_turn_number_is_rejected(make_store: StoreFactory) -> None:
    host_store, guest_store = make_store(), make_store()
    host_ticket, guest_ticket = await start_battle(host_store, guest_store)

    await host_store.insert(
        BattleTurn(
            battle_id=host_ticket.battle_id,
            participant_id=host_ticket.participant_id,
            action_type=ActionType.ATTACK,
            damage_dealt=10,
            turn_number=1,
        )
    )
    await host_store.commit()

    with pytest.raises(StoreConflictError):
        await guest_store.insert(
            BattleTurn(
                battle_id=guest_ticket.battle_id,
                participant_id=guest_ticket.participant_id,
                action_type=ActionType.ATTACK,
                damage_dealt=10,
                turn_number=1,
            )
        )

    turns = await guest_store.query(BattleTurn)
    assert [t.turn_number for t in turns] == [1]


async def test_unreachable_store(tmp_path: Path) -> None:
    broken = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'cardclash.db'}")
    store = RecordStore(new_session(broken), ChangeFeed())

    with pytest.raises(StoreUnavailableError):
        await store.query(Battle)

    await store.db.close()
    await broken.dispose()
