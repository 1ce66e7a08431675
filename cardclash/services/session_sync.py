import asyncio
from collections.abc import AsyncIterator

from loguru import logger

from cardclash.core.change_feed import ChangeFeed, ChangeFilter
from cardclash.core.config import settings
from cardclash.core.enums import ActionType, BattleStatus
from cardclash.core.errors import (
    IllegalActionError,
    InvariantViolationError,
    StoreUnavailableError,
)
from cardclash.engine.reducer import fold_snapshot, predict
from cardclash.schemas.battle import BattleView
from cardclash.services.battle import BattleService


class SessionSynchronizer:
    """Keeps one client's view of one battle in step with the store.

    Change notifications and a polling timer both end up in ``reconcile``,
    which re-reads the battle and folds it into the local view. Calling it
    more often than needed is harmless: the view is only reported as changed
    when the folded result differs from what the client already has.
    """

    def __init__(
        self,
        battle_service: BattleService,
        feed: ChangeFeed,
        *,
        battle_id: int,
        user_id: int,
        poll_interval: float | None = None,
    ) -> None:
        self.battle_service = battle_service
        self.feed = feed
        self.battle_id = battle_id
        self.user_id = user_id
        self.poll_interval = poll_interval or settings.sync_poll_interval_seconds

        self.view: BattleView | None = None
        self.gone = False
        """True once the battle row has disappeared (withdrawn while waiting)"""
        self.failure: InvariantViolationError | None = None

        self._store_lock = asyncio.Lock()
        self._action_lock = asyncio.Lock()

    @property
    def finished(self) -> bool:
        if self.gone or self.failure is not None:
            return True
        return self.view is not None and self.view.battle.status == BattleStatus.COMPLETED

    def change_filters(self) -> tuple[ChangeFilter, ...]:
        return (
            ChangeFilter(table="battles", match={"id": self.battle_id}),
            ChangeFilter(table="battle_participants", match={"battle_id": self.battle_id}),
            ChangeFilter(table="battle_turns", match={"battle_id": self.battle_id}),
        )

    async def reconcile(self) -> tuple[BattleView | None, bool]:
        """Pull the authoritative snapshot and fold it into the local view.

        Returns the current view and whether it changed. A store outage keeps
        the last good view; the next tick tries again.

        Raises:
            InvariantViolationError: The battle cannot be played any further.
        """
        if self.failure is not None:
            raise self.failure

        async with self._store_lock:
            try:
                try:
                    snapshot = await self.battle_service.get_view(self.battle_id, self.user_id)
                finally:
                    await self.battle_service.store.release()
            except StoreUnavailableError as e:
                logger.warning(f"Battle {self.battle_id}: keeping last known view, {e}")
                return self.view, False
            except InvariantViolationError as e:
                logger.error(f"Battle {self.battle_id} is unplayable: {e.detail}")
                self.failure = e
                raise

        if snapshot is None:
            changed = not self.gone
            self.gone = True
            self.view = None
            return None, changed

        merged = fold_snapshot(self.view, snapshot)
        changed = merged != self.view
        self.view = merged
        return merged, changed

    async def perform_action(self, action_type: ActionType) -> bool:
        """Predict the action locally, commit it, then let the store's answer win.

        Returns whether the store accepted the action. Illegal actions and
        actions attempted while another one is still in flight are ignored.
        """
        if self._action_lock.locked():
            logger.debug(f"Battle {self.battle_id}: action already in flight, ignoring")
            return False

        async with self._action_lock:
            await self.reconcile()
            if self.view is None:
                return False

            try:
                tentative, _ = predict(self.view, action_type)
            except IllegalActionError as e:
                logger.debug(f"Battle {self.battle_id}: ignoring {action_type}, {e}")
                return False
            self.view = tentative

            outcome = None
            async with self._store_lock:
                try:
                    outcome = await self.battle_service.commit_action(
                        self.battle_id, self.user_id, action_type
                    )
                except StoreUnavailableError as e:
                    logger.warning(f"Battle {self.battle_id}: {action_type} not committed, {e}")

            await self.reconcile()
            return outcome is not None

    async def watch(self) -> AsyncIterator[BattleView]:
        """Yield the view every time it changes until the battle ends or disappears."""
        with self.feed.subscribe(*self.change_filters()) as subscription:
            view, _ = await self.reconcile()
            if view is not None:
                yield view

            while not self.finished:
                await subscription.next(timeout=self.poll_interval)
                # One commit touches several rows; a single re-read covers them all
                subscription.drain()

                view, changed = await self.reconcile()
                if changed and view is not None:
                    yield view
