from typing import Annotated

from fastapi import Depends, HTTPException
from loguru import logger
from sqlmodel import col, func, select

from cardclash.core.enums import ActionType, BattleStatus
from cardclash.core.errors import IllegalActionError, InvariantViolationError, StoreConflictError
from cardclash.core.store import RecordStore
from cardclash.engine.reducer import build_view, to_battle_state, to_combatant
from cardclash.engine.turns import apply_action
from cardclash.engine.types import ActionOutcome
from cardclash.models.battle import Battle
from cardclash.models.battle_participant import BattleParticipant
from cardclash.models.battle_turn import BattleTurn
from cardclash.models.card import Card
from cardclash.schemas.battle import (
    BattleRead,
    BattleView,
    CardSnapshot,
    ParticipantWithCard,
    TurnRead,
)


class BattleService:
    def __init__(self, store: Annotated[RecordStore, Depends()]) -> None:
        self.store = store

    async def get_view(self, battle_id: int, viewer_user_id: int) -> BattleView | None:
        """Read the battle, its participants and its turn log as one view.

        Returns None if the battle no longer exists (withdrawn from matchmaking).

        Raises:
            InvariantViolationError: The rows do not describe a playable battle.
        """
        battle = await self.store.get(Battle, battle_id)
        if battle is None:
            return None

        participants = await self.store.query(
            BattleParticipant,
            col(BattleParticipant.battle_id) == battle_id,
            order_by=(col(BattleParticipant.position),),
        )
        card_ids = {p.card_id for p in participants}
        cards = {
            card.id: card
            for card in await self.store.query(Card, col(Card.id).in_(card_ids))
        }
        turns = await self.store.query(
            BattleTurn,
            col(BattleTurn.battle_id) == battle_id,
            order_by=(col(BattleTurn.turn_number),),
        )

        with_cards: list[ParticipantWithCard] = []
        for participant in participants:
            card = cards.get(participant.card_id)
            if card is None:
                detail = f"participant {participant.id} plays missing card {participant.card_id}"
                raise InvariantViolationError(battle_id, detail)
            with_cards.append(
                ParticipantWithCard(
                    **participant.model_dump(exclude={"created_at", "updated_at"}),
                    card=CardSnapshot.model_validate(card, from_attributes=True),
                )
            )

        return build_view(
            BattleRead.model_validate(battle, from_attributes=True),
            with_cards,
            [TurnRead.model_validate(turn, from_attributes=True) for turn in turns],
            viewer_user_id,
        )

    async def get_participant_view(self, battle_id: int, user_id: int) -> BattleView:
        view = await self.get_view(battle_id, user_id)
        if view is None:
            raise HTTPException(status_code=404, detail="Battle not found")
        if view.viewer_participant_id is None:
            raise HTTPException(status_code=403, detail="You are not part of this battle")
        return view

    async def commit_action(
        self, battle_id: int, user_id: int, action_type: ActionType
    ) -> ActionOutcome | None:
        """Resolve an action against the freshest snapshot and commit it.

        Returns None without writing anything when the action is not legal right
        now, or when another commit got there first (the turn token moved, or
        the turn number was already taken).
        """
        view = await self.get_view(battle_id, user_id)
        me = view.me if view else None
        opponent = view.opponent if view else None
        if view is None or me is None or opponent is None:
            await self.store.release()
            logger.debug(f"User {user_id} cannot act in battle {battle_id}: no opponent")
            return None

        try:
            outcome = apply_action(
                to_battle_state(view), to_combatant(me), to_combatant(opponent), action_type
            )
        except IllegalActionError as e:
            await self.store.release()
            logger.debug(f"Ignoring {action_type} by user {user_id}: {e}")
            return None

        try:
            applied = await self._write_outcome(battle_id, outcome)
        except StoreConflictError as e:
            logger.warning(f"Duplicate commit for battle {battle_id} rejected: {e}")
            return None

        if not applied:
            await self.store.rollback()
            logger.info(
                f"Stale {action_type} by participant {me.id} in battle {battle_id}, "
                "turn token already moved"
            )
            return None

        await self.store.commit()
        logger.info(
            f"Battle {battle_id} turn {outcome.turn_number}: participant {me.id} "
            f"{action_type} for {outcome.damage} damage"
        )
        if outcome.is_finishing_blow:
            logger.info(f"Battle {battle_id} completed, winner user {outcome.battle.winner_id}")
        return outcome

    async def _write_outcome(self, battle_id: int, outcome: ActionOutcome) -> bool:
        actor, opponent = outcome.actor, outcome.opponent

        # Claim the turn token first; only its current holder may move it
        if outcome.battle.status == BattleStatus.COMPLETED:
            battle_patch = {
                "status": BattleStatus.COMPLETED,
                "winner_id": outcome.battle.winner_id,
                "completed_at": outcome.battle.completed_at,
            }
        else:
            battle_patch = {"current_turn": outcome.battle.current_turn}
        claimed = await self.store.update(
            Battle,
            col(Battle.id) == battle_id,
            col(Battle.status) == BattleStatus.ACTIVE,
            col(Battle.current_turn) == actor.participant_id,
            patch=battle_patch,
        )
        if claimed is None:
            return False

        actor_filters = [col(BattleParticipant.id) == actor.participant_id]
        if outcome.action_type == ActionType.ABILITY:
            actor_filters.append(col(BattleParticipant.has_used_ability).is_(False))
        updated_actor = await self.store.update(
            BattleParticipant,
            *actor_filters,
            patch={"is_defending": actor.is_defending, "has_used_ability": actor.has_used_ability},
        )
        if updated_actor is None:
            return False

        await self.store.update(
            BattleParticipant,
            col(BattleParticipant.id) == opponent.participant_id,
            patch={"current_hp": opponent.current_hp, "is_defending": opponent.is_defending},
        )

        last_turn = await self.store.scalar(
            select(func.max(BattleTurn.turn_number)).where(col(BattleTurn.battle_id) == battle_id)
        )
        await self.store.insert(
            BattleTurn(
                battle_id=battle_id,
                participant_id=actor.participant_id,
                action_type=outcome.action_type,
                damage_dealt=outcome.damage,
                turn_number=(last_turn or 0) + 1,
            )
        )
        return True
