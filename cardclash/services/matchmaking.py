from typing import Annotated

from fastapi import Depends
from loguru import logger
from sqlalchemy.orm import aliased
from sqlmodel import col, select

from cardclash.core.config import settings
from cardclash.core.enums import BattleStatus
from cardclash.core.errors import StaleJoinError, StoreConflictError
from cardclash.core.store import RecordStore
from cardclash.engine.turns import pick_first_turn
from cardclash.models.battle import Battle
from cardclash.models.battle_participant import BattleParticipant
from cardclash.models.card import Card
from cardclash.schemas.matchmaking import MatchTicket
from cardclash.services.card import CardService

HOST_POSITION = 1
JOINER_POSITION = 2


class MatchmakingService:
    """Pairs users who want to battle into one Battle.

    Joining is decided by a single conditional insert: the unique key on
    ``(battle_id, position)`` lets exactly one joiner claim the second slot of a
    waiting battle. The losers see a conflict and search again.
    """

    def __init__(
        self,
        store: Annotated[RecordStore, Depends()],
        card_service: Annotated[CardService, Depends()],
    ) -> None:
        self.store = store
        self.card_service = card_service

    async def start_matchmaking(self, user_id: int, card_id: int) -> MatchTicket:
        card = await self.card_service.get_owned_card(user_id, card_id)

        existing = await self._find_own_waiting_slot(user_id)
        if existing is not None:
            logger.info(f"User {user_id} is already waiting in battle {existing.battle_id}")
            return MatchTicket(
                battle_id=existing.battle_id,
                participant_id=existing.id,
                status=BattleStatus.WAITING,
                created=False,
            )

        for attempt in range(1, settings.matchmaking_max_attempts + 1):
            hosts = await self.find_open_battles(user_id)
            if not hosts:
                break

            host = hosts[0]
            try:
                return await self.join_battle(host, user_id, card)
            except StaleJoinError as e:
                logger.info(f"User {user_id} attempt {attempt}: {e}, searching again")
                # The rollback expired every loaded row, the card included
                card = await self.card_service.get_owned_card(user_id, card_id)
        else:
            logger.warning(
                f"User {user_id} lost {settings.matchmaking_max_attempts} join races, "
                "hosting a new battle instead"
            )

        return await self.create_battle(user_id, card)

    async def _find_own_waiting_slot(self, user_id: int) -> BattleParticipant | None:
        waiting = select(Battle.id).where(col(Battle.status) == BattleStatus.WAITING)
        slots = await self.store.query(
            BattleParticipant,
            col(BattleParticipant.user_id) == user_id,
            col(BattleParticipant.position) == HOST_POSITION,
            col(BattleParticipant.battle_id).in_(waiting),
            limit=1,
        )
        return slots[0] if slots else None

    async def find_open_battles(self, user_id: int) -> list[BattleParticipant]:
        """Return the hosts of waiting battles another user could still join, oldest first."""
        second = aliased(BattleParticipant)
        waiting = select(Battle.id).where(col(Battle.status) == BattleStatus.WAITING)
        taken = select(second.battle_id).where(second.position == JOINER_POSITION)

        return await self.store.query(
            BattleParticipant,
            col(BattleParticipant.position) == HOST_POSITION,
            col(BattleParticipant.user_id) != user_id,
            col(BattleParticipant.battle_id).in_(waiting),
            col(BattleParticipant.battle_id).not_in(taken),
            order_by=(col(BattleParticipant.battle_id),),
            limit=settings.matchmaking_search_limit,
        )

    async def join_battle(self, host: BattleParticipant, user_id: int, card: Card) -> MatchTicket:
        """Claim the second slot of ``host``'s battle and start it in one transaction.

        Either the battle ends up active with both participants or nothing is
        written at all.

        Raises:
            StaleJoinError: Someone else claimed the slot first, or the host
                withdrew the battle before it could be started.
        """
        battle_id = host.battle_id
        try:
            joiner = await self.store.insert(
                BattleParticipant(
                    battle_id=battle_id,
                    user_id=user_id,
                    card_id=card.id,
                    current_hp=card.hp,
                    position=JOINER_POSITION,
                )
            )
        except StoreConflictError as e:
            raise StaleJoinError(battle_id, "slot already taken or battle withdrawn") from e

        try:
            host_card = await self.store.get(Card, host.card_id)
            host_speed = host_card.speed if host_card else 0
            first_turn = pick_first_turn(
                host_id=host.id,
                host_speed=host_speed,
                joiner_id=joiner.id,
                joiner_speed=card.speed,
            )

            activated = await self.store.update(
                Battle,
                col(Battle.id) == battle_id,
                col(Battle.status) == BattleStatus.WAITING,
                patch={"status": BattleStatus.ACTIVE, "current_turn": first_turn},
            )
            if activated is None:
                raise StaleJoinError(battle_id, "battle was withdrawn")

            await self.store.commit()
        except Exception:
            # Drops the uncommitted second slot along with everything else
            await self.store.rollback()
            raise

        logger.info(
            f"User {user_id} joined battle {battle_id}; participant {first_turn} moves first"
        )
        return MatchTicket(
            battle_id=battle_id,
            participant_id=joiner.id,
            status=BattleStatus.ACTIVE,
            created=False,
        )

    async def create_battle(self, user_id: int, card: Card) -> MatchTicket:
        battle = await self.store.insert(Battle(status=BattleStatus.WAITING))
        host = await self.store.insert(
            BattleParticipant(
                battle_id=battle.id,
                user_id=user_id,
                card_id=card.id,
                current_hp=card.hp,
                position=HOST_POSITION,
            )
        )
        await self.store.commit()

        logger.info(f"User {user_id} is hosting battle {battle.id} with card {card.id}")
        return MatchTicket(
            battle_id=battle.id,
            participant_id=host.id,
            status=BattleStatus.WAITING,
            created=True,
        )

    async def cancel_matchmaking(self, user_id: int, battle_id: int) -> bool:
        """Withdraw a waiting battle the user hosts.

        Nothing is deleted once an opponent holds the second slot, even if the
        battle has not been started yet.
        """
        hosted = await self.store.query(
            BattleParticipant,
            col(BattleParticipant.battle_id) == battle_id,
            col(BattleParticipant.user_id) == user_id,
            col(BattleParticipant.position) == HOST_POSITION,
            limit=1,
        )
        if not hosted:
            await self.store.release()
            return False

        taken = select(BattleParticipant.battle_id).where(
            col(BattleParticipant.position) == JOINER_POSITION
        )
        deleted = await self.store.delete(
            Battle,
            col(Battle.id) == battle_id,
            col(Battle.status) == BattleStatus.WAITING,
            col(Battle.id).not_in(taken),
        )
        await self.store.commit()

        if deleted:
            logger.info(f"User {user_id} withdrew battle {battle_id}")
        else:
            logger.info(f"Battle {battle_id} already has an opponent, withdrawal refused")
        return deleted > 0
