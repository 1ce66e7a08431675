from __future__ import annotations

from collections.abc import Callable

from cardclash.core.enums import AbilityType, BattleStatus, CardType
from cardclash.core.store import RecordStore
from cardclash.engine.types import Combatant
from cardclash.models.card import Card
from cardclash.schemas.battle import BattleRead, CardSnapshot, ParticipantWithCard
from cardclash.schemas.matchmaking import MatchTicket
from cardclash.services.card import CardService
from cardclash.services.matchmaking import MatchmakingService

StoreFactory = Callable[[], RecordStore]

HOST = 1001
GUEST = 2002
THIRD = 3003


def combatant(
    participant_id: int = 1,
    *,
    card_type: CardType = CardType.PIXIE,
    attack: int = 50,
    defense: int = 20,
    speed: int = 30,
    ability_power: int = 80,
    current_hp: int = 500,
    is_defending: bool = False,
    has_used_ability: bool = False,
) -> Combatant:
    return Combatant(
        participant_id=participant_id,
        user_id=participant_id * 1000,
        name=f"Card {participant_id}",
        card_type=card_type,
        max_hp=500,
        attack=attack,
        defense=defense,
        speed=speed,
        ability_power=ability_power,
        current_hp=current_hp,
        has_used_ability=has_used_ability,
        is_defending=is_defending,
    )


def participant(
    participant_id: int,
    user_id: int,
    position: int,
    *,
    battle_id: int = 1,
    card_type: CardType = CardType.PIXIE,
    attack: int = 50,
    defense: int = 20,
    current_hp: int = 500,
) -> ParticipantWithCard:
    card = CardSnapshot(
        id=participant_id * 10,
        name=f"Card {participant_id}",
        hp=500,
        attack=attack,
        defense=defense,
        speed=30,
        card_type=card_type,
        special_ability="Spark",
        ability_type=AbilityType.ATTACK,
        ability_power=80,
    )
    return ParticipantWithCard(
        id=participant_id,
        battle_id=battle_id,
        user_id=user_id,
        card_id=card.id,
        current_hp=current_hp,
        position=position,
        has_used_ability=False,
        is_defending=False,
        card=card,
    )


def battle_read(
    status: BattleStatus = BattleStatus.ACTIVE,
    current_turn: int | None = 1,
    winner_id: int | None = None,
    battle_id: int = 1,
) -> BattleRead:
    return BattleRead(id=battle_id, status=status, current_turn=current_turn, winner_id=winner_id)


async def add_card(
    store: RecordStore,
    user_id: int,
    *,
    name: str = "Ember",
    card_type: CardType = CardType.FIRE,
    attack: int = 60,
    defense: int = 10,
    speed: int = 30,
    ability_power: int = 90,
) -> Card:
    card = Card(
        user_id=user_id,
        name=name,
        hp=500,
        attack=attack,
        defense=defense,
        speed=speed,
        card_type=card_type,
        special_ability="Flare",
        ability_type=AbilityType.ATTACK,
        ability_power=ability_power,
    )
    await store.insert(card)
    await store.commit()
    return card


def matchmaker(store: RecordStore) -> MatchmakingService:
    return MatchmakingService(store, CardService(store))


async def start_battle(
    host_store: RecordStore,
    guest_store: RecordStore,
    *,
    host_speed: int = 50,
    guest_speed: int = 20,
) -> tuple[MatchTicket, MatchTicket]:
    """Pair HOST and GUEST into an active battle; HOST moves first by default."""
    host_card = await add_card(host_store, HOST, name="Ember", speed=host_speed)
    guest_card = await add_card(
        guest_store, GUEST, name="Volt", card_type=CardType.ELECTRIC, speed=guest_speed
    )
    host_ticket = await matchmaker(host_store).start_matchmaking(HOST, host_card.id)
    guest_ticket = await matchmaker(guest_store).start_matchmaking(GUEST, guest_card.id)
    return host_ticket, guest_ticket
