from cardclash.core.enums import ActionType, CardType
from cardclash.engine.types import Combatant

# Each type is strong against at most one other type
TYPE_ADVANTAGES: dict[CardType, CardType | None] = {
    CardType.FIRE: CardType.ELECTRIC,
    CardType.WATER: CardType.ICE,
    CardType.STONE: CardType.STEEL,
    CardType.ELECTRIC: None,
    CardType.ICE: None,
    CardType.STEEL: None,
    CardType.PIXIE: None,
}

# Subtypes a card of the given type may declare
TYPE_SUBTYPES: dict[CardType, tuple[str, ...]] = {
    CardType.FIRE: (CardType.ELECTRIC.value,),
    CardType.WATER: (CardType.ICE.value,),
    CardType.STONE: (CardType.STEEL.value,),
    CardType.ELECTRIC: (),
    CardType.ICE: (),
    CardType.STEEL: (),
    CardType.PIXIE: (),
}


def has_type_advantage(attacker_type: CardType, defender_type: CardType) -> bool:
    return TYPE_ADVANTAGES.get(attacker_type) == defender_type


def resolve_damage(attacker: Combatant, defender: Combatant, action_type: ActionType) -> int:
    """Compute the damage one action deals.

    Abilities use ``ability_power`` and only half of the defender's defense applies
    to them. A type advantage multiplies the base power by 1.5 (rounded down). The
    mitigated value never drops below 1, but a defending target halves it again,
    which can bring it to 0. Defend itself deals no damage.
    """
    if action_type == ActionType.DEFEND:
        return 0

    is_ability = action_type == ActionType.ABILITY
    base_power = attacker.ability_power if is_ability else attacker.attack

    if has_type_advantage(attacker.card_type, defender.card_type):
        base_power = base_power * 3 // 2

    mitigation = defender.defense // 2 if is_ability else defender.defense
    damage = max(1, base_power - mitigation)

    if defender.is_defending:
        damage //= 2

    return damage
