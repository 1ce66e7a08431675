from __future__ import annotations

from cardclash.core.enums import ActionType, CardType
from cardclash.engine.damage import has_type_advantage, resolve_damage
from tests.helpers import combatant


def test_type_advantage_boosts_attack() -> None:
    fire = combatant(1, card_type=CardType.FIRE, attack=60)
    electric = combatant(2, card_type=CardType.ELECTRIC, defense=10)

    # floor(60 * 1.5) - 10
    assert resolve_damage(fire, electric, ActionType.ATTACK) == 80


def test_defending_target_halves_damage() -> None:
    fire = combatant(1, card_type=CardType.FIRE, attack=60)
    electric = combatant(2, card_type=CardType.ELECTRIC, defense=10, is_defending=True)

    assert resolve_damage(fire, electric, ActionType.ATTACK) == 40


def test_defending_target_without_advantage() -> None:
    water = combatant(1, card_type=CardType.WATER, attack=60)
    electric = combatant(2, card_type=CardType.ELECTRIC, defense=10, is_defending=True)

    assert resolve_damage(water, electric, ActionType.ATTACK) == 25


def test_advantage_is_one_way() -> None:
    assert has_type_advantage(CardType.FIRE, CardType.ELECTRIC)
    assert not has_type_advantage(CardType.ELECTRIC, CardType.FIRE)
    assert has_type_advantage(CardType.WATER, CardType.ICE)
    assert has_type_advantage(CardType.STONE, CardType.STEEL)
    assert not has_type_advantage(CardType.PIXIE, CardType.PIXIE)

    electric = combatant(1, card_type=CardType.ELECTRIC, attack=60)
    fire = combatant(2, card_type=CardType.FIRE, defense=10)
    assert resolve_damage(electric, fire, ActionType.ATTACK) == 50


def test_ability_uses_power_and_half_defense() -> None:
    attacker = combatant(1, ability_power=80)
    defender = combatant(2, defense=21)

    # 80 - 21 // 2
    assert resolve_damage(attacker, defender, ActionType.ABILITY) == 70


def test_ability_with_advantage() -> None:
    stone = combatant(1, card_type=CardType.STONE, ability_power=55)
    steel = combatant(2, card_type=CardType.STEEL, defense=30)

    # floor(55 * 1.5) - 15
    assert resolve_damage(stone, steel, ActionType.ABILITY) == 67


def test_damage_floor_is_one() -> None:
    weak = combatant(1, attack=10)
    wall = combatant(2, defense=50)

    assert resolve_damage(weak, wall, ActionType.ATTACK) == 1


def test_defending_can_bring_floor_to_zero() -> None:
    weak = combatant(1, attack=10)
    wall = combatant(2, defense=50, is_defending=True)

    assert resolve_damage(weak, wall, ActionType.ATTACK) == 0


def test_defend_deals_no_damage() -> None:
    attacker = combatant(1, attack=100)
    defender = combatant(2, defense=5)

    assert resolve_damage(attacker, defender, ActionType.DEFEND) == 0
