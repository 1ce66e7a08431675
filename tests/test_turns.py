from __future__ import annotations

from datetime import UTC, datetime

import pytest

from cardclash.core.enums import ActionType, BattleStatus, CardType
from cardclash.core.errors import IllegalActionError
from cardclash.engine.turns import apply_action, pick_first_turn
from cardclash.engine.types import BattleState
from tests.helpers import combatant


def _battle(
    current_turn: int | None = 1,
    *,
    status: BattleStatus = BattleStatus.ACTIVE,
    winner_id: int | None = None,
    last_turn_number: int = 0,
) -> BattleState:
    return BattleState(
        battle_id=7,
        status=status,
        current_turn=current_turn,
        winner_id=winner_id,
        last_turn_number=last_turn_number,
    )


def test_faster_card_moves_first() -> None:
    assert pick_first_turn(host_id=1, host_speed=20, joiner_id=2, joiner_speed=40) == 2
    assert pick_first_turn(host_id=1, host_speed=40, joiner_id=2, joiner_speed=20) == 1


def test_speed_tie_goes_to_host() -> None:
    assert pick_first_turn(host_id=1, host_speed=30, joiner_id=2, joiner_speed=30) == 1


def test_attack_passes_the_turn() -> None:
    actor, opponent = combatant(1, attack=60), combatant(2, defense=10)

    outcome = apply_action(_battle(), actor, opponent, ActionType.ATTACK)

    assert outcome.damage == 50
    assert outcome.turn_number == 1
    assert outcome.opponent.current_hp == 450
    assert outcome.battle.current_turn == 2
    assert outcome.battle.last_turn_number == 1
    assert outcome.battle.status == BattleStatus.ACTIVE
    assert not outcome.is_finishing_blow


def test_turns_alternate() -> None:
    first, second = combatant(1), combatant(2)

    outcome = apply_action(_battle(), first, second, ActionType.ATTACK)
    outcome = apply_action(outcome.battle, outcome.opponent, outcome.actor, ActionType.ATTACK)

    assert outcome.battle.current_turn == 1
    assert outcome.turn_number == 2


def test_acting_out_of_turn_is_rejected() -> None:
    with pytest.raises(IllegalActionError):
        apply_action(_battle(current_turn=2), combatant(1), combatant(2), ActionType.ATTACK)


def test_acting_in_inactive_battle_is_rejected() -> None:
    waiting = _battle(current_turn=None, status=BattleStatus.WAITING)
    with pytest.raises(IllegalActionError):
        apply_action(waiting, combatant(1), combatant(2), ActionType.ATTACK)


def test_acting_against_yourself_is_rejected() -> None:
    with pytest.raises(IllegalActionError):
        apply_action(_battle(), combatant(1), combatant(1), ActionType.ATTACK)


def test_ability_is_single_use() -> None:
    actor = combatant(1)
    outcome = apply_action(_battle(), actor, combatant(2), ActionType.ABILITY)
    assert outcome.actor.has_used_ability

    with pytest.raises(IllegalActionError):
        apply_action(_battle(), outcome.actor, outcome.opponent, ActionType.ABILITY)

    # Later actions never clear the flag
    outcome = apply_action(_battle(), outcome.actor, outcome.opponent, ActionType.DEFEND)
    assert outcome.actor.has_used_ability


def test_defensive_stance_is_spent_by_a_hit() -> None:
    defender, attacker = combatant(1), combatant(2, attack=60)

    stance = apply_action(_battle(current_turn=1), defender, attacker, ActionType.DEFEND)
    assert stance.actor.is_defending
    assert stance.damage == 0

    hit = apply_action(stance.battle, stance.opponent, stance.actor, ActionType.ATTACK)
    assert hit.damage == 20
    assert not hit.opponent.is_defending


def test_defensive_stance_survives_opponent_defending() -> None:
    first = combatant(1, is_defending=True)
    second = combatant(2)

    outcome = apply_action(_battle(current_turn=2), second, first, ActionType.DEFEND)

    assert outcome.opponent.is_defending
    assert outcome.actor.is_defending


def test_attacking_drops_own_stance() -> None:
    actor = combatant(1, is_defending=True)

    outcome = apply_action(_battle(), actor, combatant(2), ActionType.ATTACK)

    assert not outcome.actor.is_defending


def test_finishing_blow_completes_battle() -> None:
    now = datetime(2026, 1, 1, tzinfo=UTC)
    actor = combatant(1, card_type=CardType.FIRE, attack=60)
    opponent = combatant(2, card_type=CardType.ELECTRIC, defense=10, current_hp=30)

    outcome = apply_action(
        _battle(last_turn_number=4), actor, opponent, ActionType.ATTACK, now=now
    )

    assert outcome.is_finishing_blow
    assert outcome.opponent.current_hp == 0
    assert outcome.battle.status == BattleStatus.COMPLETED
    assert outcome.battle.winner_id == actor.user_id
    assert outcome.battle.completed_at == now
    assert outcome.battle.current_turn == 1
    assert outcome.turn_number == 5


def test_completed_battle_rejects_actions() -> None:
    done = _battle(status=BattleStatus.COMPLETED, winner_id=1000)
    with pytest.raises(IllegalActionError):
        apply_action(done, combatant(1), combatant(2), ActionType.ATTACK)
