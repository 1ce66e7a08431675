from datetime import datetime

from cardclash.core.enums import ActionType, BattleStatus
from cardclash.core.errors import IllegalActionError
from cardclash.engine.damage import resolve_damage
from cardclash.engine.types import ActionOutcome, BattleState, Combatant
from cardclash.utils.misc import get_utc_now


def pick_first_turn(*, host_id: int, host_speed: int, joiner_id: int, joiner_speed: int) -> int:
    """Return the participant id that opens the battle; ties go to the host (position 1)."""
    return host_id if host_speed >= joiner_speed else joiner_id


def check_action(
    battle: BattleState, actor: Combatant, opponent: Combatant, action_type: ActionType
) -> None:
    if battle.status != BattleStatus.ACTIVE:
        msg = f"Battle {battle.battle_id} is {battle.status}, not active"
        raise IllegalActionError(msg)

    if actor.participant_id == opponent.participant_id:
        msg = "A participant cannot act against itself"
        raise IllegalActionError(msg)

    if battle.current_turn != actor.participant_id:
        msg = f"Participant {actor.participant_id} does not hold the turn"
        raise IllegalActionError(msg)

    if action_type == ActionType.ABILITY and actor.has_used_ability:
        msg = f"Participant {actor.participant_id} already used its ability"
        raise IllegalActionError(msg)


def apply_action(
    battle: BattleState,
    actor: Combatant,
    opponent: Combatant,
    action_type: ActionType,
    *,
    now: datetime | None = None,
) -> ActionOutcome:
    """Resolve one action and return the resulting battle and combatant states.

    Raises:
        IllegalActionError: The battle is not active, the actor does not hold the
            turn, or the ability was already used.
    """
    check_action(battle, actor, opponent, action_type)

    damage = resolve_damage(actor, opponent, action_type)
    opponent_hp = max(0, opponent.current_hp - damage)

    new_actor = actor.model_copy(
        update={
            "is_defending": action_type == ActionType.DEFEND,
            "has_used_ability": actor.has_used_ability or action_type == ActionType.ABILITY,
        }
    )
    # A defensive stance is only spent by being hit
    new_opponent = opponent.model_copy(
        update={
            "current_hp": opponent_hp,
            "is_defending": opponent.is_defending and action_type == ActionType.DEFEND,
        }
    )

    turn_number = battle.last_turn_number + 1
    if opponent_hp == 0:
        new_battle = battle.model_copy(
            update={
                "status": BattleStatus.COMPLETED,
                "winner_id": actor.user_id,
                "completed_at": now or get_utc_now(),
                "last_turn_number": turn_number,
            }
        )
    else:
        new_battle = battle.model_copy(
            update={"current_turn": opponent.participant_id, "last_turn_number": turn_number}
        )

    return ActionOutcome(
        action_type=action_type,
        damage=damage,
        turn_number=turn_number,
        battle=new_battle,
        actor=new_actor,
        opponent=new_opponent,
    )
