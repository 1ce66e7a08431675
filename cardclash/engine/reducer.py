"""Pure folding of store snapshots into a client's local battle view.

Nothing in here performs I/O: the session synchronizer feeds rows in and gets
views out, which keeps the merge rules testable without a store.
"""

from collections.abc import Sequence

from cardclash.core.enums import ActionType, BattleStatus
from cardclash.core.errors import IllegalActionError, InvariantViolationError
from cardclash.engine.damage import has_type_advantage
from cardclash.engine.turns import apply_action
from cardclash.engine.types import ActionOutcome, BattleState, Combatant
from cardclash.schemas.battle import BattleRead, BattleView, ParticipantWithCard, TurnRead

_STATUS_RANK = {BattleStatus.WAITING: 0, BattleStatus.ACTIVE: 1, BattleStatus.COMPLETED: 2}


def describe_turn(turn: TurnRead, participant: ParticipantWithCard) -> str:
    card = participant.card
    match turn.action_type:
        case ActionType.ATTACK:
            return f"{card.name} attacks for {turn.damage_dealt} damage!"
        case ActionType.ABILITY:
            return f"{card.name} uses {card.special_ability} for {turn.damage_dealt} damage!"
        case ActionType.DEFEND:
            return f"{card.name} takes a defensive stance!"


def build_action_log(
    battle_id: int, turns: Sequence[TurnRead], participants: Sequence[ParticipantWithCard]
) -> list[str]:
    by_id = {p.id: p for p in participants}
    log: list[str] = []
    for turn in sorted(turns, key=lambda t: t.turn_number, reverse=True):
        participant = by_id.get(turn.participant_id)
        if participant is None:
            raise InvariantViolationError(
                battle_id,
                f"turn {turn.turn_number} references unknown participant {turn.participant_id}",
            )
        log.append(describe_turn(turn, participant))
    return log


def validate_battle_shape(
    battle: BattleRead, participants: Sequence[ParticipantWithCard]
) -> None:
    """Raise InvariantViolationError when the battle can no longer be played."""
    count = len(participants)
    if battle.status == BattleStatus.WAITING:
        if count not in {1, 2}:
            raise InvariantViolationError(battle.id, f"waiting battle has {count} participants")
        if battle.current_turn is not None:
            raise InvariantViolationError(battle.id, "waiting battle holds a turn token")
    elif count != 2:
        raise InvariantViolationError(battle.id, f"{battle.status} battle has {count} participants")

    if len({p.user_id for p in participants}) != count:
        raise InvariantViolationError(battle.id, "a user occupies both slots")

    ids = {p.id for p in participants}
    if battle.status != BattleStatus.WAITING and battle.current_turn not in ids:
        raise InvariantViolationError(
            battle.id, f"turn token {battle.current_turn} is outside the battle"
        )

    if (battle.status == BattleStatus.COMPLETED) != (battle.winner_id is not None):
        raise InvariantViolationError(battle.id, "winner does not match the battle status")
    if battle.winner_id is not None and battle.winner_id not in {p.user_id for p in participants}:
        raise InvariantViolationError(battle.id, f"winner {battle.winner_id} is not a participant")

    for participant in participants:
        if not 0 <= participant.current_hp <= participant.card.hp:
            raise InvariantViolationError(
                battle.id, f"participant {participant.id} has hp {participant.current_hp}"
            )


def build_view(
    battle: BattleRead,
    participants: Sequence[ParticipantWithCard],
    turns: Sequence[TurnRead],
    viewer_user_id: int,
) -> BattleView:
    validate_battle_shape(battle, participants)
    ordered = sorted(participants, key=lambda p: p.position)
    view = BattleView(
        battle=battle,
        participants=ordered,
        action_log=build_action_log(battle.id, turns, ordered),
        last_turn_number=max((t.turn_number for t in turns), default=0),
        viewer_user_id=viewer_user_id,
    )
    return _with_viewer_flags(view)


def _with_viewer_flags(view: BattleView) -> BattleView:
    me, opponent = view.me, view.opponent
    flags: dict[str, object] = {
        "viewer_participant_id": me.id if me else None,
        "is_my_turn": bool(
            me and view.battle.status == BattleStatus.ACTIVE and view.battle.current_turn == me.id
        ),
        "type_advantage": False,
        "type_disadvantage": False,
    }
    if me and opponent:
        flags["type_advantage"] = has_type_advantage(me.card.card_type, opponent.card.card_type)
        flags["type_disadvantage"] = has_type_advantage(
            opponent.card.card_type, me.card.card_type
        )
    return view.model_copy(update=flags)


def _progress(view: BattleView) -> tuple[int, int]:
    return _STATUS_RANK[view.battle.status], view.last_turn_number


def fold_snapshot(local: BattleView | None, incoming: BattleView) -> BattleView:
    """Merge an authoritative snapshot into the local view.

    The store always beats a local prediction. Between two authoritative
    snapshots the one further along wins, so a lagging poll cannot rewind a
    view that a newer notification already advanced.
    """
    if local is None or local.tentative:
        return incoming
    if _progress(incoming) < _progress(local):
        return local
    return incoming


def to_combatant(participant: ParticipantWithCard) -> Combatant:
    card = participant.card
    return Combatant(
        participant_id=participant.id,
        user_id=participant.user_id,
        name=card.name,
        card_type=card.card_type,
        max_hp=card.hp,
        attack=card.attack,
        defense=card.defense,
        speed=card.speed,
        ability_power=card.ability_power,
        current_hp=participant.current_hp,
        has_used_ability=participant.has_used_ability,
        is_defending=participant.is_defending,
    )


def to_battle_state(view: BattleView) -> BattleState:
    return BattleState(
        battle_id=view.battle.id,
        status=view.battle.status,
        current_turn=view.battle.current_turn,
        winner_id=view.battle.winner_id,
        completed_at=view.battle.completed_at,
        last_turn_number=view.last_turn_number,
    )


def predict(view: BattleView, action_type: ActionType) -> tuple[BattleView, ActionOutcome]:
    """Apply an action to the local view only.

    The returned view is marked tentative; the next authoritative snapshot
    replaces it whatever it contains.

    Raises:
        IllegalActionError: The viewer may not take this action right now.
        InvariantViolationError: An active battle has no opponent to act against.
    """
    if view.battle.status != BattleStatus.ACTIVE:
        msg = f"Battle {view.battle.id} is {view.battle.status}, not active"
        raise IllegalActionError(msg)

    me, opponent = view.me, view.opponent
    if me is None or opponent is None:
        raise InvariantViolationError(view.battle.id, "battle has no opponent to act against")

    outcome = apply_action(
        to_battle_state(view), to_combatant(me), to_combatant(opponent), action_type
    )

    def patched(participant: ParticipantWithCard, combatant: Combatant) -> ParticipantWithCard:
        return participant.model_copy(
            update={
                "current_hp": combatant.current_hp,
                "has_used_ability": combatant.has_used_ability,
                "is_defending": combatant.is_defending,
            }
        )

    participants = [
        patched(p, outcome.actor if p.id == me.id else outcome.opponent) for p in view.participants
    ]
    turn = TurnRead(
        participant_id=me.id,
        action_type=action_type,
        damage_dealt=outcome.damage,
        turn_number=outcome.turn_number,
    )
    battle = view.battle.model_copy(
        update={
            "status": outcome.battle.status,
            "current_turn": outcome.battle.current_turn,
            "winner_id": outcome.battle.winner_id,
            "completed_at": outcome.battle.completed_at,
        }
    )
    tentative = view.model_copy(
        update={
            "battle": battle,
            "participants": participants,
            "action_log": [describe_turn(turn, me), *view.action_log],
            "last_turn_number": outcome.turn_number,
            "tentative": True,
        }
    )
    return _with_viewer_flags(tentative), outcome
