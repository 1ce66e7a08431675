from datetime import datetime

from pydantic import BaseModel, ConfigDict

from cardclash.core.enums import ActionType, BattleStatus, CardType


class Combatant(BaseModel):
    """One side of a fight: the card's fixed stats plus the participant's battle-local state."""

    model_config = ConfigDict(frozen=True)

    participant_id: int
    user_id: int
    name: str
    card_type: CardType
    max_hp: int
    attack: int
    defense: int
    speed: int
    ability_power: int
    current_hp: int
    has_used_ability: bool = False
    is_defending: bool = False


class BattleState(BaseModel):
    model_config = ConfigDict(frozen=True)

    battle_id: int
    status: BattleStatus
    current_turn: int | None = None
    winner_id: int | None = None
    completed_at: datetime | None = None
    last_turn_number: int = 0


class ActionOutcome(BaseModel):
    """Everything one committed action changes, computed without touching the store."""

    model_config = ConfigDict(frozen=True)

    action_type: ActionType
    damage: int
    turn_number: int
    battle: BattleState
    actor: Combatant
    opponent: Combatant

    @property
    def is_finishing_blow(self) -> bool:
        return self.battle.status == BattleStatus.COMPLETED
