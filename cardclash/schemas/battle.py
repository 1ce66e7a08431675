from datetime import datetime

from pydantic import BaseModel

from cardclash.core.enums import AbilityType, ActionType, BattleStatus, CardType


class BattleRead(BaseModel):
    id: int
    status: BattleStatus
    current_turn: int | None = None
    winner_id: int | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None


class CardSnapshot(BaseModel):
    """Card stats as seen from inside a battle."""

    id: int
    name: str
    image_url: str | None = None
    hp: int
    attack: int
    defense: int
    speed: int
    card_type: CardType
    card_subtype: str | None = None
    special_ability: str
    ability_type: AbilityType
    ability_power: int


class ParticipantWithCard(BaseModel):
    id: int
    battle_id: int
    user_id: int
    card_id: int
    current_hp: int
    position: int
    has_used_ability: bool
    is_defending: bool
    card: CardSnapshot


class TurnRead(BaseModel):
    id: int | None = None
    participant_id: int
    action_type: ActionType
    damage_dealt: int
    turn_number: int


class BattleView(BaseModel):
    """Read model of one battle as a given user sees it."""

    battle: BattleRead
    participants: list[ParticipantWithCard]
    action_log: list[str]
    """Human-readable history, newest first"""
    last_turn_number: int = 0

    viewer_user_id: int
    viewer_participant_id: int | None = None
    is_my_turn: bool = False
    type_advantage: bool = False
    type_disadvantage: bool = False

    tentative: bool = False
    """True while the view holds a local prediction that the store has not confirmed"""

    @property
    def me(self) -> ParticipantWithCard | None:
        return next((p for p in self.participants if p.user_id == self.viewer_user_id), None)

    @property
    def opponent(self) -> ParticipantWithCard | None:
        return next((p for p in self.participants if p.user_id != self.viewer_user_id), None)


class ActionRequest(BaseModel):
    action_type: ActionType


class ActionReceipt(BaseModel):
    battle_id: int
    action_type: ActionType
    applied: bool
    """False when the action was ignored (out of turn, ability spent, stale commit)"""
