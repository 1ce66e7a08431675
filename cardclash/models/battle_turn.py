import sqlmodel
from sqlalchemy import UniqueConstraint

from cardclash.core.enums import ActionType

from ._base import BaseModel


class BattleTurn(BaseModel, table=True):
    __tablename__: str = "battle_turns"
    __table_args__ = (
        UniqueConstraint("battle_id", "turn_number", name="uq_turn_number"),
    )

    id: int = sqlmodel.Field(primary_key=True, index=True, default=None)
    battle_id: int = sqlmodel.Field(foreign_key="battles.id", index=True, ondelete="CASCADE")
    participant_id: int = sqlmodel.Field(
        foreign_key="battle_participants.id", index=True, ondelete="CASCADE"
    )
    action_type: ActionType
    damage_dealt: int = sqlmodel.Field(default=0, ge=0)
    turn_number: int = sqlmodel.Field(ge=1)
