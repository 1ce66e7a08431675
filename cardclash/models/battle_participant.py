import sqlmodel
from sqlalchemy import UniqueConstraint

from ._base import BaseModel


class BattleParticipant(BaseModel, table=True):
    __tablename__: str = "battle_participants"
    # The (battle_id, position) key is what makes joining an open slot atomic
    __table_args__ = (
        UniqueConstraint("battle_id", "position", name="uq_participant_slot"),
        UniqueConstraint("battle_id", "user_id", name="uq_participant_user"),
    )

    id: int = sqlmodel.Field(primary_key=True, index=True, default=None)
    battle_id: int = sqlmodel.Field(foreign_key="battles.id", index=True, ondelete="CASCADE")
    user_id: int = sqlmodel.Field(index=True, sa_type=sqlmodel.BigInteger)
    card_id: int = sqlmodel.Field(foreign_key="cards.id", index=True)
    current_hp: int = sqlmodel.Field(ge=0)
    position: int = sqlmodel.Field(ge=1, le=2)
    has_used_ability: bool = False
    is_defending: bool = False
