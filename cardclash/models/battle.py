from datetime import datetime

import sqlmodel

from cardclash.core.enums import BattleStatus

from ._base import BaseModel


class Battle(BaseModel, table=True):
    __tablename__: str = "battles"

    id: int = sqlmodel.Field(primary_key=True, index=True, default=None)
    status: BattleStatus = sqlmodel.Field(default=BattleStatus.WAITING, index=True)
    current_turn: int | None = sqlmodel.Field(default=None, nullable=True)
    """Participant id holding the turn token, null while waiting"""
    winner_id: int | None = sqlmodel.Field(
        default=None, nullable=True, sa_type=sqlmodel.BigInteger
    )
    """User id of the winner, set once completed"""
    completed_at: datetime | None = sqlmodel.Field(
        default=None, nullable=True, sa_type=sqlmodel.DateTime(timezone=True)
    )
