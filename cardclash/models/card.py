import sqlmodel

from cardclash.core.enums import AbilityType, CardType

from ._base import BaseModel


class Card(BaseModel, table=True):
    __tablename__: str = "cards"

    id: int = sqlmodel.Field(primary_key=True, index=True, default=None)
    user_id: int = sqlmodel.Field(index=True, sa_type=sqlmodel.BigInteger)
    """Owner, as issued by the identity provider"""
    name: str = sqlmodel.Field(max_length=50, index=True)
    image_url: str | None = sqlmodel.Field(default=None, nullable=True)

    hp: int = sqlmodel.Field(ge=1)
    attack: int = sqlmodel.Field(ge=0)
    defense: int = sqlmodel.Field(ge=0)
    speed: int = sqlmodel.Field(ge=0)

    card_type: CardType
    card_subtype: str | None = sqlmodel.Field(default=None, nullable=True)

    special_ability: str
    ability_type: AbilityType
    ability_power: int = sqlmodel.Field(ge=0)

    def __str__(self) -> str:
        return f"{self.name} (#{self.id})"
