from typing import Self

from pydantic import BaseModel, Field, model_validator

from cardclash.core.config import settings
from cardclash.core.enums import AbilityType, CardType
from cardclash.engine.damage import TYPE_SUBTYPES


class CardCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    image_url: str | None = None
    attack: int = Field(ge=10, le=100)
    defense: int = Field(ge=5, le=50)
    speed: int = Field(ge=1, le=100)
    card_type: CardType
    card_subtype: str | None = None
    special_ability: str = Field(min_length=1, max_length=100)
    ability_type: AbilityType
    ability_power: int = Field(ge=0, le=200)

    @model_validator(mode="after")
    def check_stat_budget(self) -> Self:
        total = self.attack + self.defense + self.speed
        if total > settings.card_stat_budget:
            msg = (
                f"Total stats cannot exceed {settings.card_stat_budget}. "
                f"You have {total - settings.card_stat_budget} too many points."
            )
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def check_subtype(self) -> Self:
        if self.card_subtype and self.card_subtype not in TYPE_SUBTYPES[self.card_type]:
            msg = f"{self.card_type} cards cannot have the {self.card_subtype} subtype"
            raise ValueError(msg)
        return self
