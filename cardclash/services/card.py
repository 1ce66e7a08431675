from collections.abc import Sequence
from typing import Annotated

from fastapi import Depends, HTTPException
from sqlmodel import col, func, select

from cardclash.core.config import settings
from cardclash.core.enums import SortOrder
from cardclash.core.store import RecordStore
from cardclash.models.battle_participant import BattleParticipant
from cardclash.models.card import Card
from cardclash.schemas.card import CardCreate
from cardclash.schemas.common import PaginationData


class CardService:
    def __init__(self, store: Annotated[RecordStore, Depends()]) -> None:
        self.store = store

    async def get_user_cards(
        self, user_id: int, *, page: int, page_size: int, sort_order: SortOrder = SortOrder.DESC
    ) -> tuple[Sequence[Card], PaginationData]:
        offset = (page - 1) * page_size

        total_items = await self.store.scalar(
            select(func.count()).select_from(Card).where(col(Card.user_id) == user_id)
        )
        total_pages = (total_items + page_size - 1) // page_size

        created = col(Card.created_at)
        order = created.desc() if sort_order == SortOrder.DESC else created.asc()
        cards = await self.store.query(
            Card,
            col(Card.user_id) == user_id,
            order_by=(order, col(Card.id)),
            limit=page_size,
            offset=offset,
        )

        pagination = PaginationData(
            page=page, page_size=page_size, total_items=total_items, total_pages=total_pages
        )

        return cards, pagination

    async def get_card(self, card_id: int) -> Card | None:
        return await self.store.get(Card, card_id)

    async def get_owned_card(self, user_id: int, card_id: int) -> Card:
        card = await self.get_card(card_id)
        if card is None or card.user_id != user_id:
            raise HTTPException(status_code=404, detail="Card not found")
        return card

    async def create_card(self, user_id: int, card_data: CardCreate) -> Card:
        card = Card(user_id=user_id, hp=settings.card_default_hp, **card_data.model_dump())
        await self.store.insert(card)
        await self.store.commit()
        return card

    async def delete_card(self, user_id: int, card_id: int) -> bool:
        card = await self.get_card(card_id)
        if not card or card.user_id != user_id:
            return False

        used = await self.store.scalar(
            select(func.count())
            .select_from(BattleParticipant)
            .where(col(BattleParticipant.card_id) == card_id)
        )
        if used:
            # Turn logs of past battles still point at this card
            raise HTTPException(status_code=409, detail="Card has already fought in a battle")

        deleted = await self.store.delete(Card, col(Card.id) == card_id)
        await self.store.commit()
        return deleted > 0
