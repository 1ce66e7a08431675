from collections.abc import Sequence
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from cardclash.core.enums import SortOrder
from cardclash.core.security import get_current_user_id
from cardclash.models.card import Card
from cardclash.schemas.card import CardCreate
from cardclash.schemas.common import APIResponse, PaginatedResponse
from cardclash.services.card import CardService

router = APIRouter(prefix="/cards", tags=["cards"])


@router.get("/")
async def get_my_cards(
    service: Annotated[CardService, Depends()],
    user_id: Annotated[int, Depends(get_current_user_id)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 10,
    sort_order: Annotated[SortOrder, Query(description="Order by creation time")] = SortOrder.DESC,
) -> PaginatedResponse[Sequence[Card]]:
    cards, pagination = await service.get_user_cards(
        user_id, page=page, page_size=page_size, sort_order=sort_order
    )
    return PaginatedResponse(data=cards, pagination=pagination)


@router.get("/{card_id}")
async def get_card(card_id: int, service: Annotated[CardService, Depends()]) -> APIResponse[Card]:
    card = await service.get_card(card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Card not found")
    return APIResponse(data=card)


@router.post("/")
async def create_card(
    card: CardCreate,
    service: Annotated[CardService, Depends()],
    user_id: Annotated[int, Depends(get_current_user_id)],
) -> APIResponse[Card]:
    created_card = await service.create_card(user_id, card)
    return APIResponse(data=created_card, message="Card created successfully")


@router.delete("/{card_id}")
async def delete_card(
    card_id: int,
    service: Annotated[CardService, Depends()],
    user_id: Annotated[int, Depends(get_current_user_id)],
) -> APIResponse[None]:
    deleted = await service.delete_card(user_id, card_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Card not found")
    return APIResponse(message="Card deleted successfully")
