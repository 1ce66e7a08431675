from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from cardclash.core.security import get_current_user_id
from cardclash.schemas.common import APIResponse
from cardclash.schemas.matchmaking import MatchmakingRequest, MatchTicket
from cardclash.services.matchmaking import MatchmakingService

router = APIRouter(prefix="/matchmaking", tags=["matchmaking"])


@router.post("/")
async def start_matchmaking(
    request: MatchmakingRequest,
    service: Annotated[MatchmakingService, Depends()],
    user_id: Annotated[int, Depends(get_current_user_id)],
) -> APIResponse[MatchTicket]:
    ticket = await service.start_matchmaking(user_id, request.card_id)
    message = "Waiting for an opponent" if ticket.created else "Opponent found"
    return APIResponse(data=ticket, message=message)


@router.delete("/{battle_id}")
async def cancel_matchmaking(
    battle_id: int,
    service: Annotated[MatchmakingService, Depends()],
    user_id: Annotated[int, Depends(get_current_user_id)],
) -> APIResponse[None]:
    cancelled = await service.cancel_matchmaking(user_id, battle_id)
    if not cancelled:
        raise HTTPException(status_code=409, detail="Battle is not waiting or not yours")
    return APIResponse(message="Matchmaking cancelled")
