from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from cardclash.core.change_feed import ChangeFeed, change_feed, get_change_feed
from cardclash.core.db import new_session
from cardclash.core.errors import InvariantViolationError
from cardclash.core.security import get_current_user_id
from cardclash.core.store import RecordStore
from cardclash.schemas.battle import ActionReceipt, ActionRequest, BattleView
from cardclash.schemas.common import APIResponse
from cardclash.services.battle import BattleService
from cardclash.services.session_sync import SessionSynchronizer

router = APIRouter(prefix="/battles", tags=["battles"])


def _sse_event(event: str, data: str) -> dict[str, str]:
    return {"event": event, "data": data}


@router.get("/{battle_id}")
async def get_battle(
    battle_id: int,
    service: Annotated[BattleService, Depends()],
    user_id: Annotated[int, Depends(get_current_user_id)],
) -> APIResponse[BattleView]:
    view = await service.get_participant_view(battle_id, user_id)
    return APIResponse(data=view)


@router.post("/{battle_id}/actions")
async def perform_action(
    battle_id: int,
    request: ActionRequest,
    service: Annotated[BattleService, Depends()],
    feed: Annotated[ChangeFeed, Depends(get_change_feed)],
    user_id: Annotated[int, Depends(get_current_user_id)],
) -> APIResponse[ActionReceipt]:
    await service.get_participant_view(battle_id, user_id)

    sync = SessionSynchronizer(service, feed, battle_id=battle_id, user_id=user_id)
    applied = await sync.perform_action(request.action_type)

    receipt = ActionReceipt(battle_id=battle_id, action_type=request.action_type, applied=applied)
    return APIResponse(data=receipt, message="Action applied" if applied else "Action ignored")


async def _battle_events(battle_id: int, user_id: int) -> AsyncGenerator[dict[str, str]]:
    # The stream outlives the request, so it cannot borrow the request's session
    async with new_session() as session:
        service = BattleService(RecordStore(session, change_feed))
        sync = SessionSynchronizer(service, change_feed, battle_id=battle_id, user_id=user_id)
        try:
            async for view in sync.watch():
                yield _sse_event("battle", view.model_dump_json())
        except InvariantViolationError as e:
            error = APIResponse[None](
                status="error",
                code="invariant_violation",
                message=f"{e.detail}. Return to the menu.",
            )
            yield _sse_event("error", error.model_dump_json())
            return

        if sync.gone:
            withdrawn = APIResponse[None](message="Battle withdrawn")
            yield _sse_event("withdrawn", withdrawn.model_dump_json())


@router.get("/{battle_id}/events")
async def stream_battle(
    battle_id: int,
    service: Annotated[BattleService, Depends()],
    user_id: Annotated[int, Depends(get_current_user_id)],
) -> EventSourceResponse:
    await service.get_participant_view(battle_id, user_id)
    await service.store.release()
    return EventSourceResponse(_battle_events(battle_id, user_id))
