from pydantic import BaseModel

from cardclash.core.enums import BattleStatus


class MatchmakingRequest(BaseModel):
    card_id: int


class MatchTicket(BaseModel):
    battle_id: int
    participant_id: int
    status: BattleStatus
    created: bool
    """True when no open battle was found and the caller now hosts a new one"""
