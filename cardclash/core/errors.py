class CardClashError(Exception):
    """Base class for all engine errors."""


class StoreUnavailableError(CardClashError):
    """The record store could not be reached or timed out."""


class StoreConflictError(CardClashError):
    """A write was rejected by a uniqueness or foreign key constraint."""


class IllegalActionError(CardClashError):
    """An action was attempted out of turn, twice, or on a battle that is not active."""


class StaleJoinError(CardClashError):
    """A matchmaking join lost the race for the open slot."""

    def __init__(self, battle_id: int, reason: str) -> None:
        super().__init__(f"Join of battle {battle_id} lost the race: {reason}")
        self.battle_id = battle_id
        self.reason = reason


class InvariantViolationError(CardClashError):
    """A battle was observed in a shape that cannot be played any further."""

    def __init__(self, battle_id: int, detail: str) -> None:
        super().__init__(f"Battle {battle_id} is corrupted: {detail}")
        self.battle_id = battle_id
        self.detail = detail
