from enum import StrEnum


class CardType(StrEnum):
    FIRE = "Fire"
    WATER = "Water"
    STONE = "Stone"
    ELECTRIC = "Electric"
    ICE = "ICE"
    STEEL = "Steel"
    PIXIE = "Pixie"


class AbilityType(StrEnum):
    ATTACK = "attack"
    DEFENSE = "defense"
    HEAL = "heal"
    DEBUFF = "debuff"


class BattleStatus(StrEnum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"


class ActionType(StrEnum):
    ATTACK = "attack"
    ABILITY = "ability"
    DEFEND = "defend"


class ChangeEvent(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"
