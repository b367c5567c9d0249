from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from revstorm.domain.models.attributes import AttributeSet
from revstorm.domain.models.check import RollResult
from revstorm.domain.models.faction import Faction
from revstorm.domain.models.trait import Trait, TraitChange


class BackgroundType(str, Enum):
    RED_FIVE = "red_five"
    BLACK_FIVE = "black_five"
    INTELLECTUAL = "intellectual"
    ORDINARY = "ordinary"
    HISTORICAL = "historical"
    TIME_TRAVELER = "time_traveler"

    @classmethod
    def normalize(cls, value: object, default: "BackgroundType | None" = None) -> "BackgroundType":
        if isinstance(value, BackgroundType):
            return value
        raw = str(value or "").strip()
        aliases = {
            "红五类": cls.RED_FIVE,
            "黑五类": cls.BLACK_FIVE,
            "知识分子": cls.INTELLECTUAL,
            "普通市民": cls.ORDINARY,
            "历史人物": cls.HISTORICAL,
            "穿越者": cls.TIME_TRAVELER,
        }
        if raw in aliases:
            return aliases[raw]
        lowered = raw.lower().replace("-", "_").replace(" ", "_")
        for item in cls:
            if lowered in {item.value, item.name.lower()}:
                return item
        return default or cls.ORDINARY


@dataclass(frozen=True, order=True)
class CalendarDate:
    year: int
    month: int

    @classmethod
    def normalized(cls, year: int, month: int) -> "CalendarDate":
        total = int(year) * 12 + (int(month) - 1)
        return cls(year=total // 12, month=total % 12 + 1)

    @property
    def ordinal(self) -> int:
        return self.year * 12 + (self.month - 1)

    def months_until(self, other: "CalendarDate") -> int:
        return other.ordinal - self.ordinal

    def plus_months(self, months: int) -> "CalendarDate":
        return CalendarDate.normalized(self.year, self.month + int(months))

    def label(self) -> str:
        return f"{self.year}-{self.month:02d}"


@dataclass
class PlayerStats:
    birth_year: int
    political_standing: int
    health: int
    mental: int
    red_stars: int
    power_points: int
    current_faction: str
    is_leader: bool
    attributes: AttributeSet
    inventory: List[str] = field(default_factory=list)
    traits: List[Trait] = field(default_factory=list)


@dataclass(frozen=True)
class FactionChange:
    from_faction: str
    to_faction: str


@dataclass(frozen=True)
class TurnDeltas:
    red_stars: int = 0
    power_points: int = 0


@dataclass
class HistoryEntry:
    year: int
    month: int
    text: str
    result: RollResult = RollResult.NONE
    trait_changes: List[TraitChange] = field(default_factory=list)
    deltas: Optional[TurnDeltas] = None
    faction_change: Optional[FactionChange] = None


@dataclass(frozen=True)
class PotentialSuccessor:
    id: str
    name: str
    description: str = ""
    background: BackgroundType = BackgroundType.ORDINARY
    preferred: bool = False


@dataclass
class GameState:
    year: int
    month: int
    background: BackgroundType
    name: str
    stats: PlayerStats
    factions: List[Faction]
    supreme_leader: str
    supreme_leader_slogan: str
    ruling_party_symbol: str
    history: List[HistoryEntry] = field(default_factory=list)
    is_game_over: bool = False
    game_over_reason: Optional[str] = None
    backstory: str = ""
    turns_since_last_critical: int = 0
    designated_successor: Optional[str] = None
    suggested_heirs: List[str] = field(default_factory=list)
    potential_successors: List[PotentialSuccessor] = field(default_factory=list)
    last_power_point_grant: Optional[CalendarDate] = None

    @property
    def date(self) -> CalendarDate:
        return CalendarDate(year=int(self.year), month=int(self.month))

    @property
    def age(self) -> int:
        return int(self.year) - int(self.stats.birth_year)

    @property
    def is_supreme_leader(self) -> bool:
        return bool(self.name) and self.name == self.supreme_leader
