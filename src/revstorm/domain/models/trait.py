from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class TraitRarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    CRIME = "crime"
    NEGATIVE = "negative"
    HIDDEN = "hidden"

    @classmethod
    def normalize(cls, value: object) -> Optional["TraitRarity"]:
        """Resolve a rarity from its value, its name or a legacy label; ``None`` when unknown."""

        if isinstance(value, TraitRarity):
            return value
        raw = str(value or "").strip()
        aliases = {
            "普通": cls.COMMON,
            "稀有": cls.RARE,
            "罕见": cls.EPIC,
            "独特": cls.LEGENDARY,
            "罪名": cls.CRIME,
            "恶劣": cls.NEGATIVE,
            "隐秘": cls.HIDDEN,
        }
        if raw in aliases:
            return aliases[raw]
        lowered = raw.lower()
        for item in cls:
            if lowered in {item.value, item.name.lower()}:
                return item
        return None


TRAIT_SORT_ORDER: Dict[TraitRarity, int] = {
    TraitRarity.LEGENDARY: 0,
    TraitRarity.CRIME: 1,
    TraitRarity.NEGATIVE: 2,
    TraitRarity.EPIC: 3,
    TraitRarity.RARE: 4,
    TraitRarity.COMMON: 5,
    TraitRarity.HIDDEN: 6,
}


@dataclass
class Trait:
    id: str
    name: str
    description: str = ""
    rarity: TraitRarity = TraitRarity.COMMON
    modifiers: Dict[str, int] = field(default_factory=dict)
    duration: Optional[int] = None

    @property
    def is_permanent(self) -> bool:
        return self.duration is None


class TraitChangeKind(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"
    UPDATE = "UPDATE"


@dataclass(frozen=True)
class TraitChange:
    kind: TraitChangeKind
    name: str
    rarity: Optional[TraitRarity] = None


def sort_traits_for_display(traits: list[Trait]) -> list[Trait]:
    return sorted(traits, key=lambda trait: TRAIT_SORT_ORDER.get(trait.rarity, 99))
