from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


DEFAULT_THEME_COLOR = "#7f1d1d"


@dataclass
class Faction:
    name: str
    percentage: float
    leaders: List[str] = field(default_factory=list)
    color: str = DEFAULT_THEME_COLOR
    allied_with: Optional[str] = None
    description: Optional[str] = None

    def lists_leader(self, person_name: str | None) -> bool:
        """True when any listed leader contains ``person_name`` (substring match)."""

        needle = str(person_name or "").strip()
        if not needle:
            return False
        return any(needle in str(leader) for leader in self.leaders)


def find_faction(roster: List[Faction], name: str | None) -> Optional[Faction]:
    wanted = str(name or "").strip()
    if not wanted:
        return None
    for faction in roster:
        if faction.name == wanted:
            return faction
    return None


def total_share(roster: List[Faction]) -> float:
    return float(sum(float(faction.percentage) for faction in roster))
