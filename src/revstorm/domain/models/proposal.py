from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from revstorm.domain.models.game_state import CalendarDate, PotentialSuccessor
from revstorm.domain.models.trait import Trait


@dataclass(frozen=True)
class Choice:
    id: str
    text: str
    intent: str = ""
    required_attribute: Optional[str] = None
    difficulty: Optional[int] = None

    @property
    def requires_check(self) -> bool:
        return bool(self.required_attribute) and bool(self.difficulty)


@dataclass(frozen=True)
class StatsDelta:
    political_standing: int = 0
    health: int = 0
    mental: int = 0
    power_points: int = 0


@dataclass(frozen=True)
class SupremeLeaderUpdate:
    name: Optional[str] = None
    slogan: Optional[str] = None
    symbol: Optional[str] = None


@dataclass(frozen=True)
class PlayerFactionUpdate:
    faction_name: str
    is_leader: bool


@dataclass
class NarrativeProposal:
    """A sanitized collaborator document; ``None`` on an optional field means the proposal omitted it."""

    narrative: str
    date: Optional[CalendarDate] = None
    stats_delta: StatsDelta = field(default_factory=StatsDelta)
    choices: List[Choice] = field(default_factory=list)
    is_game_over: bool = False
    game_over_reason: Optional[str] = None
    inventory_add: List[str] = field(default_factory=list)
    inventory_remove: List[str] = field(default_factory=list)
    trait_additions: List[Trait] = field(default_factory=list)
    trait_removal_ids: List[str] = field(default_factory=list)
    roster_candidate: Any = None
    supreme_leader_update: Optional[SupremeLeaderUpdate] = None
    player_faction_update: Optional[PlayerFactionUpdate] = None
    potential_successors: Optional[List[PotentialSuccessor]] = None
    designated_successor: Optional[str] = None
    suggested_heirs: Optional[List[str]] = None
