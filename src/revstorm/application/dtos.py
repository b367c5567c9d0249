from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ChoiceView:
    id: str
    text: str
    intent: str = ""
    required_attribute: Optional[str] = None
    difficulty: Optional[int] = None
    threshold: Optional[int] = None
    requires_check: bool = False
    is_special: bool = False
    is_pity: bool = False


@dataclass
class TraitView:
    id: str
    name: str
    rarity: str
    description: str = ""
    modifiers_line: str = ""
    duration: Optional[int] = None


@dataclass
class FactionView:
    name: str
    percentage: float
    leaders: List[str] = field(default_factory=list)
    color: str = ""
    allied_with: Optional[str] = None
    is_player_faction: bool = False


@dataclass
class HistoryEntryView:
    date_label: str
    text: str
    result: str
    trait_lines: List[str] = field(default_factory=list)
    deltas_line: str = ""
    faction_change_line: str = ""


@dataclass
class SuccessorView:
    id: str
    name: str
    description: str
    background: str
    preferred: bool = False


@dataclass
class CheckView:
    choice_id: str
    phase: str
    action_text: str
    draw: Optional[int] = None
    threshold: Optional[int] = None
    critical_floor: Optional[int] = None
    outcome: Optional[str] = None
    fate_points_remaining: int = 0
    fate_points_consumed: int = 0
    can_spend_fate_point: bool = False


@dataclass
class TurnView:
    year: int
    month: int
    date_label: str
    name: str
    age: int
    background: str
    narrative: str
    political_standing: int
    health: int
    mental: int
    red_stars: int
    power_points: int
    current_faction: str
    is_leader: bool
    supreme_leader: str
    supreme_leader_slogan: str
    ruling_party_symbol: str
    theme_color: str
    attributes: Dict[str, int] = field(default_factory=dict)
    base_attributes: Dict[str, int] = field(default_factory=dict)
    inventory: List[str] = field(default_factory=list)
    traits: List[TraitView] = field(default_factory=list)
    factions: List[FactionView] = field(default_factory=list)
    history: List[HistoryEntryView] = field(default_factory=list)
    choices: List[ChoiceView] = field(default_factory=list)
    is_game_over: bool = False
    game_over_reason: Optional[str] = None
    potential_successors: List[SuccessorView] = field(default_factory=list)
    designated_successor: Optional[str] = None
    suggested_heirs: List[str] = field(default_factory=list)
    pending_power_debit: int = 0
    turn_pending: bool = False
    retry_available: bool = False
    last_error: Optional[str] = None
    check: Optional[CheckView] = None
