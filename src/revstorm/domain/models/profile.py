from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from revstorm.domain.models.attributes import AttributeSet
from revstorm.domain.models.game_state import BackgroundType
from revstorm.domain.models.trait import Trait


@dataclass
class CharacterProfile:
    """Everything the player settles on before the opening scene is requested."""

    name: str
    background: BackgroundType
    attributes: AttributeSet
    birth_year: int
    backstory: str = ""
    traits: List[Trait] = field(default_factory=list)
    foreign_faction: Optional[str] = None
