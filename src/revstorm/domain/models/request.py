from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


OPENING_REQUEST = "opening"
TURN_REQUEST = "turn"


@dataclass(frozen=True)
class NarrativeRequest:
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)
    schema: Dict[str, Any] = field(default_factory=dict)
