from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class HistoryStyle(str, Enum):
    REALISM = "realism"
    ROMANTICISM = "romanticism"
    DRAMATIZATION = "dramatization"

    @classmethod
    def normalize(cls, value: object) -> "HistoryStyle":
        if isinstance(value, HistoryStyle):
            return value
        raw = str(value or "").strip().lower()
        for item in cls:
            if raw in {item.value, item.name.lower()}:
                return item
        return cls.REALISM


@dataclass
class GameSettings:
    months_per_turn: int = 1
    base_luck: float = 1.0
    history_style: HistoryStyle = HistoryStyle.REALISM
    cheat_mode: bool = False

    def __post_init__(self) -> None:
        try:
            months = int(self.months_per_turn)
        except Exception:
            months = 1
        self.months_per_turn = max(1, min(6, months))

        try:
            luck = float(self.base_luck)
        except Exception:
            luck = 1.0
        self.base_luck = max(0.5, min(2.0, luck))

        self.history_style = HistoryStyle.normalize(self.history_style)
        self.cheat_mode = bool(self.cheat_mode)
