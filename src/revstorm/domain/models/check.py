from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RollResult(str, Enum):
    CRITICAL_SUCCESS = "CRITICAL_SUCCESS"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    CRITICAL_FAILURE = "CRITICAL_FAILURE"
    NONE = "NONE"

    @property
    def is_success(self) -> bool:
        return self in {RollResult.SUCCESS, RollResult.CRITICAL_SUCCESS}

    @property
    def is_failure(self) -> bool:
        return self in {RollResult.FAILURE, RollResult.CRITICAL_FAILURE}

    @classmethod
    def normalize(cls, value: object) -> "RollResult":
        raw = str(getattr(value, "value", value) or "").strip().upper()
        for item in cls:
            if raw == item.value:
                return item
        return cls.NONE


@dataclass(frozen=True)
class CheckThresholds:
    threshold: int
    critical_floor: int

    def lowered(self, step: int, minimum: int) -> "CheckThresholds":
        return CheckThresholds(threshold=max(minimum, self.threshold - int(step)), critical_floor=self.critical_floor)


@dataclass(frozen=True)
class CheckDraw:
    value: int
    threshold: int
    critical_floor: int
    outcome: RollResult
    action_text: str
