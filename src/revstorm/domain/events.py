from dataclasses import dataclass


@dataclass
class CheckResolved:
    choice_id: str
    outcome: str
    draws: int
    fate_points_consumed: int


@dataclass
class TurnMerged:
    year: int
    month: int
    outcome: str
    history_length: int
    anomalies: int


@dataclass
class PowerPointGranted:
    year: int
    month: int
    power_points_after: int


@dataclass
class GameOverReached:
    year: int
    month: int
    reason: str
    has_successors: bool
