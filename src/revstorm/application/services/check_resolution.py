from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from revstorm.application.errors import InteractionStateError
from revstorm.application.services.balance_tables import (
    ACTION_MANIPULATE_CHOICE_ID,
    ATTRIBUTE_THRESHOLD_WEIGHT,
    CRITICAL_FAILURE_MAX_DRAW,
    CRITICAL_FLOOR_MIN,
    DEFAULT_DIFFICULTY,
    HIGH_SUCCESS_STAR_DRAW,
    MANIPULATION_CHOICE_IDS,
    MANIPULATION_POWER_COST,
    PITY_CHOICE_ID,
    PITY_TURN_THRESHOLD,
    REROLL_THRESHOLD_STEP,
    SPECIAL_MANIPULATE_CHOICE_ID,
    THRESHOLD_MAX,
    THRESHOLD_MIN,
)
from revstorm.domain.models.attributes import AttributeSet
from revstorm.domain.models.check import CheckDraw, CheckThresholds, RollResult
from revstorm.domain.models.proposal import Choice


logger = logging.getLogger(__name__)

CUSTOM_ACTION_PREFIX = "[Custom] "
SUPREME_LEADER_ACTION_PREFIX = "[Supreme Leader] wields power: "
FOREIGN_INTERVENTION_PREFIX = "[Foreign intervention] wields power: "
MANIPULATION_ATTRIBUTE = "politics"


class InteractionPhase(str, Enum):
    IDLE = "IDLE"
    ROLLING = "ROLLING"
    CRITICAL_INTERRUPT = "CRITICAL_INTERRUPT"
    FAILURE_INTERRUPT = "FAILURE_INTERRUPT"
    LEADER_INTERRUPT = "LEADER_INTERRUPT"
    RESOLVED = "RESOLVED"


@dataclass(frozen=True)
class ResolvedAction:
    choice_id: str
    text: str
    outcome: RollResult
    fate_points_consumed: int = 0
    earned_fate_point: bool = False
    natural_critical: bool = False
    power_points_spent: int = 0
    pity_used: bool = False
    draws: Tuple[CheckDraw, ...] = ()


def compute_thresholds(base_difficulty: int | None, attribute_value: int) -> CheckThresholds:
    base = int(base_difficulty) if base_difficulty else DEFAULT_DIFFICULTY
    raw = base - ATTRIBUTE_THRESHOLD_WEIGHT * int(attribute_value)
    threshold = max(THRESHOLD_MIN, min(THRESHOLD_MAX, raw))
    if raw < THRESHOLD_MIN:
        overflow = THRESHOLD_MIN - raw
        critical_floor = max(CRITICAL_FLOOR_MIN, THRESHOLD_MAX - overflow)
    else:
        critical_floor = THRESHOLD_MAX
    return CheckThresholds(threshold=threshold, critical_floor=critical_floor)


def classify_roll(value: int, thresholds: CheckThresholds) -> RollResult:
    if value <= CRITICAL_FAILURE_MAX_DRAW:
        return RollResult.CRITICAL_FAILURE
    if value >= thresholds.critical_floor:
        return RollResult.CRITICAL_SUCCESS
    if value > thresholds.threshold:
        return RollResult.SUCCESS
    return RollResult.FAILURE


def draw_check(rng: random.Random, thresholds: CheckThresholds, action_text: str) -> CheckDraw:
    value = rng.randint(1, 100)
    return CheckDraw(
        value=value,
        threshold=thresholds.threshold,
        critical_floor=thresholds.critical_floor,
        outcome=classify_roll(value, thresholds),
        action_text=action_text,
    )


def is_manipulation_choice(choice_id: str) -> bool:
    return choice_id in MANIPULATION_CHOICE_IDS


def pity_choice() -> Choice:
    return Choice(
        id=PITY_CHOICE_ID,
        text="Seize the moment: act freely, and history bends to you.",
        intent="A free action granted after a long run of bad fortune.",
        required_attribute=None,
        difficulty=0,
    )


def foreign_intervention_choice() -> Choice:
    return Choice(
        id=ACTION_MANIPULATE_CHOICE_ID,
        text="Foster a proxy: back a domestic faction from abroad.",
        intent="Spend one power point to intervene from outside the country.",
        required_attribute=None,
        difficulty=0,
    )


def offered_choices(
    choices: List[Choice],
    *,
    power_points: int,
    turns_since_last_critical: int,
    foreign_intervention: bool = False,
) -> List[Choice]:
    """Choices the player may pick this turn.

    Manipulation needs power, a foreign leader with power gets the intervention action, and the pity
    action is injected after a long drought.
    """

    rows = [choice for choice in choices if choice.id != SPECIAL_MANIPULATE_CHOICE_ID or int(power_points) > 0]
    has_power = int(power_points) >= MANIPULATION_POWER_COST
    if foreign_intervention and has_power and not any(choice.id == ACTION_MANIPULATE_CHOICE_ID for choice in rows):
        rows.append(foreign_intervention_choice())
    if int(turns_since_last_critical) >= PITY_TURN_THRESHOLD and not any(choice.id == PITY_CHOICE_ID for choice in rows):
        rows.append(pity_choice())
    return rows


class CheckInteraction:
    """One player action from the click until a single terminal ``ResolvedAction``.

    Fate points consumed by interrupts are counted here only; the turn merge debits them from
    canonical state once the turn lands.
    """

    def __init__(
        self,
        choice: Choice,
        *,
        attributes: AttributeSet,
        fate_points_available: int,
        rng: random.Random,
        is_supreme_leader: bool = False,
        is_foreign_leader: bool = False,
    ) -> None:
        self.choice = choice
        self._attributes = attributes
        self._fate_points = max(0, int(fate_points_available))
        self._rng = rng
        self._is_supreme_leader = bool(is_supreme_leader)
        self._is_foreign_leader = bool(is_foreign_leader)
        self._phase = InteractionPhase.IDLE
        self._consumed = 0
        self._draws: List[CheckDraw] = []
        self._thresholds: Optional[CheckThresholds] = None
        self._action_text = choice.text
        self._natural_critical = False
        self._result: Optional[ResolvedAction] = None

    @property
    def phase(self) -> InteractionPhase:
        return self._phase

    @property
    def fate_points_remaining(self) -> int:
        return self._fate_points - self._consumed

    @property
    def fate_points_consumed(self) -> int:
        return self._consumed

    @property
    def thresholds(self) -> Optional[CheckThresholds]:
        return self._thresholds

    @property
    def last_draw(self) -> Optional[CheckDraw]:
        return self._draws[-1] if self._draws else None

    @property
    def result(self) -> Optional[ResolvedAction]:
        return self._result

    @property
    def power_cost(self) -> int:
        return MANIPULATION_POWER_COST if is_manipulation_choice(self.choice.id) else 0

    def start(self) -> InteractionPhase:
        self._require(InteractionPhase.IDLE)

        if self.choice.id == PITY_CHOICE_ID:
            return self._finish(RollResult.SUCCESS, pity_used=True)

        leader_directive = self.choice.id == SPECIAL_MANIPULATE_CHOICE_ID and self._is_supreme_leader
        foreign_directive = is_manipulation_choice(self.choice.id) and self._is_foreign_leader and not self._is_supreme_leader
        if leader_directive or foreign_directive:
            self._phase = InteractionPhase.LEADER_INTERRUPT
            return self._phase

        attribute = self.choice.required_attribute
        if is_manipulation_choice(self.choice.id) and not attribute:
            attribute = MANIPULATION_ATTRIBUTE
        if not attribute or not self.choice.difficulty or int(self.choice.difficulty) <= 0:
            return self._finish(RollResult.NONE)

        self._thresholds = compute_thresholds(self.choice.difficulty, self._attributes.get(attribute))
        return self._roll()

    def accept_critical(self) -> ResolvedAction:
        self._require(InteractionPhase.CRITICAL_INTERRUPT)
        self._finish(RollResult.CRITICAL_SUCCESS, earned_fate_point=True)
        return self._result

    def customize_critical(self, custom_text: str) -> InteractionPhase:
        self._require(InteractionPhase.CRITICAL_INTERRUPT)
        text = str(custom_text or "").strip()
        if not text:
            raise InteractionStateError("A custom action needs some text.")
        self._spend_fate_point()
        self._action_text = f"{CUSTOM_ACTION_PREFIX}{text}"
        return self._roll()

    def reroll(self) -> InteractionPhase:
        self._require(InteractionPhase.FAILURE_INTERRUPT)
        self._spend_fate_point()
        self._thresholds = self._thresholds.lowered(REROLL_THRESHOLD_STEP, THRESHOLD_MIN)
        return self._roll()

    def decline_reroll(self) -> ResolvedAction:
        self._require(InteractionPhase.FAILURE_INTERRUPT)
        self._finish(self.last_draw.outcome)
        return self._result

    def resolve_leader_action(self, custom_text: str | None = None) -> ResolvedAction:
        self._require(InteractionPhase.LEADER_INTERRUPT)
        text = str(custom_text or "").strip()
        if text:
            prefix = SUPREME_LEADER_ACTION_PREFIX if self._is_supreme_leader else FOREIGN_INTERVENTION_PREFIX
            self._action_text = f"{prefix}{text}"
        self._finish(RollResult.SUCCESS)
        return self._result

    def _roll(self) -> InteractionPhase:
        self._phase = InteractionPhase.ROLLING
        draw = draw_check(self._rng, self._thresholds, self._action_text)
        self._draws.append(draw)
        logger.debug(
            "Check drawn",
            extra={
                "choice_id": self.choice.id,
                "draw": draw.value,
                "threshold": draw.threshold,
                "critical_floor": draw.critical_floor,
                "outcome": draw.outcome.value,
            },
        )

        if draw.outcome == RollResult.CRITICAL_SUCCESS:
            self._natural_critical = True
            self._phase = InteractionPhase.CRITICAL_INTERRUPT
            return self._phase
        if draw.outcome.is_failure and self.fate_points_remaining > 0:
            self._phase = InteractionPhase.FAILURE_INTERRUPT
            return self._phase

        earned = draw.outcome == RollResult.SUCCESS and draw.value > HIGH_SUCCESS_STAR_DRAW
        return self._finish(draw.outcome, earned_fate_point=earned)

    def _finish(self, outcome: RollResult, *, earned_fate_point: bool = False, pity_used: bool = False) -> InteractionPhase:
        self._result = ResolvedAction(
            choice_id=self.choice.id,
            text=self._action_text,
            outcome=outcome,
            fate_points_consumed=self._consumed,
            earned_fate_point=earned_fate_point,
            natural_critical=self._natural_critical,
            power_points_spent=self.power_cost,
            pity_used=pity_used,
            draws=tuple(self._draws),
        )
        self._phase = InteractionPhase.RESOLVED
        return self._phase

    def _spend_fate_point(self) -> None:
        if self.fate_points_remaining < 1:
            raise InteractionStateError("No fate points left to spend.")
        self._consumed += 1

    def _require(self, phase: InteractionPhase) -> None:
        if self._phase != phase:
            raise InteractionStateError(f"Interaction is {self._phase.value}, expected {phase.value}.")
