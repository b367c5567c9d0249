import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from revstorm.application.errors import InteractionStateError
from revstorm.application.services.balance_tables import (
    ACTION_MANIPULATE_CHOICE_ID,
    PITY_CHOICE_ID,
    SPECIAL_MANIPULATE_CHOICE_ID,
)
from revstorm.application.services.check_resolution import (
    CheckInteraction,
    InteractionPhase,
    classify_roll,
    compute_thresholds,
    offered_choices,
    pity_choice,
)
from revstorm.domain.models.attributes import AttributeSet
from revstorm.domain.models.check import CheckThresholds, RollResult
from revstorm.domain.models.proposal import Choice


class _ScriptedRng:
    def __init__(self, *values: int) -> None:
        self._values = list(values)
        self.calls = 0

    def randint(self, low: int, high: int) -> int:
        self.calls += 1
        return self._values.pop(0)


def _interaction(
    choice: Choice, *draws: int, fate_points: int = 2, politics: int = 5, supreme: bool = False, foreign: bool = False
):
    rng = _ScriptedRng(*draws)
    interaction = CheckInteraction(
        choice,
        attributes=AttributeSet(intelligence=5, politics=politics),
        fate_points_available=fate_points,
        rng=rng,
        is_supreme_leader=supreme,
        is_foreign_leader=foreign,
    )
    return interaction, rng


_STUDY = Choice(id="study", text="Study the editorials.", required_attribute="intelligence", difficulty=60)


class ThresholdTests(unittest.TestCase):
    def test_threshold_is_difficulty_minus_twice_attribute(self) -> None:
        self.assertEqual(CheckThresholds(threshold=50, critical_floor=95), compute_thresholds(60, 5))

    def test_threshold_is_clamped_to_bounds(self) -> None:
        self.assertEqual(95, compute_thresholds(200, 0).threshold)
        self.assertEqual(5, compute_thresholds(10, 20).threshold)

    def test_overflow_below_minimum_lowers_critical_floor(self) -> None:
        thresholds = compute_thresholds(10, 20)
        self.assertEqual(60, thresholds.critical_floor)
        self.assertEqual(20, compute_thresholds(1, 100).critical_floor)

    def test_missing_difficulty_uses_default(self) -> None:
        self.assertEqual(40, compute_thresholds(None, 5).threshold)

    def test_classification_bands(self) -> None:
        thresholds = CheckThresholds(threshold=50, critical_floor=95)
        self.assertEqual(RollResult.CRITICAL_FAILURE, classify_roll(5, thresholds))
        self.assertEqual(RollResult.FAILURE, classify_roll(50, thresholds))
        self.assertEqual(RollResult.SUCCESS, classify_roll(51, thresholds))
        self.assertEqual(RollResult.CRITICAL_SUCCESS, classify_roll(95, thresholds))


class CheckInteractionTests(unittest.TestCase):
    def test_reroll_then_decline_reports_one_fate_point(self) -> None:
        interaction, _ = _interaction(_STUDY, 30, 40, fate_points=2)

        self.assertEqual(InteractionPhase.FAILURE_INTERRUPT, interaction.start())
        self.assertEqual(InteractionPhase.FAILURE_INTERRUPT, interaction.reroll())
        self.assertEqual(45, interaction.thresholds.threshold)
        self.assertEqual(1, interaction.fate_points_remaining)

        result = interaction.decline_reroll()

        self.assertEqual(1, result.fate_points_consumed)
        self.assertEqual(RollResult.FAILURE, result.outcome)
        self.assertEqual(2, len(result.draws))

    def test_failure_without_fate_points_resolves_directly(self) -> None:
        interaction, _ = _interaction(_STUDY, 12, fate_points=0)

        self.assertEqual(InteractionPhase.RESOLVED, interaction.start())
        self.assertEqual(RollResult.FAILURE, interaction.result.outcome)

    def test_high_success_earns_a_fate_point(self) -> None:
        interaction, _ = _interaction(_STUDY, 90)
        interaction.start()
        self.assertTrue(interaction.result.earned_fate_point)
        self.assertEqual(RollResult.SUCCESS, interaction.result.outcome)

    def test_accepting_a_critical_earns_a_fate_point(self) -> None:
        interaction, _ = _interaction(_STUDY, 97)

        self.assertEqual(InteractionPhase.CRITICAL_INTERRUPT, interaction.start())
        result = interaction.accept_critical()

        self.assertEqual(RollResult.CRITICAL_SUCCESS, result.outcome)
        self.assertTrue(result.earned_fate_point)
        self.assertTrue(result.natural_critical)
        self.assertEqual(0, result.fate_points_consumed)

    def test_customizing_a_critical_spends_a_point_and_rolls_the_new_text(self) -> None:
        interaction, _ = _interaction(_STUDY, 98, 70)
        interaction.start()

        self.assertEqual(InteractionPhase.RESOLVED, interaction.customize_critical("Write a big-character poster"))

        result = interaction.result
        self.assertEqual("[Custom] Write a big-character poster", result.text)
        self.assertEqual(1, result.fate_points_consumed)
        self.assertEqual(RollResult.SUCCESS, result.outcome)
        self.assertTrue(result.natural_critical)

    def test_customizing_requires_text(self) -> None:
        interaction, _ = _interaction(_STUDY, 98)
        interaction.start()
        with self.assertRaises(InteractionStateError):
            interaction.customize_critical("   ")

    def test_wrong_phase_is_rejected(self) -> None:
        interaction, _ = _interaction(_STUDY, 60)
        interaction.start()
        with self.assertRaises(InteractionStateError):
            interaction.reroll()

    def test_choice_without_check_resolves_as_none_without_drawing(self) -> None:
        interaction, rng = _interaction(Choice(id="wait", text="Wait.", difficulty=0))

        self.assertEqual(InteractionPhase.RESOLVED, interaction.start())
        self.assertEqual(RollResult.NONE, interaction.result.outcome)
        self.assertEqual(0, rng.calls)

    def test_pity_choice_succeeds_without_drawing(self) -> None:
        interaction, rng = _interaction(pity_choice())
        interaction.start()

        self.assertEqual(RollResult.SUCCESS, interaction.result.outcome)
        self.assertTrue(interaction.result.pity_used)
        self.assertEqual(0, rng.calls)

    def test_supreme_leader_special_action_waits_for_directive(self) -> None:
        choice = Choice(id=SPECIAL_MANIPULATE_CHOICE_ID, text="Tip the scales.", difficulty=50)
        interaction, rng = _interaction(choice, supreme=True)

        self.assertEqual(InteractionPhase.LEADER_INTERRUPT, interaction.start())
        result = interaction.resolve_leader_action("Purge the work teams")

        self.assertEqual(RollResult.SUCCESS, result.outcome)
        self.assertEqual("[Supreme Leader] wields power: Purge the work teams", result.text)
        self.assertEqual(1, result.power_points_spent)
        self.assertEqual(0, rng.calls)

    def test_manipulation_without_attribute_rolls_on_politics(self) -> None:
        choice = Choice(id=SPECIAL_MANIPULATE_CHOICE_ID, text="Tip the scales.", difficulty=60)
        interaction, _ = _interaction(choice, 70, politics=10)
        interaction.start()

        self.assertEqual(40, interaction.thresholds.threshold)
        self.assertEqual(RollResult.SUCCESS, interaction.result.outcome)
        self.assertEqual(1, interaction.result.power_points_spent)

    def test_foreign_leader_intervention_resolves_without_a_draw(self) -> None:
        choice = Choice(id=ACTION_MANIPULATE_CHOICE_ID, text="Foster a proxy.", difficulty=50)
        interaction, rng = _interaction(choice, foreign=True)

        self.assertEqual(InteractionPhase.LEADER_INTERRUPT, interaction.start())
        result = interaction.resolve_leader_action("Arm the rebel headquarters")

        self.assertEqual(RollResult.SUCCESS, result.outcome)
        self.assertEqual("[Foreign intervention] wields power: Arm the rebel headquarters", result.text)
        self.assertEqual(1, result.power_points_spent)
        self.assertEqual(0, rng.calls)

    def test_domestic_intervention_is_still_checked(self) -> None:
        choice = Choice(id=ACTION_MANIPULATE_CHOICE_ID, text="Foster a proxy.", difficulty=60)
        interaction, rng = _interaction(choice, 70, politics=10)

        self.assertEqual(InteractionPhase.RESOLVED, interaction.start())
        self.assertEqual(1, rng.calls)


class OfferedChoiceTests(unittest.TestCase):
    def test_special_choice_hidden_without_power(self) -> None:
        choices = [Choice(id=SPECIAL_MANIPULATE_CHOICE_ID, text="Tip the scales."), Choice(id="wait", text="Wait.")]

        self.assertEqual(["wait"], [c.id for c in offered_choices(choices, power_points=0, turns_since_last_critical=0)])
        self.assertEqual(2, len(offered_choices(choices, power_points=1, turns_since_last_critical=0)))

    def test_pity_choice_injected_after_long_drought(self) -> None:
        rows = offered_choices([Choice(id="wait", text="Wait.")], power_points=0, turns_since_last_critical=10)
        self.assertEqual(PITY_CHOICE_ID, rows[-1].id)
        rows = offered_choices([Choice(id="wait", text="Wait.")], power_points=0, turns_since_last_critical=9)
        self.assertEqual(1, len(rows))

    def test_foreign_leader_with_power_is_offered_the_intervention(self) -> None:
        base = [Choice(id="wait", text="Wait.")]

        rows = offered_choices(base, power_points=1, turns_since_last_critical=0, foreign_intervention=True)
        self.assertEqual(["wait", ACTION_MANIPULATE_CHOICE_ID], [c.id for c in rows])
        rows = offered_choices(base, power_points=0, turns_since_last_critical=0, foreign_intervention=True)
        self.assertEqual(["wait"], [c.id for c in rows])


if __name__ == "__main__":
    unittest.main()
