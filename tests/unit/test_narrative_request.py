import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from revstorm.application.services.faction_ledger import is_foreign_faction
from revstorm.application.services.narrative_request import engine_constraints
from revstorm.domain.models.attributes import AttributeSet
from revstorm.domain.models.faction import Faction
from revstorm.domain.models.game_state import BackgroundType, CalendarDate, GameState, PlayerStats
from revstorm.domain.models.settings import GameSettings


def _state(name: str = "Li Wei", background: BackgroundType = BackgroundType.ORDINARY, **stats_overrides) -> GameState:
    stats = PlayerStats(
        birth_year=1906,
        political_standing=60,
        health=85,
        mental=70,
        red_stars=3,
        power_points=0,
        current_faction="Rebels",
        is_leader=False,
        attributes=AttributeSet(),
    )
    for key, value in stats_overrides.items():
        setattr(stats, key, value)
    return GameState(
        year=1967,
        month=1,
        background=background,
        name=name,
        stats=stats,
        factions=[
            Faction(name="Rebels", percentage=60, leaders=["Kuai Dafu"], color="#D62828"),
            Faction(name="Loyalists", percentage=40, leaders=["Mao Zedong"], color="#1e3a8a"),
        ],
        supreme_leader="Mao Zedong",
        supreme_leader_slogan="Serve the people",
        ruling_party_symbol="☭",
    )


class ForeignFactionTests(unittest.TestCase):
    def test_historical_figure_outside_the_roster_is_foreign(self) -> None:
        state = _state("Leonid Brezhnev", BackgroundType.HISTORICAL, current_faction="CPSU", is_leader=True)
        self.assertTrue(is_foreign_faction(state))

    def test_domestic_players_are_not_foreign(self) -> None:
        self.assertFalse(is_foreign_faction(_state("Kuai Dafu", BackgroundType.HISTORICAL)))
        self.assertFalse(is_foreign_faction(_state(current_faction="CPSU")))
        self.assertFalse(is_foreign_faction(_state("Mao Zedong", BackgroundType.HISTORICAL, current_faction="Politburo")))


class EngineConstraintTests(unittest.TestCase):
    def test_foreign_leader_is_told_manipulation_means_a_proxy(self) -> None:
        state = _state("Leonid Brezhnev", BackgroundType.HISTORICAL, current_faction="CPSU", is_leader=True, power_points=1)
        constraints = engine_constraints(state, GameSettings())

        self.assertTrue(constraints["isForeignFaction"])
        self.assertEqual("foster_proxy", constraints["manipulationMeaning"])
        self.assertTrue(constraints["manipulationChoiceAllowed"])

    def test_domestic_constraints(self) -> None:
        constraints = engine_constraints(_state(), GameSettings())

        self.assertFalse(constraints["isForeignFaction"])
        self.assertEqual("intervene", constraints["manipulationMeaning"])
        self.assertFalse(constraints["powerGrantReady"])
        self.assertEqual(0, constraints["maxPowerPointDelta"])

    def test_dying_leader_without_heir_must_be_offered_a_testament(self) -> None:
        state = _state(is_leader=True, health=15)
        state.last_power_point_grant = CalendarDate(1966, 11)
        constraints = engine_constraints(state, GameSettings())

        self.assertTrue(constraints["testamentRequired"])
        self.assertFalse(constraints["powerGrantReady"])


if __name__ == "__main__":
    unittest.main()
