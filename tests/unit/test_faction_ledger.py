import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from revstorm.application.services.faction_ledger import (
    baseline_roster,
    resolve_theme_color,
    sync_leadership_flag,
    validate_roster,
)
from revstorm.domain.models.attributes import AttributeSet
from revstorm.domain.models.faction import DEFAULT_THEME_COLOR, Faction, total_share
from revstorm.domain.models.game_state import PlayerStats


def _stats(**overrides) -> PlayerStats:
    values = dict(
        birth_year=1946,
        political_standing=60,
        health=85,
        mental=70,
        red_stars=3,
        power_points=0,
        current_faction="Rebels",
        is_leader=False,
        attributes=AttributeSet(),
    )
    values.update(overrides)
    return PlayerStats(**values)


def _record(name: str, percentage, leaders=None, color="#D62828") -> dict:
    return {"name": name, "percentage": percentage, "leaders": leaders or [], "color": color}


class ValidateRosterTests(unittest.TestCase):
    def test_well_formed_roster_is_accepted(self) -> None:
        roster = validate_roster(
            [
                _record("Rebels", 50, ["Kuai Dafu"]),
                {**_record("Loyalists", 50), "alliedWith": "Rebels"},
            ]
        )

        self.assertIsNotNone(roster)
        self.assertEqual(["Rebels", "Loyalists"], [faction.name for faction in roster])
        self.assertEqual("Rebels", roster[1].allied_with)

    def test_non_list_candidate_is_rejected(self) -> None:
        self.assertIsNone(validate_roster({"name": "Rebels"}))
        self.assertIsNone(validate_roster(None))
        self.assertIsNone(validate_roster([]))

    def test_one_bad_record_rejects_the_whole_roster(self) -> None:
        candidate = [_record("Rebels", 50), {"name": "Loyalists", "percentage": "fifty", "leaders": [], "color": "#111"}]
        self.assertIsNone(validate_roster(candidate))

    def test_share_total_tolerance(self) -> None:
        self.assertIsNotNone(validate_roster([_record("Rebels", 60.5), _record("Loyalists", 40)]))
        self.assertIsNone(validate_roster([_record("Rebels", 70), _record("Loyalists", 40)]))

    def test_repeated_faction_names_reject_the_roster(self) -> None:
        self.assertIsNone(validate_roster([_record("Rebels", 50), _record("Rebels", 50)]))
        self.assertIsNone(validate_roster([_record("Rebels", 50), _record(" Rebels ", 50)]))

    def test_existing_faction_objects_are_accepted(self) -> None:
        roster = validate_roster(baseline_roster(1966))
        self.assertEqual(3, len(roster))


class LeadershipSyncTests(unittest.TestCase):
    def test_player_listed_as_leader_is_promoted(self) -> None:
        roster = [Faction(name="Rebels", percentage=100, leaders=["Commander Li Wei"])]
        synced = sync_leadership_flag(_stats(), roster, "Li Wei")
        self.assertTrue(synced.is_leader)

    def test_other_faction_listing_does_not_promote(self) -> None:
        roster = [Faction(name="Loyalists", percentage=100, leaders=["Li Wei"])]
        self.assertFalse(sync_leadership_flag(_stats(), roster, "Li Wei").is_leader)

    def test_missing_from_roster_never_demotes(self) -> None:
        roster = [Faction(name="Rebels", percentage=100, leaders=[])]
        self.assertTrue(sync_leadership_flag(_stats(is_leader=True), roster, "Li Wei").is_leader)


class ThemeAndBaselineTests(unittest.TestCase):
    def test_theme_color_follows_supreme_leader_faction(self) -> None:
        roster = [Faction(name="Loyalists", percentage=100, leaders=["Mao Zedong"], color="#1e3a8a")]
        self.assertEqual("#1e3a8a", resolve_theme_color("Mao Zedong", roster))
        self.assertEqual(DEFAULT_THEME_COLOR, resolve_theme_color("Someone Else", roster))
        self.assertEqual(DEFAULT_THEME_COLOR, resolve_theme_color(None, roster))

    def test_baseline_rosters_sum_to_one_hundred(self) -> None:
        for year in (1966, 1968, 1975):
            self.assertAlmostEqual(100.0, total_share(baseline_roster(year)))
        self.assertIn("Military Control", [faction.name for faction in baseline_roster(1969)])


if __name__ == "__main__":
    unittest.main()
