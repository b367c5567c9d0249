import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from revstorm.application.services.trait_ledger import (
    decay_durations,
    effective_attributes,
    merge_traits,
    reconcile_trait_changes,
    sanitize_proposed_traits,
    supreme_leader_trait,
)
from revstorm.domain.models.attributes import AttributeSet
from revstorm.domain.models.trait import Trait, TraitChangeKind, TraitRarity


class EffectiveAttributeTests(unittest.TestCase):
    def test_sums_base_and_every_trait_modifier(self) -> None:
        base = AttributeSet(physique=5, intelligence=6, spirit=4, agility=5, charisma=7, politics=7)
        traits = [
            Trait(id="a", name="Orator", modifiers={"charisma": 3, "politics": 2}),
            Trait(id="b", name="Bruised", modifiers={"physique": -2, "charisma": -1}),
        ]

        effective = effective_attributes(base, traits)

        self.assertEqual(9, effective.charisma)
        self.assertEqual(9, effective.politics)
        self.assertEqual(3, effective.physique)
        self.assertEqual(6, effective.intelligence)
        self.assertEqual(7, base.charisma)

    def test_no_traits_returns_base_values(self) -> None:
        base = AttributeSet()
        self.assertEqual(base.as_dict(), effective_attributes(base, []).as_dict())


class SanitizeProposedTraitTests(unittest.TestCase):
    def test_heavily_negative_political_trait_is_forced_to_crime(self) -> None:
        rows = sanitize_proposed_traits(
            [{"name": "Counter-revolutionary", "rarity": "rare", "modifiers": {"politics": -12, "charisma": -6}}]
        )

        self.assertEqual(1, len(rows))
        self.assertEqual(TraitRarity.CRIME, rows[0].rarity)

    def test_mild_negative_trait_becomes_negative(self) -> None:
        rows = sanitize_proposed_traits([{"name": "Cough", "rarity": "epic", "modifiers": {"physique": -2}}])
        self.assertEqual(TraitRarity.NEGATIVE, rows[0].rarity)

    def test_modifiers_are_coerced_clamped_and_zero_entries_dropped(self) -> None:
        rows = sanitize_proposed_traits(
            [{"name": "Zealot", "modifiers": {"spirit": "45", "charisma": "abc", "agility": 0, "luck": 3, "politics": -30}}]
        )

        self.assertEqual({"spirit": 20, "politics": -20}, rows[0].modifiers)
        self.assertEqual(TraitRarity.COMMON, rows[0].rarity)

    def test_unknown_rarity_defaults_to_common_and_id_is_generated(self) -> None:
        rows = sanitize_proposed_traits([{"name": "Lucky", "rarity": "mythic", "modifiers": {"spirit": 1}}])

        self.assertEqual(TraitRarity.COMMON, rows[0].rarity)
        self.assertTrue(rows[0].id.startswith("trait_"))

    def test_non_list_and_non_object_entries_degrade_with_anomalies(self) -> None:
        anomalies: list[str] = []
        self.assertEqual([], sanitize_proposed_traits("nope", anomalies))
        rows = sanitize_proposed_traits(["junk", {"name": "Steady"}], anomalies)

        self.assertEqual(["Steady"], [trait.name for trait in rows])
        self.assertEqual(2, len(anomalies))

    def test_oversized_numeric_modifier_is_dropped_not_raised(self) -> None:
        rows = sanitize_proposed_traits([{"name": "x", "modifiers": {"politics": "9" * 5000, "spirit": "4"}}])

        self.assertEqual({"spirit": 4}, rows[0].modifiers)


class MergeTraitTests(unittest.TestCase):
    def test_removals_apply_before_additions(self) -> None:
        active = [Trait(id="t1", name="Tired"), Trait(id="t2", name="Brave")]
        additions = [Trait(id="t3", name="Hopeful")]

        kept, changes = merge_traits(active, additions, ["t1"])

        self.assertEqual(["Brave", "Hopeful"], [trait.name for trait in kept])
        self.assertEqual([TraitChangeKind.REMOVE, TraitChangeKind.ADD], [change.kind for change in changes])

    def test_name_collision_evicts_old_trait_and_reconciles_to_update(self) -> None:
        active = [Trait(id="t1", name="Watched", rarity=TraitRarity.NEGATIVE)]
        additions = [Trait(id="t9", name="Watched", rarity=TraitRarity.CRIME)]

        kept, changes = merge_traits(active, additions, [])
        reconciled = reconcile_trait_changes(changes)

        self.assertEqual(["t9"], [trait.id for trait in kept])
        self.assertEqual(1, len(reconciled))
        self.assertEqual(TraitChangeKind.UPDATE, reconciled[0].kind)
        self.assertEqual(TraitRarity.CRIME, reconciled[0].rarity)

    def test_trait_names_stay_unique(self) -> None:
        active = [Trait(id="t1", name="Watched")]
        kept, _ = merge_traits(active, [Trait(id="t2", name="Watched"), Trait(id="t3", name="Watched")], [])
        self.assertEqual(["t3"], [trait.id for trait in kept])

    def test_colliding_ids_are_reassigned_so_removal_targets_one_trait(self) -> None:
        active = [Trait(id="t1", name="Brave")]
        additions = sanitize_proposed_traits([{"id": "t1", "name": "Cunning"}, {"id": "t1", "name": "Patient"}])

        kept, _ = merge_traits(active, additions, [])
        ids = [trait.id for trait in kept]

        self.assertEqual(["Brave", "Cunning", "Patient"], [trait.name for trait in kept])
        self.assertEqual("t1", ids[0])
        self.assertEqual(3, len(set(ids)))

        remaining, _ = merge_traits(kept, [], ["t1"])
        self.assertEqual(["Cunning", "Patient"], [trait.name for trait in remaining])


class DecayDurationTests(unittest.TestCase):
    def test_durations_decrement_and_expired_traits_drop(self) -> None:
        active = [
            Trait(id="a", name="Fever", duration=1),
            Trait(id="b", name="Inspired", duration=5),
            Trait(id="c", name="Scarred"),
        ]

        rows = decay_durations(active, 2)

        self.assertEqual(["Inspired", "Scarred"], [trait.name for trait in rows])
        self.assertEqual(3, rows[0].duration)
        self.assertIsNone(rows[1].duration)
        self.assertEqual(5, active[1].duration)

    def test_zero_months_changes_nothing(self) -> None:
        active = [Trait(id="a", name="Fever", duration=1)]
        self.assertEqual(1, decay_durations(active, 0)[0].duration)


class SupremeLeaderTraitTests(unittest.TestCase):
    def test_supreme_leader_trait_is_legendary(self) -> None:
        trait = supreme_leader_trait()
        self.assertEqual(TraitRarity.LEGENDARY, trait.rarity)
        self.assertEqual(10, trait.modifiers["politics"])
        self.assertIsNone(trait.duration)


if __name__ == "__main__":
    unittest.main()
