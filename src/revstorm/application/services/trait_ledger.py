from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

from revstorm.application.services.balance_tables import (
    CRIME_SUM_THRESHOLD,
    MODIFIER_BOUND,
    SUPREME_LEADER_TRAIT_DESCRIPTION,
    SUPREME_LEADER_TRAIT_MODIFIERS,
    SUPREME_LEADER_TRAIT_NAME,
)
from revstorm.application.services.coercion import clamp, coerce_int, coerce_optional_int, safe_string
from revstorm.domain.models.attributes import AttributeSet, normalize_attribute_name
from revstorm.domain.models.trait import Trait, TraitChange, TraitChangeKind, TraitRarity


logger = logging.getLogger(__name__)


def effective_attributes(base: AttributeSet, traits: Iterable[Trait]) -> AttributeSet:
    """Base set plus every active trait modifier, summed per dimension."""

    totals: dict[str, int] = {}
    for trait in traits or []:
        for key, delta in (trait.modifiers or {}).items():
            name = normalize_attribute_name(key)
            if name is None:
                continue
            totals[name] = totals.get(name, 0) + int(delta)
    return base.with_modifiers(totals)


def new_trait_id() -> str:
    return f"trait_{uuid.uuid4().hex[:12]}"


def sanitize_modifiers(raw: Any) -> dict[str, int]:
    if not isinstance(raw, Mapping):
        return {}
    modifiers: dict[str, int] = {}
    for key, value in raw.items():
        name = normalize_attribute_name(key)
        if name is None:
            continue
        amount = clamp(coerce_int(value, 0), -MODIFIER_BOUND, MODIFIER_BOUND)
        if amount == 0:
            continue
        modifiers[name] = amount
    return modifiers


def derive_rarity(rarity: TraitRarity, modifiers: Mapping[str, int]) -> TraitRarity:
    values = list(modifiers.values())
    if not values or any(value > 0 for value in values):
        return rarity
    total = sum(values)
    if total < CRIME_SUM_THRESHOLD and int(modifiers.get("politics", 0)) < 0:
        return TraitRarity.CRIME
    if total < 0 and rarity != TraitRarity.CRIME:
        return TraitRarity.NEGATIVE
    return rarity


def sanitize_trait(raw: Mapping[str, Any]) -> Trait:
    modifiers = sanitize_modifiers(raw.get("modifiers"))
    rarity = TraitRarity.normalize(raw.get("rarity")) or TraitRarity.COMMON
    duration = coerce_optional_int(raw.get("duration"))
    trait_id = safe_string(raw.get("id")).strip() or new_trait_id()
    return Trait(
        id=trait_id,
        name=safe_string(raw.get("name")).strip() or "Unnamed trait",
        description=safe_string(raw.get("description")),
        rarity=derive_rarity(rarity, modifiers),
        modifiers=modifiers,
        duration=duration,
    )


def sanitize_proposed_traits(raw_list: Any, anomalies: List[str] | None = None) -> List[Trait]:
    if not isinstance(raw_list, (list, tuple)):
        if raw_list is not None and anomalies is not None:
            anomalies.append("trait additions were not a list; ignored")
        return []

    rows: List[Trait] = []
    for index, raw in enumerate(raw_list):
        if isinstance(raw, Trait):
            raw = trait_to_mapping(raw)
        if not isinstance(raw, Mapping):
            if anomalies is not None:
                anomalies.append(f"trait #{index} was not an object; dropped")
            continue
        rows.append(sanitize_trait(raw))
    return rows


def trait_to_mapping(trait: Trait) -> dict[str, Any]:
    return {
        "id": trait.id,
        "name": trait.name,
        "description": trait.description,
        "rarity": trait.rarity.value,
        "modifiers": dict(trait.modifiers),
        "duration": trait.duration,
    }


def merge_traits(
    active: Sequence[Trait],
    additions: Sequence[Trait],
    removal_ids: Iterable[str],
) -> Tuple[List[Trait], List[TraitChange]]:
    changes: List[TraitChange] = []
    removal = {str(item) for item in removal_ids or []}

    kept: List[Trait] = []
    for trait in active:
        if trait.id in removal:
            changes.append(TraitChange(kind=TraitChangeKind.REMOVE, name=trait.name, rarity=trait.rarity))
        else:
            kept.append(trait)

    for addition in additions:
        evicted = [trait for trait in kept if trait.name == addition.name]
        for trait in evicted:
            changes.append(TraitChange(kind=TraitChangeKind.REMOVE, name=trait.name, rarity=trait.rarity))
        if evicted:
            kept = [trait for trait in kept if trait.name != addition.name]
        if any(trait.id == addition.id for trait in kept):
            logger.info("Trait id already held; reassigned", extra={"trait": addition.name, "trait_id": addition.id})
            addition = replace(addition, id=new_trait_id())
        kept.append(addition)
        changes.append(TraitChange(kind=TraitChangeKind.ADD, name=addition.name, rarity=addition.rarity))

    return kept, changes


def decay_durations(active: Sequence[Trait], months_elapsed: int) -> List[Trait]:
    if int(months_elapsed) <= 0:
        return list(active)

    rows: List[Trait] = []
    for trait in active:
        if trait.duration is None:
            rows.append(trait)
            continue
        remaining = int(trait.duration) - int(months_elapsed)
        if remaining <= 0:
            logger.debug("Trait expired", extra={"trait": trait.name, "months_elapsed": months_elapsed})
            continue
        rows.append(
            Trait(
                id=trait.id,
                name=trait.name,
                description=trait.description,
                rarity=trait.rarity,
                modifiers=dict(trait.modifiers),
                duration=remaining,
            )
        )
    return rows


def reconcile_trait_changes(change_log: Sequence[TraitChange]) -> List[TraitChange]:
    """Collapse REMOVE/ADD pairs sharing a name into one UPDATE that carries the added rarity."""

    removed_names = {change.name for change in change_log if change.kind == TraitChangeKind.REMOVE}
    added_names = {change.name for change in change_log if change.kind == TraitChangeKind.ADD}
    replaced = removed_names & added_names

    rows: List[TraitChange] = []
    for change in change_log:
        if change.name in replaced:
            if change.kind == TraitChangeKind.ADD:
                rows.append(TraitChange(kind=TraitChangeKind.UPDATE, name=change.name, rarity=change.rarity))
            continue
        rows.append(change)
    return rows


def has_trait_named(traits: Iterable[Trait], name: str) -> bool:
    return any(trait.name == name for trait in traits or [])


def supreme_leader_trait() -> Trait:
    return Trait(
        id=new_trait_id(),
        name=SUPREME_LEADER_TRAIT_NAME,
        description=SUPREME_LEADER_TRAIT_DESCRIPTION,
        rarity=TraitRarity.LEGENDARY,
        modifiers=dict(SUPREME_LEADER_TRAIT_MODIFIERS),
    )
