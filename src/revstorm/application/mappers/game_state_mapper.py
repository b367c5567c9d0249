from __future__ import annotations

from typing import Any, Dict, List, Mapping

from revstorm.application.services.faction_ledger import faction_to_mapping
from revstorm.application.services.trait_ledger import trait_to_mapping
from revstorm.domain.models.attributes import AttributeSet
from revstorm.domain.models.check import RollResult
from revstorm.domain.models.faction import Faction
from revstorm.domain.models.game_state import (
    BackgroundType,
    CalendarDate,
    FactionChange,
    GameState,
    HistoryEntry,
    PlayerStats,
    PotentialSuccessor,
    TurnDeltas,
)
from revstorm.domain.models.trait import Trait, TraitChange, TraitChangeKind, TraitRarity


def state_to_dict(state: GameState) -> Dict[str, Any]:
    stats = state.stats
    return {
        "year": state.year,
        "month": state.month,
        "name": state.name,
        "background": state.background.value,
        "supremeLeader": state.supreme_leader,
        "supremeLeaderSlogan": state.supreme_leader_slogan,
        "rulingPartySymbol": state.ruling_party_symbol,
        "isGameOver": state.is_game_over,
        "gameOverReason": state.game_over_reason,
        "backstory": state.backstory,
        "turnsSinceLastCritical": state.turns_since_last_critical,
        "designatedSuccessor": state.designated_successor,
        "suggestedHeirs": list(state.suggested_heirs),
        "potentialSuccessors": [successor_to_dict(item) for item in state.potential_successors],
        "lastPowerPointGrant": (
            {"year": state.last_power_point_grant.year, "month": state.last_power_point_grant.month}
            if state.last_power_point_grant is not None
            else None
        ),
        "stats": {
            "birthYear": stats.birth_year,
            "politicalStanding": stats.political_standing,
            "health": stats.health,
            "mental": stats.mental,
            "redStars": stats.red_stars,
            "powerPoints": stats.power_points,
            "currentFaction": stats.current_faction,
            "isLeader": stats.is_leader,
            "inventory": list(stats.inventory),
            "attributes": stats.attributes.as_dict(),
            "traits": [trait_to_mapping(trait) for trait in stats.traits],
        },
        "factions": [faction_to_mapping(faction) for faction in state.factions],
        "historySummary": [history_entry_to_dict(entry) for entry in state.history],
    }


def successor_to_dict(successor: PotentialSuccessor) -> Dict[str, Any]:
    return {
        "id": successor.id,
        "name": successor.name,
        "description": successor.description,
        "background": successor.background.value,
        "preferred": successor.preferred,
    }


def history_entry_to_dict(entry: HistoryEntry) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "year": entry.year,
        "month": entry.month,
        "text": entry.text,
        "result": entry.result.value,
        "traitChanges": [
            {"type": change.kind.value, "name": change.name, "rarity": change.rarity.value if change.rarity else None}
            for change in entry.trait_changes
        ],
    }
    if entry.deltas is not None:
        row["deltas"] = {"redStars": entry.deltas.red_stars, "powerPoints": entry.deltas.power_points}
    if entry.faction_change is not None:
        row["factionChange"] = {"from": entry.faction_change.from_faction, "to": entry.faction_change.to_faction}
    return row


def state_from_dict(payload: Mapping[str, Any]) -> GameState:
    """Decode a document written by ``state_to_dict``; foreign documents go through the sanitizer instead."""

    stats = payload["stats"]
    grant = payload.get("lastPowerPointGrant")
    return GameState(
        year=int(payload["year"]),
        month=int(payload["month"]),
        background=BackgroundType.normalize(payload["background"]),
        name=str(payload["name"]),
        stats=PlayerStats(
            birth_year=int(stats["birthYear"]),
            political_standing=int(stats["politicalStanding"]),
            health=int(stats["health"]),
            mental=int(stats["mental"]),
            red_stars=int(stats["redStars"]),
            power_points=int(stats["powerPoints"]),
            current_faction=str(stats["currentFaction"]),
            is_leader=bool(stats["isLeader"]),
            attributes=AttributeSet(**{key: int(value) for key, value in stats["attributes"].items()}),
            inventory=[str(item) for item in stats.get("inventory", [])],
            traits=[trait_from_dict(item) for item in stats.get("traits", [])],
        ),
        factions=[faction_from_dict(item) for item in payload.get("factions", [])],
        supreme_leader=str(payload["supremeLeader"]),
        supreme_leader_slogan=str(payload.get("supremeLeaderSlogan") or ""),
        ruling_party_symbol=str(payload.get("rulingPartySymbol") or ""),
        history=[history_entry_from_dict(item) for item in payload.get("historySummary", [])],
        is_game_over=bool(payload.get("isGameOver", False)),
        game_over_reason=payload.get("gameOverReason"),
        backstory=str(payload.get("backstory") or ""),
        turns_since_last_critical=int(payload.get("turnsSinceLastCritical", 0)),
        designated_successor=payload.get("designatedSuccessor"),
        suggested_heirs=[str(item) for item in payload.get("suggestedHeirs") or []],
        potential_successors=[successor_from_dict(item) for item in payload.get("potentialSuccessors") or []],
        last_power_point_grant=CalendarDate(int(grant["year"]), int(grant["month"])) if grant else None,
    )


def trait_from_dict(payload: Mapping[str, Any]) -> Trait:
    return Trait(
        id=str(payload["id"]),
        name=str(payload["name"]),
        description=str(payload.get("description") or ""),
        rarity=TraitRarity.normalize(payload.get("rarity")) or TraitRarity.COMMON,
        modifiers={str(key): int(value) for key, value in (payload.get("modifiers") or {}).items()},
        duration=int(payload["duration"]) if payload.get("duration") is not None else None,
    )


def faction_from_dict(payload: Mapping[str, Any]) -> Faction:
    return Faction(
        name=str(payload["name"]),
        percentage=payload["percentage"],
        leaders=list(payload.get("leaders") or []),
        color=str(payload.get("color")),
        allied_with=payload.get("alliedWith"),
        description=payload.get("description"),
    )


def successor_from_dict(payload: Mapping[str, Any]) -> PotentialSuccessor:
    return PotentialSuccessor(
        id=str(payload["id"]),
        name=str(payload["name"]),
        description=str(payload.get("description") or ""),
        background=BackgroundType.normalize(payload.get("background")),
        preferred=bool(payload.get("preferred", False)),
    )


def history_entry_from_dict(payload: Mapping[str, Any]) -> HistoryEntry:
    deltas = payload.get("deltas")
    change = payload.get("factionChange")
    return HistoryEntry(
        year=int(payload["year"]),
        month=int(payload["month"]),
        text=str(payload.get("text") or ""),
        result=RollResult.normalize(payload.get("result")),
        trait_changes=trait_changes_from_list(payload.get("traitChanges") or []),
        deltas=TurnDeltas(red_stars=int(deltas.get("redStars", 0)), power_points=int(deltas.get("powerPoints", 0))) if deltas else None,
        faction_change=FactionChange(from_faction=str(change["from"]), to_faction=str(change["to"])) if change else None,
    )


def trait_changes_from_list(rows: List[Mapping[str, Any]]) -> List[TraitChange]:
    changes: List[TraitChange] = []
    for row in rows:
        kind = str(row.get("type", "")).upper()
        if kind not in TraitChangeKind.__members__:
            continue
        changes.append(TraitChange(kind=TraitChangeKind(kind), name=str(row.get("name", "")), rarity=TraitRarity.normalize(row.get("rarity"))))
    return changes
