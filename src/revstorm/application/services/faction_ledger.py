from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, List, Mapping, Optional

from revstorm.application.services.balance_tables import ROSTER_SHARE_TOLERANCE, ROSTER_SHARE_TOTAL
from revstorm.domain.models.faction import DEFAULT_THEME_COLOR, Faction, find_faction
from revstorm.domain.models.game_state import BackgroundType, GameState, PlayerStats


logger = logging.getLogger(__name__)

MILITARY_CONTROL_YEARS = range(1967, 1972)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def _optional_text(value: Any) -> bool:
    return value is None or isinstance(value, str)


def _faction_from_record(record: Any) -> Optional[Faction]:
    if isinstance(record, Faction):
        record = {
            "name": record.name,
            "percentage": record.percentage,
            "leaders": record.leaders,
            "color": record.color,
            "allied_with": record.allied_with,
            "description": record.description,
        }
    if not isinstance(record, Mapping):
        return None

    name = record.get("name")
    percentage = record.get("percentage")
    leaders = record.get("leaders")
    color = record.get("color")
    allied_with = record.get("alliedWith", record.get("allied_with"))
    description = record.get("description")

    if not isinstance(name, str) or not name.strip():
        return None
    if not _is_number(percentage) or not 0 <= float(percentage) <= 100:
        return None
    if not isinstance(leaders, list) or not all(isinstance(item, str) for item in leaders):
        return None
    if not isinstance(color, str):
        return None
    if not _optional_text(allied_with) or not _optional_text(description):
        return None

    return Faction(
        name=name,
        percentage=percentage,
        leaders=list(leaders),
        color=color,
        allied_with=allied_with,
        description=description,
    )


def validate_roster(candidate: Any) -> Optional[List[Faction]]:
    """Accept a whole replacement roster or nothing; ``None`` means keep the prior roster."""

    if not isinstance(candidate, list) or not candidate:
        return None

    roster: List[Faction] = []
    seen: set[str] = set()
    for index, record in enumerate(candidate):
        faction = _faction_from_record(record)
        if faction is None:
            logger.info("Roster rejected: malformed faction record", extra={"index": index})
            return None
        key = faction.name.strip()
        if key in seen:
            logger.info("Roster rejected: duplicate faction name", extra={"faction": key})
            return None
        seen.add(key)
        roster.append(faction)

    total = sum(float(faction.percentage) for faction in roster)
    if abs(total - ROSTER_SHARE_TOTAL) > ROSTER_SHARE_TOLERANCE:
        logger.info("Roster rejected: shares do not sum to 100", extra={"total": total})
        return None
    return roster


def sync_leadership_flag(stats: PlayerStats, roster: List[Faction], player_name: str) -> PlayerStats:
    """Promote the player when their faction lists them as a leader. Never demotes."""

    if stats.is_leader:
        return stats
    for faction in roster:
        if faction.name == stats.current_faction and faction.lists_leader(player_name):
            return replace(stats, is_leader=True)
    return stats


def is_foreign_faction(state: GameState) -> bool:
    """A historical figure whose own party is not part of the domestic roster."""

    if state.background != BackgroundType.HISTORICAL or state.is_supreme_leader:
        return False
    return find_faction(state.factions, state.stats.current_faction) is None


def resolve_theme_color(supreme_leader: str | None, roster: List[Faction]) -> str:
    if not supreme_leader:
        return DEFAULT_THEME_COLOR
    for faction in roster or []:
        if faction.lists_leader(supreme_leader) and faction.color:
            return faction.color
    return DEFAULT_THEME_COLOR


def baseline_roster(year: int | None) -> List[Faction]:
    if year is not None and int(year) in MILITARY_CONTROL_YEARS:
        return [
            Faction(name="Rebels", percentage=35, leaders=["Rebel Headquarters"], color="#D62828"),
            Faction(name="Loyalists", percentage=25, leaders=["Work Teams"], color="#1e3a8a"),
            Faction(name="Wanderers", percentage=20, leaders=[], color="#ca8a04"),
            Faction(name="Military Control", percentage=20, leaders=["Military Control Commission"], color="#166534"),
        ]
    return [
        Faction(name="Rebels", percentage=40, leaders=["Rebel Headquarters"], color="#D62828"),
        Faction(name="Loyalists", percentage=35, leaders=["Work Teams"], color="#1e3a8a"),
        Faction(name="Wanderers", percentage=25, leaders=[], color="#ca8a04"),
    ]


def faction_to_mapping(faction: Faction) -> dict[str, Any]:
    return {
        "name": faction.name,
        "percentage": faction.percentage,
        "leaders": list(faction.leaders),
        "color": faction.color,
        "alliedWith": faction.allied_with,
        "description": faction.description,
    }
