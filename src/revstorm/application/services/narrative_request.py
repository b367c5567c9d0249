from __future__ import annotations

from typing import Any, Dict, List, Optional

from revstorm.application.mappers.game_state_mapper import history_entry_to_dict
from revstorm.application.services.balance_tables import (
    MANIPULATION_POWER_COST,
    POWER_GRANT_COOLDOWN_MONTHS,
    RECENT_HISTORY_WINDOW,
    SPECIAL_MANIPULATE_CHOICE_ID,
    TESTAMENT_HEALTH_THRESHOLD,
    WRITE_TESTAMENT_CHOICE_ID,
)
from revstorm.application.services.check_resolution import ResolvedAction
from revstorm.application.services.faction_ledger import faction_to_mapping, is_foreign_faction
from revstorm.application.services.trait_ledger import effective_attributes, trait_to_mapping
from revstorm.domain.models.game_state import GameState
from revstorm.domain.models.profile import CharacterProfile
from revstorm.domain.models.request import OPENING_REQUEST, TURN_REQUEST, NarrativeRequest
from revstorm.domain.models.settings import GameSettings


_ATTRIBUTE_ENUM = ["physique", "intelligence", "spirit", "agility", "charisma", "politics"]

_TRAIT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "description": {"type": "string"},
        "rarity": {"type": "string", "enum": ["common", "rare", "epic", "legendary", "crime", "negative", "hidden"]},
        "modifiers": {
            "type": ["object", "null"],
            "properties": {name: {"type": "integer"} for name in _ATTRIBUTE_ENUM},
        },
        "duration": {"type": ["integer", "null"], "description": "Months until the trait expires; null means permanent."},
    },
    "required": ["id", "name", "description", "rarity"],
}

_FACTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "percentage": {"type": "number"},
        "leaders": {"type": "array", "items": {"type": "string"}},
        "color": {"type": "string"},
        "alliedWith": {"type": ["string", "null"]},
        "description": {"type": ["string", "null"]},
    },
    "required": ["name", "percentage", "leaders", "color"],
}

NARRATIVE_PROPOSAL_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "narrative": {"type": "string"},
        "year": {"type": "integer"},
        "month": {"type": "integer"},
        "statsDelta": {
            "type": "object",
            "properties": {
                "politicalStanding": {"type": "integer"},
                "health": {"type": "integer"},
                "mental": {"type": "integer"},
                "powerPoints": {"type": "integer"},
            },
            "required": ["politicalStanding", "health", "mental"],
        },
        "choices": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "text": {"type": "string"},
                    "intent": {"type": "string"},
                    "requiredAttribute": {"type": "string", "enum": _ATTRIBUTE_ENUM},
                    "difficulty": {"type": "integer", "description": "Base difficulty 0-100 before attribute modifiers."},
                },
                "required": ["id", "text", "intent", "difficulty"],
            },
        },
        "isGameOver": {"type": "boolean"},
        "gameOverReason": {"type": ["string", "null"]},
        "inventoryUpdate": {
            "type": "object",
            "properties": {
                "add": {"type": "array", "items": {"type": "string"}},
                "remove": {"type": "array", "items": {"type": "string"}},
            },
        },
        "traitsUpdate": {
            "type": "object",
            "properties": {
                "add": {"type": "array", "items": _TRAIT_SCHEMA},
                "removeIds": {"type": "array", "items": {"type": "string"}},
            },
        },
        "factionsUpdate": {"type": "array", "items": _FACTION_SCHEMA},
        "supremeLeaderUpdate": {
            "type": "object",
            "properties": {"name": {"type": "string"}, "slogan": {"type": "string"}, "symbol": {"type": "string"}},
        },
        "playerFactionUpdate": {
            "type": "object",
            "properties": {"factionName": {"type": "string"}, "isLeader": {"type": "boolean"}},
            "required": ["factionName", "isLeader"],
        },
        "potentialSuccessors": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "name": {"type": "string"},
                    "description": {"type": "string"},
                    "background": {"type": "string"},
                },
                "required": ["id", "name", "description", "background"],
            },
        },
        "designatedSuccessorUpdate": {"type": ["string", "null"]},
        "suggestedHeirs": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["narrative", "year", "month", "statsDelta", "choices", "isGameOver"],
}


def _settings_payload(settings: GameSettings) -> Dict[str, Any]:
    return {
        "monthsPerTurn": settings.months_per_turn,
        "historyStyle": settings.history_style.value,
        "baseLuck": settings.base_luck,
    }


def power_grant_ready(state: GameState) -> bool:
    if not state.stats.is_leader:
        return False
    last_grant = state.last_power_point_grant
    return last_grant is None or last_grant.months_until(state.date) >= POWER_GRANT_COOLDOWN_MONTHS


def testament_required(state: GameState) -> bool:
    return (
        state.stats.is_leader
        and state.stats.health < TESTAMENT_HEALTH_THRESHOLD
        and not state.designated_successor
    )


def engine_constraints(state: GameState, settings: GameSettings) -> Dict[str, Any]:
    foreign = is_foreign_faction(state)
    return {
        "powerGrantReady": power_grant_ready(state),
        "maxPowerPointDelta": 1 if power_grant_ready(state) else 0,
        "manipulationChoiceAllowed": state.stats.power_points >= MANIPULATION_POWER_COST,
        "manipulationChoiceId": SPECIAL_MANIPULATE_CHOICE_ID,
        "isForeignFaction": foreign,
        "manipulationMeaning": "foster_proxy" if foreign else "intervene",
        "testamentRequired": testament_required(state),
        "testamentChoiceId": WRITE_TESTAMENT_CHOICE_ID,
        "designatedSuccessor": state.designated_successor,
        "isSupremeLeader": state.is_supreme_leader,
        **_settings_payload(settings),
    }


def build_opening_request(
    profile: CharacterProfile,
    settings: GameSettings,
    previous_state: Optional[GameState] = None,
) -> NarrativeRequest:
    payload: Dict[str, Any] = {
        "name": profile.name,
        "background": profile.background.value,
        "birthYear": profile.birth_year,
        "backstory": profile.backstory,
        "attributes": effective_attributes(profile.attributes, profile.traits).as_dict(),
        "traits": [trait_to_mapping(trait) for trait in profile.traits],
        "foreignFaction": profile.foreign_faction,
        **_settings_payload(settings),
    }
    if previous_state is not None:
        payload["inheritedWorld"] = {
            "year": previous_state.year,
            "month": previous_state.month,
            "supremeLeader": previous_state.supreme_leader,
            "factions": [faction_to_mapping(faction) for faction in previous_state.factions],
            "recentHistory": _recent_history(previous_state),
        }
    return NarrativeRequest(kind=OPENING_REQUEST, payload=payload, schema=NARRATIVE_PROPOSAL_SCHEMA)


def build_turn_request(state: GameState, action: ResolvedAction, settings: GameSettings) -> NarrativeRequest:
    stats = state.stats
    payload = {
        "year": state.year,
        "month": state.month,
        "name": state.name,
        "age": state.age,
        "background": state.background.value,
        "stats": {
            "politicalStanding": stats.political_standing,
            "health": stats.health,
            "mental": stats.mental,
            "redStars": stats.red_stars,
            "powerPoints": stats.power_points,
            "currentFaction": stats.current_faction,
            "isLeader": stats.is_leader,
            "inventory": list(stats.inventory),
        },
        "attributes": effective_attributes(stats.attributes, stats.traits).as_dict(),
        "traits": [trait_to_mapping(trait) for trait in stats.traits],
        "factions": [faction_to_mapping(faction) for faction in state.factions],
        "supremeLeader": state.supreme_leader,
        "recentHistory": _recent_history(state),
        "action": {"choiceId": action.choice_id, "text": action.text, "outcome": action.outcome.value},
        "constraints": engine_constraints(state, settings),
    }
    return NarrativeRequest(kind=TURN_REQUEST, payload=payload, schema=NARRATIVE_PROPOSAL_SCHEMA)


def _recent_history(state: GameState) -> List[Dict[str, Any]]:
    return [history_entry_to_dict(entry) for entry in state.history[-RECENT_HISTORY_WINDOW:]]
