from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping

from revstorm.application.errors import MalformedProposalError
from revstorm.application.services.balance_tables import DEFAULT_DIFFICULTY
from revstorm.application.services.coercion import (
    clamp,
    coerce_bool,
    coerce_int,
    coerce_optional_int,
    coerce_str_list,
    optional_string,
    pick,
    safe_string,
    strip_code_fences,
)
from revstorm.application.services.trait_ledger import sanitize_proposed_traits
from revstorm.domain.models.attributes import normalize_attribute_name
from revstorm.domain.models.game_state import BackgroundType, CalendarDate, PotentialSuccessor
from revstorm.domain.models.proposal import (
    Choice,
    NarrativeProposal,
    PlayerFactionUpdate,
    StatsDelta,
    SupremeLeaderUpdate,
)


logger = logging.getLogger(__name__)

CORE_KEYS = ("narrative", "choices", "statsDelta", "stats_delta", "year", "month")


@dataclass
class ParsedProposal:
    proposal: NarrativeProposal
    anomalies: List[str] = field(default_factory=list)


def load_document(raw: Any) -> Mapping[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            raw = json.loads(strip_code_fences(raw))
        except ValueError as exc:
            raise MalformedProposalError(f"Narrative proposal is not valid JSON: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise MalformedProposalError(f"Narrative proposal must be an object, got {type(raw).__name__}.")
    if not any(key in raw for key in CORE_KEYS):
        raise MalformedProposalError("Narrative proposal carries none of the expected fields.")
    return raw


def parse_narrative_proposal(raw: Any) -> ParsedProposal:
    """Turn an untrusted collaborator document into a ``NarrativeProposal``.

    Only a document that cannot be read at all raises ``MalformedProposalError``. Every other defect
    is resolved per field and recorded in ``anomalies``.
    """

    document = load_document(raw)
    anomalies: List[str] = []

    narrative = safe_string(document.get("narrative")).strip()
    if not narrative:
        anomalies.append("narrative missing; empty text used")

    proposal = NarrativeProposal(
        narrative=narrative,
        date=_parse_date(document, anomalies),
        stats_delta=_parse_stats_delta(pick(document, "statsDelta", "stats_delta"), anomalies),
        choices=_parse_choices(document.get("choices"), anomalies),
        is_game_over=coerce_bool(pick(document, "isGameOver", "is_game_over"), False),
        game_over_reason=optional_string(pick(document, "gameOverReason", "game_over_reason")),
    )

    inventory = pick(document, "inventoryUpdate", "inventory_update")
    if inventory is not None:
        if isinstance(inventory, Mapping):
            proposal.inventory_add = coerce_str_list(inventory.get("add"))
            proposal.inventory_remove = coerce_str_list(inventory.get("remove"))
        else:
            anomalies.append("inventory update was not an object; ignored")

    traits = pick(document, "traitsUpdate", "traits_update")
    if traits is not None:
        if isinstance(traits, Mapping):
            proposal.trait_additions = sanitize_proposed_traits(traits.get("add"), anomalies)
            proposal.trait_removal_ids = coerce_str_list(pick(traits, "removeIds", "remove_ids"))
        else:
            anomalies.append("traits update was not an object; ignored")

    proposal.roster_candidate = pick(document, "factionsUpdate", "factions_update")
    if proposal.roster_candidate is not None and not isinstance(proposal.roster_candidate, list):
        anomalies.append("faction roster was not a list; prior roster kept")

    proposal.supreme_leader_update = _parse_supreme_leader(pick(document, "supremeLeaderUpdate", "supreme_leader_update"), anomalies)
    proposal.player_faction_update = _parse_player_faction(pick(document, "playerFactionUpdate", "player_faction_update"), anomalies)

    successors = pick(document, "potentialSuccessors", "potential_successors")
    if successors is not None:
        proposal.potential_successors = parse_successors(successors, anomalies)
    proposal.designated_successor = optional_string(
        pick(document, "designatedSuccessorUpdate", "designated_successor_update", "designatedSuccessor", "designated_successor")
    )
    heirs = pick(document, "suggestedHeirs", "suggested_heirs")
    if heirs is not None:
        proposal.suggested_heirs = coerce_str_list(heirs)

    for anomaly in anomalies:
        logger.warning("Narrative proposal anomaly", extra={"anomaly": anomaly})
    return ParsedProposal(proposal=proposal, anomalies=anomalies)


def _parse_date(document: Mapping[str, Any], anomalies: List[str]) -> CalendarDate | None:
    year = coerce_optional_int(document.get("year"))
    month = coerce_optional_int(document.get("month"))
    if year is None or month is None:
        if "year" in document or "month" in document:
            anomalies.append("proposal date incomplete; calendar advanced by settings")
        return None
    if not 1 <= month <= 12:
        anomalies.append(f"proposal month {month} out of range; normalized")
    return CalendarDate.normalized(year, month)


def _parse_stats_delta(raw: Any, anomalies: List[str]) -> StatsDelta:
    if raw is None:
        anomalies.append("stats delta missing; zero deltas used")
        return StatsDelta()
    if not isinstance(raw, Mapping):
        anomalies.append("stats delta was not an object; zero deltas used")
        return StatsDelta()
    return StatsDelta(
        political_standing=coerce_int(pick(raw, "politicalStanding", "political_standing"), 0),
        health=coerce_int(raw.get("health"), 0),
        mental=coerce_int(raw.get("mental"), 0),
        power_points=coerce_int(pick(raw, "powerPoints", "power_points"), 0),
    )


def _parse_choices(raw: Any, anomalies: List[str]) -> List[Choice]:
    if raw is None:
        anomalies.append("choices missing; no choices offered")
        return []
    if not isinstance(raw, list):
        anomalies.append("choices were not a list; no choices offered")
        return []

    rows: List[Choice] = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            anomalies.append(f"choice #{index} was not an object; dropped")
            continue
        difficulty = coerce_optional_int(item.get("difficulty"))
        if difficulty is None:
            difficulty = DEFAULT_DIFFICULTY
        raw_attribute = pick(item, "requiredAttribute", "required_attribute")
        attribute = normalize_attribute_name(raw_attribute)
        if raw_attribute and attribute is None:
            anomalies.append(f"choice #{index} names unknown attribute {raw_attribute!r}; resolved without a check")
        rows.append(
            Choice(
                id=safe_string(item.get("id")).strip() or f"choice_{index}",
                text=safe_string(item.get("text")),
                intent=safe_string(item.get("intent")),
                required_attribute=attribute,
                difficulty=clamp(difficulty, 0, 100),
            )
        )
    return rows


def _parse_supreme_leader(raw: Any, anomalies: List[str]) -> SupremeLeaderUpdate | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        anomalies.append("supreme leader update was not an object; ignored")
        return None
    return SupremeLeaderUpdate(
        name=optional_string(raw.get("name")),
        slogan=optional_string(raw.get("slogan")),
        symbol=optional_string(raw.get("symbol")),
    )


def _parse_player_faction(raw: Any, anomalies: List[str]) -> PlayerFactionUpdate | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        anomalies.append("player faction update was not an object; ignored")
        return None
    name = optional_string(pick(raw, "factionName", "faction_name"))
    if name is None:
        anomalies.append("player faction update had no faction name; ignored")
        return None
    return PlayerFactionUpdate(faction_name=name, is_leader=coerce_bool(pick(raw, "isLeader", "is_leader"), False))


def parse_successors(raw: Any, anomalies: List[str] | None = None) -> List[PotentialSuccessor]:
    if not isinstance(raw, list):
        if anomalies is not None:
            anomalies.append("potential successors were not a list; ignored")
        return []
    rows: List[PotentialSuccessor] = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            if anomalies is not None:
                anomalies.append(f"successor #{index} was not an object; dropped")
            continue
        name = safe_string(item.get("name")).strip()
        if not name:
            if anomalies is not None:
                anomalies.append(f"successor #{index} had no name; dropped")
            continue
        rows.append(
            PotentialSuccessor(
                id=safe_string(item.get("id")).strip() or f"successor_{index}",
                name=name,
                description=safe_string(item.get("description")),
                background=BackgroundType.normalize(item.get("background")),
                preferred=coerce_bool(item.get("preferred"), False),
            )
        )
    return rows
