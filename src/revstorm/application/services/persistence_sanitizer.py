from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from revstorm.application.errors import RepairFailedError
from revstorm.application.services.balance_tables import (
    DEFAULT_SLOGAN,
    DEFAULT_START_MONTH,
    DEFAULT_START_YEAR,
    DEFAULT_SUPREME_LEADER,
    DEFAULT_SYMBOL,
    FATE_POINT_SOFT_CAP,
    RECOVERED_HISTORY_TEXT,
    STARTING_FATE_POINTS,
    VITAL_MAX,
    VITAL_MIN,
    starting_stats_for,
)
from revstorm.application.services.coercion import (
    clamp,
    coerce_bool,
    coerce_int,
    coerce_optional_int,
    coerce_str_list,
    optional_string,
    pick,
    safe_string,
)
from revstorm.application.services.faction_ledger import baseline_roster, sync_leadership_flag, validate_roster
from revstorm.application.services.proposal_parser import parse_successors
from revstorm.application.services.trait_ledger import sanitize_proposed_traits
from revstorm.domain.models.attributes import attribute_set_from_mapping, balanced_default_attributes
from revstorm.domain.models.check import RollResult
from revstorm.domain.models.game_state import BackgroundType, CalendarDate, GameState, HistoryEntry, PlayerStats, TurnDeltas
from revstorm.domain.models.trait import Trait


logger = logging.getLogger(__name__)


def sanitize_foreign_state(raw: Any, year: Optional[int] = None, month: Optional[int] = None) -> GameState:
    """Best-effort repair of a state document this engine did not write.

    Missing attributes, roster and history are default-filled; traits and roster pass the same
    validators as live play. Raises ``RepairFailedError`` when the player's identity is gone.
    """

    if not isinstance(raw, Mapping):
        raise RepairFailedError(f"Save document must be an object, got {type(raw).__name__}.")

    name = safe_string(raw.get("name")).strip()
    if not name:
        raise RepairFailedError("Save document has no player name; the character cannot be restored.")

    date = CalendarDate.normalized(
        coerce_optional_int(raw.get("year")) or year or DEFAULT_START_YEAR,
        coerce_optional_int(raw.get("month")) or month or DEFAULT_START_MONTH,
    )
    background = BackgroundType.normalize(raw.get("background"))
    stats_raw = raw.get("stats") if isinstance(raw.get("stats"), Mapping) else {}
    defaults = starting_stats_for(background)

    attributes_raw = stats_raw.get("attributes")
    if isinstance(attributes_raw, Mapping):
        attributes = attribute_set_from_mapping(attributes_raw)
    else:
        logger.info("Recovered save is missing attributes; balanced defaults used", extra={"name": name})
        attributes = balanced_default_attributes()

    stats = PlayerStats(
        birth_year=coerce_int(pick(stats_raw, "birthYear", "birth_year"), date.year - 25),
        political_standing=_vital(pick(stats_raw, "politicalStanding", "political_standing"), defaults["political_standing"]),
        health=_vital(stats_raw.get("health"), defaults["health"]),
        mental=_vital(stats_raw.get("mental"), defaults["mental"]),
        red_stars=clamp(coerce_int(pick(stats_raw, "redStars", "red_stars"), STARTING_FATE_POINTS), 0, FATE_POINT_SOFT_CAP),
        power_points=max(0, coerce_int(pick(stats_raw, "powerPoints", "power_points"), 0)),
        current_faction=safe_string(pick(stats_raw, "currentFaction", "current_faction")).strip() or str(defaults["current_faction"]),
        is_leader=coerce_bool(pick(stats_raw, "isLeader", "is_leader"), False),
        attributes=attributes,
        inventory=coerce_str_list(stats_raw.get("inventory")),
        traits=_unique_by_name(sanitize_proposed_traits(stats_raw.get("traits"))),
    )

    roster = validate_roster(raw.get("factions"))
    if roster is None:
        logger.info("Recovered save has no usable roster; baseline used", extra={"year": date.year})
        roster = baseline_roster(date.year)
    stats = sync_leadership_flag(stats, roster, name)

    grant = pick(raw, "lastPowerPointGrant", "last_power_point_grant")
    last_grant = None
    if isinstance(grant, Mapping):
        grant_year = coerce_optional_int(grant.get("year"))
        grant_month = coerce_optional_int(grant.get("month"))
        if grant_year is not None and grant_month is not None:
            last_grant = CalendarDate.normalized(grant_year, grant_month)

    return GameState(
        year=date.year,
        month=date.month,
        background=background,
        name=name,
        stats=stats,
        factions=roster,
        supreme_leader=optional_string(pick(raw, "supremeLeader", "supreme_leader")) or DEFAULT_SUPREME_LEADER,
        supreme_leader_slogan=optional_string(pick(raw, "supremeLeaderSlogan", "supreme_leader_slogan")) or DEFAULT_SLOGAN,
        ruling_party_symbol=optional_string(pick(raw, "rulingPartySymbol", "ruling_party_symbol")) or DEFAULT_SYMBOL,
        history=_recover_history(pick(raw, "historySummary", "history"), date),
        is_game_over=coerce_bool(pick(raw, "isGameOver", "is_game_over"), False),
        game_over_reason=optional_string(pick(raw, "gameOverReason", "game_over_reason")),
        backstory=safe_string(raw.get("backstory")),
        turns_since_last_critical=max(0, coerce_int(pick(raw, "turnsSinceLastCritical", "turns_since_last_critical"), 0)),
        designated_successor=optional_string(pick(raw, "designatedSuccessor", "designated_successor")),
        suggested_heirs=coerce_str_list(pick(raw, "suggestedHeirs", "suggested_heirs")),
        potential_successors=parse_successors(pick(raw, "potentialSuccessors", "potential_successors", default=[])),
        last_power_point_grant=last_grant,
    )


def _vital(value: Any, default: Any) -> int:
    return clamp(coerce_int(value, int(default)), VITAL_MIN, VITAL_MAX)


def _unique_by_name(traits: List[Trait]) -> List[Trait]:
    rows: List[Trait] = []
    for trait in traits:
        rows = [item for item in rows if item.name != trait.name]
        rows.append(trait)
    return rows


def _recover_history(raw: Any, date: CalendarDate) -> List[HistoryEntry]:
    rows: List[HistoryEntry] = []
    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, Mapping):
                continue
            deltas = item.get("deltas")
            rows.append(
                HistoryEntry(
                    year=coerce_int(item.get("year"), date.year),
                    month=coerce_int(item.get("month"), date.month),
                    text=safe_string(item.get("text")),
                    result=RollResult.normalize(item.get("result")),
                    deltas=(
                        TurnDeltas(
                            red_stars=coerce_int(pick(deltas, "redStars", "red_stars"), 0),
                            power_points=coerce_int(pick(deltas, "powerPoints", "power_points"), 0),
                        )
                        if isinstance(deltas, Mapping)
                        else None
                    ),
                )
            )
    if not rows:
        rows.append(HistoryEntry(year=date.year, month=date.month, text=RECOVERED_HISTORY_TEXT))
    return rows
