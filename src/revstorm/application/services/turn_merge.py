from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional

from revstorm.application.services.balance_tables import (
    DEFAULT_SLOGAN,
    DEFAULT_START_MONTH,
    DEFAULT_START_YEAR,
    DEFAULT_SUPREME_LEADER,
    DEFAULT_SYMBOL,
    FATE_POINT_CHEAT_PIN,
    FATE_POINT_SOFT_CAP,
    GAME_OVER_HEALTH,
    GAME_OVER_MENTAL,
    GAME_OVER_POLITICAL,
    POWER_GRANT_CEILING,
    POWER_GRANT_COOLDOWN_MONTHS,
    STARTING_FATE_POINTS,
    SUCCESSOR_AGE,
    SUPREME_LEADER_STARTING_POWER,
    SUPREME_LEADER_TRAIT_NAME,
    UNKNOWN_SUPREME_LEADER,
    VITAL_MAX,
    VITAL_MIN,
    WRITE_TESTAMENT_CHOICE_ID,
    starting_stats_for,
)
from revstorm.application.services.check_resolution import ResolvedAction
from revstorm.application.services.coercion import clamp
from revstorm.application.services.faction_ledger import sync_leadership_flag, validate_roster
from revstorm.application.services.proposal_parser import parse_narrative_proposal
from revstorm.application.services.trait_ledger import (
    decay_durations,
    has_trait_named,
    merge_traits,
    reconcile_trait_changes,
    supreme_leader_trait,
)
from revstorm.domain.models.attributes import balanced_default_attributes
from revstorm.domain.models.game_state import (
    CalendarDate,
    FactionChange,
    GameState,
    HistoryEntry,
    PlayerStats,
    PotentialSuccessor,
    TurnDeltas,
)
from revstorm.domain.models.profile import CharacterProfile
from revstorm.domain.models.proposal import Choice, NarrativeProposal
from revstorm.domain.models.settings import GameSettings
from revstorm.domain.models.trait import TraitChange, TraitChangeKind


logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    state: GameState
    narrative: str
    choices: List[Choice] = field(default_factory=list)
    anomalies: List[str] = field(default_factory=list)
    power_point_granted: bool = False


class TurnMergeEngine:
    """Prior canonical state + resolved action + narrative proposal -> next canonical state.

    Pure with respect to its inputs: the prior state is never mutated.
    """

    def __init__(self, settings: Optional[GameSettings] = None) -> None:
        self.settings = settings or GameSettings()

    def merge(self, prior: GameState, action: ResolvedAction, proposal: Any) -> MergeResult:
        proposal, anomalies = self._coerce_proposal(proposal)
        return self._apply(prior, proposal, anomalies, action=action)

    def open_game(self, profile: CharacterProfile, proposal: Any) -> MergeResult:
        proposal, anomalies = self._coerce_proposal(proposal)

        leader_update = proposal.supreme_leader_update
        supreme_leader = (leader_update.name if leader_update else None) or DEFAULT_SUPREME_LEADER
        is_supreme_leader = profile.name == supreme_leader

        row = starting_stats_for(profile.background)
        stats = PlayerStats(
            birth_year=int(profile.birth_year),
            political_standing=int(row["political_standing"]),
            health=int(row["health"]),
            mental=int(row["mental"]),
            red_stars=STARTING_FATE_POINTS,
            power_points=0,
            current_faction=str(row["current_faction"]),
            is_leader=False,
            attributes=profile.attributes,
            inventory=list(row["inventory"]),
            traits=list(profile.traits),
        )
        if profile.foreign_faction:
            stats.current_faction = profile.foreign_faction
            stats.is_leader = True
        elif is_supreme_leader:
            stats.power_points = SUPREME_LEADER_STARTING_POWER
            stats.is_leader = True

        roster = validate_roster(proposal.roster_candidate) or []
        date = proposal.date or CalendarDate(DEFAULT_START_YEAR, DEFAULT_START_MONTH)
        state = GameState(
            year=date.year,
            month=date.month,
            background=profile.background,
            name=profile.name,
            stats=stats,
            factions=roster,
            supreme_leader=supreme_leader,
            supreme_leader_slogan=(leader_update.slogan if leader_update else None) or DEFAULT_SLOGAN,
            ruling_party_symbol=(leader_update.symbol if leader_update else None) or DEFAULT_SYMBOL,
            backstory=profile.backstory,
        )
        if profile.foreign_faction:
            # Foreign leaders keep the faction they brought with them.
            proposal = replace(proposal, player_faction_update=None)
        return self._apply(state, proposal, anomalies, action=None)

    def inherit(self, prior: GameState, successor: PotentialSuccessor, proposal: Any) -> MergeResult:
        proposal, anomalies = self._coerce_proposal(proposal)

        leader_update = proposal.supreme_leader_update
        supreme_leader = (leader_update.name if leader_update else None) or UNKNOWN_SUPREME_LEADER
        is_supreme_leader = successor.name == supreme_leader

        row = starting_stats_for(successor.background)
        stats = PlayerStats(
            birth_year=int(prior.year) - SUCCESSOR_AGE,
            political_standing=int(row["political_standing"]),
            health=int(row["health"]),
            mental=int(row["mental"]),
            red_stars=STARTING_FATE_POINTS,
            power_points=SUPREME_LEADER_STARTING_POWER if is_supreme_leader else 0,
            current_faction=str(row["current_faction"]),
            is_leader=is_supreme_leader,
            attributes=balanced_default_attributes(),
            inventory=list(row["inventory"]),
            traits=[],
        )
        roster = validate_roster(proposal.roster_candidate)
        date = proposal.date or prior.date
        state = GameState(
            year=date.year,
            month=date.month,
            background=successor.background,
            name=successor.name,
            stats=stats,
            factions=roster if roster is not None else list(prior.factions),
            supreme_leader=supreme_leader,
            supreme_leader_slogan=(leader_update.slogan if leader_update else None) or prior.supreme_leader_slogan,
            ruling_party_symbol=(leader_update.symbol if leader_update else None) or prior.ruling_party_symbol,
            history=list(prior.history),
            backstory=successor.description,
        )
        if is_supreme_leader and proposal.player_faction_update is not None:
            proposal = replace(proposal, player_faction_update=replace(proposal.player_faction_update, is_leader=True))
        return self._apply(state, proposal, anomalies, action=None)

    def _coerce_proposal(self, proposal: Any) -> tuple[NarrativeProposal, List[str]]:
        if isinstance(proposal, NarrativeProposal):
            return proposal, []
        parsed = parse_narrative_proposal(proposal)
        return parsed.proposal, parsed.anomalies

    def _apply(
        self,
        prior: GameState,
        proposal: NarrativeProposal,
        anomalies: List[str],
        *,
        action: Optional[ResolvedAction],
    ) -> MergeResult:
        date, months_elapsed = self._advance_calendar(prior, proposal, opening=action is None)

        traits, trait_log = merge_traits(prior.stats.traits, proposal.trait_additions, proposal.trait_removal_ids)
        traits = decay_durations(traits, months_elapsed)

        inventory = list(prior.stats.inventory) + list(proposal.inventory_add)
        if proposal.inventory_remove:
            removed = set(proposal.inventory_remove)
            inventory = [item for item in inventory if item not in removed]

        roster = validate_roster(proposal.roster_candidate)
        if roster is None:
            if proposal.roster_candidate is not None:
                anomalies.append("faction roster rejected; prior roster kept")
            roster = list(prior.factions)

        current_faction = prior.stats.current_faction
        is_leader = prior.stats.is_leader
        faction_change = None
        faction_update = proposal.player_faction_update
        if faction_update is not None:
            if faction_update.faction_name != current_faction:
                faction_change = FactionChange(from_faction=current_faction, to_faction=faction_update.faction_name)
            current_faction = faction_update.faction_name
            is_leader = faction_update.is_leader

        leader_update = proposal.supreme_leader_update
        supreme_leader = (leader_update.name if leader_update else None) or prior.supreme_leader
        slogan = (leader_update.slogan if leader_update else None) or prior.supreme_leader_slogan
        symbol = (leader_update.symbol if leader_update else None) or prior.ruling_party_symbol
        if prior.name == supreme_leader and not has_trait_named(traits, SUPREME_LEADER_TRAIT_NAME):
            crown = supreme_leader_trait()
            traits.append(crown)
            trait_log.append(TraitChange(kind=TraitChangeKind.ADD, name=crown.name, rarity=crown.rarity))

        delta = proposal.stats_delta
        political_standing = clamp(prior.stats.political_standing + delta.political_standing, VITAL_MIN, VITAL_MAX)
        health = clamp(prior.stats.health + delta.health, VITAL_MIN, VITAL_MAX)
        mental = clamp(prior.stats.mental + delta.mental, VITAL_MIN, VITAL_MAX)

        power_points, last_grant, granted = self._apply_power(prior, delta.power_points, action)
        red_stars = self._apply_fate_points(prior, action)

        stats = PlayerStats(
            birth_year=prior.stats.birth_year,
            political_standing=political_standing,
            health=health,
            mental=mental,
            red_stars=red_stars,
            power_points=power_points,
            current_faction=current_faction,
            is_leader=is_leader,
            attributes=prior.stats.attributes,
            inventory=inventory,
            traits=traits,
        )
        stats = sync_leadership_flag(stats, roster, prior.name)

        is_game_over, reason = self._evaluate_game_over(proposal, stats)

        history = list(prior.history)
        if action is not None:
            history.append(
                HistoryEntry(
                    year=prior.year,
                    month=prior.month,
                    text=action.text,
                    result=action.outcome,
                    trait_changes=reconcile_trait_changes(trait_log),
                    deltas=TurnDeltas(
                        red_stars=red_stars - prior.stats.red_stars,
                        power_points=power_points - prior.stats.power_points,
                    ),
                    faction_change=faction_change,
                )
            )

        designated_successor = prior.designated_successor
        if proposal.designated_successor:
            if action is not None and action.choice_id == WRITE_TESTAMENT_CHOICE_ID:
                designated_successor = proposal.designated_successor
            else:
                logger.info("Designated successor ignored outside a testament", extra={"name": proposal.designated_successor})

        suggested_heirs = list(prior.suggested_heirs)
        if proposal.suggested_heirs is not None:
            suggested_heirs = list(proposal.suggested_heirs)

        potential_successors: List[PotentialSuccessor] = []
        led = prior.stats.is_leader or stats.is_leader or prior.name == prior.supreme_leader
        if is_game_over and led and proposal.potential_successors:
            potential_successors = order_successors(proposal.potential_successors, designated_successor)

        turns_since_critical = prior.turns_since_last_critical
        if action is not None:
            if action.natural_critical or action.pity_used:
                turns_since_critical = 0
            else:
                turns_since_critical += 1

        state = GameState(
            year=date.year,
            month=date.month,
            background=prior.background,
            name=prior.name,
            stats=stats,
            factions=roster,
            supreme_leader=supreme_leader,
            supreme_leader_slogan=slogan,
            ruling_party_symbol=symbol,
            history=history,
            is_game_over=is_game_over,
            game_over_reason=reason,
            backstory=prior.backstory,
            turns_since_last_critical=turns_since_critical,
            designated_successor=designated_successor,
            suggested_heirs=suggested_heirs,
            potential_successors=potential_successors,
            last_power_point_grant=last_grant,
        )
        return MergeResult(
            state=state,
            narrative=proposal.narrative,
            choices=list(proposal.choices),
            anomalies=anomalies,
            power_point_granted=granted,
        )

    def _advance_calendar(self, prior: GameState, proposal: NarrativeProposal, *, opening: bool) -> tuple[CalendarDate, int]:
        if opening:
            return (proposal.date or prior.date), 0
        target = proposal.date or prior.date.plus_months(self.settings.months_per_turn)
        months = prior.date.months_until(target)
        if months < 0:
            logger.info("Proposal date precedes the prior turn; calendar held", extra={"proposed": target.label()})
            return prior.date, 0
        return target, months

    def _apply_power(
        self,
        prior: GameState,
        proposed_delta: int,
        action: Optional[ResolvedAction],
    ) -> tuple[int, Optional[CalendarDate], bool]:
        change = min(POWER_GRANT_CEILING, int(proposed_delta))
        last_grant = prior.last_power_point_grant
        granted = False

        if change > 0:
            if not prior.stats.is_leader:
                logger.info("Power gain ignored for a non-leader")
                change = 0
            elif last_grant is not None and last_grant.months_until(prior.date) < POWER_GRANT_COOLDOWN_MONTHS:
                logger.info(
                    "Power gain ignored during cooldown",
                    extra={"last_grant": last_grant.label(), "turn": prior.date.label()},
                )
                change = 0
            else:
                last_grant = prior.date
                granted = True

        power = max(0, prior.stats.power_points + change)
        spent = action.power_points_spent if action is not None else 0
        power = max(0, power - spent)
        return power, last_grant, granted

    def _apply_fate_points(self, prior: GameState, action: Optional[ResolvedAction]) -> int:
        if self.settings.cheat_mode:
            return FATE_POINT_CHEAT_PIN
        if action is None:
            return prior.stats.red_stars
        earned = 1 if action.earned_fate_point else 0
        return clamp(prior.stats.red_stars + earned - action.fate_points_consumed, 0, FATE_POINT_SOFT_CAP)

    def _evaluate_game_over(self, proposal: NarrativeProposal, stats: PlayerStats) -> tuple[bool, Optional[str]]:
        is_game_over = bool(proposal.is_game_over)
        reason = proposal.game_over_reason

        forced = None
        if stats.health <= 0:
            forced = GAME_OVER_HEALTH
        elif stats.political_standing <= 0:
            forced = GAME_OVER_POLITICAL
        elif stats.mental <= 0:
            forced = GAME_OVER_MENTAL

        if forced is not None:
            is_game_over = True
            reason = reason or forced
            logger.info("Game over forced by exhausted vitals", extra={"reason": reason})
        return is_game_over, reason


def order_successors(candidates: List[PotentialSuccessor], designated: Optional[str]) -> List[PotentialSuccessor]:
    """Designated heir first and flagged preferred; remaining candidates keep their order."""

    if not designated:
        return list(candidates)
    for index, item in enumerate(candidates):
        if item.name == designated:
            rest = list(candidates[:index]) + list(candidates[index + 1:])
            return [replace(item, preferred=True)] + rest
    return list(candidates)
