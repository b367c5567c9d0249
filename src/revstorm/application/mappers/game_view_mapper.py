from __future__ import annotations

from typing import List, Optional, Sequence

from revstorm.application.dtos import (
    CheckView,
    ChoiceView,
    FactionView,
    HistoryEntryView,
    SuccessorView,
    TraitView,
    TurnView,
)
from revstorm.application.services.balance_tables import MANIPULATION_CHOICE_IDS, PITY_CHOICE_ID
from revstorm.application.services.check_resolution import CheckInteraction, InteractionPhase, compute_thresholds
from revstorm.application.services.faction_ledger import resolve_theme_color
from revstorm.application.services.trait_ledger import effective_attributes
from revstorm.domain.models.attributes import AttributeSet
from revstorm.domain.models.game_state import GameState, HistoryEntry
from revstorm.domain.models.proposal import Choice
from revstorm.domain.models.trait import Trait, TraitChangeKind, sort_traits_for_display


def _signed(value: int) -> str:
    return f"+{value}" if value > 0 else str(value)


def to_trait_view(trait: Trait) -> TraitView:
    modifiers = ", ".join(f"{key} {_signed(value)}" for key, value in sorted(trait.modifiers.items()))
    return TraitView(
        id=trait.id,
        name=trait.name,
        rarity=trait.rarity.value,
        description=trait.description,
        modifiers_line=modifiers,
        duration=trait.duration,
    )


def to_choice_view(choice: Choice, attributes: AttributeSet) -> ChoiceView:
    threshold = None
    if choice.requires_check:
        threshold = compute_thresholds(choice.difficulty, attributes.get(choice.required_attribute)).threshold
    return ChoiceView(
        id=choice.id,
        text=choice.text,
        intent=choice.intent,
        required_attribute=choice.required_attribute,
        difficulty=choice.difficulty,
        threshold=threshold,
        requires_check=choice.requires_check,
        is_special=choice.id in MANIPULATION_CHOICE_IDS,
        is_pity=choice.id == PITY_CHOICE_ID,
    )


def to_history_entry_view(entry: HistoryEntry) -> HistoryEntryView:
    labels = {TraitChangeKind.ADD: "gained", TraitChangeKind.REMOVE: "lost", TraitChangeKind.UPDATE: "changed"}
    trait_lines = [
        f"{labels[change.kind]} {change.name}" + (f" ({change.rarity.value})" if change.rarity else "")
        for change in entry.trait_changes
    ]
    deltas_line = ""
    if entry.deltas is not None:
        parts = []
        if entry.deltas.red_stars:
            parts.append(f"fate {_signed(entry.deltas.red_stars)}")
        if entry.deltas.power_points:
            parts.append(f"power {_signed(entry.deltas.power_points)}")
        deltas_line = ", ".join(parts)
    faction_line = ""
    if entry.faction_change is not None:
        faction_line = f"{entry.faction_change.from_faction} -> {entry.faction_change.to_faction}"
    return HistoryEntryView(
        date_label=f"{entry.year}-{entry.month:02d}",
        text=entry.text,
        result=entry.result.value,
        trait_lines=trait_lines,
        deltas_line=deltas_line,
        faction_change_line=faction_line,
    )


def to_check_view(interaction: CheckInteraction) -> CheckView:
    draw = interaction.last_draw
    thresholds = interaction.thresholds
    result = interaction.result
    outcome = result.outcome.value if result is not None else (draw.outcome.value if draw else None)
    spendable = interaction.phase in {InteractionPhase.CRITICAL_INTERRUPT, InteractionPhase.FAILURE_INTERRUPT}
    return CheckView(
        choice_id=interaction.choice.id,
        phase=interaction.phase.value,
        action_text=result.text if result is not None else (draw.action_text if draw else interaction.choice.text),
        draw=draw.value if draw else None,
        threshold=thresholds.threshold if thresholds else None,
        critical_floor=thresholds.critical_floor if thresholds else None,
        outcome=outcome,
        fate_points_remaining=interaction.fate_points_remaining,
        fate_points_consumed=interaction.fate_points_consumed,
        can_spend_fate_point=spendable and interaction.fate_points_remaining > 0,
    )


def to_turn_view(
    *,
    state: GameState,
    narrative: str,
    choices: Sequence[Choice],
    pending_power_debit: int = 0,
    turn_pending: bool = False,
    retry_available: bool = False,
    last_error: Optional[str] = None,
    check: Optional[CheckView] = None,
) -> TurnView:
    stats = state.stats
    attributes = effective_attributes(stats.attributes, stats.traits)
    factions: List[FactionView] = [
        FactionView(
            name=faction.name,
            percentage=faction.percentage,
            leaders=list(faction.leaders),
            color=faction.color,
            allied_with=faction.allied_with,
            is_player_faction=faction.name == stats.current_faction,
        )
        for faction in sorted(state.factions, key=lambda item: float(item.percentage), reverse=True)
    ]
    return TurnView(
        year=state.year,
        month=state.month,
        date_label=state.date.label(),
        name=state.name,
        age=state.age,
        background=state.background.value,
        narrative=narrative,
        political_standing=stats.political_standing,
        health=stats.health,
        mental=stats.mental,
        red_stars=stats.red_stars,
        power_points=max(0, stats.power_points - pending_power_debit),
        current_faction=stats.current_faction,
        is_leader=stats.is_leader,
        supreme_leader=state.supreme_leader,
        supreme_leader_slogan=state.supreme_leader_slogan,
        ruling_party_symbol=state.ruling_party_symbol,
        theme_color=resolve_theme_color(state.supreme_leader, state.factions),
        attributes=attributes.as_dict(),
        base_attributes=stats.attributes.as_dict(),
        inventory=list(stats.inventory),
        traits=[to_trait_view(trait) for trait in sort_traits_for_display(list(stats.traits))],
        factions=factions,
        history=[to_history_entry_view(entry) for entry in state.history],
        choices=[to_choice_view(choice, attributes) for choice in choices],
        is_game_over=state.is_game_over,
        game_over_reason=state.game_over_reason,
        potential_successors=[
            SuccessorView(
                id=item.id,
                name=item.name,
                description=item.description,
                background=item.background.value,
                preferred=item.preferred,
            )
            for item in state.potential_successors
        ],
        designated_successor=state.designated_successor,
        suggested_heirs=list(state.suggested_heirs),
        pending_power_debit=pending_power_debit,
        turn_pending=turn_pending,
        retry_available=retry_available,
        last_error=last_error,
        check=check,
    )
