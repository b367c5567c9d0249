from __future__ import annotations

import logging
import re
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from revstorm.application.dtos import CheckView, TurnView
from revstorm.application.errors import InteractionStateError, MalformedProposalError, NarrativeTransportError
from revstorm.application.services.game_session_service import GameSessionService
from revstorm.domain.models.attributes import ATTRIBUTE_NAMES, AttributeSet
from revstorm.domain.models.game_state import BackgroundType
from revstorm.domain.models.profile import CharacterProfile
from revstorm.domain.repositories import SaveRepository


logger = logging.getLogger(__name__)

SAVE_SLOT = "manual"
_ATTRIBUTE_POINTS = 36

_HEX_COLOR = re.compile(r"#[0-9a-fA-F]{6}")

_RESULT_STYLES = {
    "CRITICAL_SUCCESS": "bold yellow",
    "SUCCESS": "green",
    "FAILURE": "red",
    "CRITICAL_FAILURE": "bold magenta",
    "NONE": "dim",
}


def _safe_color(value: str | None) -> str:
    return value if value and _HEX_COLOR.fullmatch(value) else "red"


def render_turn(console: Console, view: TurnView) -> None:
    header = (
        f"[bold]{view.date_label}[/bold]  {escape(view.name)}, age {view.age}  |  "
        f"Supreme leader: {escape(view.supreme_leader)} {view.ruling_party_symbol}  \"{escape(view.supreme_leader_slogan)}\""
    )
    console.print(Panel(header, border_style=_safe_color(view.theme_color)))

    vitals = Table(show_header=False, box=None)
    vitals.add_row("Political standing", str(view.political_standing))
    vitals.add_row("Health", str(view.health))
    vitals.add_row("Mental", str(view.mental))
    vitals.add_row("Red stars", str(view.red_stars))
    power = str(view.power_points)
    if view.pending_power_debit:
        power += f" (-{view.pending_power_debit} pending)"
    vitals.add_row("Power points", power)
    vitals.add_row("Faction", escape(view.current_faction) + (" (leader)" if view.is_leader else ""))
    vitals.add_row("Attributes", "  ".join(f"{key} {value}" for key, value in view.attributes.items()))
    if view.inventory:
        vitals.add_row("Inventory", escape(", ".join(view.inventory)))
    console.print(vitals)

    if view.traits:
        traits = Table(title="Traits")
        traits.add_column("Name")
        traits.add_column("Rarity")
        traits.add_column("Modifiers")
        traits.add_column("Months left")
        for trait in view.traits:
            traits.add_row(escape(trait.name), trait.rarity, escape(trait.modifiers_line), "" if trait.duration is None else str(trait.duration))
        console.print(traits)

    if view.factions:
        factions = Table(title="Factions")
        factions.add_column("Faction")
        factions.add_column("Share", justify="right")
        factions.add_column("Leaders")
        for faction in view.factions:
            name = f"[{_safe_color(faction.color)}]{escape(faction.name)}[/]"
            if faction.is_player_faction:
                name += " *"
            factions.add_row(name, f"{faction.percentage:g}%", escape(", ".join(faction.leaders)))
        console.print(factions)

    for entry in view.history[-3:]:
        style = _RESULT_STYLES.get(entry.result, "")
        extras = "; ".join(item for item in [*entry.trait_lines, entry.deltas_line, entry.faction_change_line] if item)
        console.print(f"[dim]{entry.date_label}[/dim] [{style}]{entry.result}[/] {escape(entry.text)}" + (f" [dim]({escape(extras)})[/dim]" if extras else ""))

    if view.narrative:
        console.print(Panel(escape(view.narrative), title="Now", border_style="red"))


def render_choices(console: Console, view: TurnView) -> None:
    for index, choice in enumerate(view.choices, start=1):
        detail = ""
        if choice.requires_check:
            detail = f" [dim]({choice.required_attribute}, roll above {choice.threshold})[/dim]"
        marker = "[yellow]*[/yellow] " if choice.is_special or choice.is_pity else ""
        console.print(f"{index}. {marker}{escape(choice.text)}{detail}")


def render_check(console: Console, view: CheckView) -> None:
    lines = [escape(view.action_text)]
    if view.draw is not None:
        lines.append(f"Roll {view.draw} against {view.threshold} (critical at {view.critical_floor}+)")
    if view.outcome:
        style = _RESULT_STYLES.get(view.outcome, "")
        lines.append(f"[{style}]{view.outcome}[/]")
    if view.fate_points_consumed:
        lines.append(f"Red stars spent: {view.fate_points_consumed}")
    console.print(Panel("\n".join(lines), title="Check", border_style="yellow"))


def prompt_profile(console: Console) -> CharacterProfile:
    name = Prompt.ask("Your name", console=console, default="Li Wei").strip()
    backgrounds = [item.value for item in BackgroundType if item != BackgroundType.TIME_TRAVELER]
    background = BackgroundType.normalize(Prompt.ask("Background", console=console, choices=backgrounds, default="ordinary"))
    birth_year = IntPrompt.ask("Birth year", console=console, default=1946)

    remaining = _ATTRIBUTE_POINTS
    scores = {}
    for index, attribute in enumerate(ATTRIBUTE_NAMES):
        left = len(ATTRIBUTE_NAMES) - index - 1
        ceiling = max(0, min(20, remaining - left))
        value = IntPrompt.ask(f"{attribute} (0-{ceiling}, {remaining} points left)", console=console, default=min(6, ceiling))
        value = max(0, min(ceiling, value))
        scores[attribute] = value
        remaining -= value

    backstory = Prompt.ask("A line of backstory", console=console, default="")
    return CharacterProfile(
        name=name,
        background=background,
        attributes=AttributeSet(**scores),
        birth_year=birth_year,
        backstory=backstory,
    )


def _with_retry(console: Console, service: GameSessionService, call) -> Optional[TurnView]:
    while True:
        try:
            return call()
        except (NarrativeTransportError, MalformedProposalError) as exc:
            console.print(f"[red]The story could not continue: {exc}[/red]")
            if not Confirm.ask("Retry with the same action?", console=console, default=True):
                return None
            call = service.retry_turn


def _resolve_interrupts(console: Console, service: GameSessionService, check: CheckView) -> None:
    while True:
        render_check(console, check)
        if check.phase == "CRITICAL_INTERRUPT" and check.can_spend_fate_point:
            if Confirm.ask("Critical success! Spend a red star to do something else instead?", console=console, default=False):
                text = Prompt.ask("What do you do", console=console).strip()
                if text:
                    check = service.consume_one_fate_point(text)
                    continue
        elif check.phase == "FAILURE_INTERRUPT":
            if Confirm.ask(f"Spend a red star to reroll? ({check.fate_points_remaining} left)", console=console, default=True):
                check = service.consume_one_fate_point()
                continue
        return


def run_game(
    service: GameSessionService,
    save_repository: Optional[SaveRepository] = None,
    console: Optional[Console] = None,
) -> None:
    console = console or Console()
    view = None
    if save_repository is not None and save_repository.get(SAVE_SLOT) is not None:
        if Confirm.ask("Continue the saved game?", console=console, default=True):
            view = service.load_save(save_repository.get(SAVE_SLOT))
    if view is None:
        profile = prompt_profile(console)
        view = _with_retry(console, service, lambda: service.start_game(profile))
    if view is None:
        return

    while True:
        render_turn(console, view)
        if view.is_game_over:
            console.print(Panel(escape(view.game_over_reason or "The game is over."), title="Game over", border_style="red"))
            if not view.potential_successors:
                return
            for index, successor in enumerate(view.potential_successors, start=1):
                flag = " [yellow](designated heir)[/yellow]" if successor.preferred else ""
                console.print(f"{index}. {escape(successor.name)}: {escape(successor.description)}{flag}")
            pick = IntPrompt.ask("Carry on as (0 to stop)", console=console, default=0)
            if not 1 <= pick <= len(view.potential_successors):
                return
            successor_id = view.potential_successors[pick - 1].id
            next_view = _with_retry(console, service, lambda: service.confirm_successor(successor_id))
            if next_view is None:
                return
            view = next_view
            continue

        render_choices(console, view)
        command = Prompt.ask("Choose a number, 's' to save or 'q' to quit", console=console).strip().lower()
        if command == "q":
            return
        if command == "s":
            if save_repository is not None:
                save_repository.save(SAVE_SLOT, service.export_save())
                console.print("[green]Saved.[/green]")
            continue
        if not command.isdigit() or not 1 <= int(command) <= len(view.choices):
            continue

        choice = view.choices[int(command) - 1]
        try:
            check = service.submit_action(choice.id)
        except InteractionStateError as exc:
            console.print(f"[red]{exc}[/red]")
            continue

        custom_text = None
        if check.phase == "LEADER_INTERRUPT":
            custom_text = Prompt.ask("Issue your directive (blank keeps the proposal)", console=console, default="")
        else:
            _resolve_interrupts(console, service, check)

        next_view = _with_retry(console, service, lambda: service.submit_turn(custom_text))
        if next_view is None:
            return
        view = next_view
