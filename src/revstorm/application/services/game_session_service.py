from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from revstorm.application.dtos import CheckView, TurnView
from revstorm.application.errors import InteractionStateError, MalformedProposalError, NarrativeTransportError
from revstorm.application.mappers.game_view_mapper import to_check_view, to_turn_view
from revstorm.application.services.balance_tables import SUCCESSOR_AGE
from revstorm.application.services.check_resolution import (
    CheckInteraction,
    InteractionPhase,
    ResolvedAction,
    is_manipulation_choice,
    offered_choices,
)
from revstorm.application.services.event_bus import EventBus
from revstorm.application.services.faction_ledger import is_foreign_faction, resolve_theme_color
from revstorm.application.services.narrative_request import build_opening_request, build_turn_request
from revstorm.application.services.save_codec import export_save, import_save, import_scene
from revstorm.application.services.seed_policy import check_rng
from revstorm.application.services.trait_ledger import effective_attributes
from revstorm.application.services.turn_merge import MergeResult, TurnMergeEngine
from revstorm.domain.events import CheckResolved, GameOverReached, PowerPointGranted, TurnMerged
from revstorm.domain.models.attributes import balanced_default_attributes
from revstorm.domain.models.faction import DEFAULT_THEME_COLOR
from revstorm.domain.models.game_state import GameState, PotentialSuccessor
from revstorm.domain.models.profile import CharacterProfile
from revstorm.domain.models.proposal import Choice
from revstorm.domain.models.settings import GameSettings
from revstorm.domain.repositories import NarrativeCollaborator


logger = logging.getLogger(__name__)


@dataclass
class PendingOpening:
    profile: CharacterProfile
    successor: Optional[PotentialSuccessor] = None


@dataclass
class GameSession:
    """Everything one player's session owns. Replaced piecewise by the service, never shared."""

    state: Optional[GameState] = None
    narrative: str = ""
    choices: List[Choice] = field(default_factory=list)
    interaction: Optional[CheckInteraction] = None
    pending_action: Optional[ResolvedAction] = None
    pending_opening: Optional[PendingOpening] = None
    last_error: Optional[str] = None
    anomalies: List[str] = field(default_factory=list)


class GameSessionService:
    def __init__(
        self,
        collaborator: NarrativeCollaborator,
        *,
        settings: Optional[GameSettings] = None,
        event_bus: Optional[EventBus] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.collaborator = collaborator
        self.settings = settings or GameSettings()
        self.event_bus = event_bus or EventBus()
        self.engine = TurnMergeEngine(self.settings)
        self.session = GameSession()
        self._seed = int(seed) if seed is not None else random.SystemRandom().randrange(2**32)
        self._rng = rng

    # Commands

    def start_game(self, profile: CharacterProfile) -> TurnView:
        self.session = GameSession(pending_opening=PendingOpening(profile=profile))
        return self._run_opening()

    def submit_action(self, choice_id: str) -> CheckView:
        state = self._require_live_state()
        self._require_idle()

        choice = next((item for item in self.session.choices if item.id == choice_id), None)
        if choice is None:
            raise InteractionStateError(f"Choice {choice_id!r} is not on offer this turn.")

        interaction = CheckInteraction(
            choice,
            attributes=effective_attributes(state.stats.attributes, state.stats.traits),
            fate_points_available=state.stats.red_stars,
            rng=self._rng_for(state, choice),
            is_supreme_leader=state.is_supreme_leader,
            is_foreign_leader=is_foreign_faction(state),
        )
        interaction.start()
        self.session.interaction = interaction
        self._settle_interaction()
        return to_check_view(interaction)

    def consume_one_fate_point(self, custom_text: Optional[str] = None) -> CheckView:
        """Spend a fate point on the open interrupt: a custom action after a critical, a reroll after a failure."""

        interaction = self._require_interaction()
        if interaction.phase == InteractionPhase.CRITICAL_INTERRUPT:
            interaction.customize_critical(custom_text or "")
        elif interaction.phase == InteractionPhase.FAILURE_INTERRUPT:
            interaction.reroll()
        else:
            raise InteractionStateError(f"No fate point can be spent while the check is {interaction.phase.value}.")
        self._settle_interaction()
        return to_check_view(interaction)

    def submit_turn(self, custom_text: Optional[str] = None) -> TurnView:
        """Close any open interrupt with the default answer and send the resolved action for narration."""

        interaction = self.session.interaction
        if interaction is not None and interaction.phase != InteractionPhase.RESOLVED:
            if interaction.phase == InteractionPhase.CRITICAL_INTERRUPT:
                interaction.accept_critical()
            elif interaction.phase == InteractionPhase.FAILURE_INTERRUPT:
                interaction.decline_reroll()
            elif interaction.phase == InteractionPhase.LEADER_INTERRUPT:
                interaction.resolve_leader_action(custom_text)
            self._settle_interaction()

        if self.session.pending_action is None:
            raise InteractionStateError("There is no resolved action waiting to be narrated.")
        return self._run_turn()

    def retry_turn(self) -> TurnView:
        if self.session.pending_opening is not None:
            return self._run_opening()
        if self.session.pending_action is not None:
            return self._run_turn()
        raise InteractionStateError("There is no abandoned turn to retry.")

    def confirm_successor(self, successor_id: str) -> TurnView:
        state = self.session.state
        if state is None or not state.is_game_over:
            raise InteractionStateError("A successor can only be chosen once the game is over.")
        successor = next((item for item in state.potential_successors if item.id == successor_id), None)
        if successor is None:
            raise InteractionStateError(f"Successor {successor_id!r} is not among the candidates.")

        profile = CharacterProfile(
            name=successor.name,
            background=successor.background,
            attributes=balanced_default_attributes(),
            birth_year=state.year - SUCCESSOR_AGE,
            backstory=successor.description,
        )
        self.session.pending_opening = PendingOpening(profile=profile, successor=successor)
        return self._run_opening()

    def load_save(self, document: Mapping[str, Any]) -> TurnView:
        self._require_idle()
        state = import_save(document)
        narrative, choices = import_scene(document)
        if not narrative and state.history:
            narrative = state.history[-1].text
        self.session = GameSession(state=state, narrative=narrative)
        self.session.choices = self._offer(state, choices)
        return self.current_view()

    # Queries

    def export_save(self) -> dict:
        state = self._require_state()
        return export_save(state, narrative=self.session.narrative, choices=self.session.choices)

    def current_view(self) -> TurnView:
        session = self.session
        state = self._require_state()
        pending = session.pending_action
        debit = 0
        if session.last_error is None:
            if pending is not None:
                debit = pending.power_points_spent
            elif session.interaction is not None and is_manipulation_choice(session.interaction.choice.id):
                debit = session.interaction.power_cost
        return to_turn_view(
            state=state,
            narrative=session.narrative,
            choices=session.choices,
            pending_power_debit=debit,
            turn_pending=pending is not None,
            retry_available=session.last_error is not None,
            last_error=session.last_error,
            check=to_check_view(session.interaction) if session.interaction is not None else None,
        )

    def theme_color(self) -> str:
        state = self.session.state
        if state is None:
            return DEFAULT_THEME_COLOR
        return resolve_theme_color(state.supreme_leader, state.factions)

    # Internals

    def _run_opening(self) -> TurnView:
        pending = self.session.pending_opening
        previous = self.session.state if pending.successor is not None else None
        request = build_opening_request(pending.profile, self.settings, previous_state=previous)
        try:
            document = self.collaborator.request_opening(request)
            if previous is not None:
                result = self.engine.inherit(previous, pending.successor, document)
            else:
                result = self.engine.open_game(pending.profile, document)
        except (NarrativeTransportError, MalformedProposalError) as exc:
            self._record_failure(exc)
            raise

        self.session = GameSession()
        self._adopt(result, previous_state=previous, outcome="NONE")
        return self.current_view()

    def _run_turn(self) -> TurnView:
        state = self._require_state()
        action = self.session.pending_action
        request = build_turn_request(state, action, self.settings)
        try:
            document = self.collaborator.request_turn(request)
            result = self.engine.merge(state, action, document)
        except (NarrativeTransportError, MalformedProposalError) as exc:
            self._record_failure(exc)
            raise

        self.session.pending_action = None
        self.session.interaction = None
        self._adopt(result, previous_state=state, outcome=action.outcome.value)
        return self.current_view()

    def _adopt(self, result: MergeResult, *, previous_state: Optional[GameState], outcome: str) -> None:
        state = result.state
        self.session.state = state
        self.session.narrative = result.narrative
        self.session.anomalies = list(result.anomalies)
        self.session.last_error = None
        self.session.choices = self._offer(state, result.choices)

        self.event_bus.publish(
            TurnMerged(
                year=state.year,
                month=state.month,
                outcome=outcome,
                history_length=len(state.history),
                anomalies=len(result.anomalies),
            )
        )
        if result.power_point_granted:
            self.event_bus.publish(PowerPointGranted(year=state.year, month=state.month, power_points_after=state.stats.power_points))
        if state.is_game_over and (previous_state is None or not previous_state.is_game_over):
            self.event_bus.publish(
                GameOverReached(
                    year=state.year,
                    month=state.month,
                    reason=state.game_over_reason or "",
                    has_successors=bool(state.potential_successors),
                )
            )

    def _offer(self, state: GameState, choices: List[Choice]) -> List[Choice]:
        if state.is_game_over:
            return []
        return offered_choices(
            choices,
            power_points=state.stats.power_points,
            turns_since_last_critical=state.turns_since_last_critical,
            foreign_intervention=is_foreign_faction(state),
        )

    def _settle_interaction(self) -> None:
        interaction = self.session.interaction
        if interaction is None or interaction.phase != InteractionPhase.RESOLVED:
            return
        result = interaction.result
        self.session.pending_action = result
        self.session.last_error = None
        self.event_bus.publish(
            CheckResolved(
                choice_id=result.choice_id,
                outcome=result.outcome.value,
                draws=len(result.draws),
                fate_points_consumed=result.fate_points_consumed,
            )
        )

    def _record_failure(self, exc: Exception) -> None:
        self.session.last_error = str(exc)
        logger.warning(
            "Turn abandoned; canonical state unchanged",
            extra={"error_type": type(exc).__name__, "error": str(exc)},
        )

    def _rng_for(self, state: GameState, choice: Choice) -> random.Random:
        if self._rng is not None:
            return self._rng
        return check_rng(self._seed, year=state.year, month=state.month, turn_index=len(state.history), choice_id=choice.id)

    def _require_state(self) -> GameState:
        if self.session.state is None:
            raise InteractionStateError("No game is in progress.")
        return self.session.state

    def _require_live_state(self) -> GameState:
        state = self._require_state()
        if state.is_game_over:
            raise InteractionStateError("The game is over; choose a successor or start again.")
        return state

    def _require_idle(self) -> None:
        if self.session.interaction is not None and self.session.interaction.phase != InteractionPhase.RESOLVED:
            raise InteractionStateError("A check is waiting for an answer.")
        if self.session.pending_action is not None:
            raise InteractionStateError("A turn is already in flight; submit or retry it first.")

    def _require_interaction(self) -> CheckInteraction:
        interaction = self.session.interaction
        if interaction is None:
            raise InteractionStateError("No check is in progress.")
        return interaction
