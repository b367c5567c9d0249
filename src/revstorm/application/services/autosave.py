from __future__ import annotations

import logging
from typing import Callable, Optional

from revstorm.application.services.event_bus import EventBus
from revstorm.application.services.save_codec import export_save
from revstorm.domain.events import TurnMerged
from revstorm.domain.models.game_state import GameState
from revstorm.domain.repositories import SaveRepository


logger = logging.getLogger(__name__)

AUTOSAVE_SLOT = "autosave"


def register_autosave_handlers(
    event_bus: EventBus,
    save_repository: SaveRepository | None,
    state_provider: Callable[[], Optional[GameState]],
    *,
    slot: str = AUTOSAVE_SLOT,
) -> None:
    if save_repository is None:
        return

    def _on_turn_merged(event: TurnMerged) -> None:
        state = state_provider()
        if state is None:
            return
        save_repository.save(slot, export_save(state))
        logger.debug("Autosaved", extra={"slot": slot, "year": event.year, "month": event.month})

    event_bus.subscribe(TurnMerged, _on_turn_merged, priority=200)
