from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from revstorm.application.mappers.game_state_mapper import state_from_dict, state_to_dict
from revstorm.application.services.persistence_sanitizer import sanitize_foreign_state
from revstorm.application.services.proposal_parser import parse_narrative_proposal
from revstorm.domain.models.game_state import GameState
from revstorm.domain.models.proposal import Choice


logger = logging.getLogger(__name__)

SAVE_FORMAT = "revstorm.save"
SAVE_VERSION = 1


def export_save(
    state: GameState,
    *,
    narrative: str = "",
    choices: Optional[Sequence[Choice]] = None,
) -> Dict[str, Any]:
    document: Dict[str, Any] = {"format": SAVE_FORMAT, "version": SAVE_VERSION, "state": state_to_dict(state)}
    if narrative or choices:
        document["scene"] = {
            "narrative": narrative,
            "choices": [
                {
                    "id": choice.id,
                    "text": choice.text,
                    "intent": choice.intent,
                    "requiredAttribute": choice.required_attribute,
                    "difficulty": choice.difficulty,
                }
                for choice in choices or []
            ],
        }
    return document


def is_native_document(document: Any) -> bool:
    return (
        isinstance(document, Mapping)
        and document.get("format") == SAVE_FORMAT
        and document.get("version") == SAVE_VERSION
        and isinstance(document.get("state"), Mapping)
    )


def import_save(document: Any) -> GameState:
    """Decode our own documents directly; anything else is repaired by the sanitizer."""

    if is_native_document(document):
        try:
            return state_from_dict(document["state"])
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Native save failed strict decoding; repairing", extra={"error": str(exc)})
            return sanitize_foreign_state(document["state"])

    if isinstance(document, Mapping) and isinstance(document.get("state"), Mapping):
        return sanitize_foreign_state(document["state"])
    return sanitize_foreign_state(document)


def import_scene(document: Any) -> Tuple[str, List[Choice]]:
    """Narrative and offered choices stored beside the state; empty when the document has none."""

    scene = document.get("scene") if isinstance(document, Mapping) else None
    if not isinstance(scene, Mapping):
        return "", []
    parsed = parse_narrative_proposal(
        {"narrative": scene.get("narrative"), "choices": scene.get("choices") or [], "statsDelta": {}}
    )
    return parsed.proposal.narrative, parsed.proposal.choices
