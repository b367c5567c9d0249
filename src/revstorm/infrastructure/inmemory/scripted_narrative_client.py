from __future__ import annotations

from collections import deque
from typing import Any, Callable, Deque, Iterable, List, Mapping, Optional

from revstorm.application.errors import NarrativeTransportError
from revstorm.domain.models.request import OPENING_REQUEST, NarrativeRequest
from revstorm.domain.repositories import NarrativeCollaborator


Fallback = Callable[[NarrativeRequest], Mapping[str, Any]]


class ScriptedNarrativeClient(NarrativeCollaborator):
    """Replays queued documents in order. A queued exception is raised instead of answered."""

    def __init__(
        self,
        openings: Iterable[Any] = (),
        turns: Iterable[Any] = (),
        *,
        fallback: Optional[Fallback] = None,
    ) -> None:
        self._openings: Deque[Any] = deque(openings)
        self._turns: Deque[Any] = deque(turns)
        self._fallback = fallback
        self.requests: List[NarrativeRequest] = []

    def queue_opening(self, document: Any) -> None:
        self._openings.append(document)

    def queue_turn(self, document: Any) -> None:
        self._turns.append(document)

    def request_opening(self, request: NarrativeRequest) -> Mapping[str, Any]:
        return self._next(self._openings, request)

    def request_turn(self, request: NarrativeRequest) -> Mapping[str, Any]:
        return self._next(self._turns, request)

    def _next(self, queue: Deque[Any], request: NarrativeRequest) -> Mapping[str, Any]:
        self.requests.append(request)
        if not queue:
            if self._fallback is not None:
                return self._fallback(request)
            raise NarrativeTransportError(f"No scripted {request.kind} document left.")
        item = queue.popleft()
        if isinstance(item, BaseException):
            raise item
        return item


def offline_scene(request: NarrativeRequest) -> Mapping[str, Any]:
    """A plain scene so the console can be played without a narrative service."""

    payload = request.payload
    if request.kind == OPENING_REQUEST:
        inherited = payload.get("inheritedWorld") or {}
        return {
            "narrative": f"{payload.get('name', 'You')} steps into a city already loud with slogans and drums.",
            "year": inherited.get("year", 1966),
            "month": inherited.get("month", 5),
            "statsDelta": {"politicalStanding": 0, "health": 0, "mental": 0},
            "choices": _offline_choices(),
            "isGameOver": False,
        }
    return {
        "narrative": f"You act: {payload.get('action', {}).get('text', '')}. The month turns and the streets stay restless.",
        "statsDelta": {"politicalStanding": 0, "health": -1, "mental": -1},
        "choices": _offline_choices(),
        "isGameOver": False,
    }


def _offline_choices() -> List[dict]:
    return [
        {"id": "study_papers", "text": "Study the latest editorials closely.", "intent": "Read the political winds.", "requiredAttribute": "intelligence", "difficulty": 40},
        {"id": "join_rally", "text": "Speak up at the street rally.", "intent": "Win people over.", "requiredAttribute": "charisma", "difficulty": 55},
        {"id": "keep_head_down", "text": "Keep your head down and wait.", "intent": "Avoid attention.", "difficulty": 0},
    ]
