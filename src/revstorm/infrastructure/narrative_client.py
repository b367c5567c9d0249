import json
import logging
from typing import Any, Mapping

import httpx

from revstorm.application.errors import MalformedProposalError, NarrativeTransportError
from revstorm.application.services.coercion import strip_code_fences
from revstorm.domain.models.request import OPENING_REQUEST, NarrativeRequest
from revstorm.domain.models.settings import HistoryStyle
from revstorm.domain.repositories import NarrativeCollaborator
from revstorm.infrastructure.resilient_http import CircuitBreaker, CollaboratorTransport


logger = logging.getLogger(__name__)

_SYSTEM_PROMPTS = {
    OPENING_REQUEST: (
        "You narrate a turn-based historical role-playing game set during a period of revolutionary upheaval. "
        "Write the opening scene for the character described in the payload and answer with one JSON object "
        "that follows the supplied schema."
    ),
    "turn": (
        "You narrate a turn-based historical role-playing game. Continue the story from the payload: the player's "
        "action and its resolved outcome are final. Respect every entry under 'constraints' and answer with one "
        "JSON object that follows the supplied schema."
    ),
}

_STYLE_HINTS = {
    HistoryStyle.REALISM: "Stay close to recorded history.",
    HistoryStyle.ROMANTICISM: "Allow heroic, romantic turns within the historical frame.",
    HistoryStyle.DRAMATIZATION: "Dramatize freely; alternate history is welcome.",
}


class HttpNarrativeClient(NarrativeCollaborator):
    """Narrative collaborator over an OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        model: str = "",
        timeout: float = 90.0,
        retries: int = 1,
        backoff_seconds: float = 2.0,
        http_client: httpx.Client | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self._model = model
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.client = http_client or httpx.Client(base_url=base_url, timeout=timeout, headers=headers)
        self.transport = CollaboratorTransport(
            self.client,
            timeout=timeout,
            retries=retries,
            backoff_seconds=backoff_seconds,
            breaker=breaker,
        )

    def request_opening(self, request: NarrativeRequest) -> Mapping[str, Any]:
        return self._complete(request)

    def request_turn(self, request: NarrativeRequest) -> Mapping[str, Any]:
        return self._complete(request)

    def _complete(self, request: NarrativeRequest) -> Mapping[str, Any]:
        style = HistoryStyle.normalize(request.payload.get("historyStyle") or request.payload.get("constraints", {}).get("historyStyle"))
        body = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": f"{_SYSTEM_PROMPTS.get(request.kind, _SYSTEM_PROMPTS['turn'])} {_STYLE_HINTS[style]}"},
                {"role": "user", "content": json.dumps(request.payload, ensure_ascii=False, default=str)},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "narrative_proposal", "schema": request.schema},
            },
        }
        try:
            payload = self.transport.exchange("/chat/completions", body)
        except NarrativeTransportError as exc:
            logger.warning("Narrative request failed", extra={"kind": request.kind, "error": str(exc)})
            raise
        return self._decode_message(payload)

    @staticmethod
    def _decode_message(payload: Mapping[str, Any]) -> Mapping[str, Any]:
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise MalformedProposalError("Narrative service reply has no message content.") from exc
        if isinstance(content, Mapping):
            return content
        try:
            document = json.loads(strip_code_fences(str(content or "")))
        except ValueError as exc:
            raise MalformedProposalError(f"Narrative message is not valid JSON: {exc}") from exc
        if not isinstance(document, Mapping):
            raise MalformedProposalError("Narrative message is not a JSON object.")
        return document

    def close(self) -> None:
        self.client.close()
