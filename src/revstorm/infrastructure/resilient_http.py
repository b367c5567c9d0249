"""One request/response exchange with the narrative collaborator.

An exchange may take a few attempts, but every attempt shares the deadline the caller set. Failures
leave this module only as ``NarrativeTransportError`` or ``MalformedProposalError``.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

import httpx

from revstorm.application.errors import MalformedProposalError, NarrativeTransportError


logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})
_TRUTHY = {"1", "true", "yes"}


@dataclass
class CircuitBreaker:
    """Counts failed exchanges (not attempts) against one collaborator connection."""

    failure_threshold: int = 3
    reset_seconds: float = 120.0
    enabled: bool = True
    clock: Callable[[], float] = time.monotonic
    failures: int = 0
    open_until: Optional[float] = field(default=None)

    @classmethod
    def from_env(cls) -> "CircuitBreaker":
        return cls(
            failure_threshold=max(1, int(os.getenv("REVSTORM_HTTP_CIRCUIT_FAILURE_THRESHOLD", "3"))),
            reset_seconds=max(0.0, float(os.getenv("REVSTORM_HTTP_CIRCUIT_RESET_SECONDS", "120"))),
            enabled=str(os.getenv("REVSTORM_HTTP_CIRCUIT_BREAKER_ENABLED", "1")).strip().lower() in _TRUTHY,
        )

    def admit(self) -> None:
        if not self.enabled or self.open_until is None:
            return
        remaining = self.open_until - self.clock()
        if remaining > 0:
            raise NarrativeTransportError(
                f"Narrative service paused after {self.failures} failed requests; try again in {int(remaining) + 1}s."
            )
        # Half-open: a single further failure trips it again.
        self.open_until = None
        self.failures = self.failure_threshold - 1

    def record(self, succeeded: bool) -> None:
        if not self.enabled:
            return
        if succeeded:
            self.failures = 0
            self.open_until = None
            return
        self.failures += 1
        if self.failures >= self.failure_threshold:
            self.open_until = self.clock() + self.reset_seconds
            logger.warning("Narrative circuit opened", extra={"failures": self.failures, "reset_seconds": self.reset_seconds})


class _TransientFailure(Exception):
    def __init__(self, error: NarrativeTransportError, retry_after: Optional[float] = None) -> None:
        super().__init__(str(error))
        self.error = error
        self.retry_after = retry_after


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None


def _decode_body(response: httpx.Response) -> Mapping[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise MalformedProposalError(f"Narrative service returned a non-JSON body: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise MalformedProposalError("Narrative service reply is not a JSON object.")
    return payload


class CollaboratorTransport:
    def __init__(
        self,
        client: httpx.Client,
        *,
        timeout: float = 90.0,
        retries: int = 1,
        backoff_seconds: float = 2.0,
        breaker: Optional[CircuitBreaker] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.timeout = max(0.001, float(timeout))
        self.retries = max(0, int(retries))
        self.backoff_seconds = max(0.0, float(backoff_seconds))
        self.breaker = breaker or CircuitBreaker.from_env()
        self._clock = clock

    def exchange(self, path: str, body: Mapping[str, Any], *, timeout: Optional[float] = None) -> Mapping[str, Any]:
        """POST ``body`` and return the decoded JSON reply, retrying transient failures until the deadline."""

        self.breaker.admit()
        budget = self.timeout if timeout is None else max(0.001, float(timeout))
        deadline = self._clock() + budget
        attempt = 0
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                self.breaker.record(False)
                raise NarrativeTransportError(f"Narrative service did not answer within {budget:g}s.")
            try:
                payload = self._attempt(path, body, remaining)
            except _TransientFailure as failure:
                attempt += 1
                delay = failure.retry_after if failure.retry_after is not None else self.backoff_seconds * 2 ** (attempt - 1)
                if attempt > self.retries or delay >= deadline - self._clock():
                    self.breaker.record(False)
                    raise failure.error from failure.error.__cause__
                logger.info("Narrative exchange retrying", extra={"attempt": attempt, "delay": delay, "error": str(failure)})
                if delay > 0:
                    time.sleep(delay)
                continue
            self.breaker.record(True)
            return payload

    def _attempt(self, path: str, body: Mapping[str, Any], remaining: float) -> Mapping[str, Any]:
        try:
            response = self.client.post(path, json=dict(body), timeout=remaining)
        except httpx.TimeoutException as exc:
            error = NarrativeTransportError(f"Narrative service timed out: {exc}")
            error.__cause__ = exc
            raise _TransientFailure(error) from exc
        except httpx.TransportError as exc:
            error = NarrativeTransportError(f"Narrative service unreachable: {exc}")
            error.__cause__ = exc
            raise _TransientFailure(error) from exc

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise _TransientFailure(
                NarrativeTransportError(f"Narrative service answered HTTP {response.status_code}."),
                retry_after=_retry_after_seconds(response),
            )
        if response.status_code >= 400:
            raise NarrativeTransportError(f"Narrative service rejected the request with HTTP {response.status_code}.")
        return _decode_body(response)
