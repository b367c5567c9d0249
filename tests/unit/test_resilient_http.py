import os
import sys
from pathlib import Path
import unittest
from unittest import mock

import httpx

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from revstorm.application.errors import MalformedProposalError, NarrativeTransportError
from revstorm.infrastructure.resilient_http import CircuitBreaker, CollaboratorTransport


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class _ScriptedClient:
    """Replays one outcome per POST: a status code, a (status, headers) pair, a payload, or an exception."""

    def __init__(self, *outcomes, clock: _Clock | None = None, elapsed: float = 0.0) -> None:
        self._outcomes = list(outcomes)
        self._clock = clock
        self._elapsed = elapsed
        self.calls = []

    def post(self, path, json=None, timeout=None):
        self.calls.append({"path": path, "json": json, "timeout": timeout})
        if self._clock is not None:
            self._clock.now += self._elapsed
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        request = httpx.Request("POST", f"https://narrative.test{path}")
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, int):
            return httpx.Response(outcome, json={"error": "nope"}, request=request)
        if isinstance(outcome, tuple):
            status, headers = outcome
            return httpx.Response(status, headers=headers, json={"error": "busy"}, request=request)
        if isinstance(outcome, str):
            return httpx.Response(200, text=outcome, request=request)
        return httpx.Response(200, json=outcome, request=request)


def _transport(client, **overrides) -> CollaboratorTransport:
    values = dict(timeout=90, retries=0, backoff_seconds=0, breaker=CircuitBreaker(enabled=False))
    values.update(overrides)
    return CollaboratorTransport(client, **values)


class CollaboratorTransportTests(unittest.TestCase):
    def test_returns_reply_and_passes_remaining_time_to_the_attempt(self) -> None:
        client = _ScriptedClient({"choices": []})

        payload = _transport(client, timeout=30).exchange("/chat/completions", {"model": "m"})

        self.assertEqual({"choices": []}, payload)
        self.assertEqual([{"model": "m"}], [call["json"] for call in client.calls])
        self.assertLessEqual(client.calls[0]["timeout"], 30)
        self.assertGreater(client.calls[0]["timeout"], 0)

    def test_timeouts_are_retried_then_reported_as_transport_errors(self) -> None:
        client = _ScriptedClient(httpx.ReadTimeout("slow"))

        with self.assertRaises(NarrativeTransportError) as caught:
            _transport(client, retries=2).exchange("/chat/completions", {})

        self.assertEqual(3, len(client.calls))
        self.assertIsInstance(caught.exception.__cause__, httpx.TimeoutException)

    def test_rejected_request_is_not_retried(self) -> None:
        client = _ScriptedClient(400)
        breaker = CircuitBreaker(failure_threshold=1)

        with self.assertRaises(NarrativeTransportError):
            _transport(client, retries=3, breaker=breaker).exchange("/chat/completions", {})

        self.assertEqual(1, len(client.calls))
        self.assertIsNone(breaker.open_until)

    def test_rate_limit_waits_for_retry_after(self) -> None:
        client = _ScriptedClient((429, {"Retry-After": "7"}), {"choices": []})

        with mock.patch("time.sleep") as sleep:
            payload = _transport(client, retries=1, backoff_seconds=1).exchange("/chat/completions", {})

        self.assertEqual({"choices": []}, payload)
        sleep.assert_called_once_with(7.0)

    def test_retry_after_past_the_deadline_gives_up_immediately(self) -> None:
        client = _ScriptedClient((503, {"Retry-After": "30"}), {"choices": []})

        with mock.patch("time.sleep") as sleep, self.assertRaises(NarrativeTransportError):
            _transport(client, timeout=5, retries=3).exchange("/chat/completions", {})

        self.assertEqual(1, len(client.calls))
        sleep.assert_not_called()

    def test_attempts_share_one_deadline(self) -> None:
        clock = _Clock()
        client = _ScriptedClient(httpx.ConnectError("refused"), clock=clock, elapsed=10)

        with self.assertRaises(NarrativeTransportError):
            _transport(client, timeout=15, retries=5, clock=clock).exchange("/chat/completions", {})

        self.assertEqual(2, len(client.calls))
        self.assertEqual(5, client.calls[1]["timeout"])

    def test_non_json_or_non_object_reply_is_malformed(self) -> None:
        with self.assertRaises(MalformedProposalError):
            _transport(_ScriptedClient("<html>gateway</html>")).exchange("/chat/completions", {})
        with self.assertRaises(MalformedProposalError):
            _transport(_ScriptedClient([1, 2])).exchange("/chat/completions", {})


class CircuitBreakerTests(unittest.TestCase):
    def test_breaker_counts_exchanges_opens_then_half_opens(self) -> None:
        clock = _Clock()
        breaker = CircuitBreaker(failure_threshold=2, reset_seconds=60, clock=clock)
        client = _ScriptedClient(503)
        transport = _transport(client, retries=2, breaker=breaker, clock=clock)

        with self.assertRaises(NarrativeTransportError):
            transport.exchange("/chat/completions", {})
        self.assertEqual(3, len(client.calls))
        self.assertEqual(1, breaker.failures)
        self.assertIsNone(breaker.open_until)

        with self.assertRaises(NarrativeTransportError):
            transport.exchange("/chat/completions", {})
        self.assertEqual(60, breaker.open_until)

        with self.assertRaises(NarrativeTransportError):
            transport.exchange("/chat/completions", {})
        self.assertEqual(6, len(client.calls))

        clock.now = 61
        transport.client = _ScriptedClient({"choices": []})
        self.assertEqual({"choices": []}, transport.exchange("/chat/completions", {}))
        self.assertEqual(0, breaker.failures)

    def test_breaker_settings_come_from_environment(self) -> None:
        env = {
            "REVSTORM_HTTP_CIRCUIT_BREAKER_ENABLED": "no",
            "REVSTORM_HTTP_CIRCUIT_FAILURE_THRESHOLD": "0",
            "REVSTORM_HTTP_CIRCUIT_RESET_SECONDS": "15",
        }
        with mock.patch.dict(os.environ, env, clear=False):
            breaker = CircuitBreaker.from_env()

        self.assertFalse(breaker.enabled)
        self.assertEqual(1, breaker.failure_threshold)
        self.assertEqual(15.0, breaker.reset_seconds)


if __name__ == "__main__":
    unittest.main()
