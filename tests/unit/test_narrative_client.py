import json
import sys
from pathlib import Path
import unittest

import httpx

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from revstorm.application.errors import MalformedProposalError, NarrativeTransportError
from revstorm.domain.models.request import TURN_REQUEST, NarrativeRequest
from revstorm.infrastructure.narrative_client import HttpNarrativeClient


def _client(handler) -> HttpNarrativeClient:
    http_client = httpx.Client(base_url="https://narrative.test", transport=httpx.MockTransport(handler))
    return HttpNarrativeClient("https://narrative.test", model="story-model", retries=1, backoff_seconds=0, http_client=http_client)


def _reply(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


_REQUEST = NarrativeRequest(kind=TURN_REQUEST, payload={"action": {"text": "Wait."}}, schema={"type": "object"})


class HttpNarrativeClientTests(unittest.TestCase):
    def test_posts_chat_completion_with_schema_and_decodes_message(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=_reply('```json\n{"narrative": "Quiet.", "choices": []}\n```'))

        document = _client(handler).request_turn(_REQUEST)

        self.assertEqual("Quiet.", document["narrative"])
        self.assertEqual("story-model", seen[0]["model"])
        self.assertEqual("json_schema", seen[0]["response_format"]["type"])
        self.assertEqual({"type": "object"}, seen[0]["response_format"]["json_schema"]["schema"])
        self.assertIn("Wait.", seen[0]["messages"][1]["content"])

    def test_retries_transient_status_then_succeeds(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            if len(calls) == 1:
                return httpx.Response(503, json={"error": "busy"})
            return httpx.Response(200, json=_reply({"narrative": "Back.", "choices": []}))

        document = _client(handler).request_turn(_REQUEST)

        self.assertEqual("Back.", document["narrative"])
        self.assertEqual(2, len(calls))

    def test_persistent_outage_is_a_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with self.assertRaises(NarrativeTransportError):
            _client(handler).request_turn(_REQUEST)

    def test_reply_without_json_message_is_malformed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_reply("Once upon a time..."))

        with self.assertRaises(MalformedProposalError):
            _client(handler).request_turn(_REQUEST)

    def test_reply_without_choices_is_malformed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "x"})

        with self.assertRaises(MalformedProposalError):
            _client(handler).request_turn(_REQUEST)

    def test_non_json_body_is_malformed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        with self.assertRaises(MalformedProposalError):
            _client(handler).request_turn(_REQUEST)


if __name__ == "__main__":
    unittest.main()
