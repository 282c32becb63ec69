"""
API tests for `api/webhook.py` using FastAPI's TestClient.

The app is built around a real service graph (`build_services`) with the edges replaced:
the LLM client is a MagicMock, the gateway runs over an httpx.MockTransport that records
requests, and the durable store is disabled so conversation state lives in memory.
"""

import json
import unittest
from unittest.mock import AsyncMock, MagicMock

import httpx
from fastapi.testclient import TestClient

from core.bootstrap import build_services
from main import create_app
from services.durable_store import DurableStoreProvider
from shared.exceptions import GatewaySendError


def fake_llm(response_type="simpleResponse", reply="Hi Alice!"):
    """Answer classification calls with `response_type` and every other call with `reply`."""
    async def create(**kwargs):
        response = MagicMock()
        if "response_format" in kwargs:
            response.choices[0].message.content = json.dumps({"responseType": response_type})
        else:
            response.choices[0].message.content = reply
        return response

    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=create)
    return client


def body(**overrides):
    data = {
        "thread_id": "t-1",
        "message_id": "m-1",
        "thread_type": "individual",
        "content": "hello",
        "sender_number": "+61411111111",
        "sender_name": "Alice",
        "timestamp": "2024-01-01T00:00:00Z",
        "a1_account_number": "+61400000000",
        "a1_account_id": "acc-123",
    }
    data.update(overrides)
    return data


class WebhookTestCase(unittest.TestCase):
    response_type = "simpleResponse"

    def setUp(self):
        self.gateway_requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.gateway_requests.append(request)
            return httpx.Response(200, json={"status": "queued"})

        self.services = build_services(
            llm_client=fake_llm(self.response_type),
            gateway_transport=httpx.MockTransport(handler),
            durable=DurableStoreProvider.disabled(),
        )
        self.client = TestClient(create_app(self.services))
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def sent_contents(self):
        return [json.loads(request.content)["content"] for request in self.gateway_requests]


class TestWebhook(WebhookTestCase):
    def test_user_message_is_answered(self):
        resp = self.client.post("/api/whatsapp/incoming", json=body())

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True})
        self.assertEqual(self.sent_contents(), ["Hi Alice!"])
        request = self.gateway_requests[0]
        self.assertTrue(request.url.path.endswith("/messages/individual/%s/send" % self.services.identity.account_id))
        self.assertEqual(json.loads(request.content)["to"], "+61411111111")
        self.assertEqual(len(self.services.thread_store.cache.get("t-1").messages), 1)

    def test_agent_message_is_not_answered(self):
        resp = self.client.post(
            "/api/whatsapp/incoming",
            json=body(sender_number=self.services.identity.agent_number, sender_name=""),
        )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.gateway_requests, [])

    def test_invalid_body_returns_422(self):
        resp = self.client.post("/api/whatsapp/incoming", json={"thread_id": "t-1", "content": "hi"})

        self.assertEqual(resp.status_code, 422)
        self.assertEqual(self.gateway_requests, [])

    def test_unknown_thread_type_returns_422(self):
        resp = self.client.post("/api/whatsapp/incoming", json=body(thread_type="channel"))

        self.assertEqual(resp.status_code, 422)

    def test_pipeline_failure_returns_500(self):
        self.services.handler.handle_incoming = AsyncMock(side_effect=GatewaySendError("rejected", status_code=502))

        resp = self.client.post("/api/whatsapp/incoming", json=body())

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"success": False, "error": "Internal server error"})


class TestWebhookEmailFailure(WebhookTestCase):
    response_type = "handleEmailAction"

    def test_email_generation_failure_returns_500(self):
        # The fake LLM answers the email prompt with plain text that has no body marker
        resp = self.client.post("/api/whatsapp/incoming", json=body(content="email alice@example.com"))

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(self.gateway_requests, [])
