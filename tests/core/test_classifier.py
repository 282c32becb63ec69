"""
Unit tests for `core/classifier.py` – IntentClassifier behavior in isolation.

The LLM client is replaced with an AsyncMock whose `chat.completions.create` returns a
synthetic response, so no network call is made and every branch of the mapping from raw
model output to `Intent` can be exercised deterministically. Prompt text comes from an
explicit config dictionary instead of the files in config/.
"""

import json
import unittest
from unittest.mock import AsyncMock, MagicMock

from core.classifier import IntentClassifier, parse_intent
from shared.models import Intent, Message

AGENT = "61400000000"

CONFIG = {
    "classification_prompt": "Classify the conversation.",
    "llm": {
        "provider": "openai",
        "models": {
            "classification": {"name": "test-model", "settings": {"max_tokens": 50, "temperature": 0.0, "top_k": 50}},
        },
    },
}


def llm_returning(content):
    client = MagicMock()
    response = MagicMock()
    response.choices[0].message.content = content
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


def window():
    return [
        Message("m-1", "hi", "+61411111111", "Alice", "1"),
        Message("m-2", "hello Alice", AGENT, "Felicie", "2"),
        Message("m-3", "who are you?", "+61411111111", "Alice", "3"),
    ]


class TestParseIntent(unittest.TestCase):
    def test_known_response_types(self):
        for intent in Intent:
            self.assertEqual(parse_intent(json.dumps({"responseType": intent.value})), intent)

    def test_malformed_output_defaults_to_simple_response(self):
        for raw in [None, "", "not json", "[]", "{}", '{"responseType": "somethingElse"}', '"sendIdentityCard"']:
            self.assertEqual(parse_intent(raw), Intent.SIMPLE_RESPONSE, raw)

    def test_code_fenced_json_is_accepted(self):
        raw = '```json\n{"responseType": "handleEmailAction"}\n```'
        self.assertEqual(parse_intent(raw), Intent.EMAIL_ACTION)


class TestIntentClassifier(unittest.IsolatedAsyncioTestCase):
    async def test_classifies_identity_request(self):
        client = llm_returning('{"responseType": "sendIdentityCard"}')
        classifier = IntentClassifier(lambda n: n == AGENT, client=client, config=CONFIG)

        intent = await classifier.classify(window())

        self.assertEqual(intent, Intent.IDENTITY_REQUEST)

    async def test_window_is_tagged_by_sender(self):
        client = llm_returning('{"responseType": "simpleResponse"}')
        classifier = IntentClassifier(lambda n: n == AGENT, client=client, config=CONFIG)

        await classifier.classify(window())

        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "test-model")
        self.assertEqual(kwargs["response_format"], {"type": "json_object"})
        self.assertNotIn("extra_body", kwargs)
        roles = [m["role"] for m in kwargs["messages"]]
        self.assertEqual(roles, ["system", "user", "assistant", "user"])
        self.assertEqual(kwargs["messages"][0]["content"], "Classify the conversation.")

    async def test_unknown_value_defaults_to_simple_response(self):
        client = llm_returning('{"responseType": "bookFlight"}')
        classifier = IntentClassifier(lambda n: n == AGENT, client=client, config=CONFIG)

        self.assertEqual(await classifier.classify(window()), Intent.SIMPLE_RESPONSE)

    async def test_llm_error_defaults_to_simple_response(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=RuntimeError("LLM down"))
        classifier = IntentClassifier(lambda n: n == AGENT, client=client, config=CONFIG)

        self.assertEqual(await classifier.classify(window()), Intent.SIMPLE_RESPONSE)
