"""
Unit tests for `llm_cloud/generator.py` – ResponseGenerator.

The client is a MagicMock with an AsyncMock `chat.completions.create`; prompts come from an
explicit config dictionary so the tests do not depend on the prompt files.
"""

import json
import unittest
from unittest.mock import AsyncMock, MagicMock

from llm_cloud.generator import (
    DEFAULT_EMAIL_SUBJECT,
    EMPTY_INTRODUCTION_FALLBACK,
    EMPTY_REPLY_FALLBACK,
    NO_USER_GREETING,
    ResponseGenerator,
)
from shared.models import Message

AGENT = "61400000000"

CONFIG = {
    "agent_system_prompt": "You are Felicie. You are talking to {user_name}.",
    "email_generation_prompt": "Write an email as JSON.",
    "llm": {
        "provider": "openai",
        "models": {
            "response": {"name": "reply-model", "settings": {"temperature": 0.6}},
            "email": {"name": "email-model", "settings": {"temperature": 0.3}},
        },
    },
}


def llm_returning(content):
    client = MagicMock()
    response = MagicMock()
    response.choices[0].message.content = content
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


def window(*messages):
    return [Message(f"m-{i}", content, sender, name, str(i)) for i, (content, sender, name) in enumerate(messages)]


def generator_for(content):
    return ResponseGenerator(lambda number: number.lstrip("+") == AGENT, client=llm_returning(content), config=CONFIG)


class TestGenerateReply(unittest.IsolatedAsyncioTestCase):
    async def test_prompt_addresses_latest_user(self):
        generator = generator_for("Sure thing!")
        messages = window(("hi", "+61411111111", "Alice"), ("hello", AGENT, "Felicie"), ("yo", "+61422222222", "Bob"))

        reply = await generator.generate_reply(messages, "Be brief.")

        self.assertEqual(reply, "Sure thing!")
        kwargs = generator.client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "reply-model")
        sent = kwargs["messages"]
        self.assertEqual(sent[0], {"role": "system", "content": "You are Felicie. You are talking to Bob."})
        self.assertEqual(sent[1], {"role": "user", "content": "Be brief."})
        self.assertEqual([m["role"] for m in sent[2:]], ["user", "assistant", "user"])

    async def test_json_message_field_is_unwrapped(self):
        generator = generator_for(json.dumps({"message": "Unwrapped"}))
        self.assertEqual(await generator.generate_reply(window(("hi", "+1", "Alice"))), "Unwrapped")

    async def test_no_user_returns_greeting_without_calling_llm(self):
        generator = generator_for("unused")

        self.assertEqual(await generator.generate_reply(window(("hi", AGENT, "Felicie"))), NO_USER_GREETING)
        generator.client.chat.completions.create.assert_not_awaited()

    async def test_empty_completion_uses_fallback(self):
        generator = generator_for("")
        self.assertEqual(await generator.generate_reply(window(("hi", "+1", "Alice"))), EMPTY_REPLY_FALLBACK)


class TestGenerateIntroduction(unittest.IsolatedAsyncioTestCase):
    async def test_introduction(self):
        generator = generator_for("I'm Felicie, nice to meet you.")

        intro = await generator.generate_introduction("who are you?", user_name="Alice")

        self.assertEqual(intro, "I'm Felicie, nice to meet you.")
        sent = generator.client.chat.completions.create.call_args.kwargs["messages"]
        self.assertEqual(sent[-1], {"role": "user", "content": "who are you?"})

    async def test_introduction_fallbacks(self):
        self.assertEqual(await generator_for("x").generate_introduction("hi", user_name=""), NO_USER_GREETING)
        self.assertEqual(await generator_for("").generate_introduction("hi", user_name="Alice"), EMPTY_INTRODUCTION_FALLBACK)


class TestGenerateEmail(unittest.IsolatedAsyncioTestCase):
    async def test_json_draft_with_recipient(self):
        content = json.dumps({
            "hasRecipient": True,
            "recipientEmail": "alice@example.com",
            "subject": "Quarterly report",
            "emailContent": "Hi Alice,\n\nPlease find the report attached.",
        })
        generator = generator_for(content)

        draft = await generator.generate_email(window(("email alice the report", "+1", "Bob")), "Draft it.")

        self.assertEqual(draft.subject, "Quarterly report")
        self.assertEqual(draft.recipient_address, "alice@example.com")
        self.assertTrue(draft.body.startswith("Hi Alice"))
        kwargs = generator.client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "email-model")

    async def test_recipient_is_extracted_from_conversation(self):
        content = json.dumps({"hasRecipient": False, "recipientEmail": "", "subject": "Hi", "emailContent": "Hello"})
        generator = generator_for(content)
        messages = window(
            ("write to old@example.com", "+1", "Bob"),
            ("or maybe agent@a1send.com", AGENT, "Felicie"),
            ("please email alice@example.com the report", "+1", "Bob"),
        )

        draft = await generator.generate_email(messages)

        self.assertEqual(draft.recipient_address, "alice@example.com")

    async def test_marker_format_is_accepted(self):
        generator = generator_for("SUBJECT: Lunch\nBODY: See you at noon.")

        draft = await generator.generate_email(window(("email bob@example.com about lunch", "+1", "Alice")))

        self.assertEqual((draft.subject, draft.body), ("Lunch", "See you at noon."))
        self.assertEqual(draft.recipient_address, "bob@example.com")

    async def test_missing_subject_uses_default(self):
        generator = generator_for(json.dumps({"emailContent": "Body only"}))

        draft = await generator.generate_email(window(("hi", "+1", "Alice")))

        self.assertEqual(draft.subject, DEFAULT_EMAIL_SUBJECT)
        self.assertFalse(draft.has_recipient)

    async def test_empty_output_returns_none(self):
        self.assertIsNone(await generator_for("").generate_email(window(("hi", "+1", "Alice"))))
        self.assertIsNone(await generator_for('{"subject": "x"}').generate_email(window(("hi", "+1", "Alice"))))
