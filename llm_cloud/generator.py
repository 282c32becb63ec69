"""
llm_cloud/generator.py

Response and content generation for the workflows.

`ResponseGenerator` wraps the chat-completions client with the three kinds of text the
agent produces: contextual replies, a self-introduction, and email drafts. Prompt text comes
from CONFIG (loaded from the config directory at import time).
"""

import re
from typing import Any, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from config import CONFIG
from config.logging_config import get_logger
from llm_cloud.conversation import chat_completion, to_chat_messages
from llm_cloud.provider import get_client
from shared.models import EmailDraft, Message
from shared.utils import extract_email_addresses, safe_json_loads, truncate_message_for_logging

logger = get_logger(__name__)

NO_USER_GREETING = "Hey there!"
EMPTY_REPLY_FALLBACK = "Sorry, I couldn't generate a response"
EMPTY_INTRODUCTION_FALLBACK = "Hello!"
DEFAULT_EMAIL_SUBJECT = "No subject"

_SUBJECT_PATTERN = re.compile(r"SUBJECT:\s*(.*)")
_BODY_PATTERN = re.compile(r"BODY:\s*([\s\S]*)")


class ResponseGenerator:
    """
    Generates the text every workflow sends.

    The client is created through `get_client()` unless one is injected, which keeps
    provider selection in a single place and lets tests pass an AsyncMock.
    """

    def __init__(
        self,
        is_agent_sender: Callable[[str], bool],
        client: Optional[AsyncOpenAI] = None,
        config: Dict[str, Any] = None,
    ):
        self.is_agent_sender = is_agent_sender
        self.client = client or get_client()
        self.config = CONFIG if config is None else config

    def system_prompt(self, user_name: str) -> str:
        return self.config["agent_system_prompt"].replace("{user_name}", user_name)

    def latest_user_name(self, window: List[Message]) -> Optional[str]:
        for message in reversed(window):
            if not self.is_agent_sender(message.sender_number) and message.sender_name:
                return message.sender_name
        return None

    async def generate_reply(self, window: List[Message], instruction: Optional[str] = None) -> str:
        """
        Generate a reply to the conversation window.

        The prompt is the agent system prompt addressed to the most recent non-agent
        sender, then `instruction` as a user-level message when given, then the window.
        A JSON reply carrying a "message" field is unwrapped to that field.
        """
        user_name = self.latest_user_name(window)
        if not user_name:
            return NO_USER_GREETING

        conversation = [{"role": "system", "content": self.system_prompt(user_name)}]
        if instruction:
            conversation.append({"role": "user", "content": instruction})
        conversation.extend(to_chat_messages(window, self.is_agent_sender))

        content = await chat_completion(self.client, "response", conversation, self.config)
        if not content:
            return EMPTY_REPLY_FALLBACK

        data = safe_json_loads(content)
        if isinstance(data, dict) and isinstance(data.get("message"), str) and data["message"].strip():
            return data["message"].strip()
        return content

    async def generate_introduction(self, incoming_message: str, user_name: Optional[str] = None) -> str:
        if not user_name:
            return NO_USER_GREETING

        conversation = [
            {"role": "system", "content": self.system_prompt(user_name)},
            {"role": "user", "content": incoming_message},
        ]
        content = await chat_completion(self.client, "response", conversation, self.config)
        return content or EMPTY_INTRODUCTION_FALLBACK

    async def generate_email(self, messages: List[Message], instruction: Optional[str] = None) -> Optional[EmailDraft]:
        """
        Draft an email from the given messages.

        The model is asked for a JSON object (subject, emailContent, recipientEmail);
        plain-text answers using "SUBJECT:" / "BODY:" markers are accepted as well. The
        recipient is taken from the model's answer when it contains a valid address,
        otherwise from the newest address mentioned by a non-agent sender.

        Returns:
            Optional[EmailDraft]: None when the model returned no usable body.
        """
        conversation = [{"role": "system", "content": self.config["email_generation_prompt"]}]
        if instruction:
            conversation.append({"role": "user", "content": instruction})
        conversation.extend(to_chat_messages(messages, self.is_agent_sender))

        content = await chat_completion(self.client, "email", conversation, self.config)
        if not content:
            logger.warning("Email generation returned no content")
            return None

        logger.debug(f"Email generation output: {truncate_message_for_logging(content)}")
        subject, body, recipient = self._parse_email(content)
        if not body:
            logger.warning("Email generation returned no body")
            return None

        return EmailDraft(
            subject=subject or DEFAULT_EMAIL_SUBJECT,
            body=body,
            recipient_address=recipient or self._recipient_from_messages(messages),
        )

    @staticmethod
    def _parse_email(content: str):
        data = safe_json_loads(content)
        if isinstance(data, dict):
            subject = str(data.get("subject") or "").strip()
            body = str(data.get("emailContent") or data.get("body") or "").strip()
            addresses = extract_email_addresses(str(data.get("recipientEmail") or ""))
            return subject, body, addresses[0] if addresses else None

        subject_match = _SUBJECT_PATTERN.search(content)
        body_match = _BODY_PATTERN.search(content)
        subject = subject_match.group(1).strip() if subject_match else ""
        body = body_match.group(1).strip() if body_match else ""
        return subject, body, None

    def _recipient_from_messages(self, messages: List[Message]) -> Optional[str]:
        for message in reversed(messages):
            if self.is_agent_sender(message.sender_number):
                continue
            addresses = extract_email_addresses(message.content)
            if addresses:
                return addresses[-1]
        return None
