"""
core/normalizer.py

Canonicalization of phone numbers and inbound webhook payloads.

Two phone-number forms are used across the service:
- digits only, for comparisons and for the numeric `phone_number` column of the users table;
- "dialable", i.e. the number with only its leading '+' removed, for thread participant lists.

Both forms are idempotent. Nothing in this module raises on malformed input; values that
cannot be normalized are passed through unchanged.
"""

import re
from dataclasses import dataclass
from typing import Optional

from config.logging_config import get_logger
from shared.models import AgentIdentity, IncomingWebhookPayload, Message, ThreadType

logger = get_logger(__name__)

_NON_DIGITS = re.compile(r"\D")

# Placeholder the gateway sends instead of the agent's number in group threads.
GROUP_SENDER_PLACEHOLDERS = frozenset({"", "+"})


def normalize_phone_number(value: Optional[str]) -> str:
    """Strip every non-digit character. `None` becomes an empty string."""
    if not value:
        return ""
    return _NON_DIGITS.sub("", str(value))


def strip_leading_plus(value: Optional[str]) -> str:
    """Return the participant form of a number: whitespace trimmed and leading '+' signs removed."""
    if not value:
        return ""
    return str(value).strip().lstrip("+")


def to_numeric_phone(value: Optional[str]) -> Optional[int]:
    """Numeric phone number for the user registry, or None when there are no digits."""
    digits = normalize_phone_number(value)
    return int(digits) if digits else None


def is_agent_number(value: Optional[str], identity: AgentIdentity) -> bool:
    """True when `value` is the configured agent number, compared digit-wise."""
    agent_digits = normalize_phone_number(identity.agent_number)
    return bool(agent_digits) and normalize_phone_number(value) == agent_digits


@dataclass(frozen=True)
class NormalizedInbound:
    """An inbound message after patching, plus the thread metadata it arrived with."""
    thread_id: str
    thread_type: str
    message: Message
    is_from_agent: bool

    @property
    def sender_number(self) -> str:
        return self.message.sender_number

    @property
    def sender_name(self) -> str:
        return self.message.sender_name


def normalize_inbound(payload: IncomingWebhookPayload, identity: AgentIdentity) -> NormalizedInbound:
    """
    Turn a validated webhook payload into the canonical message record.

    Applies two patches:
    - group threads where the gateway reports a missing or '+' sender get the agent number,
      because that is how the gateway reports the agent's own group messages;
    - messages from the agent number are stored under the configured agent display name.

    The sender number itself is stored as received so replies can be addressed to it.
    """
    thread_type = payload.thread_type.value if isinstance(payload.thread_type, ThreadType) else str(payload.thread_type)
    sender_number = payload.sender_number
    sender_name = payload.sender_name

    if (
        thread_type == ThreadType.GROUP.value
        and sender_number.strip() in GROUP_SENDER_PLACEHOLDERS
        and identity.agent_number
    ):
        logger.info(
            "Patched placeholder group sender to agent number",
            extra={'thread_id': payload.thread_id, 'message_id': payload.message_id}
        )
        sender_number = identity.agent_number

    from_agent = is_agent_number(sender_number, identity)
    if from_agent and identity.agent_name:
        sender_name = identity.agent_name

    message = Message(
        message_id=payload.message_id,
        content=payload.content,
        sender_number=sender_number,
        sender_name=sender_name,
        timestamp=payload.timestamp,
    )
    return NormalizedInbound(
        thread_id=payload.thread_id,
        thread_type=thread_type,
        message=message,
        is_from_agent=from_agent,
    )
