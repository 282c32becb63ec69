"""
shared/models.py

Common data models and type definitions used across the agent service.

Records that cross a component boundary (messages, threads, users, workflow context)
are explicit dataclasses so call sites never depend on the shape of a raw JSON blob.
Inbound webhook bodies are validated once, at the HTTP boundary, with pydantic.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator


class Intent(Enum):
    """
    Closed set of intents the triage step can assign to the latest exchange.

    The values are the `responseType` strings the classification model returns. Anything
    outside this set is coerced to SIMPLE_RESPONSE by the classifier.
    """
    IDENTITY_REQUEST = "sendIdentityCard"
    EMAIL_ACTION = "handleEmailAction"
    TASK_CONFIRMATION = "taskActionConfirmation"
    SIMPLE_RESPONSE = "simpleResponse"

    @classmethod
    def from_response_type(cls, value: Any) -> "Intent":
        """Map a raw `responseType` value to an Intent, defaulting to SIMPLE_RESPONSE."""
        for intent in cls:
            if intent.value == value:
                return intent
        return cls.SIMPLE_RESPONSE


class ThreadType(Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"
    BROADCAST = "broadcast"


class StorageResult(Enum):
    """Which backend accepted a thread-store write."""
    DURABLE = "durable"
    FALLBACK = "fallback"
    FAILED = "failed"


@dataclass(frozen=True)
class Message:
    """A single stored chat message. Identity is `message_id`."""
    message_id: str
    content: str
    sender_number: str
    sender_name: str
    timestamp: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'message_id': self.message_id,
            'content': self.content,
            'sender_number': self.sender_number,
            'sender_name': self.sender_name,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """
        Build a Message from a stored JSON record.

        Rows written by older versions of the service may miss optional fields, so every
        value is coerced to a string instead of trusting the stored shape.
        """
        return cls(
            message_id=str(data.get('message_id') or ''),
            content=str(data.get('content') or ''),
            sender_number=str(data.get('sender_number') or ''),
            sender_name=str(data.get('sender_name') or ''),
            timestamp=str(data.get('timestamp') or ''),
        )


@dataclass
class Thread:
    """A conversation: the bounded message window (oldest first) and its participants."""
    id: str
    messages: List[Message] = field(default_factory=list)
    participants: List[str] = field(default_factory=list)


@dataclass
class User:
    id: Optional[str]
    name: str
    phone_number: int


@dataclass(frozen=True)
class EmailDraft:
    subject: str
    body: str
    recipient_address: Optional[str] = None

    @property
    def has_recipient(self) -> bool:
        return bool(self.recipient_address)


@dataclass
class PendingAction:
    """
    An action generated for a thread that is waiting for the user's approval.

    Created by the email workflow when confirmation is required and consumed by the
    task-confirmation workflow on the next message classified as TASK_CONFIRMATION.
    """
    thread_id: str
    draft: EmailDraft
    kind: str = "send_email"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class AgentIdentity:
    """The configured identity the service speaks as."""
    agent_number: Optional[str]
    agent_name: Optional[str]
    account_id: Optional[str]
    agent_email: Optional[str] = None
    service: str = "whatsapp"


@dataclass
class WorkflowContext:
    """
    User session context containing everything a workflow needs for one dispatch.

    `window` is the conversation window read back from the thread store after the
    inbound message was appended, so its last element is normally that message.
    """
    thread_id: str
    thread_type: str
    sender_number: Optional[str]
    sender_name: str
    window: List[Message]

    @property
    def latest_message(self) -> Optional[Message]:
        return self.window[-1] if self.window else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'thread_id': self.thread_id,
            'thread_type': self.thread_type,
            'sender_number': self.sender_number,
            'sender_name': self.sender_name,
            'window_size': len(self.window),
        }


@dataclass
class WorkflowResult:
    """Outcome of a workflow run, used for logging and by tests."""
    workflow_name: str
    messages_sent: int = 0
    email_sent: bool = False
    awaiting_confirmation: bool = False
    recovered_error: Optional[str] = None


@dataclass
class IngestionResult:
    """What `handle_incoming` did with one inbound message."""
    storage: StorageResult
    intent: Optional[Intent] = None
    dispatched: bool = False
    workflow: Optional[WorkflowResult] = None
    duplicate: bool = False


class IncomingWebhookPayload(BaseModel):
    """
    Validate the JSON body the messaging gateway posts for each inbound message.

    Only the fields the service relies on are required. `sender_number` and
    `sender_name` may be empty: the gateway omits the sender for the agent's own
    messages in group threads and the normalizer patches that case.
    """
    thread_id: str = Field(..., min_length=1, description="Channel-provided conversation id")
    message_id: str = Field(..., min_length=1, description="Channel-provided message id")
    thread_type: ThreadType = Field(..., description="individual, group or broadcast")
    content: str = Field("", description="Message text")
    sender_number: str = Field("", description="Sender phone number, possibly '+'-prefixed")
    sender_name: str = Field("", description="Sender display name")
    timestamp: str = Field(..., description="Channel timestamp, kept as sent")
    a1_account_number: Optional[str] = None
    a1_account_id: Optional[str] = None
    service: str = "whatsapp"

    @field_validator('sender_number', 'sender_name', 'content', mode='before')
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value
