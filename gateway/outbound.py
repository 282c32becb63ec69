"""
gateway/outbound.py

Turns generated text and email drafts into gateway send calls.

Individual threads are addressed by the sender's number, group threads by the thread id.
Missing the field the thread type needs, or a thread type that cannot be replied to, raises
InvalidChannelParametersError before anything is sent.
"""

from typing import List, Optional

from config.logging_config import get_logger
from gateway.client import A1BaseClient
from shared.exceptions import InvalidChannelParametersError
from shared.models import AgentIdentity, EmailDraft, ThreadType
from shared.utils import truncate_message_for_logging

logger = get_logger(__name__)


def split_paragraphs(text: str) -> List[str]:
    return [part for part in text.split("\n") if part.strip()]


class OutboundDispatcher:
    def __init__(self, gateway: A1BaseClient, identity: AgentIdentity, split_paragraphs: bool = False):
        self.gateway = gateway
        self.identity = identity
        self.split_paragraphs = split_paragraphs

    def _parts(self, text: str) -> List[str]:
        if self.split_paragraphs:
            return split_paragraphs(text)
        return [text] if text and text.strip() else []

    async def send_text(
        self,
        text: str,
        thread_type: str,
        thread_id: Optional[str] = None,
        sender_number: Optional[str] = None,
    ) -> int:
        """
        Send `text` to the originating conversation.

        Returns:
            int: Number of gateway messages sent (more than one when paragraph splitting
            is enabled).

        Raises:
            InvalidChannelParametersError: Required addressing field missing for the thread type.
            GatewaySendError: The gateway rejected a send.
        """
        thread_type = thread_type.value if isinstance(thread_type, ThreadType) else thread_type
        if thread_type == ThreadType.INDIVIDUAL.value:
            if not sender_number:
                raise InvalidChannelParametersError("Individual thread reply requires a sender number")
        elif thread_type == ThreadType.GROUP.value:
            if not thread_id:
                raise InvalidChannelParametersError("Group thread reply requires a thread id")
        else:
            raise InvalidChannelParametersError(f"Cannot reply to thread type: {thread_type!r}")

        parts = self._parts(text)
        if not parts:
            logger.warning("Nothing to send: empty text", extra={'thread_id': thread_id or 'no_thread'})
            return 0

        for part in parts:
            payload = {
                "content": part,
                "from": self.identity.agent_number,
                "service": self.identity.service,
            }
            if thread_type == ThreadType.INDIVIDUAL.value:
                payload["to"] = sender_number
                await self.gateway.send_individual(self.identity.account_id, payload)
            else:
                payload["thread_id"] = thread_id
                await self.gateway.send_group(self.identity.account_id, payload)
            logger.info(
                f"Sent {thread_type} message: '{truncate_message_for_logging(part, 50)}'",
                extra={'thread_id': thread_id or 'no_thread'}
            )
        return len(parts)

    async def send_email(self, draft: EmailDraft) -> None:
        """
        Send a single email from the agent's address.

        Raises:
            InvalidChannelParametersError: The draft has no recipient.
            GatewaySendError: The gateway rejected the email.
        """
        if not draft.recipient_address:
            raise InvalidChannelParametersError("Email requires a recipient address")
        await self.gateway.send_email(self.identity.account_id, {
            "sender_address": self.identity.agent_email,
            "recipient_address": draft.recipient_address,
            "subject": draft.subject,
            "body": draft.body,
            "headers": {},
        })
        logger.info("Sent email", extra={'recipient': draft.recipient_address, 'subject': draft.subject})
