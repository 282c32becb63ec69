"""
Task confirmation workflow.

Resumes an action that is waiting for the user's approval. The user's latest message decides:
an approval sends the stored email draft, a refusal discards it, anything else leaves it
pending and repeats the question. Without a pending action for the thread the message is
answered by the default reply workflow.
"""

import re
from typing import Any, Dict

from gateway.outbound import OutboundDispatcher
from llm_cloud.generator import ResponseGenerator
from services.pending_actions import PendingActionStore
from shared.models import WorkflowContext, WorkflowResult
from workflows.base import BaseWorkflow
from workflows.default_reply import DefaultReplyWorkflow
from workflows.email import DEFAULT_MESSAGES, EmailWorkflow

APPROVAL_WORDS = frozenset({
    "yes", "y", "yep", "yeah", "sure", "ok", "okay", "send", "confirm", "confirmed",
    "approve", "approved", "go", "proceed",
})
REFUSAL_WORDS = frozenset({"no", "n", "nope", "cancel", "stop", "don't", "dont", "abort"})

_WORDS = re.compile(r"[a-z']+")


def read_decision(text: str):
    """Return True for approval, False for refusal, None when the reply is neither."""
    words = set(_WORDS.findall((text or "").lower()))
    if words & REFUSAL_WORDS:
        return False
    if words & APPROVAL_WORDS:
        return True
    return None


class TaskConfirmationWorkflow(BaseWorkflow):
    def __init__(
        self,
        generator: ResponseGenerator,
        outbound: OutboundDispatcher,
        pending_actions: PendingActionStore,
        email_workflow: EmailWorkflow,
        default_reply: DefaultReplyWorkflow,
        config: Dict[str, Any] = None,
    ):
        self.pending_actions = pending_actions
        self.email_workflow = email_workflow
        self.default_reply = default_reply
        super().__init__(generator, outbound, config)

    def setup(self) -> None:
        messages = self.config.get("messages", {})
        self.cancelled_message = messages.get("email_cancelled", "No problem, I won't send that email.")
        self.approval_message = messages.get("email_approval", DEFAULT_MESSAGES["email_approval"])

    def get_workflow_name(self) -> str:
        return "task_confirmation"

    async def _execute_internal(self, context: WorkflowContext) -> WorkflowResult:
        pending = self.pending_actions.peek(context.thread_id)
        if pending is None:
            self.logger.info("No pending action, answering with default reply", extra={'thread_id': context.thread_id})
            return await self.default_reply.execute(context)

        latest = context.latest_message
        decision = read_decision(latest.content if latest else "")

        if decision is None:
            sent = await self.send_text(
                self.approval_message.format(
                    recipient=pending.draft.recipient_address,
                    subject=pending.draft.subject,
                ),
                context,
            )
            return WorkflowResult(
                workflow_name=self.get_workflow_name(),
                messages_sent=sent,
                awaiting_confirmation=True,
            )

        self.pending_actions.pop(context.thread_id)
        if decision:
            self.logger.info("Pending email approved", extra={'thread_id': context.thread_id})
            return await self.email_workflow.deliver(pending.draft, context)

        self.logger.info("Pending email cancelled", extra={'thread_id': context.thread_id})
        sent = await self.send_text(self.cancelled_message, context)
        return WorkflowResult(workflow_name=self.get_workflow_name(), messages_sent=sent)
