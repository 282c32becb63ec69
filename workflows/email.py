"""
Email workflow.

Drafts an email from the last few messages, sends it from the agent's address, confirms the
subject and recipient back in the thread, then sends a separate task-completion message.

Two branches stop before sending:
- no recipient address could be found, so the user is asked for one;
- `workflows.email_requires_confirmation` is on, so the draft is stored as a pending action
  and the user is asked to approve it (see workflows/task_confirmation.py).

Failures are not recovered here: an empty draft raises EmailGenerationError and gateway
errors propagate, so the user gets no success confirmation when the email did not go out.
"""

from typing import Any, Dict

from gateway.outbound import OutboundDispatcher
from llm_cloud.generator import ResponseGenerator
from services.pending_actions import PendingActionStore
from shared.exceptions import EmailGenerationError
from shared.models import EmailDraft, PendingAction, WorkflowContext, WorkflowResult
from workflows.base import BaseWorkflow

EMAIL_INSTRUCTION = "Draft the email requested in the conversation below."

DEFAULT_MESSAGES = {
    "email_sent": "Email sent to {recipient} with subject: \"{subject}\"",
    "email_missing_recipient": "I can draft that email for you, but I need the recipient's email address first. Who should I send it to?",
    "email_approval": "I've drafted an email to {recipient} with subject: \"{subject}\". Reply YES to send it or NO to cancel.",
}


class EmailWorkflow(BaseWorkflow):
    def __init__(
        self,
        generator: ResponseGenerator,
        outbound: OutboundDispatcher,
        pending_actions: PendingActionStore,
        config: Dict[str, Any] = None,
    ):
        self.pending_actions = pending_actions
        super().__init__(generator, outbound, config)

    def setup(self) -> None:
        self.context_messages = self.config.get("conversation", {}).get("email_context_messages", 3)
        self.requires_confirmation = bool(
            self.config.get("workflows", {}).get("email_requires_confirmation", False)
        )
        self.completion_prompt = self.config.get("task_completion_prompt")
        self.messages = {**DEFAULT_MESSAGES, **self.config.get("messages", {})}

    def get_workflow_name(self) -> str:
        return "email"

    async def build_draft(self, context: WorkflowContext) -> EmailDraft:
        recent = context.window[-self.context_messages:]
        draft = await self.generator.generate_email(recent, EMAIL_INSTRUCTION)
        if draft is None:
            raise EmailGenerationError("Email generation returned no content")
        return draft

    async def _execute_internal(self, context: WorkflowContext) -> WorkflowResult:
        draft = await self.build_draft(context)

        if not draft.has_recipient:
            self.logger.info("Email draft has no recipient, asking the user", extra={'thread_id': context.thread_id})
            sent = await self.send_text(self.messages["email_missing_recipient"], context)
            return WorkflowResult(workflow_name=self.get_workflow_name(), messages_sent=sent)

        if self.requires_confirmation:
            self.pending_actions.put(PendingAction(thread_id=context.thread_id, draft=draft))
            sent = await self.send_text(
                self.messages["email_approval"].format(recipient=draft.recipient_address, subject=draft.subject),
                context,
            )
            return WorkflowResult(
                workflow_name=self.get_workflow_name(),
                messages_sent=sent,
                awaiting_confirmation=True,
            )

        return await self.deliver(draft, context)

    async def deliver(self, draft: EmailDraft, context: WorkflowContext) -> WorkflowResult:
        """Send the email, then the subject/recipient confirmation and the task-completion message."""
        await self.outbound.send_email(draft)

        sent = await self.send_text(
            self.messages["email_sent"].format(recipient=draft.recipient_address, subject=draft.subject),
            context,
        )
        completion = await self.generator.generate_reply(context.window, self.completion_prompt)
        sent += await self.send_text(completion, context)
        return WorkflowResult(workflow_name=self.get_workflow_name(), messages_sent=sent, email_sent=True)
