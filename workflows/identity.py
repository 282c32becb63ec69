"""
Identity verification workflow.

Introduces the agent and follows up with the link to its public identity card.
"""

from shared.models import WorkflowContext, WorkflowResult
from workflows.base import BaseWorkflow

DEFAULT_IDENTITY_CARD_URL = "https://www.a1base.com/identity-and-trust/cd70954a-ab48-4d4d-af90-4d6ab5084bef"


class IdentityWorkflow(BaseWorkflow):
    def setup(self) -> None:
        self.identity_card_url = self.config.get("agent", {}).get("identity_card_url", DEFAULT_IDENTITY_CARD_URL)

    def get_workflow_name(self) -> str:
        return "identity_verification"

    async def _execute_internal(self, context: WorkflowContext) -> WorkflowResult:
        latest = context.latest_message
        introduction = await self.generator.generate_introduction(
            latest.content if latest else "",
            user_name=context.sender_name,
        )
        sent = await self.send_text(introduction, context)
        sent += await self.send_text(self.identity_card_url, context)
        return WorkflowResult(workflow_name=self.get_workflow_name(), messages_sent=sent)
