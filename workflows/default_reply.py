"""
Default reply workflow.

Answers with a contextual reply generated from the full conversation window plus the
messaging style instruction. This is the only workflow that recovers from its own failures:
when generation or delivery fails, a fixed apology goes out through the same channel so the
user is never left without an answer. Invalid addressing is not recoverable (the apology
could not be delivered either) and propagates.
"""

from monitoring.metrics import ERROR_COUNT
from shared.exceptions import InvalidChannelParametersError
from shared.models import WorkflowContext, WorkflowResult
from workflows.base import BaseWorkflow

DEFAULT_APOLOGY = "Sorry, I ran into a problem while putting together a reply. Please try again in a moment."


class DefaultReplyWorkflow(BaseWorkflow):
    def setup(self) -> None:
        self.style_prompt = self.config.get("simple_response_prompt")
        self.apology = self.config.get("messages", {}).get("apology", DEFAULT_APOLOGY)

    def get_workflow_name(self) -> str:
        return "default_reply"

    async def _execute_internal(self, context: WorkflowContext) -> WorkflowResult:
        try:
            reply = await self.generator.generate_reply(context.window, self.style_prompt)
            sent = await self.send_text(reply, context)
            return WorkflowResult(workflow_name=self.get_workflow_name(), messages_sent=sent)
        except InvalidChannelParametersError:
            raise
        except Exception as e:
            ERROR_COUNT.labels(type='workflow', location=self.get_workflow_name()).inc()
            self.logger.error(
                f"Default reply failed, sending apology: {e}",
                extra={'thread_id': context.thread_id},
                exc_info=True
            )
            sent = await self.send_text(self.apology, context)
            return WorkflowResult(
                workflow_name=self.get_workflow_name(),
                messages_sent=sent,
                recovered_error=str(e),
            )
