"""
core/orchestrator.py

Intent to workflow dispatch.

Dispatch is a single step: one intent selects one workflow, which runs to completion and
ends in zero or more outbound sends. Nothing is retried here and nothing is caught; a
workflow failure propagates to the ingestion boundary.
"""

from typing import Any, Dict, Optional

from config import CONFIG
from config.logging_config import get_logger
from gateway.outbound import OutboundDispatcher
from llm_cloud.generator import ResponseGenerator
from services.pending_actions import PendingActionStore
from shared.models import Intent, WorkflowContext, WorkflowResult
from workflows.base import BaseWorkflow
from workflows.default_reply import DefaultReplyWorkflow
from workflows.email import EmailWorkflow
from workflows.identity import IdentityWorkflow
from workflows.task_confirmation import TaskConfirmationWorkflow

logger = get_logger(__name__)


class WorkflowOrchestrator:
    """
    Routes a classified message to its workflow.

    Responsibilities:
    - Hold the intent -> workflow table
    - Send any intent without an entry to the default reply workflow
    """

    def __init__(self, workflows: Dict[Intent, BaseWorkflow], default: BaseWorkflow):
        self.workflows = dict(workflows)
        self.default = default
        logger.info("Initialized with %d workflows", len(self.workflows))

    @classmethod
    def build(
        cls,
        generator: ResponseGenerator,
        outbound: OutboundDispatcher,
        pending_actions: PendingActionStore,
        config: Optional[Dict[str, Any]] = None,
    ) -> "WorkflowOrchestrator":
        """Create the standard workflow set sharing one generator, dispatcher and pending-action store."""
        config = CONFIG if config is None else config
        default_reply = DefaultReplyWorkflow(generator, outbound, config)
        email = EmailWorkflow(generator, outbound, pending_actions, config)
        return cls(
            workflows={
                Intent.IDENTITY_REQUEST: IdentityWorkflow(generator, outbound, config),
                Intent.EMAIL_ACTION: email,
                Intent.TASK_CONFIRMATION: TaskConfirmationWorkflow(
                    generator, outbound, pending_actions, email, default_reply, config
                ),
                Intent.SIMPLE_RESPONSE: default_reply,
            },
            default=default_reply,
        )

    def workflow_for(self, intent: Intent) -> BaseWorkflow:
        return self.workflows.get(intent, self.default)

    async def dispatch(self, intent: Intent, context: WorkflowContext) -> WorkflowResult:
        workflow = self.workflow_for(intent)
        logger.info(
            f"Dispatching {intent.name} to {workflow.get_workflow_name()}",
            extra={'thread_id': context.thread_id, 'workflow_name': workflow.get_workflow_name()}
        )
        return await workflow.execute(context)
