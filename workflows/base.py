"""
Base class for all workflows of the agent.

This module defines the BaseWorkflow abstract base class that every workflow must
implement. It enforces a common interface and provides shared functionality for
workflow setup, logging, metrics and sending text back to the originating thread.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from config import CONFIG
from config.logging_config import get_logger
from gateway.outbound import OutboundDispatcher
from llm_cloud.generator import ResponseGenerator
from monitoring.metrics import WORKFLOW_PROCESSING_TIME, track_errors, track_latency
from shared.models import WorkflowContext, WorkflowResult


class BaseWorkflow(ABC):
    """
    Abstract base class for all agent workflows.

    A workflow receives a `WorkflowContext` (thread addressing plus the stored conversation
    window), produces text with the response generator, and sends it through the outbound
    dispatcher. Concrete workflows override `setup`, `get_workflow_name` and
    `_execute_internal`.
    """

    def __init__(self, generator: ResponseGenerator, outbound: OutboundDispatcher, config: Dict[str, Any] = None):
        """
        Initialize common workflow state and invoke workflow-specific setup.

        Args:
            generator (ResponseGenerator): Produces reply, introduction and email text.
            outbound (OutboundDispatcher): Delivers text and email through the gateway.
            config (Dict[str, Any], optional): Configuration dictionary; the global CONFIG by default.
        """
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}").bind(
            workflow_name=self.get_workflow_name()
        )
        self.config = CONFIG if config is None else config
        self.generator = generator
        self.outbound = outbound
        self.setup()

    @abstractmethod
    def setup(self) -> None:
        """Load workflow-specific prompts and settings from `self.config`."""
        pass

    @abstractmethod
    def get_workflow_name(self) -> str:
        """
        Get the name of the workflow.

        Returns:
            str: The workflow's name for use in logging and metrics.
        """
        pass

    @track_latency(WORKFLOW_PROCESSING_TIME, lambda self: {'workflow_name': self.get_workflow_name()})
    @track_errors('workflow', lambda self: self.get_workflow_name())
    async def execute(self, context: WorkflowContext) -> WorkflowResult:
        """
        Run the workflow for one inbound message.

        Args:
            context (WorkflowContext): Thread addressing and the conversation window.

        Returns:
            WorkflowResult: What was sent.
        """
        self._log_processing_start(context)
        try:
            result = await self._execute_internal(context)
        except Exception:
            self._log_processing_end(context, success=False)
            raise
        self._log_processing_end(context, success=True)
        return result

    @abstractmethod
    async def _execute_internal(self, context: WorkflowContext) -> WorkflowResult:
        pass

    async def send_text(self, text: str, context: WorkflowContext) -> int:
        return await self.outbound.send_text(
            text,
            thread_type=context.thread_type,
            thread_id=context.thread_id,
            sender_number=context.sender_number,
        )

    def _log_processing_start(self, context: WorkflowContext) -> None:
        latest = context.latest_message
        preview = latest.content[:50] if latest else ''
        self.logger.info(
            f"[{self.get_workflow_name()}] Starting workflow: '{preview}...'",
            extra={'thread_id': context.thread_id}
        )

    def _log_processing_end(self, context: WorkflowContext, success: bool = True) -> None:
        status = "completed successfully" if success else "failed"
        self.logger.info(
            f"[{self.get_workflow_name()}] Workflow {status}",
            extra={'thread_id': context.thread_id}
        )
