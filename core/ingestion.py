"""
core/ingestion.py

The inbound message entry point.

`IncomingMessageHandler.handle_incoming` runs one webhook delivery through the pipeline:

1. validate and normalize the payload (group placeholder sender, agent display name);
2. upsert the sender in the user registry, unless the sender is the agent;
3. append the message to the thread store and read the window back, holding the
   thread's lock so concurrent deliveries for one thread cannot lose each other's writes;
   a redelivered message_id stops here without a second reply;
4. for non-agent messages only: classify the window and dispatch the matching workflow.

Storage and user-registry problems never fail the call. Workflow failures (email path,
invalid channel parameters) propagate to the webhook layer, which reports them upstream.
"""

from typing import Any, Dict, List, Union

from config.logging_config import get_logger
from core.classifier import IntentClassifier
from core.locks import ThreadLockRegistry
from core.normalizer import NormalizedInbound, normalize_inbound
from core.orchestrator import WorkflowOrchestrator
from monitoring.metrics import INBOUND_MESSAGES
from services.thread_store import ThreadStore
from services.user_registry import UserRegistry
from shared.models import (
    AgentIdentity,
    IncomingWebhookPayload,
    IngestionResult,
    Message,
    StorageResult,
    WorkflowContext,
)
from shared.utils import truncate_message_for_logging

logger = get_logger(__name__)


class IncomingMessageHandler:
    def __init__(
        self,
        identity: AgentIdentity,
        thread_store: ThreadStore,
        user_registry: UserRegistry,
        classifier: IntentClassifier,
        orchestrator: WorkflowOrchestrator,
        locks: ThreadLockRegistry,
    ):
        self.identity = identity
        self.thread_store = thread_store
        self.user_registry = user_registry
        self.classifier = classifier
        self.orchestrator = orchestrator
        self.locks = locks

    async def handle_incoming(self, payload: Union[IncomingWebhookPayload, Dict[str, Any]]) -> IngestionResult:
        """
        Ingest one inbound message and, for user messages, reply to it.

        Args:
            payload: The webhook body, already validated or as a raw dict.

        Returns:
            IngestionResult: Which backend stored the message, the intent, and the workflow outcome.

        Raises:
            pydantic.ValidationError: The raw payload is malformed.
            AgentServiceError: A fatal workflow failure (email path or invalid channel parameters).
        """
        if not isinstance(payload, IncomingWebhookPayload):
            payload = IncomingWebhookPayload.model_validate(payload)

        inbound = normalize_inbound(payload, self.identity)
        log = logger.bind(thread_id=inbound.thread_id)
        INBOUND_MESSAGES.labels(
            thread_type=inbound.thread_type,
            sender='agent' if inbound.is_from_agent else 'user',
        ).inc()
        log.info(
            f"Message received: '{truncate_message_for_logging(inbound.message.content, 50)}'",
            extra={
                'message_id': inbound.message.message_id,
                'thread_type': inbound.thread_type,
                'from_agent': inbound.is_from_agent,
            }
        )

        if not inbound.is_from_agent:
            await self.user_registry.ensure_user(inbound.sender_number, inbound.sender_name)

        async with self.locks.hold(inbound.thread_id):
            outcome = await self.thread_store.append_incoming(inbound.thread_id, inbound.message)
            storage = outcome.storage
            if outcome.duplicate:
                log.info(
                    "Duplicate delivery, already handled",
                    extra={'message_id': inbound.message.message_id, 'storage_result': storage.value}
                )
                return IngestionResult(storage=storage, duplicate=True)
            window = await self._read_window(inbound, storage)
        log.info(f"Message stored ({storage.value})", extra={'storage_result': storage.value})

        if inbound.is_from_agent:
            return IngestionResult(storage=storage)

        intent = await self.classifier.classify(window)
        context = WorkflowContext(
            thread_id=inbound.thread_id,
            thread_type=inbound.thread_type,
            sender_number=inbound.sender_number,
            sender_name=inbound.sender_name,
            window=window,
        )
        result = await self.orchestrator.dispatch(intent, context)
        return IngestionResult(storage=storage, intent=intent, dispatched=True, workflow=result)

    async def _read_window(self, inbound: NormalizedInbound, storage: StorageResult) -> List[Message]:
        """Read the window from the backend that accepted the write; at minimum the message itself."""
        thread = await self.thread_store.get_thread(
            inbound.thread_id,
            prefer_fallback=storage is not StorageResult.DURABLE,
        )
        if thread is None or not thread.messages:
            return [inbound.message]
        return thread.messages
