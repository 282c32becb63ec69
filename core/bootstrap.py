"""
core/bootstrap.py

Composition root of the service.

Builds every long-lived object exactly once and hands them out through `AppServices`. The
in-memory thread cache, the per-thread lock registry and the pending-action store live
here rather than in module globals, so a test can build an isolated service graph with
injected collaborators.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx
from openai import AsyncOpenAI

from config import CONFIG, ENV
from config.logging_config import get_logger
from core.classifier import IntentClassifier
from core.ingestion import IncomingMessageHandler
from core.locks import ThreadLockRegistry
from core.normalizer import is_agent_number
from core.orchestrator import WorkflowOrchestrator
from gateway.client import DEFAULT_BASE_URL, A1BaseClient
from gateway.outbound import OutboundDispatcher
from llm_cloud.generator import ResponseGenerator
from llm_cloud.provider import get_client
from services.durable_store import DurableStoreProvider
from services.memory_store import InMemoryThreadCache
from services.pending_actions import PendingActionStore
from services.thread_store import ThreadStore
from services.user_registry import UserRegistry
from shared.models import AgentIdentity

logger = get_logger(__name__)


@dataclass
class AppServices:
    identity: AgentIdentity
    thread_store: ThreadStore
    user_registry: UserRegistry
    pending_actions: PendingActionStore
    gateway: A1BaseClient
    outbound: OutboundDispatcher
    handler: IncomingMessageHandler
    cron_secret: Optional[str] = None

    async def aclose(self) -> None:
        await self.gateway.aclose()


def identity_from_env(env: Dict[str, Optional[str]] = None, config: Dict[str, Any] = None) -> AgentIdentity:
    env = ENV if env is None else env
    config = CONFIG if config is None else config
    return AgentIdentity(
        agent_number=env.get('A1BASE_AGENT_NUMBER'),
        agent_name=env.get('A1BASE_AGENT_NAME'),
        account_id=env.get('A1BASE_ACCOUNT_ID'),
        agent_email=env.get('A1BASE_AGENT_EMAIL'),
        service=config.get('agent', {}).get('service', 'whatsapp'),
    )


def build_services(
    config: Dict[str, Any] = None,
    env: Dict[str, Optional[str]] = None,
    llm_client: Optional[AsyncOpenAI] = None,
    gateway_transport: Optional[httpx.AsyncBaseTransport] = None,
    durable: Optional[DurableStoreProvider] = None,
) -> AppServices:
    """
    Wire the service graph.

    Args:
        config: Configuration dictionary; the global CONFIG by default.
        env: Environment values (credentials, agent identity); the global ENV by default.
        llm_client: Pre-built LLM client shared by classifier and generator; built via
            `get_client()` when omitted.
        gateway_transport: httpx transport for the gateway client (tests pass a MockTransport).
        durable: Durable store provider; built from SUPABASE_URL/SUPABASE_KEY when omitted.
    """
    config = CONFIG if config is None else config
    env = ENV if env is None else env

    identity = identity_from_env(env, config)
    is_agent_sender: Callable[[str], bool] = lambda number: is_agent_number(number, identity)

    storage_cfg = config.get('storage', {})
    if durable is None:
        durable = DurableStoreProvider(
            url=env.get('SUPABASE_URL'),
            key=env.get('SUPABASE_KEY'),
            threads_table=storage_cfg.get('threads_table', 'threads'),
            users_table=storage_cfg.get('users_table', 'users'),
        )
    if not durable.is_configured:
        logger.warning("SUPABASE_URL/SUPABASE_KEY not set, conversation state is kept in memory only")

    conversation_cfg = config.get('conversation', {})
    locks = ThreadLockRegistry()
    cache = InMemoryThreadCache(conversation_cfg.get('window_size', 10), is_agent_sender)
    thread_store = ThreadStore(durable, cache, agent_number=identity.agent_number, locks=locks)
    user_registry = UserRegistry(durable)
    pending_actions = PendingActionStore(config.get('workflows', {}).get('pending_action_ttl_seconds', 900))

    gateway_cfg = config.get('gateway', {})
    gateway = A1BaseClient(
        api_key=env.get('A1BASE_API_KEY'),
        api_secret=env.get('A1BASE_API_SECRET'),
        base_url=gateway_cfg.get('base_url', DEFAULT_BASE_URL),
        timeout=gateway_cfg.get('timeout', 15),
        transport=gateway_transport,
    )
    outbound = OutboundDispatcher(
        gateway,
        identity,
        split_paragraphs=bool(conversation_cfg.get('split_paragraphs', False)),
    )

    client = llm_client or get_client()
    generator = ResponseGenerator(is_agent_sender, client=client, config=config)
    classifier = IntentClassifier(is_agent_sender, client=client, config=config)
    orchestrator = WorkflowOrchestrator.build(generator, outbound, pending_actions, config)

    handler = IncomingMessageHandler(
        identity=identity,
        thread_store=thread_store,
        user_registry=user_registry,
        classifier=classifier,
        orchestrator=orchestrator,
        locks=locks,
    )
    return AppServices(
        identity=identity,
        thread_store=thread_store,
        user_registry=user_registry,
        pending_actions=pending_actions,
        gateway=gateway,
        outbound=outbound,
        handler=handler,
        cron_secret=env.get('CRON_SECRET'),
    )
