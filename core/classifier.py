"""
core/classifier.py

Intent triage for workflow routing.

This module decides which workflow answers the latest exchange in a thread. It is the
single source of truth for the mapping from model output to the closed `Intent` set.
"""

from typing import Any, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from config import CONFIG
from config.logging_config import get_logger
from llm_cloud.conversation import chat_completion, to_chat_messages
from llm_cloud.provider import get_client
from shared.models import Intent, Message
from shared.utils import safe_json_loads

logger = get_logger(__name__)


def parse_intent(raw: Optional[str]) -> Intent:
    """
    Map raw classifier output to an Intent.

    Anything other than a JSON object whose `responseType` is one of the known values
    (invalid JSON, a JSON list, a missing key, an unknown value) becomes SIMPLE_RESPONSE.
    """
    data = safe_json_loads(raw)
    if not isinstance(data, dict):
        return Intent.SIMPLE_RESPONSE
    return Intent.from_response_type(data.get("responseType"))


class IntentClassifier:
    """
    Classifies a conversation window into one of the supported intents.

    Responsibilities:
    - Tag every message in the window as agent ("assistant") or other ("user")
    - Ask the configured model for a single-field JSON decision
    - Coerce any unusable answer to SIMPLE_RESPONSE

    The classifier is advisory: `classify` never raises. A model outage simply routes the
    message to the default reply workflow.
    """

    def __init__(
        self,
        is_agent_sender: Callable[[str], bool],
        client: Optional[AsyncOpenAI] = None,
        config: Dict[str, Any] = None,
    ):
        """
        Initialize the classifier.

        Args:
            is_agent_sender: Predicate telling whether a sender number is the agent's own.
            client: Optional pre-built client; `get_client()` is used when omitted.
            config: Configuration dictionary; the global CONFIG by default.
        """
        self.is_agent_sender = is_agent_sender
        self.client = client or get_client()
        self.config = CONFIG if config is None else config
        self.classification_prompt = self.config["classification_prompt"]
        logger.info("[IntentClassifier] Initialized intent classifier")

    async def classify(self, window: List[Message]) -> Intent:
        """
        Classify the conversation window.

        Args:
            window (List[Message]): The stored conversation window, oldest first.

        Returns:
            Intent: The routing intent. SIMPLE_RESPONSE on any error or malformed output.
        """
        conversation = [{"role": "system", "content": self.classification_prompt}]
        conversation.extend(to_chat_messages(window, self.is_agent_sender))

        try:
            raw = await chat_completion(
                self.client,
                "classification",
                conversation,
                self.config,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error(f"[IntentClassifier] Classification error: {e}")
            return Intent.SIMPLE_RESPONSE  # Safe fallback

        intent = parse_intent(raw)
        logger.info(
            f"[IntentClassifier] Raw model output: '{raw}' -> {intent.name}",
            extra={'intent': intent.value}
        )
        return intent
