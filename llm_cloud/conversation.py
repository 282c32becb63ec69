"""
Helpers shared by everything that sends a conversation window to the LLM.

- `to_chat_messages` tags each stored message as "assistant" (sent by the agent number) or
  "user" (anyone else), the shape chat-completions expects.
- `chat_completion` applies the per-role model settings from CONFIG["llm"]["models"],
  records latency, and returns the text of the first choice ("" when there is none).
"""

import time
from typing import Any, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from config import CONFIG
from llm_cloud.provider import get_provider_name
from monitoring.metrics import LLM_REQUEST_TIME
from shared.models import Message


def to_chat_messages(messages: List[Message], is_agent_sender: Callable[[str], bool]) -> List[Dict[str, str]]:
    return [
        {
            "role": "assistant" if is_agent_sender(m.sender_number) else "user",
            "content": m.content,
        }
        for m in messages
    ]


def completion_kwargs(model_key: str, config: Dict[str, Any] = None) -> Dict[str, Any]:
    """Model name and sampling settings for one model role ('classification', 'response', 'email')."""
    config = CONFIG if config is None else config
    model_cfg = config["llm"]["models"][model_key]
    settings = model_cfg.get("settings", {})
    kwargs: Dict[str, Any] = {"model": model_cfg["name"]}
    for key in ("max_tokens", "temperature", "top_p"):
        if key in settings:
            kwargs[key] = settings[key]
    # top_k is a Nebius extension; OpenAI and Groq reject it
    if get_provider_name(config) == "nebius" and "top_k" in settings:
        kwargs["extra_body"] = {"top_k": settings["top_k"]}
    return kwargs


async def chat_completion(
    client: AsyncOpenAI,
    model_key: str,
    messages: List[Dict[str, str]],
    config: Dict[str, Any] = None,
    **overrides: Any,
) -> str:
    kwargs = completion_kwargs(model_key, config)
    kwargs.update(overrides)
    start_time = time.time()
    try:
        response = await client.chat.completions.create(messages=messages, **kwargs)
    finally:
        LLM_REQUEST_TIME.labels(model=kwargs["model"]).observe(time.time() - start_time)

    if not response.choices:
        return ""
    content: Optional[str] = response.choices[0].message.content
    return (content or "").strip()
