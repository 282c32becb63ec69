"""
provider.py – External LLM client with provider routing and validation.
-----------------------------------------------------------------------
In the overall data-flow this file sits at the infrastructure layer.
It is the single place where we talk to the external LLM platform
(OpenAI, Groq or Nebius, all through the OpenAI-compatible API).

Why a *provider* module?
• Keeps third-party SDK initialisation separate from business logic.
• Offers a tiny, easily mockable `get_client()` function instead of a
  global singleton. Tests can monkey-patch this function or inject a fake
  client into the classifier and generator constructors.
• Callers (classifier, generator) simply ask for a client; they do not
  need to know about base URLs or API keys.

Validation happens at client creation time, not import time, so the module stays
importable in tests and tooling that never build a client.

Provider routing logic:
- "openai": OpenAI's official API with OPENAI_API_KEY
- "groq":   Groq's OpenAI-compatible endpoint with GROQ_API_KEY
- "nebius": Nebius-compatible API with LLM_API_KEY/NEBIUS_API_KEY
- Unsupported providers raise ValueError with clear error message
"""

import logging
import os
from typing import Dict, List, Tuple

from openai import AsyncOpenAI
from config import CONFIG

logger = logging.getLogger(__name__)

PROVIDER_ENV_VARS: Dict[str, List[str]] = {
    "openai": ["OPENAI_API_KEY"],
    "groq": ["GROQ_API_KEY"],
    "nebius": ["LLM_API_KEY", "NEBIUS_API_KEY"],
}

PROVIDER_BASE_URLS: Dict[str, str] = {
    "openai": "https://api.openai.com/v1",
    "groq": "https://api.groq.com/openai/v1",
    "nebius": "https://api.studio.nebius.com/v1/",
}


def get_provider_name(config: Dict = None) -> str:
    config = CONFIG if config is None else config
    return (config.get("llm", {}) or {}).get("provider", "openai").strip().lower()


def require_any_env(var_names: List[str]) -> Tuple[str, str]:
    """
    Check that at least one of the specified environment variables is present and non-empty.

    Returns the first valid variable found. Only the variable name is ever logged, never
    the secret value.

    Args:
        var_names (List[str]): Environment variable names to check, in order of preference.

    Returns:
        Tuple[str, str]: (selected_var_name, value)

    Raises:
        RuntimeError: If none of the variables are set.
    """
    for var_name in var_names:
        value = os.getenv(var_name, "")
        if value:
            return var_name, value

    var_list = ", ".join(var_names)
    raise RuntimeError(
        f"Missing required environment variable. Set one of: {var_list}"
    )


def validate_env_for_provider(config: Dict) -> None:
    """
    Validate that required environment variables are present for the configured LLM provider.

    Args:
        config (Dict): The configuration dictionary, expected to contain an 'llm' section
            with a 'provider' key.

    Raises:
        ValueError: If an unsupported provider is configured.
        RuntimeError: If the API key variables for the selected provider are missing.
    """
    provider = get_provider_name(config)
    logger.info("LLM provider selected: %s", provider)

    if provider not in PROVIDER_ENV_VARS:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    selected_var, _ = require_any_env(PROVIDER_ENV_VARS[provider])
    logger.info("Using environment variable: %s", selected_var)


def get_client() -> AsyncOpenAI:
    """
    Build and return a configured async OpenAI-compatible client for the selected provider.

    The Nebius base URL can be overridden with `llm.base_url`; OpenAI and Groq always use
    their public endpoints.

    Returns:
        AsyncOpenAI: A ready-to-use client.

    Raises:
        RuntimeError: If required environment variables are missing.
        ValueError: If an unsupported provider is configured.
    """
    validate_env_for_provider(CONFIG)

    llm_config = CONFIG.get("llm", {})
    provider = get_provider_name(CONFIG)
    _, api_key = require_any_env(PROVIDER_ENV_VARS[provider])

    if provider == "nebius":
        base_url = llm_config.get("base_url", PROVIDER_BASE_URLS["nebius"])
    else:
        base_url = PROVIDER_BASE_URLS[provider]
    logger.info("LLM provider selected: %s | base_url=%s", provider, base_url)

    return AsyncOpenAI(
        base_url=base_url,
        api_key=api_key,
        timeout=llm_config.get("timeout", 30),  # seconds
    )
