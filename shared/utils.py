"""
shared/utils.py

Shared utility functions used across multiple modules.

This module contains common helper functions that are used by various
components of the agent to avoid code duplication and maintain
consistency across the system.
"""

import json
import logging
import re
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

EMAIL_ADDRESS_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def safe_json_loads(json_string: Optional[str], fallback: Any = None) -> Any:
    """
    Safely parse JSON string with fallback handling.

    Args:
        json_string (Optional[str]): JSON string to parse. Markdown code fences around
            the payload, which chat models like to add, are stripped first.
        fallback (Any): Value returned if parsing fails

    Returns:
        Any: Parsed JSON value or the fallback value
    """
    if not json_string:
        return fallback
    text = json_string.strip()
    fenced = _CODE_FENCE_PATTERN.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.debug(f"Failed to parse JSON: {e}. Using fallback value.")
        return fallback


def extract_email_addresses(text: str) -> List[str]:
    """Return every email address found in `text`, in order of appearance."""
    if not text:
        return []
    return EMAIL_ADDRESS_PATTERN.findall(text)


def truncate_message_for_logging(message: str, max_length: int = 100) -> str:
    """
    Truncate long messages for logging purposes.

    Args:
        message (str): Message to truncate
        max_length (int): Maximum length before truncation (default: 100)

    Returns:
        str: Truncated message with ellipsis if needed
    """
    if message is None:
        return ""
    if len(message) <= max_length:
        return message
    return message[:max_length] + "..."
