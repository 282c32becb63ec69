"""
services/pending_actions.py

Actions waiting for the user's go-ahead, keyed by thread id.

At most one action is pending per thread; storing a new one replaces the old draft. Entries
expire after `ttl_seconds` so an approval that arrives much later is not applied to a stale
draft. Like the in-memory thread cache, the store is owned by the composition root.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from config.logging_config import get_logger
from shared.models import PendingAction

logger = get_logger(__name__)


class PendingActionStore:
    def __init__(self, ttl_seconds: int = 900, clock: Callable[[], datetime] = None):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._actions: Dict[str, PendingAction] = {}

    def put(self, action: PendingAction) -> None:
        if action.thread_id in self._actions:
            logger.info("Replacing pending action", extra={'thread_id': action.thread_id})
        self._actions[action.thread_id] = action

    def peek(self, thread_id: str) -> Optional[PendingAction]:
        action = self._actions.get(thread_id)
        if action is None:
            return None
        if self._clock() - action.created_at > self.ttl:
            logger.info("Pending action expired", extra={'thread_id': thread_id})
            del self._actions[thread_id]
            return None
        return action

    def pop(self, thread_id: str) -> Optional[PendingAction]:
        action = self.peek(thread_id)
        if action is not None:
            del self._actions[thread_id]
        return action

    def __len__(self) -> int:
        return len(self._actions)
