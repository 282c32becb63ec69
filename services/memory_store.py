"""
services/memory_store.py

In-process fallback storage for conversation threads.

Used by the thread store whenever the durable store is not configured or fails. The cache is
an ordinary object owned by the application's composition root; nothing here is a module
level singleton, so tests can build as many independent caches as they like.

Write rule for messages: append, keep the last `window_size` entries, then drop anything sent
by the agent number. Filtering after truncation means a fallback window can hold fewer than
`window_size` messages when agent messages were among the most recent ones.
"""

from typing import Callable, Dict, Iterable, List, Optional

from shared.models import Message, Thread


class InMemoryThreadCache:
    """Mapping of thread id to a bounded message window and a participant list."""

    def __init__(self, window_size: int, is_agent_sender: Callable[[str], bool]):
        self.window_size = window_size
        self._is_agent_sender = is_agent_sender
        self._messages: Dict[str, List[Message]] = {}
        self._participants: Dict[str, List[str]] = {}

    def get(self, thread_id: str) -> Optional[Thread]:
        if thread_id not in self._messages and thread_id not in self._participants:
            return None
        return Thread(
            id=thread_id,
            messages=list(self._messages.get(thread_id, [])),
            participants=list(self._participants.get(thread_id, [])),
        )

    def append(self, thread_id: str, message: Message) -> List[Message]:
        current = self._messages.get(thread_id, [])
        if message.message_id and any(m.message_id == message.message_id for m in current):
            return list(current)
        messages = current + [message]
        self._messages[thread_id] = self._apply_window(messages)
        return list(self._messages[thread_id])

    def replace_messages(self, thread_id: str, messages: Iterable[Message]) -> List[Message]:
        self._messages[thread_id] = self._apply_window(list(messages))
        return list(self._messages[thread_id])

    def add_participants(self, thread_id: str, numbers: Iterable[str]) -> List[str]:
        participants = self._participants.setdefault(thread_id, [])
        for number in numbers:
            if number and number not in participants:
                participants.append(number)
        return list(participants)

    def discard(self, thread_id: str) -> None:
        self._messages.pop(thread_id, None)
        self._participants.pop(thread_id, None)

    def thread_ids(self) -> List[str]:
        return list(dict.fromkeys(list(self._messages) + list(self._participants)))

    def _apply_window(self, messages: List[Message]) -> List[Message]:
        windowed = messages[-self.window_size:]
        return [m for m in windowed if not self._is_agent_sender(m.sender_number)]

    def __contains__(self, thread_id: str) -> bool:
        return thread_id in self._messages or thread_id in self._participants

    def __len__(self) -> int:
        return len(self.thread_ids())
