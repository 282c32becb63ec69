"""
core/locks.py

Per-thread serialization for the ingestion path.

Two webhook calls for the same thread must not interleave their read-append-write
cycle against the thread store, otherwise one of the messages is lost. Calls for
different threads never wait on each other.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class ThreadLockRegistry:
    """
    Hands out one asyncio.Lock per thread id.

    Entries are dropped as soon as nobody holds or waits for them, so the registry only
    grows with the number of threads that are active at the same moment.
    """

    def __init__(self):
        self._entries: Dict[str, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, thread_id: str) -> AsyncIterator[None]:
        entry = self._entries.get(thread_id)
        if entry is None:
            entry = _LockEntry()
            self._entries[thread_id] = entry
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._entries.pop(thread_id, None)

    def __len__(self) -> int:
        return len(self._entries)
