"""
services/thread_store.py

Dual-backend conversation storage with in-memory fallback.

Every write goes to the durable store first. When the durable store is not configured, cannot
be initialized, or any call in the write fails, the whole write is redone against the
in-memory cache instead. A single call never writes the same message to both backends, and
durable failures never propagate: the caller gets a StorageResult telling it which backend
took the write.

Fallback writes are remembered. `replay_fallback()` merges those threads into the durable
store once it is reachable again and then drops the in-memory copy; it runs when triggered
(see api/cron.py). A durable append to a thread that is still waiting for replay replays
that one thread first, so the durable window keeps arrival order.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from config.logging_config import get_logger
from core.locks import ThreadLockRegistry
from core.normalizer import strip_leading_plus
from monitoring.metrics import FALLBACK_THREADS_PENDING, STORAGE_WRITES
from services.durable_store import DurableStore, DurableStoreProvider
from services.memory_store import InMemoryThreadCache
from shared.exceptions import DurableStoreError
from shared.models import Message, StorageResult, Thread

logger = get_logger(__name__)


def merge_participants(*groups: Iterable[str]) -> List[str]:
    """Normalize and de-duplicate participant numbers, keeping first-seen order."""
    merged: List[str] = []
    for group in groups:
        for number in group:
            normalized = strip_leading_plus(number)
            if normalized and normalized not in merged:
                merged.append(normalized)
    return merged


def merge_messages(primary: List[Message], secondary: List[Message], window_size: int) -> List[Message]:
    """
    Append the `secondary` messages missing from `primary` (by message_id), then cap to the window.

    `secondary` must be the older side: the thread store replays a thread before any new
    durable write to it, so fallback messages always predate what follows them durably.
    """
    seen = {m.message_id for m in primary}
    merged = list(primary) + [m for m in secondary if m.message_id not in seen]
    return merged[-window_size:]


@dataclass
class AppendOutcome:
    """Result of appending one inbound message: the backend that took it, and whether it was already stored."""
    storage: StorageResult
    duplicate: bool = False


@dataclass
class ReplayReport:
    durable_available: bool
    replayed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return len(self.failed)


class ThreadStore:
    """
    Thread storage used by the ingestion pipeline.

    Owns the in-memory fallback cache and the set of thread ids that have fallback writes
    waiting for replay. Both are plain attributes of this object, which is built once by the
    composition root and passed to whoever needs it.
    """

    def __init__(
        self,
        durable: DurableStoreProvider,
        cache: InMemoryThreadCache,
        agent_number: Optional[str] = None,
        locks: Optional[ThreadLockRegistry] = None,
    ):
        self.durable = durable
        self.cache = cache
        self.agent_number = strip_leading_plus(agent_number) if agent_number else None
        self.locks = locks or ThreadLockRegistry()
        self._pending_replay: Set[str] = set()

    @property
    def window_size(self) -> int:
        return self.cache.window_size

    @property
    def mode(self) -> str:
        return "durable" if self.durable.is_configured else "memory"

    @property
    def pending_replay(self) -> Set[str]:
        return set(self._pending_replay)

    # ----- reads -----

    async def get_thread(self, thread_id: str, prefer_fallback: bool = False) -> Optional[Thread]:
        """
        Return the thread window, or None when the thread does not exist.

        Reads come from the durable store when it is available. `prefer_fallback=True` reads
        the in-memory cache directly; ingestion uses it after a write landed there.
        """
        if not prefer_fallback:
            try:
                store = await self.durable.get()
                if store is not None:
                    thread = await store.get_thread(thread_id)
                    if thread is not None:
                        thread.messages = thread.messages[-self.window_size:]
                    return thread
            except DurableStoreError as e:
                logger.warning(
                    f"Durable read failed, reading in-memory fallback: {e}",
                    extra={'thread_id': thread_id}
                )
        return self.cache.get(thread_id)

    # ----- writes -----

    async def create_thread(self, thread_id: str, initial_messages: List[Message], participants: List[str]) -> StorageResult:
        messages = list(initial_messages)[-self.window_size:]
        normalized = merge_participants(participants)
        try:
            store = await self.durable.get()
            if store is not None:
                await store.create_thread(thread_id, messages, normalized)
                return self._record('create_thread', StorageResult.DURABLE)
        except DurableStoreError as e:
            logger.warning(
                f"Durable create_thread failed, using in-memory fallback: {e}",
                extra={'thread_id': thread_id},
                exc_info=True
            )

        def write():
            self.cache.replace_messages(thread_id, messages)
            self.cache.add_participants(thread_id, normalized)

        return self._fallback('create_thread', thread_id, write)

    async def append_message(self, thread_id: str, message: Message) -> StorageResult:
        """
        Append `message` to the thread window.

        Durable path: read the thread; if it is new, create it with the message and the
        [sender, agent] participants; otherwise add the sender to the participants when
        unseen, then write back the window capped to the last `window_size` messages.
        Participants are written before messages so that a failure at any step leaves
        the durable message window untouched and the in-memory fallback takes the call.

        A thread with fallback writes waiting for replay is replayed first, so the older
        fallback messages land in the durable window ahead of `message`.
        """
        outcome = await self.append_incoming(thread_id, message)
        return outcome.storage

    async def append_incoming(self, thread_id: str, message: Message) -> AppendOutcome:
        """Same as `append_message`, also reporting whether `message_id` was already in the window."""
        try:
            store = await self.durable.get()
            if store is not None:
                await self._drain_pending(store, thread_id)
                duplicate = await self._append_durable(store, thread_id, message)
                return AppendOutcome(self._record('append_message', StorageResult.DURABLE), duplicate)
        except DurableStoreError as e:
            logger.warning(
                f"Durable append failed, using in-memory fallback: {e}",
                extra={'thread_id': thread_id, 'message_id': message.message_id},
                exc_info=True
            )

        seen = []

        def write():
            current = self.cache.get(thread_id)
            if current is not None and any(m.message_id == message.message_id for m in current.messages):
                seen.append(message.message_id)
                return
            self.cache.append(thread_id, message)
            participants = [message.sender_number]
            if current is None and self.agent_number:
                participants.append(self.agent_number)
            self.cache.add_participants(thread_id, merge_participants(participants))

        storage = self._fallback('append_message', thread_id, write)
        return AppendOutcome(storage, duplicate=bool(seen))

    async def upsert_participant(self, thread_id: str, normalized_number: str) -> StorageResult:
        number = strip_leading_plus(normalized_number)
        try:
            store = await self.durable.get()
            if store is not None:
                thread = await store.get_thread(thread_id)
                if thread is None:
                    await store.create_thread(thread_id, [], [number])
                else:
                    existing = merge_participants(thread.participants)
                    if number not in existing:
                        await store.update_thread_participants(thread_id, existing + [number])
                return self._record('upsert_participant', StorageResult.DURABLE)
        except DurableStoreError as e:
            logger.warning(
                f"Durable upsert_participant failed, using in-memory fallback: {e}",
                extra={'thread_id': thread_id},
                exc_info=True
            )
        return self._fallback('upsert_participant', thread_id, lambda: self.cache.add_participants(thread_id, [number]))

    async def _drain_pending(self, store: DurableStore, thread_id: str) -> None:
        """Replay the thread's fallback writes before a new durable write. Caller holds the thread lock."""
        if thread_id not in self._pending_replay:
            return
        await self._replay_thread(store, thread_id)
        self._mark_replayed(thread_id)
        logger.info("Replayed fallback writes before durable append", extra={'thread_id': thread_id})

    async def _append_durable(self, store: DurableStore, thread_id: str, message: Message) -> bool:
        """Write `message` durably; returns True when it was already stored."""
        thread = await store.get_thread(thread_id)
        sender = strip_leading_plus(message.sender_number)

        if thread is None:
            participants = merge_participants([sender], [self.agent_number] if self.agent_number else [])
            await store.create_thread(thread_id, [message], participants)
            return False

        if any(m.message_id == message.message_id for m in thread.messages):
            logger.info(
                "Message already stored, skipping duplicate delivery",
                extra={'thread_id': thread_id, 'message_id': message.message_id}
            )
            return True

        participants = merge_participants(thread.participants)
        if sender and sender not in participants:
            logger.info(f"Adding new participant to thread: {sender}", extra={'thread_id': thread_id})
            await store.update_thread_participants(thread_id, participants + [sender])

        messages = (thread.messages + [message])[-self.window_size:]
        await store.update_thread_messages(thread_id, messages)
        return False

    def _fallback(self, operation: str, thread_id: str, write) -> StorageResult:
        try:
            write()
        except Exception as e:
            logger.error(
                f"In-memory fallback {operation} failed: {e}",
                extra={'thread_id': thread_id},
                exc_info=True
            )
            return self._record(operation, StorageResult.FAILED)
        if self.durable.is_configured:
            # Only a configured store can be replayed into later
            self._pending_replay.add(thread_id)
            FALLBACK_THREADS_PENDING.set(len(self._pending_replay))
        return self._record(operation, StorageResult.FALLBACK)

    @staticmethod
    def _record(operation: str, result: StorageResult) -> StorageResult:
        STORAGE_WRITES.labels(operation=operation, result=result.value).inc()
        return result

    # ----- replay -----

    async def replay_fallback(self) -> ReplayReport:
        """
        Merge threads written to the in-memory fallback into the durable store.

        For each pending thread: messages missing from the durable window are appended (by
        message_id, capped to the window), participants are unioned, and on success the
        in-memory copy is dropped. Threads that fail stay pending for the next run.
        """
        try:
            store = await self.durable.get()
        except DurableStoreError as e:
            logger.warning(f"Replay skipped, durable store unavailable: {e}")
            return ReplayReport(durable_available=False, failed=sorted(self._pending_replay))
        if store is None:
            return ReplayReport(durable_available=False)

        report = ReplayReport(durable_available=True)
        for thread_id in sorted(self._pending_replay):
            async with self.locks.hold(thread_id):
                try:
                    await self._replay_thread(store, thread_id)
                except DurableStoreError as e:
                    logger.warning(f"Replay failed for thread: {e}", extra={'thread_id': thread_id})
                    report.failed.append(thread_id)
                    continue
            self._mark_replayed(thread_id)
            report.replayed.append(thread_id)

        FALLBACK_THREADS_PENDING.set(len(self._pending_replay))
        logger.info(
            f"Fallback replay finished: {len(report.replayed)} replayed, {len(report.failed)} failed"
        )
        return report

    def _mark_replayed(self, thread_id: str) -> None:
        self._pending_replay.discard(thread_id)
        self.cache.discard(thread_id)
        FALLBACK_THREADS_PENDING.set(len(self._pending_replay))

    async def _replay_thread(self, store: DurableStore, thread_id: str) -> None:
        fallback = self.cache.get(thread_id)
        if fallback is None:
            return
        durable_thread = await store.get_thread(thread_id)
        if durable_thread is None:
            await store.create_thread(
                thread_id,
                fallback.messages[-self.window_size:],
                merge_participants(fallback.participants),
            )
            return

        participants = merge_participants(durable_thread.participants, fallback.participants)
        if participants != merge_participants(durable_thread.participants):
            await store.update_thread_participants(thread_id, participants)
        messages = merge_messages(durable_thread.messages, fallback.messages, self.window_size)
        if messages != durable_thread.messages:
            await store.update_thread_messages(thread_id, messages)
