"""
Durable storage for threads and users.

This module defines the contract the thread store and user registry need from a persistent
database, a Supabase implementation of it, and a small provider that decides whether the
durable store is available at all.

Key concepts:
- The store is "configured" only when both SUPABASE_URL and SUPABASE_KEY are present. An
  unconfigured store is a normal operating mode: callers fall back to in-memory storage.
- The Supabase client is created lazily, once per process, on first use. Initialization
  also creates missing tables through database functions. A failed initialization is not
  cached, so the next call tries again.
- Not-found reads return None. Every transport or API failure is raised as
  DurableStoreError, which callers treat as "durable store unavailable for this call".

Tables used (Supabase/PostgREST):
- threads(id text primary key, created_at timestamptz, messages jsonb, participants jsonb)
- users(id, created_at timestamptz, name text, phone_number numeric)
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from supabase import AsyncClient, acreate_client

from config.logging_config import get_logger
from shared.exceptions import DurableStoreError
from shared.models import Message, Thread, User

logger = get_logger(__name__)


class DurableStore(ABC):
    """
    Abstract persistent store for threads and users.

    Implementations translate rows into the typed records from `shared.models` and raise
    DurableStoreError for any failure that is not a plain "row does not exist".
    """

    @abstractmethod
    async def get_thread(self, thread_id: str) -> Optional[Thread]:
        """Return the stored thread, or None if no row exists for `thread_id`."""
        raise NotImplementedError

    @abstractmethod
    async def create_thread(self, thread_id: str, messages: List[Message], participants: List[str]) -> str:
        """Insert a new thread row and return its id."""
        raise NotImplementedError

    @abstractmethod
    async def update_thread_messages(self, thread_id: str, messages: List[Message]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def update_thread_participants(self, thread_id: str, participants: List[str]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_user_by_phone(self, phone_number: int) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    async def create_user(self, name: str, phone_number: int) -> Optional[str]:
        """Insert a user and return the new id (None if the backend did not return one)."""
        raise NotImplementedError

    @abstractmethod
    async def update_user(self, phone_number: int, name: str) -> None:
        raise NotImplementedError


def thread_from_row(row: Dict[str, Any]) -> Thread:
    messages = [Message.from_dict(m) for m in (row.get('messages') or []) if isinstance(m, dict)]
    participants = [str(p) for p in (row.get('participants') or []) if p]
    return Thread(id=str(row.get('id')), messages=messages, participants=participants)


def user_from_row(row: Dict[str, Any]) -> User:
    raw_id = row.get('id')
    return User(
        id=str(raw_id) if raw_id is not None else None,
        name=row.get('name') or '',
        phone_number=int(row.get('phone_number') or 0),
    )


class SupabaseStore(DurableStore):
    """DurableStore backed by the async Supabase client."""

    def __init__(self, client: AsyncClient, threads_table: str = "threads", users_table: str = "users"):
        self.client = client
        self.threads_table = threads_table
        self.users_table = users_table

    async def _execute(self, query, action: str) -> List[Dict[str, Any]]:
        try:
            response = await query.execute()
        except Exception as e:
            raise DurableStoreError(f"Supabase {action} failed: {e}") from e
        return response.data or []

    async def ensure_tables(self) -> None:
        """
        Probe the users and threads tables and create any that cannot be read.

        Creation goes through the `create_users_table` / `create_threads_table` database
        functions. PGRST116 ("no rows") means the table exists.
        """
        for table, rpc_name in ((self.users_table, "create_users_table"), (self.threads_table, "create_threads_table")):
            try:
                await self.client.table(table).select("id").limit(1).execute()
            except Exception as e:
                if getattr(e, 'code', None) == 'PGRST116':
                    continue
                logger.warning(f"Table '{table}' is not readable, creating it with {rpc_name}(): {e}")
                await self._execute(self.client.rpc(rpc_name), f"{rpc_name}()")
                logger.info(f"Created table '{table}'")

    async def get_thread(self, thread_id: str) -> Optional[Thread]:
        rows = await self._execute(
            self.client.table(self.threads_table).select("*").eq("id", thread_id).limit(1),
            f"get_thread({thread_id})"
        )
        return thread_from_row(rows[0]) if rows else None

    async def create_thread(self, thread_id: str, messages: List[Message], participants: List[str]) -> str:
        rows = await self._execute(
            self.client.table(self.threads_table).insert({
                'id': thread_id,
                'messages': [m.to_dict() for m in messages],
                'participants': participants,
            }),
            f"create_thread({thread_id})"
        )
        return str(rows[0].get('id', thread_id)) if rows else thread_id

    async def update_thread_messages(self, thread_id: str, messages: List[Message]) -> None:
        await self._execute(
            self.client.table(self.threads_table)
            .update({'messages': [m.to_dict() for m in messages]})
            .eq("id", thread_id),
            f"update_thread_messages({thread_id})"
        )

    async def update_thread_participants(self, thread_id: str, participants: List[str]) -> None:
        await self._execute(
            self.client.table(self.threads_table)
            .update({'participants': participants})
            .eq("id", thread_id),
            f"update_thread_participants({thread_id})"
        )

    async def get_user_by_phone(self, phone_number: int) -> Optional[User]:
        rows = await self._execute(
            self.client.table(self.users_table).select("*").eq("phone_number", phone_number).limit(1),
            "get_user_by_phone"
        )
        return user_from_row(rows[0]) if rows else None

    async def create_user(self, name: str, phone_number: int) -> Optional[str]:
        rows = await self._execute(
            self.client.table(self.users_table).insert({'name': name, 'phone_number': phone_number}),
            "create_user"
        )
        if not rows or rows[0].get('id') is None:
            return None
        return str(rows[0]['id'])

    async def update_user(self, phone_number: int, name: str) -> None:
        await self._execute(
            self.client.table(self.users_table).update({'name': name}).eq("phone_number", phone_number),
            "update_user"
        )


StoreFactory = Callable[[], Awaitable[DurableStore]]


class DurableStoreProvider:
    """
    Lazily builds the durable store once per process.

    `get()` returns None when the store is not configured, the store instance when it is,
    and raises DurableStoreError when initialization fails (the failure is retried on the
    next call rather than remembered).
    """

    def __init__(
        self,
        url: Optional[str],
        key: Optional[str],
        threads_table: str = "threads",
        users_table: str = "users",
        factory: Optional[StoreFactory] = None,
    ):
        self.url = url
        self.key = key
        self.threads_table = threads_table
        self.users_table = users_table
        self._factory = factory or self._create_supabase_store
        self._store: Optional[DurableStore] = None
        self._init_lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)

    @property
    def is_initialized(self) -> bool:
        return self._store is not None

    async def _create_supabase_store(self) -> DurableStore:
        client = await acreate_client(self.url, self.key)
        store = SupabaseStore(client, threads_table=self.threads_table, users_table=self.users_table)
        await store.ensure_tables()
        return store

    async def get(self) -> Optional[DurableStore]:
        if not self.is_configured:
            return None
        if self._store is not None:
            return self._store
        async with self._init_lock:
            if self._store is None:
                try:
                    self._store = await self._factory()
                except Exception as e:
                    logger.warning(f"Durable store initialization failed: {e}", exc_info=True)
                    raise DurableStoreError(f"Durable store initialization failed: {e}") from e
                logger.info("Durable store initialized")
        return self._store

    @classmethod
    def disabled(cls) -> "DurableStoreProvider":
        """A provider that is never configured. Every caller runs on the in-memory fallback."""
        return cls(url=None, key=None)
