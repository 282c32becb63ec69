"""
Unit tests for `services/durable_store.py` – the Supabase store and its lazy provider.

The Supabase client is a MagicMock whose `table()` returns a recording query builder, so
the tests check the PostgREST calls issued and the translation of rows into records
without any network access.
"""

import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from services.durable_store import DurableStoreProvider, SupabaseStore, thread_from_row, user_from_row
from shared.exceptions import DurableStoreError
from shared.models import Message


class RecordingQuery:
    """Chainable stand-in for a PostgREST query builder."""

    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.calls = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    async def execute(self):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=self.data)


def client_with(query):
    client = MagicMock()
    client.table.return_value = query
    return client


class TestRowMapping(unittest.TestCase):
    def test_thread_from_row_skips_malformed_entries(self):
        row = {
            "id": "t-1",
            "messages": [
                {"message_id": "m-1", "content": "hi", "sender_number": "+1", "sender_name": "A", "timestamp": "1"},
                "garbage",
            ],
            "participants": ["1", None, ""],
        }

        thread = thread_from_row(row)

        self.assertEqual([m.message_id for m in thread.messages], ["m-1"])
        self.assertEqual(thread.participants, ["1"])

    def test_user_from_row(self):
        user = user_from_row({"id": 7, "name": "Alice", "phone_number": 61411111111})
        self.assertEqual((user.id, user.name, user.phone_number), ("7", "Alice", 61411111111))


class TestSupabaseStore(unittest.IsolatedAsyncioTestCase):
    async def test_get_thread_selects_by_id(self):
        query = RecordingQuery(data=[{"id": "t-1", "messages": [], "participants": ["1"]}])
        store = SupabaseStore(client_with(query), threads_table="threads")

        thread = await store.get_thread("t-1")

        self.assertEqual(thread.participants, ["1"])
        self.assertIn(("eq", ("id", "t-1"), {}), query.calls)
        self.assertIn(("limit", (1,), {}), query.calls)

    async def test_get_thread_missing_returns_none(self):
        store = SupabaseStore(client_with(RecordingQuery(data=[])))
        self.assertIsNone(await store.get_thread("t-1"))

    async def test_create_thread_serializes_messages(self):
        query = RecordingQuery(data=[{"id": "t-1"}])
        store = SupabaseStore(client_with(query))

        await store.create_thread("t-1", [Message("m-1", "hi", "+1", "A", "1")], ["1"])

        name, args, _ = query.calls[0]
        self.assertEqual(name, "insert")
        self.assertEqual(args[0]["messages"][0]["message_id"], "m-1")
        self.assertEqual(args[0]["participants"], ["1"])

    async def test_get_user_by_numeric_phone(self):
        query = RecordingQuery(data=[{"id": 3, "name": "Alice", "phone_number": 61411111111}])
        client = client_with(query)
        store = SupabaseStore(client, users_table="users")

        user = await store.get_user_by_phone(61411111111)

        client.table.assert_called_with("users")
        self.assertEqual(user.name, "Alice")
        self.assertIn(("eq", ("phone_number", 61411111111), {}), query.calls)

    async def test_create_user_returns_id(self):
        store = SupabaseStore(client_with(RecordingQuery(data=[{"id": 9}])))
        self.assertEqual(await store.create_user("Alice", 61411111111), "9")

    async def test_api_errors_become_durable_store_errors(self):
        store = SupabaseStore(client_with(RecordingQuery(error=RuntimeError("relation does not exist"))))

        with self.assertRaises(DurableStoreError):
            await store.update_user(61411111111, "Alice")


class TestDurableStoreProvider(unittest.IsolatedAsyncioTestCase):
    async def test_unconfigured_provider_returns_none(self):
        provider = DurableStoreProvider(url="https://db.example", key=None)

        self.assertFalse(provider.is_configured)
        self.assertIsNone(await provider.get())

    async def test_store_is_created_once(self):
        factory = AsyncMock(return_value=MagicMock())
        provider = DurableStoreProvider("https://db.example", "key", factory=factory)

        first = await provider.get()
        second = await provider.get()

        self.assertIs(first, second)
        factory.assert_awaited_once()
        self.assertTrue(provider.is_initialized)

    async def test_failed_initialization_is_retried(self):
        factory = AsyncMock(side_effect=[ConnectionError("refused"), MagicMock()])
        provider = DurableStoreProvider("https://db.example", "key", factory=factory)

        with self.assertRaises(DurableStoreError):
            await provider.get()
        self.assertFalse(provider.is_initialized)

        self.assertIsNotNone(await provider.get())
        self.assertEqual(factory.await_count, 2)


class TestEnsureTables(unittest.IsolatedAsyncioTestCase):
    def make_client(self, users_error=None, threads_error=None, rpc_error=None):
        queries = {
            "users": RecordingQuery(data=[], error=users_error),
            "threads": RecordingQuery(data=[], error=threads_error),
        }
        client = MagicMock()
        client.table.side_effect = lambda name: queries[name]
        client.rpc.return_value = RecordingQuery(data=None, error=rpc_error)
        return client

    async def test_readable_tables_are_left_alone(self):
        client = self.make_client()

        await SupabaseStore(client).ensure_tables()

        client.rpc.assert_not_called()

    async def test_missing_table_is_created_through_rpc(self):
        client = self.make_client(threads_error=RuntimeError('relation "threads" does not exist'))

        await SupabaseStore(client).ensure_tables()

        client.rpc.assert_called_once_with("create_threads_table")

    async def test_no_rows_error_means_table_exists(self):
        no_rows = RuntimeError("JSON object requested, multiple (or no) rows returned")
        no_rows.code = "PGRST116"
        client = self.make_client(users_error=no_rows)

        await SupabaseStore(client).ensure_tables()

        client.rpc.assert_not_called()

    async def test_failed_table_creation_raises(self):
        client = self.make_client(
            users_error=RuntimeError('relation "users" does not exist'),
            rpc_error=RuntimeError("permission denied"),
        )

        with self.assertRaises(DurableStoreError):
            await SupabaseStore(client).ensure_tables()

    async def test_provider_checks_tables_on_first_use(self):
        client = self.make_client(users_error=RuntimeError('relation "users" does not exist'))
        provider = DurableStoreProvider("https://db.example", "key", users_table="users", threads_table="threads")

        with patch("services.durable_store.acreate_client", AsyncMock(return_value=client)) as create:
            store = await provider.get()

        create.assert_awaited_once_with("https://db.example", "key")
        self.assertIsInstance(store, SupabaseStore)
        client.rpc.assert_called_once_with("create_users_table")

    async def test_provider_retries_when_table_creation_fails(self):
        client = self.make_client(
            threads_error=RuntimeError('relation "threads" does not exist'),
            rpc_error=RuntimeError("permission denied"),
        )
        provider = DurableStoreProvider("https://db.example", "key")

        with patch("services.durable_store.acreate_client", AsyncMock(return_value=client)):
            with self.assertRaises(DurableStoreError):
                await provider.get()

        self.assertFalse(provider.is_initialized)
