"""
Unit tests for `services/user_registry.py` – sender upsert by phone number.

The durable store is an AsyncMock behind a real DurableStoreProvider, so the tests check
which store calls are made and that store failures never escape.
"""

import unittest
from unittest.mock import AsyncMock

from services.durable_store import DurableStoreProvider
from services.user_registry import UserRegistry
from shared.exceptions import DurableStoreError
from shared.models import User


class TestUserRegistry(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.store = AsyncMock()
        self.store.get_user_by_phone.return_value = None
        self.store.create_user.return_value = "1"

        async def factory():
            return self.store

        self.registry = UserRegistry(DurableStoreProvider("https://db.example", "key", factory=factory))

    async def test_creates_unknown_user(self):
        await self.registry.ensure_user("+61 411 111 111", "Alice")

        self.store.get_user_by_phone.assert_awaited_once_with(61411111111)
        self.store.create_user.assert_awaited_once_with("Alice", 61411111111)

    async def test_updates_changed_name(self):
        self.store.get_user_by_phone.return_value = User(id="1", name="Al", phone_number=61411111111)

        await self.registry.ensure_user("+61411111111", "Alice")

        self.store.update_user.assert_awaited_once_with(61411111111, "Alice")
        self.store.create_user.assert_not_awaited()

    async def test_same_name_is_not_rewritten(self):
        self.store.get_user_by_phone.return_value = User(id="1", name="Alice", phone_number=61411111111)

        await self.registry.ensure_user("+61411111111", "Alice")

        self.store.update_user.assert_not_awaited()
        self.store.create_user.assert_not_awaited()

    async def test_number_without_digits_is_skipped(self):
        await self.registry.ensure_user("+", "Alice")

        self.store.get_user_by_phone.assert_not_awaited()

    async def test_store_failure_is_swallowed(self):
        self.store.get_user_by_phone.side_effect = DurableStoreError("store down")

        await self.registry.ensure_user("+61411111111", "Alice")

        self.store.create_user.assert_not_awaited()

    async def test_malformed_user_row_is_swallowed(self):
        self.store.get_user_by_phone.side_effect = ValueError("invalid literal for int() with base 10: 'abc'")

        await self.registry.ensure_user("+61411111111", "Alice")

        self.store.create_user.assert_not_awaited()
        self.store.update_user.assert_not_awaited()

    async def test_unconfigured_store_is_a_no_op(self):
        registry = UserRegistry(DurableStoreProvider.disabled())

        await registry.ensure_user("+61411111111", "Alice")

        self.store.get_user_by_phone.assert_not_awaited()
