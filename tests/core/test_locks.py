"""
Unit tests for `core/locks.py` – per-thread serialization.
"""

import asyncio
import unittest

from core.locks import ThreadLockRegistry


class TestThreadLockRegistry(unittest.IsolatedAsyncioTestCase):
    async def test_same_thread_is_serialized(self):
        registry = ThreadLockRegistry()
        events = []

        async def worker(name):
            async with registry.hold("t-1"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))
        self.assertEqual(events, ["a-start", "a-end", "b-start", "b-end"])

    async def test_different_threads_do_not_wait_on_each_other(self):
        registry = ThreadLockRegistry()
        inside_b = asyncio.Event()

        async def first():
            async with registry.hold("t-1"):
                await asyncio.wait_for(inside_b.wait(), timeout=1)

        async def second():
            async with registry.hold("t-2"):
                inside_b.set()

        await asyncio.gather(first(), second())

    async def test_entries_are_dropped_when_released(self):
        registry = ThreadLockRegistry()
        async with registry.hold("t-1"):
            self.assertEqual(len(registry), 1)
        self.assertEqual(len(registry), 0)

    async def test_entry_is_released_after_exception(self):
        registry = ThreadLockRegistry()
        with self.assertRaises(RuntimeError):
            async with registry.hold("t-1"):
                raise RuntimeError("boom")
        self.assertEqual(len(registry), 0)
