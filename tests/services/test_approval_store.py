"""Tests for the approval store and the approval wait loop."""

import asyncio
import threading

import pytest

from mathtutor.services.approval_store import (
    APPROVAL_TTL_SECONDS,
    InMemoryApprovalStore,
    wait_for_approval,
)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestInMemoryApprovalStore:

    def test_store_and_check(self):
        store = InMemoryApprovalStore()

        store.store("a", True)
        store.store("b", False)

        assert store.check("a") is True
        assert store.check("b") is False
        assert store.check("c") is None

    def test_last_decision_wins(self):
        store = InMemoryApprovalStore()

        store.store("a", True)
        store.store("a", False)

        assert store.check("a") is False

    def test_remove(self):
        store = InMemoryApprovalStore()
        store.store("a", True)

        store.remove("a")
        store.remove("never-stored")

        assert store.check("a") is None
        assert len(store) == 0

    def test_expired_entry_reads_as_absent(self):
        clock = FakeClock()
        store = InMemoryApprovalStore(clock=clock)
        store.store("a", True)

        clock.now += APPROVAL_TTL_SECONDS + 1

        assert store.check("a") is None

    def test_concurrent_writes_for_distinct_ids(self):
        store = InMemoryApprovalStore()

        def write(start):
            for i in range(start, start + 200):
                store.store(f"ap-{i}", i % 2 == 0)

        threads = [threading.Thread(target=write, args=(n * 200,)) for n in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 1000
        assert all(store.check(f"ap-{i}") is (i % 2 == 0) for i in range(1000))

    def test_store_sweeps_expired_entries(self):
        clock = FakeClock()
        store = InMemoryApprovalStore(ttl_seconds=10, clock=clock)
        store.store("old", True)

        clock.now += 11
        store.store("new", False)

        assert len(store) == 1
        assert store.check("new") is False


class TestWaitForApproval:

    @pytest.mark.asyncio
    async def test_returns_decision_and_consumes_entry(self):
        store = InMemoryApprovalStore()
        store.store("ap", True)

        approved = await wait_for_approval(store, "ap", timeout=1.0, interval=0.01)

        assert approved is True
        assert store.check("ap") is None

    @pytest.mark.asyncio
    async def test_waits_for_late_decision(self):
        store = InMemoryApprovalStore()

        async def decide_later():
            await asyncio.sleep(0.05)
            store.store("ap", False)

        task = asyncio.create_task(decide_later())
        approved = await wait_for_approval(store, "ap", timeout=2.0, interval=0.01)
        await task

        assert approved is False

    @pytest.mark.asyncio
    async def test_timeout_counts_as_rejection(self):
        store = InMemoryApprovalStore()

        approved = await wait_for_approval(store, "ap", timeout=0.05, interval=0.01)

        assert approved is False
