"""Process-wide store for human-in-the-loop approval decisions.

Decisions are keyed by an opaque approval id generated per request. The
multi-agent workflow polls the store until a decision arrives or the wait
times out (timeout counts as rejection). Entries expire after one hour
whether or not they were consumed.

The store sits behind the ``ApprovalStore`` protocol so a networked
implementation can replace the in-memory one without touching call sites.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

APPROVAL_TTL_SECONDS = 60 * 60
APPROVAL_TIMEOUT_SECONDS = 60.0
APPROVAL_POLL_INTERVAL_SECONDS = 0.5


@dataclass(frozen=True)
class ApprovalRecord:
    """A stored approval decision."""

    approved: bool
    timestamp: float


class ApprovalStore(Protocol):
    """Storage contract for approval decisions."""

    def store(self, approval_id: str, approved: bool) -> None:
        """Record a decision for ``approval_id``."""

    def check(self, approval_id: str) -> bool | None:
        """Return the decision, or None when absent or expired."""

    def remove(self, approval_id: str) -> None:
        """Forget ``approval_id``."""


class InMemoryApprovalStore:
    """Lock-guarded dict of approval decisions with a TTL sweep on write."""

    def __init__(
        self,
        ttl_seconds: float = APPROVAL_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._records: dict[str, ApprovalRecord] = {}
        self._lock = threading.Lock()

    def store(self, approval_id: str, approved: bool) -> None:
        now = self._clock()
        with self._lock:
            self._records[approval_id] = ApprovalRecord(approved=approved, timestamp=now)
            cutoff = now - self._ttl
            expired = [k for k, r in self._records.items() if r.timestamp < cutoff]
            for key in expired:
                del self._records[key]
        if expired:
            logger.debug("Swept %d expired approvals", len(expired))

    def check(self, approval_id: str) -> bool | None:
        with self._lock:
            record = self._records.get(approval_id)
        if record is None:
            return None
        if record.timestamp < self._clock() - self._ttl:
            return None
        return record.approved

    def remove(self, approval_id: str) -> None:
        with self._lock:
            self._records.pop(approval_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


_default_store = InMemoryApprovalStore()


def get_approval_store() -> ApprovalStore:
    """Return the process-wide approval store (FastAPI dependency)."""
    return _default_store


async def wait_for_approval(
    store: ApprovalStore,
    approval_id: str,
    timeout: float = APPROVAL_TIMEOUT_SECONDS,
    interval: float = APPROVAL_POLL_INTERVAL_SECONDS,
) -> bool:
    """Poll ``store`` until a decision arrives or ``timeout`` elapses.

    Blocks only the calling request's coroutine. The consumed entry is
    removed from the store.

    Returns:
        The decision; False on timeout.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        decision = store.check(approval_id)
        if decision is not None:
            store.remove(approval_id)
            logger.info("Approval %s answered: approved=%s", approval_id, decision)
            return decision
        if loop.time() >= deadline:
            logger.info("Approval %s timed out after %.1fs; treating as rejected", approval_id, timeout)
            return False
        await asyncio.sleep(interval)
