# ============================================================================
# GRAPH LOCKING SERVICE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Infrastructure - Concurrency control
# PURPOSE: Serialize check-then-write edits to one dependency graph
# CREATED: 19 OCT 2026
# ============================================================================
"""
Graph Locking Service

Adding a dependency edge is check-then-write: load the graph, reject the
edge if it closes a cycle, then persist it. Two concurrent edits to the
same graph could each pass the check and together form a cycle, so every
edit holds a per-graph lock for the whole sequence.

Two implementations share one interface:
- LockService: PostgreSQL transaction-level advisory locks. The lock and
  the writes share one connection/transaction, and the lock releases at
  commit or rollback.
- LocalLockService: asyncio.Lock per graph, for in-memory stores.

Usage:
    from infrastructure.locking import LockService

    lock_service = LockService(pool)

    async with lock_service.graph_lock("project", project_id) as (acquired, conn):
        if acquired:
            edges = await store.load_edges(project_id, conn=conn)
            ...
"""

import asyncio
import hashlib
from contextlib import asynccontextmanager
from typing import Dict, Optional

from psycopg_pool import AsyncConnectionPool

from core.config import get_defaults
from core.logging import ComponentType, get_logger

logger = get_logger(__name__, ComponentType.INFRASTRUCTURE)


def graph_lock_key(namespace: str, scope: str, scope_id: str) -> str:
    """String key naming one dependency graph."""
    return f"{namespace}:graph:{scope}:{scope_id}"


class LockService:
    """
    Per-graph locks on PostgreSQL transaction-level advisory locks.

    The lock is taken on a pooled connection and released when that
    connection's transaction ends, including on crash or disconnect.
    """

    def __init__(self, pool: AsyncConnectionPool, namespace: Optional[str] = None):
        self.pool = pool
        self.namespace = namespace or get_defaults().locks.namespace

    @staticmethod
    def _hash_to_lock_id(key: str) -> int:
        """Signed int64 advisory lock id from the first 8 bytes of sha256(key)."""
        digest = hashlib.sha256(key.encode()).digest()
        return int.from_bytes(digest[:8], byteorder="big", signed=True)

    @staticmethod
    def _first_value(row) -> bool:
        if not row:
            return False
        return bool(row["acquired"] if hasattr(row, "keys") else row[0])

    @asynccontextmanager
    async def graph_lock(self, scope: str, scope_id: str, blocking: bool = True):
        """
        Hold the lock for one graph.

        Args:
            scope: "project" or "task_set"
            scope_id: Project id or task set id
            blocking: Wait for the lock; otherwise yield acquired=False at once

        Yields:
            (acquired, conn). Every read and write of the edit goes through
            conn so it shares the lock's transaction.
        """
        key = graph_lock_key(self.namespace, scope, scope_id)
        lock_id = self._hash_to_lock_id(key)

        async with self.pool.connection() as conn:
            if blocking:
                await conn.execute("SELECT pg_advisory_xact_lock(%s)", (lock_id,))
                acquired = True
            else:
                cursor = await conn.execute(
                    "SELECT pg_try_advisory_xact_lock(%s) AS acquired", (lock_id,)
                )
                acquired = self._first_value(await cursor.fetchone())

            logger.debug(f"Graph lock {key}: {'held' if acquired else 'busy'}")
            yield acquired, conn


class LocalLockService:
    """
    In-process graph locking with one asyncio.Lock per graph.

    Same interface as LockService; the yielded connection is always None.
    """

    def __init__(self, namespace: Optional[str] = None):
        self.namespace = namespace or get_defaults().locks.namespace
        self._locks: Dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def graph_lock(self, scope: str, scope_id: str, blocking: bool = True):
        key = graph_lock_key(self.namespace, scope, scope_id)
        lock = self._locks.setdefault(key, asyncio.Lock())

        if not blocking and lock.locked():
            logger.debug(f"Graph {key} locked, not waiting")
            yield False, None
            return

        async with lock:
            yield True, None


class LockNotAcquired(Exception):
    """
    A non-blocking graph edit found the graph already locked.
    """

    def __init__(self, lock_type: str, key: str):
        self.lock_type = lock_type
        self.key = key
        super().__init__(f"Failed to acquire {lock_type} lock for {key}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ['LockService', 'LocalLockService', 'LockNotAcquired', 'graph_lock_key']
