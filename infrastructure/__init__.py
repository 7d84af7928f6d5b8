# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Infrastructure - Concurrency control
# PURPOSE: Per-graph locks for dependency edits
# CREATED: 19 OCT 2026
# ============================================================================
"""
Infrastructure module.

Provides:
- LockService: PostgreSQL advisory locks per dependency graph
- LocalLockService: asyncio locks with the same interface

Usage:
    from infrastructure import LockService

    async with LockService(pool).graph_lock("project", project_id) as (acquired, conn):
        ...
"""

from infrastructure.locking import (
    LockService,
    LocalLockService,
    LockNotAcquired,
    graph_lock_key,
)

__all__ = [
    "LockService",
    "LocalLockService",
    "LockNotAcquired",
    "graph_lock_key",
]
