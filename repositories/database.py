# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - PostgreSQL pool and table identifiers
# PURPOSE: One async pool per process for the PostgreSQL adapters
# CREATED: 19 OCT 2026
# ============================================================================
"""
Database Connection Pool

psycopg3 + psycopg_pool. The PostgreSQL repositories take a pool by
injection; this module owns the process-wide one.

Connection string: DATABASE_URL, else assembled from POSTGRES_*.
Pool sizes and schema: DatabaseDefaults (DB_POOL_MIN, DB_POOL_MAX, DB_SCHEMA).

Usage:
    async with DatabasePool() as pool:
        repo = PostgresTaskRepository(pool)
"""

import os
from typing import Optional

from psycopg import sql as psycopg_sql
from psycopg_pool import AsyncConnectionPool

from core.config import get_defaults
from core.logging import ComponentType, get_logger

logger = get_logger(__name__, ComponentType.REPOSITORY)

_pool: Optional[AsyncConnectionPool] = None


def get_connection_string() -> str:
    """DATABASE_URL if set, otherwise a URL built from POSTGRES_* variables."""
    url = os.environ.get("DATABASE_URL")
    if url:
        return url

    env = os.environ.get
    return (
        f"postgresql://{env('POSTGRES_USER', 'postgres')}:{env('POSTGRES_PASSWORD', '')}"
        f"@{env('POSTGRES_HOST', 'localhost')}:{env('POSTGRES_PORT', '5432')}"
        f"/{env('POSTGRES_DB', 'postgres')}?sslmode={env('POSTGRES_SSLMODE', 'prefer')}"
    )


def redact(conninfo: str) -> str:
    """Connection string with credentials removed, for logs."""
    if "@" in conninfo:
        return conninfo.rsplit("@", 1)[-1]
    if "password=" in conninfo:
        return conninfo.split("password=")[0] + "password=***"
    return conninfo


async def init_pool(
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
    connection_string: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Open the process-wide pool (no-op if already open).

    Args:
        min_size: Override DB_POOL_MIN
        max_size: Override DB_POOL_MAX
        connection_string: Override the environment connection string
    """
    global _pool
    if _pool is not None:
        return _pool

    settings = get_defaults().database
    conninfo = connection_string or get_connection_string()
    pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=settings.pool_min_size if min_size is None else min_size,
        max_size=settings.pool_max_size if max_size is None else max_size,
        open=False,
    )
    await pool.open()
    _pool = pool
    logger.info(f"Connection pool open: {redact(conninfo)} (schema={SCHEMA})")
    return _pool


async def get_pool() -> AsyncConnectionPool:
    """The process-wide pool, opened on first use."""
    return _pool if _pool is not None else await init_pool()


async def close_pool() -> None:
    """Close and forget the process-wide pool."""
    global _pool
    if _pool is None:
        return
    pool, _pool = _pool, None
    await pool.close()
    logger.info("Connection pool closed")


class DatabasePool:
    """Async context manager around init_pool / close_pool."""

    def __init__(
        self,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        connection_string: Optional[str] = None,
    ):
        self._kwargs = {
            "min_size": min_size,
            "max_size": max_size,
            "connection_string": connection_string,
        }

    async def __aenter__(self) -> AsyncConnectionPool:
        return await init_pool(**self._kwargs)

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await close_pool()


# ============================================================================
# TABLE IDENTIFIERS
# ============================================================================
# Compose with sql.SQL("... {} ...").format(TABLE_X); never interpolate names.

SCHEMA = get_defaults().database.schema

# Template side
TABLE_PROJECT_TEMPLATES = psycopg_sql.Identifier(SCHEMA, "project_templates")
TABLE_QUESTIONNAIRES = psycopg_sql.Identifier(SCHEMA, "questionnaires")
TABLE_QUESTIONS = psycopg_sql.Identifier(SCHEMA, "questions")
TABLE_TASK_SETS = psycopg_sql.Identifier(SCHEMA, "task_sets")
TABLE_TASK_TEMPLATES = psycopg_sql.Identifier(SCHEMA, "task_templates")

# Instance side
TABLE_PROJECTS = psycopg_sql.Identifier(SCHEMA, "projects")
TABLE_TASKS = psycopg_sql.Identifier(SCHEMA, "tasks")
TABLE_BUDGET_ENTRIES = psycopg_sql.Identifier(SCHEMA, "budget_entries")


__all__ = [
    "get_connection_string",
    "init_pool",
    "get_pool",
    "close_pool",
    "DatabasePool",
    "SCHEMA",
]
