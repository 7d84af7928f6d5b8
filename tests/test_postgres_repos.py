# ============================================================================
# POSTGRESQL REPOSITORY TESTS
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Tests - psycopg adapters against a mocked pool
# PURPOSE: Verify row mapping, idempotent batch insert and graph writes
# CREATED: 19 OCT 2026
# ============================================================================
"""
PostgreSQL Repository Tests

No database: the pool, connection and cursor are mocks, so these tests
cover row mapping and the control flow around each statement.

Run with:
    pytest tests/test_postgres_repos.py -v
"""

import asyncio
from datetime import date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.contracts import BudgetEntryType, DurationBasis, TaskStatus
from core.errors import NotFoundError
from core.models import Task
from repositories import database
from repositories import (
    PostgresBudgetRepository,
    PostgresTaskRepository,
    PostgresTemplateRepository,
)
from infrastructure.locking import LockService
from services import DependencyService


# ============================================================================
# HELPERS
# ============================================================================

def _async_cm(value):
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=value)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


def _mock_pool(rowcounts=None, fetchall=None, fetchone=None):
    """
    Pool -> connection -> cursor mocks.

    rowcounts: rowcount the cursor reports after each execute, in order
    """
    rowcounts = list(rowcounts or [])

    cur = MagicMock()
    cur.rowcount = 0

    async def cur_execute(query, params=None):
        if rowcounts:
            cur.rowcount = rowcounts.pop(0)

    cur.execute = AsyncMock(side_effect=cur_execute)
    cur.fetchall = AsyncMock(return_value=fetchall or [])

    result = MagicMock()
    result.rowcount = 1
    result.fetchone = AsyncMock(return_value=fetchone)
    result.fetchall = AsyncMock(return_value=fetchall or [])

    conn = MagicMock()
    conn.execute = AsyncMock(return_value=result)
    conn.transaction = MagicMock(return_value=_async_cm(None))
    conn.cursor = MagicMock(return_value=_async_cm(cur))

    pool = MagicMock()
    pool.connection = MagicMock(return_value=_async_cm(conn))
    return pool, conn, cur, result


SHARED_BLUEPRINT_ROWS = [
    {"template_id": "a", "dependencies": ["b"]},
    {"template_id": "b", "dependencies": ["c"]},
    {"template_id": "c", "dependencies": None},
]


def _task(task_id):
    return Task(
        task_id=task_id,
        project_id="p-1",
        name=task_id,
        start_date=date(2025, 3, 3),
        end_date=date(2025, 3, 5),
    )


# ============================================================================
# TASKS
# ============================================================================

class TestPostgresTaskRepository:

    def test_create_many_returns_only_inserted(self):
        pool, conn, cur, _ = _mock_pool(rowcounts=[1, 0, 1])
        repo = PostgresTaskRepository(pool)

        created = asyncio.run(repo.create_many([_task("a"), _task("b"), _task("c")]))

        assert [t.task_id for t in created] == ["a", "c"]
        assert cur.execute.await_count == 3
        conn.transaction.assert_called_once()

    def test_create_many_empty(self):
        pool, _, _, _ = _mock_pool()
        assert asyncio.run(PostgresTaskRepository(pool).create_many([])) == []
        pool.connection.assert_not_called()

    def test_row_mapping(self):
        row = {
            "task_id": "t-1",
            "project_id": "p-1",
            "template_id": "framing",
            "name": "Framing",
            "description": None,
            "start_date": date(2025, 3, 3),
            "end_date": date(2025, 3, 18),
            "budget": 4000,
            "dependencies": ["t-0"],
            "status": "in_progress",
        }
        pool, _, _, _ = _mock_pool(fetchone=row)
        task = asyncio.run(PostgresTaskRepository(pool).get("t-1"))
        assert task.budget == 4000.0
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.dependencies == ["t-0"]

    def test_get_missing(self):
        pool, _, _, _ = _mock_pool(fetchone=None)
        assert asyncio.run(PostgresTaskRepository(pool).get("nope")) is None

    def test_load_edges_uses_given_connection(self):
        pool, conn, _, _ = _mock_pool(fetchall=[
            {"task_id": "a", "dependencies": None},
            {"task_id": "b", "dependencies": ["a"]},
        ])
        edges = asyncio.run(PostgresTaskRepository(pool).load_edges("p-1", conn=conn))
        assert edges == {"a": [], "b": ["a"]}
        pool.connection.assert_not_called()

    def test_delete_missing_node(self):
        pool, conn, _, result = _mock_pool()
        result.rowcount = 0
        with pytest.raises(NotFoundError):
            asyncio.run(PostgresTaskRepository(pool).delete_node("p-1", "ghost", conn=conn))


# ============================================================================
# TEMPLATES
# ============================================================================

class TestPostgresTemplateRepository:

    def test_blueprint_row_mapping(self):
        rows = [{
            "template_id": "pool",
            "name": "Pool",
            "description": None,
            "duration": 20,
            "duration_basis": "from_previous_task",
            "display_groups": [{"question_id": "extras", "operator": "contains", "value": "pool"}],
            "budget_rules": [],
            "default_budget": "35000",
            "dependencies": ["foundation"],
        }]
        pool, _, _, _ = _mock_pool(fetchall=rows)
        blueprints = asyncio.run(PostgresTemplateRepository(pool).get_blueprints(["pool"]))
        blueprint = blueprints["pool"]
        assert blueprint.duration_basis == DurationBasis.FROM_PREVIOUS_TASK
        assert blueprint.default_budget == 35000.0
        assert len(blueprint.display_groups) == 1

    def test_no_ids_no_query(self):
        pool, _, _, _ = _mock_pool()
        assert asyncio.run(PostgresTemplateRepository(pool).get_questions([])) == {}
        pool.connection.assert_not_called()

    def test_missing_project_template(self):
        pool, _, _, _ = _mock_pool(fetchone=None)
        assert asyncio.run(PostgresTemplateRepository(pool).get_project_template("x")) is None

    def test_load_edges_includes_blueprints_outside_set(self):
        pool, conn, cur, _ = _mock_pool(fetchall=SHARED_BLUEPRINT_ROWS)
        edges = asyncio.run(PostgresTemplateRepository(pool).load_edges("s4", conn=conn))
        assert edges == {"a": ["b"], "b": ["c"], "c": []}
        assert cur.execute.call_args.args[1] == ("s4",)
        pool.connection.assert_not_called()

    def test_scope_members(self):
        pool, conn, _, _ = _mock_pool(fetchone={"template_ids": ["a", "c"]})
        members = asyncio.run(PostgresTemplateRepository(pool).scope_members("s4", conn=conn))
        assert members == ["a", "c"]

    def test_scope_members_missing_task_set(self):
        pool, conn, _, _ = _mock_pool(fetchone=None)
        with pytest.raises(NotFoundError):
            asyncio.run(PostgresTemplateRepository(pool).scope_members("nope", conn=conn))

    def test_cycle_through_shared_blueprint_not_written(self):
        pool, conn, _, _ = _mock_pool(
            fetchall=SHARED_BLUEPRINT_ROWS, fetchone={"template_ids": ["a", "c"]},
        )
        service = DependencyService(
            PostgresTemplateRepository(pool),
            LockService(pool, namespace="planning"),
            scope="task_set",
        )

        check = asyncio.run(service.add_dependency("s4", "c", "a"))

        assert check.ok is False
        assert check.cycle == ["c", "a", "b", "c"]
        # advisory lock + membership read, no UPDATE
        assert conn.execute.await_count == 2
        lock_params = conn.execute.await_args_list[0].args[1]
        assert lock_params == (LockService._hash_to_lock_id("planning:graph:task_set:*"),)


# ============================================================================
# BUDGET ENTRIES
# ============================================================================

class TestPostgresBudgetRepository:

    def test_list_in_range_maps_rows(self):
        rows = [{
            "entry_id": "e1",
            "project_id": "P",
            "task_id": None,
            "description": "Forecast",
            "amount": 1000,
            "type": "forecast",
            "week_start": datetime(2024, 1, 1),
            "week_end": datetime(2024, 1, 7, 23, 59, 59, 999000),
        }]
        pool, _, _, _ = _mock_pool(fetchall=rows)
        entries = asyncio.run(PostgresBudgetRepository(pool).list_in_range(
            datetime(2024, 1, 1), datetime(2024, 1, 7, 23, 59, 59, 999000),
        ))
        assert entries[0].type == BudgetEntryType.FORECAST
        assert entries[0].amount == 1000


# ============================================================================
# POOL
# ============================================================================

class TestPool:

    def test_connection_string_prefers_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/plans")
        assert database.get_connection_string() == "postgresql://u:p@db:5432/plans"

    def test_connection_string_from_parts(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("POSTGRES_HOST", "db")
        monkeypatch.setenv("POSTGRES_USER", "planner")
        monkeypatch.setenv("POSTGRES_PASSWORD", "secret")
        monkeypatch.setenv("POSTGRES_DB", "plans")
        monkeypatch.delenv("POSTGRES_PORT", raising=False)
        monkeypatch.delenv("POSTGRES_SSLMODE", raising=False)
        assert database.get_connection_string() == (
            "postgresql://planner:secret@db:5432/plans?sslmode=prefer"
        )

    def test_redact(self):
        assert database.redact("postgresql://u:secret@db:5432/plans") == "db:5432/plans"
        assert "secret" not in database.redact("host=db password=secret")

    def test_database_pool_lifecycle(self, monkeypatch):
        created = []

        def fake_pool(**kwargs):
            pool = MagicMock()
            pool.kwargs = kwargs
            pool.open = AsyncMock()
            pool.close = AsyncMock()
            created.append(pool)
            return pool

        monkeypatch.setattr(database, "AsyncConnectionPool", fake_pool)
        monkeypatch.setattr(database, "_pool", None)

        async def run():
            async with database.DatabasePool(min_size=1, connection_string="postgresql://x") as pool:
                assert await database.get_pool() is pool
            return pool

        pool = asyncio.run(run())
        assert len(created) == 1
        assert pool.kwargs["min_size"] == 1
        assert pool.kwargs["conninfo"] == "postgresql://x"
        pool.open.assert_awaited_once()
        pool.close.assert_awaited_once()
        assert database._pool is None
