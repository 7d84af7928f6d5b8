# ============================================================================
# BUDGET REPOSITORY
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Budget entries and project names
# PURPOSE: Database access for budget_entries and projects tables
# CREATED: 19 OCT 2026
# ============================================================================
"""
Budget Repository

Budget entries are stored already snapped to their Monday-Sunday window,
so range queries compare week_start/week_end directly.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.logging import ComponentType, get_logger
from core.models import BudgetEntry
from repositories.interfaces import BudgetEntryRepository, ProjectRepository
from .database import TABLE_BUDGET_ENTRIES, TABLE_PROJECTS

logger = get_logger(__name__, ComponentType.REPOSITORY)


class PostgresBudgetRepository(BudgetEntryRepository):
    """Repository for BudgetEntry entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def create(self, entry: BudgetEntry) -> BudgetEntry:
        async with self.pool.connection() as conn:
            await conn.execute(
                sql.SQL("""
                INSERT INTO {} (
                    entry_id, project_id, task_id, description, amount,
                    type, week_start, week_end
                ) VALUES (
                    %(entry_id)s, %(project_id)s, %(task_id)s, %(description)s,
                    %(amount)s, %(type)s, %(week_start)s, %(week_end)s
                )
                """).format(TABLE_BUDGET_ENTRIES),
                {
                    "entry_id": entry.entry_id,
                    "project_id": entry.project_id,
                    "task_id": entry.task_id,
                    "description": entry.description,
                    "amount": entry.amount,
                    "type": entry.type.value,
                    "week_start": entry.week_start,
                    "week_end": entry.week_end,
                },
            )
            logger.info(
                f"Budget entry created: {entry.entry_id} "
                f"{entry.type.value}={entry.amount} project={entry.project_id}"
            )
            return entry

    async def list_in_range(
        self,
        start: datetime,
        end: datetime,
        project_id: Optional[str] = None,
    ) -> List[BudgetEntry]:
        query = sql.SQL("""
            SELECT * FROM {}
            WHERE week_start >= %s AND week_end <= %s
        """).format(TABLE_BUDGET_ENTRIES)
        params: List[Any] = [start, end]
        if project_id is not None:
            query = query + sql.SQL(" AND project_id = %s")
            params.append(project_id)

        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(query, params)
            rows = await result.fetchall()
            return [self._row_to_entry(row) for row in rows]

    def _row_to_entry(self, row: Dict[str, Any]) -> BudgetEntry:
        return BudgetEntry(
            entry_id=row["entry_id"],
            project_id=row["project_id"],
            task_id=row.get("task_id"),
            description=row["description"],
            amount=float(row["amount"]),
            type=row["type"],
            week_start=row["week_start"],
            week_end=row.get("week_end"),
        )


class PostgresProjectRepository(ProjectRepository):
    """Read-only access to project names."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def get_names(self, project_ids: Optional[Iterable[str]] = None) -> Dict[str, str]:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            if project_ids is None:
                result = await conn.execute(
                    sql.SQL("SELECT project_id, name FROM {}").format(TABLE_PROJECTS),
                )
            else:
                result = await conn.execute(
                    sql.SQL(
                        "SELECT project_id, name FROM {} WHERE project_id = ANY(%s)"
                    ).format(TABLE_PROJECTS),
                    (list(project_ids),),
                )
            rows = await result.fetchall()
            return {row["project_id"]: row["name"] for row in rows}


__all__ = ["PostgresBudgetRepository", "PostgresProjectRepository"]
