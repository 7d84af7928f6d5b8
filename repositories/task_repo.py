# ============================================================================
# TASK REPOSITORY
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Task CRUD operations
# PURPOSE: Database access for the tasks table
# CREATED: 19 OCT 2026
# ============================================================================
"""
Task Repository

CRUD operations for task instances created by instantiation.
Dependencies are stored as a text[] column of task ids, which also makes
this the dependency graph store for task graphs (scope = project id).
"""

from datetime import date
from typing import Any, Dict, List, Optional

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.errors import NotFoundError
from core.logging import ComponentType, get_logger
from core.models import Task
from repositories.interfaces import DependencyGraphStore, TaskRepository
from .database import TABLE_TASKS

logger = get_logger(__name__, ComponentType.REPOSITORY)


class PostgresTaskRepository(TaskRepository, DependencyGraphStore):
    """Repository for Task entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def create_many(self, tasks: List[Task]) -> List[Task]:
        """
        Create multiple tasks in a single transaction.

        Existing task ids are left untouched (ON CONFLICT DO NOTHING).

        Args:
            tasks: List of Task instances

        Returns:
            List of tasks actually inserted
        """
        if not tasks:
            return []

        created: List[Task] = []
        async with self.pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    for task in tasks:
                        await cur.execute(
                            sql.SQL("""
                            INSERT INTO {} (
                                task_id, project_id, template_id, name, description,
                                start_date, end_date, budget, dependencies, status
                            ) VALUES (
                                %(task_id)s, %(project_id)s, %(template_id)s, %(name)s,
                                %(description)s, %(start_date)s, %(end_date)s,
                                %(budget)s, %(dependencies)s, %(status)s
                            )
                            ON CONFLICT (task_id) DO NOTHING
                            """).format(TABLE_TASKS),
                            {
                                "task_id": task.task_id,
                                "project_id": task.project_id,
                                "template_id": task.template_id,
                                "name": task.name,
                                "description": task.description,
                                "start_date": task.start_date,
                                "end_date": task.end_date,
                                "budget": task.budget,
                                "dependencies": list(task.dependencies),
                                "status": task.status.value,
                            },
                        )
                        if cur.rowcount > 0:
                            created.append(task)
        logger.info(
            f"Created {len(created)} of {len(tasks)} tasks for project {tasks[0].project_id}"
        )
        return created

    async def get(self, task_id: str) -> Optional[Task]:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} WHERE task_id = %s").format(TABLE_TASKS),
                (task_id,),
            )
            row = await result.fetchone()
            if row is None:
                return None
            return self._row_to_task(row)

    async def get_for_project(self, project_id: str) -> List[Task]:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("""
                SELECT * FROM {}
                WHERE project_id = %s
                ORDER BY start_date ASC, task_id ASC
                """).format(TABLE_TASKS),
                (project_id,),
            )
            rows = await result.fetchall()
            return [self._row_to_task(row) for row in rows]

    async def list_ending_between(self, start: date, end: date) -> List[Task]:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("""
                SELECT * FROM {}
                WHERE end_date >= %s AND end_date <= %s
                """).format(TABLE_TASKS),
                (start, end),
            )
            rows = await result.fetchall()
            return [self._row_to_task(row) for row in rows]

    # ------------------------------------------------------------------
    # DependencyGraphStore (scope = project)
    # ------------------------------------------------------------------

    async def load_edges(self, scope_id: str, conn: Any = None) -> Dict[str, List[str]]:
        query = sql.SQL(
            "SELECT task_id, dependencies FROM {} WHERE project_id = %s ORDER BY task_id"
        ).format(TABLE_TASKS)

        async def _rows(c) -> List[Dict[str, Any]]:
            async with c.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, (scope_id,))
                return await cur.fetchall()

        if conn is not None:
            rows = await _rows(conn)
        else:
            async with self.pool.connection() as own:
                rows = await _rows(own)
        return {row["task_id"]: list(row["dependencies"] or []) for row in rows}

    async def add_edge(self, scope_id: str, node_id: str, dependency_id: str, conn: Any = None) -> None:
        query = sql.SQL("""
            UPDATE {}
            SET dependencies = array_append(dependencies, %(dep)s)
            WHERE task_id = %(node)s AND project_id = %(project)s
              AND NOT (%(dep)s = ANY(dependencies))
        """).format(TABLE_TASKS)
        params = {"dep": dependency_id, "node": node_id, "project": scope_id}

        if conn is not None:
            await conn.execute(query, params)
        else:
            async with self.pool.connection() as own:
                await own.execute(query, params)
        logger.info(f"Task edge added in {scope_id}: {node_id} -> {dependency_id}")

    async def delete_node(self, scope_id: str, node_id: str, conn: Any = None) -> None:
        query = sql.SQL(
            "DELETE FROM {} WHERE task_id = %s AND project_id = %s"
        ).format(TABLE_TASKS)

        if conn is not None:
            result = await conn.execute(query, (node_id, scope_id))
        else:
            async with self.pool.connection() as own:
                result = await own.execute(query, (node_id, scope_id))
        if result.rowcount == 0:
            raise NotFoundError("Task", node_id, referenced_by=f"project {scope_id}")
        logger.info(f"Task deleted: {node_id}")

    def _row_to_task(self, row: Dict[str, Any]) -> Task:
        """Convert database row to Task."""
        return Task(
            task_id=row["task_id"],
            project_id=row["project_id"],
            template_id=row.get("template_id"),
            name=row["name"],
            description=row.get("description"),
            start_date=row["start_date"],
            end_date=row["end_date"],
            budget=float(row.get("budget") or 0),
            dependencies=row.get("dependencies") or [],
            status=row.get("status") or "not_started",
        )


__all__ = ["PostgresTaskRepository"]
