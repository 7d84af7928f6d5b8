# ============================================================================
# TEMPLATE REPOSITORY
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Template definitions in PostgreSQL
# PURPOSE: Database access for project templates, questions and blueprints
# CREATED: 19 OCT 2026
# ============================================================================
"""
Template Repository

Reads project templates, questionnaires, questions, task sets and
blueprints. Rule structures (display groups, budget rules) and question
options/defaults are JSONB columns; ordered id lists are text[] columns.

Also serves as the dependency graph store for blueprint graphs, with the
task set id as scope. Blueprint rows and their dependencies are shared
across task sets, so edge loads follow dependencies out of the set.
"""

from typing import Any, Dict, Iterable, List, Optional

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.errors import NotFoundError
from core.logging import ComponentType, get_logger
from core.models import (
    ProjectTemplate,
    Question,
    Questionnaire,
    TaskSet,
    TaskTemplate,
)
from repositories.interfaces import DependencyGraphStore, TemplateRepository
from .database import (
    TABLE_PROJECT_TEMPLATES,
    TABLE_QUESTIONNAIRES,
    TABLE_QUESTIONS,
    TABLE_TASK_SETS,
    TABLE_TASK_TEMPLATES,
)

logger = get_logger(__name__, ComponentType.REPOSITORY)


class PostgresTemplateRepository(TemplateRepository, DependencyGraphStore):
    """Repository for template entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def _fetch_one(self, table: sql.Identifier, key: str, value: str) -> Optional[Dict[str, Any]]:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} WHERE {} = %s").format(table, sql.Identifier(key)),
                (value,),
            )
            return await result.fetchone()

    async def _fetch_many(self, table: sql.Identifier, key: str, values: List[str]) -> List[Dict[str, Any]]:
        if not values:
            return []
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} WHERE {} = ANY(%s)").format(table, sql.Identifier(key)),
                (values,),
            )
            return await result.fetchall()

    async def get_project_template(self, project_template_id: str) -> Optional[ProjectTemplate]:
        row = await self._fetch_one(TABLE_PROJECT_TEMPLATES, "project_template_id", project_template_id)
        return ProjectTemplate.model_validate(row) if row else None

    async def get_questionnaire(self, questionnaire_id: str) -> Optional[Questionnaire]:
        row = await self._fetch_one(TABLE_QUESTIONNAIRES, "questionnaire_id", questionnaire_id)
        return Questionnaire.model_validate(row) if row else None

    async def get_questions(self, question_ids: Iterable[str]) -> Dict[str, Question]:
        rows = await self._fetch_many(TABLE_QUESTIONS, "question_id", list(question_ids))
        questions = [self._row_to_question(row) for row in rows]
        return {q.question_id: q for q in questions}

    async def get_task_set(self, task_set_id: str) -> Optional[TaskSet]:
        row = await self._fetch_one(TABLE_TASK_SETS, "task_set_id", task_set_id)
        return TaskSet.model_validate(row) if row else None

    async def get_blueprints(self, template_ids: Iterable[str]) -> Dict[str, TaskTemplate]:
        rows = await self._fetch_many(TABLE_TASK_TEMPLATES, "template_id", list(template_ids))
        blueprints = [self._row_to_blueprint(row) for row in rows]
        return {b.template_id: b for b in blueprints}

    # ------------------------------------------------------------------
    # DependencyGraphStore (scope = task set)
    # ------------------------------------------------------------------

    async def load_edges(self, scope_id: str, conn: Any = None) -> Dict[str, List[str]]:
        """Edges of the task set's blueprints and of every blueprint they reach."""
        query = sql.SQL("""
            WITH RECURSIVE reachable AS (
                SELECT t.template_id, t.dependencies
                FROM {tasks} t
                JOIN {sets} s ON t.template_id = ANY(s.template_ids)
                WHERE s.task_set_id = %s
              UNION
                SELECT t.template_id, t.dependencies
                FROM {tasks} t
                JOIN reachable r ON t.template_id = ANY(r.dependencies)
            )
            SELECT template_id, dependencies FROM reachable
        """).format(tasks=TABLE_TASK_TEMPLATES, sets=TABLE_TASK_SETS)

        if conn is not None:
            rows = await self._edge_rows(conn, query, scope_id)
        else:
            async with self.pool.connection() as own:
                rows = await self._edge_rows(own, query, scope_id)
        return {row["template_id"]: list(row["dependencies"] or []) for row in rows}

    async def scope_members(self, scope_id: str, conn: Any = None) -> Optional[List[str]]:
        query = sql.SQL("SELECT template_ids FROM {} WHERE task_set_id = %s").format(TABLE_TASK_SETS)

        if conn is not None:
            result = await conn.execute(query, (scope_id,))
            row = await result.fetchone()
        else:
            async with self.pool.connection() as own:
                result = await own.execute(query, (scope_id,))
                row = await result.fetchone()
        if row is None:
            raise NotFoundError("TaskSet", scope_id)
        values = row["template_ids"] if hasattr(row, "keys") else row[0]
        return list(values or [])

    @staticmethod
    async def _edge_rows(conn, query, scope_id: str) -> List[Dict[str, Any]]:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, (scope_id,))
            return await cur.fetchall()

    async def add_edge(self, scope_id: str, node_id: str, dependency_id: str, conn: Any = None) -> None:
        query = sql.SQL("""
            UPDATE {}
            SET dependencies = array_append(dependencies, %(dep)s)
            WHERE template_id = %(node)s
              AND NOT (%(dep)s = ANY(dependencies))
        """).format(TABLE_TASK_TEMPLATES)
        params = {"dep": dependency_id, "node": node_id}

        if conn is not None:
            await conn.execute(query, params)
        else:
            async with self.pool.connection() as own:
                await own.execute(query, params)
        logger.info(f"Blueprint edge added in {scope_id}: {node_id} -> {dependency_id}")

    async def delete_node(self, scope_id: str, node_id: str, conn: Any = None) -> None:
        """Remove a blueprint from the task set (the blueprint row is shared)."""
        query = sql.SQL("""
            UPDATE {}
            SET template_ids = array_remove(template_ids, %s)
            WHERE task_set_id = %s
        """).format(TABLE_TASK_SETS)

        if conn is not None:
            result = await conn.execute(query, (node_id, scope_id))
        else:
            async with self.pool.connection() as own:
                result = await own.execute(query, (node_id, scope_id))
        if result.rowcount == 0:
            raise NotFoundError("TaskSet", scope_id)

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _row_to_question(self, row: Dict[str, Any]) -> Question:
        return Question(
            question_id=row["question_id"],
            text=row["text"],
            answer_kind=row["answer_kind"],
            required=row.get("required", False),
            options=row.get("options") or [],
            min_value=row.get("min_value"),
            max_value=row.get("max_value"),
            default_value=row.get("default_value"),
        )

    def _row_to_blueprint(self, row: Dict[str, Any]) -> TaskTemplate:
        return TaskTemplate(
            template_id=row["template_id"],
            name=row["name"],
            description=row.get("description"),
            duration=row.get("duration") or 0,
            duration_basis=row.get("duration_basis") or "from_project_start",
            display_groups=row.get("display_groups") or [],
            budget_rules=row.get("budget_rules") or [],
            default_budget=float(row.get("default_budget") or 0),
            dependencies=row.get("dependencies") or [],
        )


__all__ = ["PostgresTemplateRepository"]
