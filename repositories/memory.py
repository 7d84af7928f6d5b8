# ============================================================================
# IN-MEMORY REPOSITORIES
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Process-local stores
# PURPOSE: Dict-backed task, budget and project stores
# CREATED: 19 OCT 2026
# ============================================================================
"""
In-Memory Repositories

Dict-backed implementations of the repository interfaces for single-process
use and tests. Pair them with LocalLockService for graph edits.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from core.errors import NotFoundError
from core.logging import ComponentType, get_logger
from core.models import BudgetEntry, Task
from repositories.interfaces import (
    BudgetEntryRepository,
    DependencyGraphStore,
    ProjectRepository,
    TaskRepository,
)

logger = get_logger(__name__, ComponentType.REPOSITORY)


def _within(entry: BudgetEntry, start: datetime, end: datetime) -> bool:
    if (entry.week_start.tzinfo is None) != (start.tzinfo is None):
        # Mixed naive/aware: compare calendar days
        return start.date() <= entry.week_start.date() and entry.week_end.date() <= end.date()
    return start <= entry.week_start and entry.week_end <= end


class MemoryTaskRepository(TaskRepository, DependencyGraphStore):
    """
    Task store keyed by task id.

    As a graph store the scope is the project id and edges are each
    task's dependencies list.
    """

    def __init__(self, tasks: Optional[Iterable[Task]] = None):
        self._tasks: Dict[str, Task] = {}
        for task in tasks or []:
            self._tasks[task.task_id] = task

    async def create_many(self, tasks: List[Task]) -> List[Task]:
        # Compute the whole batch before touching the store
        batch: Dict[str, Task] = {}
        for task in tasks:
            if task.task_id not in self._tasks and task.task_id not in batch:
                batch[task.task_id] = task
        self._tasks.update(batch)
        if batch:
            logger.info(f"Created {len(batch)} tasks for project {tasks[0].project_id}")
        return list(batch.values())

    async def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    async def get_for_project(self, project_id: str) -> List[Task]:
        return [t for t in self._tasks.values() if t.project_id == project_id]

    async def list_ending_between(self, start: date, end: date) -> List[Task]:
        return [t for t in self._tasks.values() if start <= t.end_date <= end]

    def _task_in_scope(self, scope_id: str, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None or task.project_id != scope_id:
            raise NotFoundError("Task", task_id, referenced_by=f"project {scope_id}")
        return task

    async def load_edges(self, scope_id: str, conn: Any = None) -> Dict[str, List[str]]:
        return {
            t.task_id: list(t.dependencies)
            for t in self._tasks.values()
            if t.project_id == scope_id
        }

    async def add_edge(self, scope_id: str, node_id: str, dependency_id: str, conn: Any = None) -> None:
        task = self._task_in_scope(scope_id, node_id)
        self._task_in_scope(scope_id, dependency_id)
        if dependency_id not in task.dependencies:
            self._tasks[node_id] = task.model_copy(
                update={"dependencies": task.dependencies + [dependency_id]}
            )

    async def delete_node(self, scope_id: str, node_id: str, conn: Any = None) -> None:
        self._task_in_scope(scope_id, node_id)
        del self._tasks[node_id]


class MemoryBudgetRepository(BudgetEntryRepository):
    """Budget entries in insertion order."""

    def __init__(self, entries: Optional[Iterable[BudgetEntry]] = None):
        self._entries: List[BudgetEntry] = list(entries or [])

    async def create(self, entry: BudgetEntry) -> BudgetEntry:
        self._entries.append(entry)
        return entry

    async def list_in_range(
        self,
        start: datetime,
        end: datetime,
        project_id: Optional[str] = None,
    ) -> List[BudgetEntry]:
        return [
            e for e in self._entries
            if _within(e, start, end)
            and (project_id is None or e.project_id == project_id)
        ]


class MemoryProjectRepository(ProjectRepository):
    """Project names keyed by project id."""

    def __init__(self, names: Optional[Dict[str, str]] = None):
        self._names: Dict[str, str] = dict(names or {})

    def add(self, project_id: str, name: str) -> None:
        self._names[project_id] = name

    async def get_names(self, project_ids: Optional[Iterable[str]] = None) -> Dict[str, str]:
        if project_ids is None:
            return dict(self._names)
        return {pid: self._names[pid] for pid in project_ids if pid in self._names}


__all__ = [
    "MemoryTaskRepository",
    "MemoryBudgetRepository",
    "MemoryProjectRepository",
]
