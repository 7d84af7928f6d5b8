# ============================================================================
# REPOSITORY INTERFACES
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Persistence contracts
# PURPOSE: Abstract repositories the services depend on
# CREATED: 19 OCT 2026
# ============================================================================
"""
Repository Interfaces

The engine never touches storage. Services receive these repositories by
injection; concrete adapters live beside them (YAML catalog, in-memory
stores, PostgreSQL).

Graph stores take an optional `conn`. PostgreSQL adapters use it to run
inside the transaction that holds the graph's advisory lock; in-memory
adapters ignore it.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from core.errors import NotFoundError
from core.models import (
    BudgetEntry,
    ProjectTemplate,
    Question,
    Questionnaire,
    Task,
    TaskSet,
    TaskTemplate,
    TemplateBundle,
)


class TemplateRepository(ABC):
    """Read access to project templates and their parts."""

    @abstractmethod
    async def get_project_template(self, project_template_id: str) -> Optional[ProjectTemplate]:
        ...

    @abstractmethod
    async def get_questionnaire(self, questionnaire_id: str) -> Optional[Questionnaire]:
        ...

    @abstractmethod
    async def get_questions(self, question_ids: Iterable[str]) -> Dict[str, Question]:
        """Questions by id; unknown ids are simply absent."""

    @abstractmethod
    async def get_task_set(self, task_set_id: str) -> Optional[TaskSet]:
        ...

    @abstractmethod
    async def get_blueprints(self, template_ids: Iterable[str]) -> Dict[str, TaskTemplate]:
        """Blueprints by id; unknown ids are simply absent."""

    async def load_bundle(self, project_template_id: str) -> TemplateBundle:
        """
        Assemble everything one instantiation needs.

        Missing questions or blueprints are left out of the bundle; the
        instantiator reports them as NotFoundError entries.

        Raises:
            NotFoundError: Project template, questionnaire or task set missing
        """
        project_template = await self.get_project_template(project_template_id)
        if project_template is None:
            raise NotFoundError("ProjectTemplate", project_template_id)

        questionnaire = await self.get_questionnaire(project_template.questionnaire_id)
        if questionnaire is None:
            raise NotFoundError(
                "Questionnaire",
                project_template.questionnaire_id,
                referenced_by=f"project template {project_template_id}",
            )

        task_set = await self.get_task_set(project_template.task_set_id)
        if task_set is None:
            raise NotFoundError(
                "TaskSet",
                project_template.task_set_id,
                referenced_by=f"project template {project_template_id}",
            )

        blueprints = await self.get_blueprints(task_set.template_ids)

        question_ids = list(questionnaire.question_ids)
        for blueprint in blueprints.values():
            for question_id in sorted(blueprint.referenced_question_ids()):
                if question_id not in question_ids:
                    question_ids.append(question_id)
        questions = await self.get_questions(question_ids)

        return TemplateBundle(
            project_template=project_template,
            questionnaire=questionnaire,
            questions=questions,
            task_set=task_set,
            blueprints=blueprints,
        )


class TaskRepository(ABC):
    """Persistence for task instances."""

    @abstractmethod
    async def create_many(self, tasks: List[Task]) -> List[Task]:
        """
        Insert tasks atomically: all or none.

        Tasks whose id already exists are skipped, so re-running a
        deterministic instantiation is a no-op.

        Returns:
            The tasks actually inserted
        """

    @abstractmethod
    async def get(self, task_id: str) -> Optional[Task]:
        ...

    @abstractmethod
    async def get_for_project(self, project_id: str) -> List[Task]:
        ...

    @abstractmethod
    async def list_ending_between(self, start: date, end: date) -> List[Task]:
        """Tasks whose end date lies in [start, end]."""


class DependencyGraphStore(ABC):
    """Edges of one dependency graph scope (a project or a task set)."""

    @abstractmethod
    async def load_edges(self, scope_id: str, conn: Any = None) -> Dict[str, List[str]]:
        """
        node id -> dependency ids for every node in the scope.

        When nodes are shared between scopes the mapping also covers every
        node reachable from the scope's nodes, so cycle checks see paths
        that leave the scope.
        """

    async def scope_members(self, scope_id: str, conn: Any = None) -> Optional[List[str]]:
        """Nodes that belong to the scope, or None when every loaded node does."""
        return None

    @abstractmethod
    async def add_edge(self, scope_id: str, node_id: str, dependency_id: str, conn: Any = None) -> None:
        ...

    @abstractmethod
    async def delete_node(self, scope_id: str, node_id: str, conn: Any = None) -> None:
        ...


class BudgetEntryRepository(ABC):
    """Persistence for budget entries."""

    @abstractmethod
    async def create(self, entry: BudgetEntry) -> BudgetEntry:
        ...

    @abstractmethod
    async def list_in_range(
        self,
        start: datetime,
        end: datetime,
        project_id: Optional[str] = None,
    ) -> List[BudgetEntry]:
        """Entries whose week lies entirely inside [start, end]."""


class ProjectRepository(ABC):
    """Project display names."""

    @abstractmethod
    async def get_names(self, project_ids: Optional[Iterable[str]] = None) -> Dict[str, str]:
        """project_id -> name; all projects when ids is None."""


__all__ = [
    "TemplateRepository",
    "TaskRepository",
    "DependencyGraphStore",
    "BudgetEntryRepository",
    "ProjectRepository",
]
