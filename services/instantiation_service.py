# ============================================================================
# INSTANTIATION SERVICE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Project creation from templates
# PURPOSE: Load a template bundle, instantiate it and persist the tasks
# CREATED: 19 OCT 2026
# ============================================================================
"""
Instantiation Service

Wires the template repository, the pure instantiator and the task
repository:

    load_bundle -> instantiate -> create_many (one transaction)

preview() stops before the write.
"""

from datetime import date, datetime
from typing import Any, Mapping, Optional, Union

from core.config import get_defaults
from core.logging import ComponentType, get_logger, log_context
from orchestrator.instantiation import InstantiationResult, TemplateInstantiator
from repositories.interfaces import TaskRepository, TemplateRepository

logger = get_logger(__name__, ComponentType.SERVICE)


class InstantiationService:
    """Service for creating project tasks from templates."""

    def __init__(
        self,
        template_repo: TemplateRepository,
        task_repo: TaskRepository,
        instantiator: Optional[TemplateInstantiator] = None,
    ):
        """
        Initialize instantiation service.

        Args:
            template_repo: Source of project template bundles
            task_repo: Destination for created tasks
            instantiator: Optional instantiator (default uses global defaults)
        """
        self.template_repo = template_repo
        self.task_repo = task_repo
        self.instantiator = instantiator or TemplateInstantiator()

    async def preview(
        self,
        project_template_id: str,
        answers: Mapping[str, Any],
        start_date: Union[date, datetime],
        project_id: Optional[str] = None,
    ) -> InstantiationResult:
        """
        Instantiate without writing anything.

        Raises:
            NotFoundError: Project template (or its questionnaire/task set) missing
            CycleDetectedError: Applicable blueprints form a cycle
        """
        bundle = await self.template_repo.load_bundle(project_template_id)
        project_id = project_id or get_defaults().scheduling.preview_project_id
        return self.instantiator.instantiate(bundle, answers, start_date, project_id)

    async def instantiate_project(
        self,
        project_template_id: str,
        answers: Mapping[str, Any],
        start_date: Union[date, datetime],
        project_id: str,
    ) -> InstantiationResult:
        """
        Instantiate a template for a project and persist the tasks.

        Nothing is written when the result carries errors. Task ids are
        deterministic, so repeating a call writes no duplicates.

        Returns:
            InstantiationResult (check .ok)

        Raises:
            NotFoundError: Project template (or its questionnaire/task set) missing
            CycleDetectedError: Applicable blueprints form a cycle
        """
        with log_context(project_id=project_id, operation="instantiate_project"):
            bundle = await self.template_repo.load_bundle(project_template_id)
            result = self.instantiator.instantiate(bundle, answers, start_date, project_id)

            if not result.ok:
                logger.warning(
                    f"Project {project_id} not created from {project_template_id}: "
                    f"{len(result.errors)} error(s)"
                )
                return result

            created = await self.task_repo.create_many(result.tasks)
            logger.info(
                f"Project {project_id} instantiated from {project_template_id}: "
                f"{len(created)} new of {len(result.tasks)} tasks, "
                f"budget={result.total_budget}"
            )
            return result


__all__ = ["InstantiationService"]
