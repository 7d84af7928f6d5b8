# ============================================================================
# TEMPLATE INSTANTIATOR
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Template + answers -> scheduled tasks
# PURPOSE: Validate, resolve, order and schedule a project's tasks
# CREATED: 19 OCT 2026
# ============================================================================
"""
Template Instantiator

Turns a TemplateBundle and an answer set into concrete tasks:

    0. Structural check of the bundle (collected)
    1. Required answers present, answers fit their questions (collected)
    2. Rule resolution per blueprint, in task-set order
    3. Dependency graph of applicable blueprints (a cycle aborts)
    4. Topological order, ties broken by task-set order
    5. Start/end dates from duration and duration basis
    6. Deterministic task ids and dependency remap

Pure and synchronous: nothing is read or written here. The same bundle,
answers, start date and project id always produce the same result.
"""

import hashlib
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from core.config import Defaults, get_defaults
from core.contracts import DurationBasis
from core.errors import NotFoundError, PlanningError, ValidationError
from core.logging import (
    ComponentType,
    get_logger,
    log_checkpoint,
    log_context,
    log_planning_errors,
)
from core.models import (
    MISSING,
    Task,
    TaskTemplate,
    TemplateBundle,
    coerce_answer,
    is_blank,
)
from orchestrator.engine.graph import DependencyGraph
from orchestrator.engine.rules import Resolution, RuleResolver

logger = get_logger(__name__, ComponentType.ORCHESTRATOR)


# ============================================================================
# RESULT
# ============================================================================

@dataclass
class InstantiationResult:
    """Tasks produced by one instantiation, or the errors that blocked it."""
    tasks: List[Task] = field(default_factory=list)
    total_budget: float = 0.0
    errors: List[PlanningError] = field(default_factory=list)
    warnings: List[PlanningError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        if not self.ok:
            return {"errors": [e.to_dict() for e in self.errors]}
        return {
            "tasks": [t.to_dict() for t in self.tasks],
            "totalBudget": self.total_budget,
            "warnings": [w.to_dict() for w in self.warnings],
        }


def make_task_id(project_id: str, template_id: str, length: int = 32) -> str:
    """Deterministic task id for a blueprint within a project."""
    digest = hashlib.sha256(f"{project_id}:{template_id}".encode()).hexdigest()
    return digest[:length]


# ============================================================================
# INSTANTIATOR
# ============================================================================

class TemplateInstantiator:
    """
    Instantiates project templates.

    Usage:
        result = TemplateInstantiator().instantiate(bundle, answers, date(2025, 3, 3), "p-1")
        if result.ok:
            task_repo.create_many(result.tasks)
    """

    def __init__(self, defaults: Optional[Defaults] = None):
        self.defaults = defaults or get_defaults()

    # ------------------------------------------------------------------
    # Validation (batch)
    # ------------------------------------------------------------------

    def validate_bundle(self, bundle: TemplateBundle) -> List[PlanningError]:
        """Collect every structural problem in a bundle."""
        errors: List[PlanningError] = []
        questionnaire_id = bundle.questionnaire.questionnaire_id
        task_set_id = bundle.task_set.task_set_id

        for question_id in bundle.questionnaire.question_ids:
            if question_id not in bundle.questions:
                errors.append(NotFoundError(
                    "Question", question_id, referenced_by=f"questionnaire {questionnaire_id}",
                ))

        resolver = RuleResolver(bundle.questions)
        member_ids = set(bundle.task_set.template_ids)
        seen = set()
        for template_id in bundle.task_set.template_ids:
            if template_id in seen:
                errors.append(ValidationError(
                    f"Task template '{template_id}' listed twice in task set {task_set_id}",
                    field="template_ids",
                    entity_id=template_id,
                ))
                continue
            seen.add(template_id)

            blueprint = bundle.blueprints.get(template_id)
            if blueprint is None:
                errors.append(NotFoundError(
                    "TaskTemplate", template_id, referenced_by=f"task set {task_set_id}",
                ))
                continue

            errors.extend(resolver.validate_blueprint(blueprint))
            for dep in blueprint.dependencies:
                if dep not in member_ids:
                    errors.append(NotFoundError(
                        "TaskTemplate", dep, referenced_by=f"task template {template_id}",
                    ))
        return errors

    def validate_answers(
        self,
        bundle: TemplateBundle,
        answers: Mapping[str, Any],
    ) -> Tuple[Dict[str, Any], List[PlanningError]]:
        """
        Check required answers and coerce present ones.

        Required answers are checked for questionnaire questions only; every
        question in the bundle, including ones only blueprints reference, is
        coerced or defaulted.

        Returns:
            (coerced answers, errors). Blank answers are left out of the
            coerced set; an unanswered optional question with a default
            takes the default.
        """
        coerced: Dict[str, Any] = {
            k: v for k, v in answers.items() if k not in bundle.questions and not is_blank(v)
        }
        errors: List[PlanningError] = []

        in_questionnaire = set(bundle.questionnaire.question_ids)
        question_ids = list(bundle.questionnaire.question_ids) + [
            qid for qid in bundle.questions if qid not in in_questionnaire
        ]
        for question_id in question_ids:
            question = bundle.questions.get(question_id)
            if question is None:
                continue
            raw = answers.get(question_id, MISSING)
            if is_blank(raw):
                if question.required and question_id in in_questionnaire:
                    errors.append(ValidationError(
                        f"Required question '{question_id}' is not answered",
                        field="answers",
                        question_id=question_id,
                    ))
                    continue
                if question.default_value is None:
                    continue
                raw = question.default_value
            try:
                coerced[question_id] = coerce_answer(question, raw)
            except ValidationError as e:
                errors.append(e)
        return coerced, errors

    # ------------------------------------------------------------------
    # Instantiation
    # ------------------------------------------------------------------

    def instantiate(
        self,
        bundle: TemplateBundle,
        answers: Mapping[str, Any],
        start_date: Union[date, datetime],
        project_id: str,
    ) -> InstantiationResult:
        """
        Instantiate a bundle for a project.

        Returns:
            InstantiationResult; `errors` set (and no tasks) when the bundle
            or the answers are invalid

        Raises:
            CycleDetectedError: Applicable blueprints form a dependency cycle
        """
        if isinstance(start_date, datetime):
            start_date = start_date.date()

        with log_context(
            project_id=project_id,
            template_id=bundle.project_template.project_template_id,
            task_set_id=bundle.task_set.task_set_id,
            operation="instantiate",
        ):
            log_checkpoint("instantiation_started", {"start_date": start_date.isoformat()})

            errors = self.validate_bundle(bundle)
            coerced, answer_errors = self.validate_answers(bundle, answers)
            errors.extend(answer_errors)
            if errors:
                log_planning_errors(logger, "Instantiation rejected", errors)
                return InstantiationResult(errors=errors)

            blueprints = bundle.ordered_blueprints()
            resolutions = self._resolve(bundle, blueprints, coerced)
            applicable = [bp for bp in blueprints if resolutions[bp.template_id].applicable]

            graph = self._build_graph(applicable)
            order = graph.topological_order(preferred=[bp.template_id for bp in applicable])
            windows = self._schedule(graph, order, bundle.blueprints, start_date)

            length = self.defaults.scheduling.task_id_length
            task_ids = {
                bp.template_id: make_task_id(project_id, bp.template_id, length)
                for bp in applicable
            }
            tasks = [
                Task(
                    task_id=task_ids[bp.template_id],
                    project_id=project_id,
                    template_id=bp.template_id,
                    name=bp.name,
                    description=bp.description,
                    start_date=windows[bp.template_id][0],
                    end_date=windows[bp.template_id][1],
                    budget=resolutions[bp.template_id].budget,
                    dependencies=[
                        task_ids[dep] for dep in graph.get_dependencies(bp.template_id)
                    ],
                )
                for bp in applicable
            ]

            warnings: List[PlanningError] = []
            for bp in blueprints:
                warnings.extend(resolutions[bp.template_id].warnings)

            result = InstantiationResult(
                tasks=tasks,
                total_budget=sum(t.budget for t in tasks),
                warnings=warnings,
            )
            log_checkpoint("instantiation_completed", {
                "task_count": len(tasks),
                "excluded": len(blueprints) - len(applicable),
                "total_budget": result.total_budget,
                "warnings": len(warnings),
            })
            return result

    def _resolve(
        self,
        bundle: TemplateBundle,
        blueprints: List[TaskTemplate],
        answers: Mapping[str, Any],
    ) -> Dict[str, Resolution]:
        resolver = RuleResolver(bundle.questions)
        resolutions = {}
        for blueprint in blueprints:
            with log_context(blueprint_id=blueprint.template_id):
                resolutions[blueprint.template_id] = resolver.resolve(blueprint, answers)
        return resolutions

    def _build_graph(self, applicable: List[TaskTemplate]) -> DependencyGraph:
        graph = DependencyGraph()
        applicable_ids = {bp.template_id for bp in applicable}
        for blueprint in applicable:
            graph.add_node(blueprint.template_id)
        for blueprint in applicable:
            for dep in blueprint.dependencies:
                if dep not in applicable_ids:
                    logger.debug(
                        f"Dropping edge {blueprint.template_id} -> {dep}: dependency excluded"
                    )
                    continue
                graph.add_edge(blueprint.template_id, dep)
        return graph

    def _schedule(
        self,
        graph: DependencyGraph,
        order: List[str],
        blueprints: Mapping[str, TaskTemplate],
        start_date: date,
    ) -> Dict[str, Tuple[date, date]]:
        """Start/end per blueprint, visiting dependencies first."""
        windows: Dict[str, Tuple[date, date]] = {}
        for template_id in order:
            blueprint = blueprints[template_id]
            start = start_date
            if blueprint.duration_basis == DurationBasis.FROM_PREVIOUS_TASK:
                deps = graph.get_dependencies(template_id)
                if deps:
                    start = max(windows[dep][1] for dep in deps)
            windows[template_id] = (start, start + timedelta(days=blueprint.duration))
        return windows


# ============================================================================
# SINGLETON
# ============================================================================

_instance: Optional[TemplateInstantiator] = None


def get_instantiator() -> TemplateInstantiator:
    """Get singleton instantiator instance."""
    global _instance
    if _instance is None:
        _instance = TemplateInstantiator()
    return _instance


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "InstantiationResult",
    "TemplateInstantiator",
    "get_instantiator",
    "make_task_id",
]
