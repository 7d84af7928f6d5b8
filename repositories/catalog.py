# ============================================================================
# TEMPLATE CATALOG
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - File-backed template definitions
# PURPOSE: Load and cache project templates from YAML files
# CREATED: 19 OCT 2026
# ============================================================================
"""
Template Catalog

Loads project template bundles from YAML files and serves them through the
TemplateRepository interface. Caches loaded definitions.

One file holds one bundle:

    project_template:
      project_template_id: residential_build
      name: Residential Build
      questionnaire_id: residential_questions
      task_set_id: residential_tasks
    questionnaire:
      questionnaire_id: residential_questions
      name: Residential questions
    questions:
      - question_id: floors
        text: How many floors?
        answer_kind: number
        required: true
    task_set:
      task_set_id: residential_tasks
      name: Residential tasks
    blueprints:
      - template_id: foundation
        name: Foundation
        duration: 10

questionnaire.question_ids and task_set.template_ids default to the order
of the questions / blueprints lists. Ids are global across files.

Template files are stored in the templates/ directory.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from core.errors import NotFoundError, PlanningError, ValidationError
from core.logging import ComponentType, get_logger
from core.models import (
    ProjectTemplate,
    Question,
    Questionnaire,
    TaskSet,
    TaskTemplate,
    TemplateBundle,
)
from orchestrator.instantiation import TemplateInstantiator
from repositories.interfaces import DependencyGraphStore, TemplateRepository

logger = get_logger(__name__, ComponentType.REPOSITORY)


class TemplateCatalog(TemplateRepository, DependencyGraphStore):
    """
    In-memory template registry backed by YAML files.

    Also acts as the dependency graph store for blueprint graphs, with the
    task set id as scope. Blueprint dependencies are shared by every task
    set that lists the blueprint.
    """

    def __init__(self, templates_dir: Optional[str] = None):
        """
        Initialize template catalog.

        Args:
            templates_dir: Directory containing template YAML files.
                          Defaults to ./templates/
        """
        if templates_dir:
            self.templates_dir = Path(templates_dir)
        else:
            self.templates_dir = Path(__file__).parent.parent / "templates"

        self._project_templates: Dict[str, ProjectTemplate] = {}
        self._questionnaires: Dict[str, Questionnaire] = {}
        self._questions: Dict[str, Question] = {}
        self._task_sets: Dict[str, TaskSet] = {}
        self._blueprints: Dict[str, TaskTemplate] = {}
        self.load_errors: Dict[str, str] = {}
        self._loaded = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_all(self) -> int:
        """
        Load all template files from the templates directory.

        Files that fail to parse or validate are skipped and recorded in
        load_errors.

        Returns:
            Number of bundles loaded
        """
        self._loaded = True
        if not self.templates_dir.exists():
            logger.warning(f"Templates directory not found: {self.templates_dir}")
            return 0

        count = 0
        paths = sorted(self.templates_dir.glob("*.yaml")) + sorted(self.templates_dir.glob("*.yml"))
        for path in paths:
            try:
                bundle = self._load_yaml(path)
            except (OSError, yaml.YAMLError, PydanticValidationError, PlanningError) as e:
                logger.error(f"Failed to load {path}: {e}")
                self.load_errors[str(path)] = str(e)
                continue
            self.register(bundle)
            count += 1

        logger.info(f"Loaded {count} project templates from {self.templates_dir}")
        return count

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load_all()

    def _load_yaml(self, path: Path) -> TemplateBundle:
        """
        Load one bundle from a YAML file.

        Raises:
            ValidationError: File is structurally invalid
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValidationError(f"Expected a mapping in {path}", field="file")

        questions = [Question(**q) for q in data.get("questions") or []]
        blueprints = [TaskTemplate(**b) for b in data.get("blueprints") or []]

        questionnaire_data = dict(data.get("questionnaire") or {})
        questionnaire_data.setdefault("question_ids", [q.question_id for q in questions])
        task_set_data = dict(data.get("task_set") or {})
        task_set_data.setdefault("template_ids", [b.template_id for b in blueprints])

        known_questions = {**self._questions, **{q.question_id: q for q in questions}}
        known_blueprints = {**self._blueprints, **{b.template_id: b for b in blueprints}}
        task_set = TaskSet(**task_set_data)

        bundle = TemplateBundle(
            project_template=ProjectTemplate(**data.get("project_template") or {}),
            questionnaire=Questionnaire(**questionnaire_data),
            questions=known_questions,
            task_set=task_set,
            blueprints={
                tid: known_blueprints[tid] for tid in task_set.template_ids
                if tid in known_blueprints
            },
        )
        self._validate(bundle, path)
        return bundle

    def _validate(self, bundle: TemplateBundle, source: Any) -> None:
        errors = TemplateInstantiator().validate_bundle(bundle)
        if errors:
            raise ValidationError(
                f"Invalid project template in {source}: {[e.message for e in errors]}",
                entity_id=bundle.project_template.project_template_id,
                errors=[e.to_dict() for e in errors],
            )

    def register(self, bundle: TemplateBundle) -> None:
        """
        Register a bundle (for testing or programmatic use).

        Raises:
            ValidationError: Bundle is structurally invalid
        """
        self._validate(bundle, bundle.project_template.project_template_id)

        self._questions.update(bundle.questions)
        self._blueprints.update(bundle.blueprints)
        self._questionnaires[bundle.questionnaire.questionnaire_id] = bundle.questionnaire
        self._task_sets[bundle.task_set.task_set_id] = bundle.task_set
        pt = bundle.project_template
        self._project_templates[pt.project_template_id] = pt
        logger.info(
            f"Registered project template: {pt.project_template_id} "
            f"({len(bundle.task_set.template_ids)} blueprints)"
        )

    def reload(self) -> int:
        """
        Reload all templates from disk.

        Returns:
            Number of bundles loaded
        """
        self._project_templates.clear()
        self._questionnaires.clear()
        self._questions.clear()
        self._task_sets.clear()
        self._blueprints.clear()
        self.load_errors.clear()
        return self.load_all()

    def list_project_templates(self) -> List[ProjectTemplate]:
        self._ensure_loaded()
        return list(self._project_templates.values())

    # ------------------------------------------------------------------
    # TemplateRepository
    # ------------------------------------------------------------------

    async def get_project_template(self, project_template_id: str) -> Optional[ProjectTemplate]:
        self._ensure_loaded()
        return self._project_templates.get(project_template_id)

    async def get_questionnaire(self, questionnaire_id: str) -> Optional[Questionnaire]:
        self._ensure_loaded()
        return self._questionnaires.get(questionnaire_id)

    async def get_questions(self, question_ids: Iterable[str]) -> Dict[str, Question]:
        self._ensure_loaded()
        return {qid: self._questions[qid] for qid in question_ids if qid in self._questions}

    async def get_task_set(self, task_set_id: str) -> Optional[TaskSet]:
        self._ensure_loaded()
        return self._task_sets.get(task_set_id)

    async def get_blueprints(self, template_ids: Iterable[str]) -> Dict[str, TaskTemplate]:
        self._ensure_loaded()
        return {tid: self._blueprints[tid] for tid in template_ids if tid in self._blueprints}

    # ------------------------------------------------------------------
    # DependencyGraphStore (scope = task set)
    # ------------------------------------------------------------------

    def _task_set_or_raise(self, task_set_id: str) -> TaskSet:
        self._ensure_loaded()
        task_set = self._task_sets.get(task_set_id)
        if task_set is None:
            raise NotFoundError("TaskSet", task_set_id)
        return task_set

    async def load_edges(self, scope_id: str, conn: Any = None) -> Dict[str, List[str]]:
        """Edges of the task set's blueprints and of everything they reach."""
        task_set = self._task_set_or_raise(scope_id)
        edges: Dict[str, List[str]] = {}
        pending = [tid for tid in task_set.template_ids if tid in self._blueprints]
        while pending:
            tid = pending.pop()
            if tid in edges:
                continue
            edges[tid] = list(self._blueprints[tid].dependencies)
            pending.extend(d for d in edges[tid] if d in self._blueprints and d not in edges)
        return edges

    async def scope_members(self, scope_id: str, conn: Any = None) -> Optional[List[str]]:
        return list(self._task_set_or_raise(scope_id).template_ids)

    async def add_edge(self, scope_id: str, node_id: str, dependency_id: str, conn: Any = None) -> None:
        task_set = self._task_set_or_raise(scope_id)
        for tid in (node_id, dependency_id):
            if tid not in task_set.template_ids:
                raise NotFoundError("TaskTemplate", tid, referenced_by=f"task set {scope_id}")
        blueprint = self._blueprints[node_id]
        if dependency_id not in blueprint.dependencies:
            self._blueprints[node_id] = blueprint.model_copy(
                update={"dependencies": blueprint.dependencies + [dependency_id]}
            )

    async def delete_node(self, scope_id: str, node_id: str, conn: Any = None) -> None:
        task_set = self._task_set_or_raise(scope_id)
        self._task_sets[scope_id] = task_set.model_copy(
            update={"template_ids": [t for t in task_set.template_ids if t != node_id]}
        )


# ============================================================================
# SINGLETON
# ============================================================================

_instance: Optional[TemplateCatalog] = None


def get_template_catalog() -> TemplateCatalog:
    """Get singleton catalog instance."""
    global _instance
    if _instance is None:
        _instance = TemplateCatalog()
    return _instance


__all__ = ["TemplateCatalog", "get_template_catalog"]
