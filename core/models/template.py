# ============================================================================
# CLAUDE CONTEXT - TEMPLATE / BLUEPRINT MODELS
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core model - Task blueprints, rules, task sets, project templates
# PURPOSE: Define the reusable template that instantiation consumes
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: Condition, DisplayCondition, DisplayConditionGroup, BudgetSpec,
#          BudgetRule, TaskTemplate, TaskSet, ProjectTemplate, TemplateBundle
# DEPENDENCIES: pydantic
# ============================================================================
"""
Template Models

A TaskTemplate (blueprint) is the TEMPLATE for a task.
Task (in task.py) is the INSTANCE created from it.

Blueprints reference questions and other blueprints by id only. A
TemplateBundle holds everything one instantiation needs in lookup tables
keyed by id (an arena), so nothing is nested or eagerly populated.

Rule shape:
- DisplayConditionGroup: AND of display conditions (show/hide)
- BudgetRule: AND of conditions plus a BudgetSpec
Groups and rules are OR-ed together for applicability; budget rules are
tried in declaration order for the budget.
"""

from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, Field, field_validator, model_validator

from core.contracts import (
    BudgetKind,
    ConditionAction,
    ConditionOperator,
    DurationBasis,
)
from core.errors import NotFoundError
from core.models.question import Question, Questionnaire


class Condition(BaseModel):
    """A single (question, operator, value) test."""
    question_id: str = Field(..., max_length=64)
    operator: ConditionOperator
    value: Any = None

    model_config = {"frozen": True}


class DisplayCondition(Condition):
    """Condition with a show/hide action."""
    action: ConditionAction = ConditionAction.SHOW


class DisplayConditionGroup(BaseModel):
    """AND-combined display conditions."""
    conditions: List[DisplayCondition] = Field(default_factory=list)

    model_config = {"frozen": True}


class BudgetSpec(BaseModel):
    """
    How a matched rule computes a budget.

    - fixed: amount
    - per_unit: amount x answer of unit_question_id
    - formula: arithmetic over ${questionId} placeholders
    default_amount is used when the unit answer is missing or the formula fails.
    """
    kind: BudgetKind = BudgetKind.FIXED
    amount: float = Field(default=0.0, ge=0)
    unit_question_id: Optional[str] = None
    formula: Optional[str] = None
    default_amount: float = Field(default=0.0, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_kind_fields(self) -> "BudgetSpec":
        if self.kind == BudgetKind.PER_UNIT and not self.unit_question_id:
            raise ValueError("per_unit budget requires unit_question_id")
        if self.kind == BudgetKind.FORMULA and not (self.formula or "").strip():
            raise ValueError("formula budget requires a formula")
        return self


class BudgetRule(BaseModel):
    """AND-combined conditions paired with a budget specification."""
    conditions: List[Condition] = Field(default_factory=list)
    budget: BudgetSpec

    model_config = {"frozen": True}


class TaskTemplate(BaseModel):
    """
    Blueprint for a conditionally-applicable task.

    This is the TEMPLATE - what the task looks like if it applies.
    """
    template_id: str = Field(..., max_length=64)
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    duration: int = Field(default=0, ge=0, description="Duration in days")
    duration_basis: DurationBasis = DurationBasis.FROM_PROJECT_START
    display_groups: List[DisplayConditionGroup] = Field(default_factory=list)
    budget_rules: List[BudgetRule] = Field(default_factory=list)
    default_budget: float = Field(default=0.0, ge=0)
    dependencies: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("display_groups", mode="before")
    @classmethod
    def wrap_flat_conditions(cls, v):
        """Accept a flat condition list (persisted shape) as one AND group."""
        if isinstance(v, list) and v and all(
            isinstance(item, (dict, DisplayCondition)) and not _is_group(item)
            for item in v
        ):
            return [{"conditions": v}]
        return v

    @field_validator("dependencies", mode="before")
    @classmethod
    def handle_string_input(cls, v):
        """Allow single string as shorthand for single-item list."""
        if isinstance(v, str):
            return [v]
        return v

    @property
    def has_rules(self) -> bool:
        return bool(self.display_groups or self.budget_rules)

    def referenced_question_ids(self) -> Set[str]:
        """Every question id this blueprint's rules depend on."""
        ids: Set[str] = set()
        for group in self.display_groups:
            ids.update(c.question_id for c in group.conditions)
        for rule in self.budget_rules:
            ids.update(c.question_id for c in rule.conditions)
            if rule.budget.unit_question_id:
                ids.add(rule.budget.unit_question_id)
        return ids


def _is_group(item: Any) -> bool:
    if isinstance(item, DisplayConditionGroup):
        return True
    return isinstance(item, dict) and "conditions" in item


class TaskSet(BaseModel):
    """Ordered blueprint ids; the order is the default display order."""
    task_set_id: str = Field(..., max_length=64)
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    template_ids: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class ProjectTemplate(BaseModel):
    """Pairs a questionnaire with a task set."""
    project_template_id: str = Field(..., max_length=64)
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    questionnaire_id: str
    task_set_id: str

    model_config = {"frozen": True}


class TemplateBundle(BaseModel):
    """
    Everything one instantiation reads, keyed by id.

    Built by a TemplateRepository; the engine never fetches on its own.
    """
    project_template: ProjectTemplate
    questionnaire: Questionnaire
    questions: Dict[str, Question] = Field(default_factory=dict)
    task_set: TaskSet
    blueprints: Dict[str, TaskTemplate] = Field(default_factory=dict)

    def ordered_questions(self) -> List[Question]:
        """Questionnaire questions in declared order."""
        result = []
        for question_id in self.questionnaire.question_ids:
            question = self.questions.get(question_id)
            if question is None:
                raise NotFoundError(
                    "Question",
                    question_id,
                    referenced_by=f"questionnaire {self.questionnaire.questionnaire_id}",
                )
            result.append(question)
        return result

    def ordered_blueprints(self) -> List[TaskTemplate]:
        """Task set blueprints in declared order."""
        result = []
        for template_id in self.task_set.template_ids:
            blueprint = self.blueprints.get(template_id)
            if blueprint is None:
                raise NotFoundError(
                    "TaskTemplate",
                    template_id,
                    referenced_by=f"task set {self.task_set.task_set_id}",
                )
            result.append(blueprint)
        return result


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "Condition",
    "DisplayCondition",
    "DisplayConditionGroup",
    "BudgetSpec",
    "BudgetRule",
    "TaskTemplate",
    "TaskSet",
    "ProjectTemplate",
    "TemplateBundle",
]
