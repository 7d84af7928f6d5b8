# ============================================================================
# CLAUDE CONTEXT - MODELS MODULE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the template instantiation engine.

Template side (what authors define):
    Question, Questionnaire, TaskTemplate, TaskSet, ProjectTemplate
Instance side (what instantiation and bookkeeping produce):
    Task, BudgetEntry, BudgetSummary
"""

from core.models.question import (
    AnswerSet,
    MISSING,
    Question,
    Questionnaire,
    coerce_answer,
    is_blank,
)
from core.models.template import (
    Condition,
    DisplayCondition,
    DisplayConditionGroup,
    BudgetSpec,
    BudgetRule,
    TaskTemplate,
    TaskSet,
    ProjectTemplate,
    TemplateBundle,
)
from core.models.task import Task
from core.models.budget import (
    WeekWindow,
    BudgetEntry,
    BudgetSummaryRow,
    BudgetTotals,
    BudgetSummary,
)

__all__ = [
    # Questionnaire
    "AnswerSet",
    "MISSING",
    "Question",
    "Questionnaire",
    "coerce_answer",
    "is_blank",
    # Template
    "Condition",
    "DisplayCondition",
    "DisplayConditionGroup",
    "BudgetSpec",
    "BudgetRule",
    "TaskTemplate",
    "TaskSet",
    "ProjectTemplate",
    "TemplateBundle",
    # Task
    "Task",
    # Budget
    "WeekWindow",
    "BudgetEntry",
    "BudgetSummaryRow",
    "BudgetTotals",
    "BudgetSummary",
]
