# ============================================================================
# CLAUDE CONTEXT - CORE MODULE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors and models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from core.contracts import (
    AnswerKind,
    BudgetEntryType,
    BudgetKind,
    ConditionAction,
    ConditionOperator,
    DurationBasis,
    TaskStatus,
)
from core.errors import (
    CycleDetectedError,
    DependencyInUseError,
    EvaluationError,
    NotFoundError,
    PlanningError,
    ValidationError,
)
from core.models import (
    BudgetEntry,
    BudgetSummary,
    ProjectTemplate,
    Question,
    Questionnaire,
    Task,
    TaskSet,
    TaskTemplate,
    TemplateBundle,
)

__all__ = [
    # Enums
    "AnswerKind",
    "BudgetEntryType",
    "BudgetKind",
    "ConditionAction",
    "ConditionOperator",
    "DurationBasis",
    "TaskStatus",
    # Errors
    "PlanningError",
    "ValidationError",
    "DependencyInUseError",
    "CycleDetectedError",
    "NotFoundError",
    "EvaluationError",
    # Models
    "Question",
    "Questionnaire",
    "TaskTemplate",
    "TaskSet",
    "ProjectTemplate",
    "TemplateBundle",
    "Task",
    "BudgetEntry",
    "BudgetSummary",
]
