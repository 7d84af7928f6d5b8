# ============================================================================
# CLAUDE CONTEXT - BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Foundation - Core enums shared by models and engine
# PURPOSE: Define answer kinds, operators, budget kinds and statuses
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: AnswerKind, ConditionOperator, ConditionAction, BudgetKind,
#          DurationBasis, TaskStatus, BudgetEntryType
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the template instantiation engine.

These enums cross every boundary:
- Persistence (PostgreSQL rows, YAML template files)
- Engine (condition evaluation, rule resolution, scheduling)
- Callers (serialized results)

Values are the persisted strings, so `.value` is what gets stored.
"""

from enum import Enum
from typing import FrozenSet


# ============================================================================
# QUESTIONNAIRE ENUMS
# ============================================================================

class AnswerKind(str, Enum):
    """Kinds of answers a question accepts."""
    TEXT = "text"
    NUMBER = "number"
    RANGE = "range"                # Numeric slider
    SELECT = "select"              # One of options
    MULTISELECT = "multiselect"    # Subset of options
    DATE = "date"
    BOOLEAN = "boolean"

    def is_numeric(self) -> bool:
        """Check if answers of this kind are numbers."""
        return self in (AnswerKind.NUMBER, AnswerKind.RANGE)

    def has_options(self) -> bool:
        """Check if answers of this kind are drawn from an option list."""
        return self in (AnswerKind.SELECT, AnswerKind.MULTISELECT)

    def allowed_operators(self) -> FrozenSet["ConditionOperator"]:
        """Comparison operators that make sense for this kind."""
        return _OPERATORS_BY_KIND[self]


class ConditionOperator(str, Enum):
    """Comparison operators for display conditions and budget rules."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"


class ConditionAction(str, Enum):
    """What a display condition does when it holds."""
    SHOW = "show"
    HIDE = "hide"


_EQUALITY = frozenset({ConditionOperator.EQUALS, ConditionOperator.NOT_EQUALS})
_ORDERING = frozenset({ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN})
_MEMBERSHIP = frozenset({ConditionOperator.CONTAINS, ConditionOperator.NOT_CONTAINS})

_OPERATORS_BY_KIND = {
    AnswerKind.TEXT: _EQUALITY | _MEMBERSHIP,
    AnswerKind.SELECT: _EQUALITY | _MEMBERSHIP,
    AnswerKind.MULTISELECT: _EQUALITY | _MEMBERSHIP,
    AnswerKind.NUMBER: _EQUALITY | _ORDERING,
    AnswerKind.RANGE: _EQUALITY | _ORDERING,
    AnswerKind.DATE: _EQUALITY,
    AnswerKind.BOOLEAN: _EQUALITY,
}


# ============================================================================
# BLUEPRINT ENUMS
# ============================================================================

class BudgetKind(str, Enum):
    """How a budget rule computes its amount."""
    FIXED = "fixed"          # Configured amount
    PER_UNIT = "per_unit"    # amount x numeric answer of the unit question
    FORMULA = "formula"      # Arithmetic over ${questionId} placeholders


class DurationBasis(str, Enum):
    """Anchor for a blueprint's start date."""
    FROM_PROJECT_START = "from_project_start"
    FROM_PREVIOUS_TASK = "from_previous_task"


# ============================================================================
# INSTANCE ENUMS
# ============================================================================

class TaskStatus(str, Enum):
    """
    Task lifecycle states.

    Instantiation always creates NOT_STARTED tasks; later transitions
    belong to the task-management layer.
    """
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self == TaskStatus.COMPLETED


class BudgetEntryType(str, Enum):
    """Budget entry flavours."""
    FORECAST = "forecast"
    ACTUAL = "actual"


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "AnswerKind",
    "ConditionOperator",
    "ConditionAction",
    "BudgetKind",
    "DurationBasis",
    "TaskStatus",
    "BudgetEntryType",
]
