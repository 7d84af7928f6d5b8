# ============================================================================
# CLAUDE CONTEXT - QUESTIONNAIRE MODELS
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core model - Questions, questionnaires, answer coercion
# PURPOSE: Define what a template asks and how answers are typed
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: Question, Questionnaire, AnswerSet, MISSING, is_blank, coerce_answer
# DEPENDENCIES: pydantic
# ============================================================================
"""
Questionnaire Models

A Question declares the kind of answer it accepts; a Questionnaire is an
ordered list of question ids. Questions are immutable once answered against,
so the models are frozen.

Answers arrive as loosely-typed caller data (form values, JSON). They are
coerced against their question's kind before any rule sees them.
"""

import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, model_validator

from core.contracts import AnswerKind
from core.errors import ValidationError


AnswerSet = Dict[str, Any]


class _Missing:
    """Sentinel for an absent answer (distinct from an answer of None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class Question(BaseModel):
    """A single questionnaire question."""
    question_id: str = Field(..., max_length=64)
    text: str = Field(..., min_length=1)
    answer_kind: AnswerKind
    required: bool = False
    options: List[str] = Field(default_factory=list)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    default_value: Optional[Union[bool, float, str, List[str]]] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_kind_fields(self) -> "Question":
        if self.answer_kind.has_options() and not self.options:
            raise ValueError(
                f"{self.answer_kind.value} question '{self.question_id}' "
                f"must have at least one option"
            )
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise ValueError(
                f"Question '{self.question_id}' has min_value > max_value"
            )
        return self


class Questionnaire(BaseModel):
    """Ordered collection of questions, referenced by id."""
    questionnaire_id: str = Field(..., max_length=64)
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    question_ids: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


# ============================================================================
# ANSWER HELPERS
# ============================================================================

def is_blank(value: Any) -> bool:
    """True for absent, None, empty/whitespace strings and empty lists."""
    if value is MISSING or value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def _invalid(question: Question, reason: str, value: Any) -> ValidationError:
    return ValidationError(
        f"Invalid answer for question '{question.question_id}': {reason}",
        field="answers",
        question_id=question.question_id,
        value=value,
    )


def coerce_answer(question: Question, value: Any) -> Any:
    """
    Coerce a raw answer to its question's kind.

    Numeric strings become floats, ISO strings become dates, "true"/"false"
    become booleans. Range, option and type violations raise
    ValidationError naming the question.
    """
    kind = question.answer_kind

    if kind.is_numeric():
        if isinstance(value, bool):
            raise _invalid(question, "expected a number", value)
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                raise _invalid(question, "expected a number", value)
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise _invalid(question, "expected a finite number", value)
        if question.min_value is not None and value < question.min_value:
            raise _invalid(question, f"below minimum {question.min_value}", value)
        if question.max_value is not None and value > question.max_value:
            raise _invalid(question, f"above maximum {question.max_value}", value)
        return value

    if kind == AnswerKind.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise _invalid(question, "expected a boolean", value)

    if kind == AnswerKind.DATE:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip()[:10])
            except ValueError:
                pass
        raise _invalid(question, "expected an ISO date", value)

    if kind == AnswerKind.MULTISELECT:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise _invalid(question, "expected a list of options", value)
        unknown = [v for v in value if v not in question.options]
        if unknown:
            raise _invalid(question, f"unknown options {unknown}", value)
        return list(value)

    # TEXT and SELECT are plain strings
    if not isinstance(value, str):
        raise _invalid(question, "expected text", value)
    if kind == AnswerKind.SELECT and value not in question.options:
        raise _invalid(question, f"'{value}' is not one of {question.options}", value)
    return value


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "AnswerSet",
    "MISSING",
    "Question",
    "Questionnaire",
    "is_blank",
    "coerce_answer",
]
