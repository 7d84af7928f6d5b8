# ============================================================================
# CONDITION EVALUATOR
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Single-condition evaluation
# PURPOSE: Evaluate (answer, operator, value) triples with typed values
# CREATED: 19 OCT 2026
# ============================================================================
"""
Condition Evaluator

Evaluates one condition against one answer.

Semantics:
- equals / not_equals: strict scalar equality. Numbers compare numerically,
  strings case-sensitively, booleans only against booleans.
- greater_than / less_than: both sides coerced to number; false if either
  side is not numeric.
- contains / not_contains: substring on strings, membership on lists.
- A missing answer never satisfies a condition, whatever the operator.

Condition values are persisted untyped. Binding a condition to its question
turns the value into a tagged variant keyed by the question's answer kind
and rejects operators that make no sense for that kind.
"""

import math
from datetime import date, datetime
from typing import Annotated, Any, Callable, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field

from core.contracts import AnswerKind, ConditionAction, ConditionOperator
from core.errors import NotFoundError, ValidationError
from core.logging import ComponentType, get_logger
from core.models import Condition, DisplayCondition, MISSING, Question

logger = get_logger(__name__, ComponentType.ENGINE)


# ============================================================================
# PRIMITIVES
# ============================================================================

def as_number(value: Any) -> Optional[float]:
    """Coerce to a finite float, or None if not numeric (booleans are not)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion (except int/float)."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(
            strict_equals(a, b) for a, b in zip(left, right)
        )
    return type(left) is type(right) and left == right


def _contains(answer: Any, value: Any) -> Optional[bool]:
    """Substring/membership test; None when the answer is not a container."""
    if isinstance(answer, str):
        return value in answer if isinstance(value, str) else None
    if isinstance(answer, (list, tuple, set)):
        return any(strict_equals(item, value) for item in answer)
    return None


def _compare(answer: Any, value: Any, check: Callable[[float, float], bool]) -> bool:
    left, right = as_number(answer), as_number(value)
    if left is None or right is None:
        return False
    return check(left, right)


def _not_contains(answer: Any, value: Any) -> bool:
    result = _contains(answer, value)
    return result is not None and not result


OPERATORS: Dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: strict_equals,
    ConditionOperator.NOT_EQUALS: lambda a, b: not strict_equals(a, b),
    ConditionOperator.GREATER_THAN: lambda a, b: _compare(a, b, lambda x, y: x > y),
    ConditionOperator.LESS_THAN: lambda a, b: _compare(a, b, lambda x, y: x < y),
    ConditionOperator.CONTAINS: lambda a, b: bool(_contains(a, b)),
    ConditionOperator.NOT_CONTAINS: _not_contains,
}


def is_missing(answer: Any) -> bool:
    return answer is MISSING or answer is None


def evaluate_condition(
    answer: Any,
    operator: Union[ConditionOperator, str],
    value: Any,
) -> bool:
    """
    Evaluate a single condition.

    Args:
        answer: The answer value, or MISSING/None when unanswered
        operator: Comparison operator
        value: Comparison value

    Returns:
        True if the condition holds; always False for a missing answer
    """
    if is_missing(answer):
        return False
    return OPERATORS[ConditionOperator(operator)](answer, value)


# ============================================================================
# TAGGED COMPARISON VALUES
# ============================================================================

class TextValue(BaseModel):
    kind: Literal["text"] = "text"
    value: str


class NumberValue(BaseModel):
    kind: Literal["number"] = "number"
    value: float


class BooleanValue(BaseModel):
    kind: Literal["boolean"] = "boolean"
    value: bool


class DateValue(BaseModel):
    kind: Literal["date"] = "date"
    value: date


class ChoiceValue(BaseModel):
    kind: Literal["select"] = "select"
    value: str


class ChoicesValue(BaseModel):
    """Multiselect: one option for membership, a list for equality."""
    kind: Literal["multiselect"] = "multiselect"
    value: Union[str, List[str]]


ComparisonValue = Annotated[
    Union[TextValue, NumberValue, BooleanValue, DateValue, ChoiceValue, ChoicesValue],
    Field(discriminator="kind"),
]


class BoundCondition(BaseModel):
    """A condition checked against its question and carrying a typed value."""
    question_id: str
    operator: ConditionOperator
    value: ComparisonValue
    action: Optional[ConditionAction] = None

    model_config = {"frozen": True}

    def matches(self, answers: Mapping[str, Any]) -> bool:
        """
        Evaluate against an answer set.

        A HIDE display condition is satisfied when its comparison is false,
        but still never by a missing answer.
        """
        answer = answers.get(self.question_id, MISSING)
        if is_missing(answer):
            return False
        result = evaluate_condition(answer, self.operator, self.value.value)
        if self.action == ConditionAction.HIDE:
            return not result
        return result


def _bad_value(condition: Condition, question: Question, expected: str) -> ValidationError:
    return ValidationError(
        f"Condition on '{question.question_id}' needs {expected}, got {condition.value!r}",
        field="value",
        question_id=question.question_id,
    )


def _typed_value(condition: Condition, question: Question) -> BaseModel:
    kind = question.answer_kind
    raw = condition.value

    if kind.is_numeric():
        number = as_number(raw)
        if number is None:
            raise _bad_value(condition, question, "a number")
        return NumberValue(value=number)

    if kind == AnswerKind.BOOLEAN:
        if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
            raw = raw.strip().lower() == "true"
        if not isinstance(raw, bool):
            raise _bad_value(condition, question, "a boolean")
        return BooleanValue(value=raw)

    if kind == AnswerKind.DATE:
        if isinstance(raw, datetime):
            return DateValue(value=raw.date())
        if isinstance(raw, date):
            return DateValue(value=raw)
        try:
            return DateValue(value=date.fromisoformat(str(raw)[:10]))
        except ValueError:
            raise _bad_value(condition, question, "an ISO date")

    if kind == AnswerKind.MULTISELECT:
        membership = condition.operator in (
            ConditionOperator.CONTAINS,
            ConditionOperator.NOT_CONTAINS,
        )
        if membership:
            if not isinstance(raw, str) or raw not in question.options:
                raise _bad_value(condition, question, f"one of {question.options}")
            return ChoicesValue(value=raw)
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list) or any(v not in question.options for v in raw):
            raise _bad_value(condition, question, f"a list drawn from {question.options}")
        return ChoicesValue(value=raw)

    if not isinstance(raw, str):
        raise _bad_value(condition, question, "text")
    if kind == AnswerKind.SELECT:
        if condition.operator in (ConditionOperator.EQUALS, ConditionOperator.NOT_EQUALS) \
                and raw not in question.options:
            raise _bad_value(condition, question, f"one of {question.options}")
        return ChoiceValue(value=raw)
    return TextValue(value=raw)


def bind_condition(
    condition: Condition,
    questions: Mapping[str, Question],
) -> BoundCondition:
    """
    Bind a persisted condition to its question.

    Raises:
        NotFoundError: Question does not exist
        ValidationError: Operator not allowed for the kind, or bad value
    """
    question = questions.get(condition.question_id)
    if question is None:
        raise NotFoundError("Question", condition.question_id, referenced_by="condition")

    if condition.operator not in question.answer_kind.allowed_operators():
        raise ValidationError(
            f"Operator '{condition.operator.value}' is not allowed for "
            f"{question.answer_kind.value} question '{question.question_id}'",
            field="operator",
            question_id=question.question_id,
        )

    action = condition.action if isinstance(condition, DisplayCondition) else None
    return BoundCondition(
        question_id=condition.question_id,
        operator=condition.operator,
        value=_typed_value(condition, question),
        action=action,
    )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "OPERATORS",
    "as_number",
    "strict_equals",
    "is_missing",
    "evaluate_condition",
    "TextValue",
    "NumberValue",
    "BooleanValue",
    "DateValue",
    "ChoiceValue",
    "ChoicesValue",
    "ComparisonValue",
    "BoundCondition",
    "bind_condition",
]
