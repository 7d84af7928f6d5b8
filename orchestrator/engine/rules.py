# ============================================================================
# RULE RESOLVER
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Blueprint applicability and budget selection
# PURPOSE: Decide per blueprint whether it applies and what it costs
# CREATED: 19 OCT 2026
# ============================================================================
"""
Rule Resolver

For one blueprint and a full answer set:

Applicability
    A blueprint with no display groups and no budget rules always applies.
    Otherwise it applies iff at least one display group or budget rule has
    every one of its conditions satisfied (AND within, OR across). When
    nothing matches the blueprint is excluded; there is no fallback.

Budget
    Budget rules are tried in declaration order and the first fully
    matching rule wins. No match means the blueprint's default_budget.
    A rule computes fixed, per-unit or formula amounts; recoverable
    problems fall back to the rule's default_amount and leave a warning.

The resolver is stateless apart from its question table and a per-blueprint
cache of bound conditions.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.contracts import BudgetKind
from core.errors import EvaluationError, NotFoundError, PlanningError, ValidationError
from core.logging import ComponentType, get_logger
from core.models import BudgetSpec, Condition, Question, TaskTemplate
from orchestrator.engine.conditions import (
    BoundCondition,
    as_number,
    bind_condition,
    is_missing,
)
from orchestrator.engine.formula import evaluate_formula, parse_formula, placeholders

logger = get_logger(__name__, ComponentType.ENGINE)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class Resolution:
    """Outcome of resolving one blueprint."""
    template_id: str
    applicable: bool
    budget: float = 0.0
    # Index into budget_rules of the rule that set the budget; None = default
    matched_rule_index: Optional[int] = None
    warnings: List[PlanningError] = field(default_factory=list)


@dataclass
class _BoundBlueprint:
    groups: List[List[BoundCondition]]
    rules: List[List[BoundCondition]]


# ============================================================================
# RESOLVER
# ============================================================================

class RuleResolver:
    """Evaluates a blueprint's display groups and budget rules."""

    def __init__(self, questions: Mapping[str, Question]):
        self.questions = questions
        self._cache: Dict[str, _BoundBlueprint] = {}

    def _bind(self, blueprint: TaskTemplate) -> _BoundBlueprint:
        bound = self._cache.get(blueprint.template_id)
        if bound is None:
            bound = _BoundBlueprint(
                groups=[
                    [bind_condition(c, self.questions) for c in group.conditions]
                    for group in blueprint.display_groups
                ],
                rules=[
                    [bind_condition(c, self.questions) for c in rule.conditions]
                    for rule in blueprint.budget_rules
                ],
            )
            self._cache[blueprint.template_id] = bound
        return bound

    def resolve(self, blueprint: TaskTemplate, answers: Mapping[str, Any]) -> Resolution:
        """
        Resolve applicability and budget for a blueprint.

        Raises:
            NotFoundError / ValidationError: A condition cannot be bound
                (run validate_blueprint first to collect these instead)
        """
        if not blueprint.has_rules:
            return Resolution(
                template_id=blueprint.template_id,
                applicable=True,
                budget=blueprint.default_budget,
            )

        bound = self._bind(blueprint)
        group_hits = [all(c.matches(answers) for c in group) for group in bound.groups]
        rule_hits = [all(c.matches(answers) for c in rule) for rule in bound.rules]

        if not any(group_hits) and not any(rule_hits):
            logger.debug(f"Blueprint {blueprint.template_id} excluded: no rule matched")
            return Resolution(template_id=blueprint.template_id, applicable=False)

        resolution = Resolution(
            template_id=blueprint.template_id,
            applicable=True,
            budget=blueprint.default_budget,
        )
        for index, hit in enumerate(rule_hits):
            if hit:
                resolution.matched_rule_index = index
                resolution.budget = self.compute_budget(
                    blueprint.budget_rules[index].budget,
                    answers,
                    blueprint.template_id,
                    resolution.warnings,
                )
                break
        return resolution

    def compute_budget(
        self,
        spec: BudgetSpec,
        answers: Mapping[str, Any],
        template_id: str,
        warnings: List[PlanningError],
    ) -> float:
        """Compute a rule's amount; recoverable failures append to warnings."""
        if spec.kind == BudgetKind.FIXED:
            amount = spec.amount

        elif spec.kind == BudgetKind.PER_UNIT:
            answer = answers.get(spec.unit_question_id)
            if is_missing(answer):
                return spec.default_amount
            units = as_number(answer)
            if units is None:
                warnings.append(ValidationError(
                    f"Unit answer for '{spec.unit_question_id}' is not numeric",
                    field="budget",
                    question_id=spec.unit_question_id,
                    entity_id=template_id,
                ))
                return spec.default_amount
            amount = spec.amount * units

        else:
            try:
                amount = evaluate_formula(spec.formula, answers)
            except EvaluationError as e:
                logger.warning(f"Formula failed for {template_id}: {e.message}")
                warnings.append(EvaluationError(
                    e.message,
                    formula=spec.formula,
                    position=e.position,
                    template_id=template_id,
                ))
                return spec.default_amount

        if not math.isfinite(amount):
            logger.warning(f"Budget for {template_id} is not finite, using default")
            warnings.append(ValidationError(
                f"Computed budget {amount} is not finite; using default {spec.default_amount}",
                field="budget",
                entity_id=template_id,
            ))
            return spec.default_amount

        if amount < 0:
            logger.warning(f"Negative budget {amount} for {template_id}, using default")
            warnings.append(ValidationError(
                f"Computed budget {amount} is negative; using default {spec.default_amount}",
                field="budget",
                entity_id=template_id,
            ))
            return spec.default_amount
        return amount

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_blueprint(
        self,
        blueprint: TaskTemplate,
        questions: Optional[Mapping[str, Question]] = None,
    ) -> List[PlanningError]:
        """
        Collect every rule problem in a blueprint without raising.

        Checks condition binding, per-unit question kind, formula syntax
        and formula placeholders.
        """
        questions = self.questions if questions is None else questions
        template_id = blueprint.template_id
        errors: List[PlanningError] = []

        conditions: List[Condition] = []
        for group in blueprint.display_groups:
            conditions.extend(group.conditions)
        for rule in blueprint.budget_rules:
            conditions.extend(rule.conditions)

        for condition in conditions:
            try:
                bind_condition(condition, questions)
            except NotFoundError as e:
                errors.append(NotFoundError(
                    e.entity, e.entity_id, referenced_by=f"task template {template_id}",
                ))
            except ValidationError as e:
                errors.append(ValidationError(
                    e.message,
                    field=e.field,
                    question_id=e.question_id,
                    entity_id=template_id,
                ))

        for rule in blueprint.budget_rules:
            errors.extend(self._validate_spec(rule.budget, questions, template_id))

        return errors

    def _validate_spec(
        self,
        spec: BudgetSpec,
        questions: Mapping[str, Question],
        template_id: str,
    ) -> List[PlanningError]:
        errors: List[PlanningError] = []
        referenced: List[Tuple[str, str]] = []

        if spec.kind == BudgetKind.PER_UNIT:
            referenced.append((spec.unit_question_id, "unit_question_id"))
        elif spec.kind == BudgetKind.FORMULA:
            try:
                parse_formula(spec.formula)
            except EvaluationError as e:
                errors.append(EvaluationError(
                    e.message,
                    formula=spec.formula,
                    position=e.position,
                    template_id=template_id,
                ))
                return errors
            referenced.extend((qid, "formula") for qid in sorted(placeholders(spec.formula)))

        for question_id, field_name in referenced:
            question = questions.get(question_id)
            if question is None:
                errors.append(NotFoundError(
                    "Question", question_id, referenced_by=f"task template {template_id}",
                ))
            elif not question.answer_kind.is_numeric():
                errors.append(ValidationError(
                    f"Question '{question_id}' is {question.answer_kind.value}, not numeric",
                    field=field_name,
                    question_id=question_id,
                    entity_id=template_id,
                ))
        return errors


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "Resolution",
    "RuleResolver",
]
