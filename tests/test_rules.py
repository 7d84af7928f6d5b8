# ============================================================================
# RULE RESOLVER TESTS
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Tests - Applicability and budget selection
# PURPOSE: Verify AND/OR semantics, rule precedence and budget kinds
# CREATED: 19 OCT 2026
# ============================================================================
"""
Rule Resolver Tests

Run with:
    pytest tests/test_rules.py -v
"""

import pytest

from core.contracts import AnswerKind
from core.errors import EvaluationError, NotFoundError, ValidationError
from core.models import Question, TaskTemplate
from orchestrator.engine.rules import RuleResolver


# ============================================================================
# HELPERS
# ============================================================================

def _questions():
    return {
        "bedrooms": Question(question_id="bedrooms", text="Bedrooms", answer_kind=AnswerKind.NUMBER),
        "squareFootage": Question(
            question_id="squareFootage", text="Area", answer_kind=AnswerKind.NUMBER,
        ),
        "foundation": Question(
            question_id="foundation",
            text="Foundation",
            answer_kind=AnswerKind.SELECT,
            options=["slab", "basement"],
        ),
        "notes": Question(question_id="notes", text="Notes", answer_kind=AnswerKind.TEXT),
    }


def _blueprint(**overrides):
    data = {"template_id": "bp", "name": "Blueprint", "duration": 5}
    data.update(overrides)
    return TaskTemplate(**data)


def _rule(conditions, **budget):
    return {"conditions": conditions, "budget": budget}


def _resolve(blueprint, answers):
    return RuleResolver(_questions()).resolve(blueprint, answers)


# ============================================================================
# APPLICABILITY
# ============================================================================

class TestApplicability:

    def test_no_rules_always_applies(self):
        result = _resolve(_blueprint(default_budget=750), {})
        assert result.applicable is True
        assert result.budget == 750
        assert result.matched_rule_index is None

    def test_extra_bathroom_included(self):
        bp = _blueprint(
            template_id="extra_bathroom",
            budget_rules=[_rule(
                [{"question_id": "bedrooms", "operator": "greater_than", "value": 3}],
                kind="fixed", amount=5000,
            )],
        )
        result = _resolve(bp, {"bedrooms": 4})
        assert result.applicable is True
        assert result.budget == 5000
        assert result.matched_rule_index == 0

    def test_extra_bathroom_excluded(self):
        bp = _blueprint(
            template_id="extra_bathroom",
            budget_rules=[_rule(
                [{"question_id": "bedrooms", "operator": "greater_than", "value": 3}],
                kind="fixed", amount=5000,
            )],
            default_budget=100,
        )
        result = _resolve(bp, {"bedrooms": 2})
        assert result.applicable is False
        assert result.budget == 0

    def test_and_within_group(self):
        bp = _blueprint(display_groups=[{"conditions": [
            {"question_id": "bedrooms", "operator": "greater_than", "value": 2},
            {"question_id": "foundation", "operator": "equals", "value": "basement"},
        ]}])
        assert _resolve(bp, {"bedrooms": 3, "foundation": "basement"}).applicable is True
        assert _resolve(bp, {"bedrooms": 3, "foundation": "slab"}).applicable is False

    def test_or_across_groups(self):
        bp = _blueprint(display_groups=[
            {"conditions": [{"question_id": "bedrooms", "operator": "greater_than", "value": 4}]},
            {"conditions": [{"question_id": "foundation", "operator": "equals", "value": "basement"}]},
        ])
        assert _resolve(bp, {"bedrooms": 2, "foundation": "basement"}).applicable is True
        assert _resolve(bp, {"bedrooms": 5, "foundation": "slab"}).applicable is True
        assert _resolve(bp, {"bedrooms": 2, "foundation": "slab"}).applicable is False

    def test_flat_display_conditions_form_one_group(self):
        bp = _blueprint(display_groups=[
            {"question_id": "bedrooms", "operator": "greater_than", "value": 2},
            {"question_id": "foundation", "operator": "equals", "value": "basement"},
        ])
        assert len(bp.display_groups) == 1
        assert _resolve(bp, {"bedrooms": 3, "foundation": "slab"}).applicable is False

    def test_display_group_match_keeps_default_budget(self):
        bp = _blueprint(
            display_groups=[{"conditions": [
                {"question_id": "foundation", "operator": "equals", "value": "slab"},
            ]}],
            budget_rules=[_rule(
                [{"question_id": "bedrooms", "operator": "greater_than", "value": 3}],
                kind="fixed", amount=5000,
            )],
            default_budget=1200,
        )
        result = _resolve(bp, {"foundation": "slab", "bedrooms": 2})
        assert result.applicable is True
        assert result.budget == 1200
        assert result.matched_rule_index is None

    def test_missing_answer_excludes(self):
        bp = _blueprint(display_groups=[{"conditions": [
            {"question_id": "notes", "operator": "not_contains", "value": "skip"},
        ]}])
        assert _resolve(bp, {}).applicable is False


# ============================================================================
# BUDGETS
# ============================================================================

class TestBudgetSelection:

    def test_first_matching_rule_wins(self):
        bp = _blueprint(budget_rules=[
            _rule([{"question_id": "bedrooms", "operator": "greater_than", "value": 1}],
                  kind="fixed", amount=111),
            _rule([{"question_id": "bedrooms", "operator": "greater_than", "value": 2}],
                  kind="fixed", amount=222),
        ])
        result = _resolve(bp, {"bedrooms": 5})
        assert result.budget == 111
        assert result.matched_rule_index == 0

    def test_later_rule_when_earlier_fails(self):
        bp = _blueprint(budget_rules=[
            _rule([{"question_id": "bedrooms", "operator": "greater_than", "value": 9}],
                  kind="fixed", amount=111),
            _rule([{"question_id": "bedrooms", "operator": "greater_than", "value": 2}],
                  kind="fixed", amount=222),
        ])
        result = _resolve(bp, {"bedrooms": 5})
        assert result.budget == 222
        assert result.matched_rule_index == 1

    def test_per_unit(self):
        bp = _blueprint(budget_rules=[
            _rule([], kind="per_unit", amount=2, unit_question_id="squareFootage"),
        ])
        assert _resolve(bp, {"squareFootage": 2000}).budget == 4000

    def test_per_unit_missing_answer_uses_rule_default(self):
        bp = _blueprint(budget_rules=[
            _rule([], kind="per_unit", amount=2, unit_question_id="squareFootage",
                  default_amount=900),
        ])
        assert _resolve(bp, {}).budget == 900

    def test_formula(self):
        bp = _blueprint(budget_rules=[
            _rule([], kind="formula", formula="${squareFootage} * 1.5 + 1000"),
        ])
        assert _resolve(bp, {"squareFootage": 2000}).budget == 4000

    def test_formula_failure_uses_default_with_warning(self):
        bp = _blueprint(budget_rules=[
            _rule([], kind="formula", formula="1000 / ${squareFootage}", default_amount=450),
        ])
        result = _resolve(bp, {"squareFootage": 0})
        assert result.budget == 450
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert isinstance(warning, EvaluationError)
        assert warning.template_id == "bp"
        assert warning.to_dict()["kind"] == "evaluation_error"

    def test_negative_result_uses_default_with_warning(self):
        bp = _blueprint(budget_rules=[
            _rule([], kind="formula", formula="500 - ${squareFootage}", default_amount=50),
        ])
        result = _resolve(bp, {"squareFootage": 2000})
        assert result.budget == 50
        assert isinstance(result.warnings[0], ValidationError)

    def test_overflowing_formula_uses_default_with_warning(self):
        bp = _blueprint(budget_rules=[
            _rule([], kind="formula", formula="(1e999)", default_amount=7),
        ])
        result = _resolve(bp, {})
        assert result.budget == 7
        assert isinstance(result.warnings[0], EvaluationError)

    def test_overflowing_per_unit_uses_default_with_warning(self):
        bp = _blueprint(budget_rules=[
            _rule([], kind="per_unit", amount=1e308, unit_question_id="squareFootage",
                  default_amount=9),
        ])
        result = _resolve(bp, {"squareFootage": 10})
        assert result.budget == 9
        assert isinstance(result.warnings[0], ValidationError)

    def test_resolve_is_deterministic(self):
        bp = _blueprint(budget_rules=[
            _rule([{"question_id": "bedrooms", "operator": "greater_than", "value": 3}],
                  kind="formula", formula="${squareFootage} * 3"),
        ])
        resolver = RuleResolver(_questions())
        answers = {"bedrooms": 4, "squareFootage": 1800}
        assert resolver.resolve(bp, answers) == resolver.resolve(bp, answers)


# ============================================================================
# VALIDATION
# ============================================================================

class TestValidateBlueprint:

    def test_valid_blueprint(self):
        bp = _blueprint(budget_rules=[
            _rule([{"question_id": "bedrooms", "operator": "greater_than", "value": 3}],
                  kind="formula", formula="${squareFootage} * 3"),
        ])
        assert RuleResolver(_questions()).validate_blueprint(bp) == []

    def test_collects_every_problem(self):
        bp = _blueprint(
            display_groups=[{"conditions": [
                {"question_id": "garage", "operator": "equals", "value": True},
                {"question_id": "notes", "operator": "greater_than", "value": "a"},
            ]}],
            budget_rules=[
                _rule([], kind="per_unit", amount=2, unit_question_id="foundation"),
                _rule([], kind="formula", formula="${pool} * 2"),
                _rule([], kind="formula", formula="3 +"),
            ],
        )
        errors = RuleResolver(_questions()).validate_blueprint(bp)
        kinds = [type(e) for e in errors]
        assert kinds == [
            NotFoundError,       # garage
            ValidationError,     # greater_than on text
            ValidationError,     # per-unit on a select question
            NotFoundError,       # ${pool}
            EvaluationError,     # syntax
        ]
        assert all(
            getattr(e, "entity_id", None) == "bp" or getattr(e, "template_id", None) == "bp"
            or "bp" in (getattr(e, "referenced_by", "") or "")
            for e in errors
        )

    def test_resolve_raises_for_unbindable_condition(self):
        bp = _blueprint(display_groups=[{"conditions": [
            {"question_id": "garage", "operator": "equals", "value": True},
        ]}])
        with pytest.raises(NotFoundError):
            _resolve(bp, {})
