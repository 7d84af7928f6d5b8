# ============================================================================
# ORCHESTRATOR ENGINE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Engine components
# PURPOSE: Conditions, formulas, rules, dependency graphs, budget roll-up
# CREATED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Engine Components

- conditions: single-condition evaluation and typed binding
- formula: constrained arithmetic interpreter for budget formulas
- rules: blueprint applicability and budget selection
- graph: dependency graph validation and topological order
- budget: weekly forecast/actual aggregation

Everything here is synchronous and side-effect free.
"""

from orchestrator.engine.conditions import (
    BoundCondition,
    ComparisonValue,
    bind_condition,
    evaluate_condition,
)
from orchestrator.engine.formula import (
    evaluate_formula,
    parse_formula,
    placeholders,
)
from orchestrator.engine.rules import Resolution, RuleResolver
from orchestrator.engine.graph import DependencyGraph, EdgeCheck
from orchestrator.engine.budget import count_tasks_due, normalize_week, summarize_week

__all__ = [
    # Conditions
    "BoundCondition",
    "ComparisonValue",
    "bind_condition",
    "evaluate_condition",
    # Formula
    "evaluate_formula",
    "parse_formula",
    "placeholders",
    # Rules
    "Resolution",
    "RuleResolver",
    # Graph
    "DependencyGraph",
    "EdgeCheck",
    # Budget
    "normalize_week",
    "summarize_week",
    "count_tasks_due",
]
