# ============================================================================
# CLAUDE CONTEXT - ERROR TAXONOMY
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Foundation - Typed failures surfaced to callers
# PURPOSE: One exception family with structured, serializable details
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: PlanningError, ValidationError, DependencyInUseError,
#          CycleDetectedError, NotFoundError, EvaluationError
# ============================================================================
"""
Error Taxonomy

Every failure that leaves the engine is one of four kinds:

- ValidationError: missing required answer, malformed rule, negative amount
- CycleDetectedError: dependency cycle, names the offending path (fatal)
- NotFoundError: referenced question/blueprint/task is absent
- EvaluationError: formula failed to parse or evaluate (recovered locally)

Errors double as result entries: batch validation collects instances
instead of raising them, and `to_dict()` gives the caller ids, path and
field without a stack trace.
"""

from typing import Any, Dict, List, Optional


class PlanningError(Exception):
    """Base exception for the template instantiation engine."""

    kind: str = "planning_error"

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = {k: v for k, v in details.items() if v is not None}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for result payloads."""
        return {"kind": self.kind, "message": self.message, **self.details}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PlanningError):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash((self.kind, self.message))


class ValidationError(PlanningError):
    """Raised or collected when input or template data is invalid."""

    kind = "validation_error"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        question_id: Optional[str] = None,
        entity_id: Optional[str] = None,
        **details: Any,
    ):
        self.field = field
        self.question_id = question_id
        self.entity_id = entity_id
        super().__init__(
            message,
            field=field,
            question_id=question_id,
            entity_id=entity_id,
            **details,
        )


class DependencyInUseError(ValidationError):
    """Raised when removing a node that other nodes still depend on."""

    def __init__(self, node_id: str, dependents: List[str]):
        self.node_id = node_id
        self.dependents = list(dependents)
        super().__init__(
            f"Cannot remove '{node_id}': still a dependency of {self.dependents}",
            field="dependencies",
            entity_id=node_id,
            dependents=self.dependents,
        )


class CycleDetectedError(PlanningError):
    """Raised when a dependency edge would close (or a graph contains) a cycle."""

    kind = "cycle_detected"

    def __init__(self, cycle: List[str], message: Optional[str] = None):
        self.cycle = list(cycle)
        super().__init__(
            message or f"Dependency cycle detected: {' -> '.join(self.cycle)}",
            cycle=self.cycle,
        )


class NotFoundError(PlanningError):
    """Raised when a referenced entity does not exist."""

    kind = "not_found"

    def __init__(
        self,
        entity: str,
        entity_id: str,
        referenced_by: Optional[str] = None,
    ):
        self.entity = entity
        self.entity_id = entity_id
        self.referenced_by = referenced_by
        message = f"{entity} not found: {entity_id}"
        if referenced_by:
            message += f" (referenced by {referenced_by})"
        super().__init__(
            message,
            entity=entity,
            entity_id=entity_id,
            referenced_by=referenced_by,
        )


class EvaluationError(PlanningError):
    """Raised when a budget formula cannot be parsed or evaluated."""

    kind = "evaluation_error"

    def __init__(
        self,
        message: str,
        formula: Optional[str] = None,
        position: Optional[int] = None,
        template_id: Optional[str] = None,
    ):
        self.formula = formula
        self.position = position
        self.template_id = template_id
        super().__init__(
            message,
            formula=formula,
            position=position,
            template_id=template_id,
        )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "PlanningError",
    "ValidationError",
    "DependencyInUseError",
    "CycleDetectedError",
    "NotFoundError",
    "EvaluationError",
]
