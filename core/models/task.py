# ============================================================================
# CLAUDE CONTEXT - TASK MODEL
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core model - Concrete task instances
# PURPOSE: Define what instantiation emits and the task layer persists
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: Task
# DEPENDENCIES: pydantic
# ============================================================================
"""
Task Model

Task = a concrete, schedulable unit of work created from a blueprint.

Created once by the instantiation orchestrator; afterwards owned and
mutated by the task-management layer (status, actual dates, costs).
Dependencies are task ids within the same project.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from core.contracts import TaskStatus


class Task(BaseModel):
    """A scheduled task instance."""
    task_id: str = Field(..., max_length=64)
    project_id: str = Field(..., max_length=64)
    template_id: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Blueprint this task was created from",
    )
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    start_date: date
    end_date: date
    budget: float = Field(default=0.0, ge=0)
    dependencies: List[str] = Field(default_factory=list)
    status: TaskStatus = TaskStatus.NOT_STARTED

    @model_validator(mode="after")
    def check_dates(self) -> "Task":
        if self.start_date > self.end_date:
            raise ValueError("Start date cannot be after end date")
        return self

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the collaborator-facing field names."""
        return {
            "id": self.task_id,
            "projectId": self.project_id,
            "templateId": self.template_id,
            "name": self.name,
            "description": self.description,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "budget": self.budget,
            "dependencies": list(self.dependencies),
            "status": self.status.value,
        }


__all__ = ["Task"]
