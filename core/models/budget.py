# ============================================================================
# CLAUDE CONTEXT - BUDGET MODELS
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core model - Budget entries and weekly summaries
# PURPOSE: Define persisted budget entries and the roll-up result shape
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: WeekWindow, BudgetEntry, BudgetSummaryRow, BudgetTotals, BudgetSummary
# DEPENDENCIES: pydantic
# ============================================================================
"""
Budget Models

Budget entries are forecast or actual amounts booked against a project
(and optionally a task) for one reporting week. Weeks always run Monday
00:00:00.000 through Sunday 23:59:59.999; entries snap to that window on
validation, whatever date they were created with.
"""

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, computed_field, model_validator

from core.contracts import BudgetEntryType


_END_OF_DAY = time(23, 59, 59, 999000)


class WeekWindow(BaseModel):
    """A Monday-anchored, 7-day reporting window."""
    week_start: datetime
    week_end: datetime

    model_config = {"frozen": True}

    @classmethod
    def containing(cls, value: Union[date, datetime, "WeekWindow"]) -> "WeekWindow":
        """
        Window containing the given date.

        Steps back to the most recent Monday (unchanged if already Monday)
        at 00:00:00.000; the end is 6 days later at 23:59:59.999. Timezone
        info on datetimes is preserved. Idempotent.
        """
        if isinstance(value, WeekWindow):
            value = value.week_start
        if isinstance(value, datetime):
            tzinfo = value.tzinfo
            day = value.date()
        else:
            tzinfo = None
            day = value

        monday = day - timedelta(days=day.weekday())
        sunday = monday + timedelta(days=6)
        return cls(
            week_start=datetime.combine(monday, time.min, tzinfo=tzinfo),
            week_end=datetime.combine(sunday, _END_OF_DAY, tzinfo=tzinfo),
        )

    def contains(self, moment: Union[date, datetime]) -> bool:
        """Check if a date or datetime falls inside the window."""
        if not isinstance(moment, datetime):
            return self.week_start.date() <= moment <= self.week_end.date()
        return self.week_start <= moment <= self.week_end

    def to_dict(self) -> Dict[str, str]:
        return {
            "weekStart": self.week_start.isoformat(),
            "weekEnd": self.week_end.isoformat(),
        }


class BudgetEntry(BaseModel):
    """A forecast or actual amount for one project week."""
    entry_id: str = Field(..., max_length=64)
    project_id: str = Field(..., max_length=64)
    task_id: Optional[str] = Field(default=None, max_length=64)
    description: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., ge=0)
    type: BudgetEntryType
    week_start: datetime
    week_end: Optional[datetime] = None

    @model_validator(mode="after")
    def snap_to_week(self) -> "BudgetEntry":
        # week_end is always derived from week_start
        window = WeekWindow.containing(self.week_start)
        self.week_start = window.week_start
        self.week_end = window.week_end
        return self

    @property
    def window(self) -> WeekWindow:
        return WeekWindow(week_start=self.week_start, week_end=self.week_end)


class BudgetSummaryRow(BaseModel):
    """Per-project forecast/actual totals for one week."""
    project_id: str
    project_name: str
    forecast: float = 0.0
    actual: float = 0.0

    @computed_field
    @property
    def variance(self) -> float:
        return self.forecast - self.actual

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectId": self.project_id,
            "projectName": self.project_name,
            "forecast": self.forecast,
            "actual": self.actual,
            "variance": self.variance,
        }


class BudgetTotals(BaseModel):
    """Grand totals across all summary rows."""
    forecast: float = 0.0
    actual: float = 0.0

    @computed_field
    @property
    def variance(self) -> float:
        return self.forecast - self.actual


class BudgetSummary(BaseModel):
    """Weekly budget roll-up result."""
    week_start: datetime
    week_end: datetime
    rows: List[BudgetSummaryRow] = Field(default_factory=list)
    totals: BudgetTotals = Field(default_factory=BudgetTotals)
    # Populated by the dashboard variant: task status -> count
    task_stats: Optional[Dict[str, int]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the collaborator-facing result shape."""
        result: Dict[str, Any] = {
            "weekStart": self.week_start.isoformat(),
            "weekEnd": self.week_end.isoformat(),
            "rows": [row.to_dict() for row in self.rows],
            "totals": {
                "forecast": self.totals.forecast,
                "actual": self.totals.actual,
            },
        }
        if self.task_stats is not None:
            result["taskStats"] = dict(self.task_stats)
        return result


__all__ = [
    "WeekWindow",
    "BudgetEntry",
    "BudgetSummaryRow",
    "BudgetTotals",
    "BudgetSummary",
]
