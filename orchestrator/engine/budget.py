# ============================================================================
# BUDGET AGGREGATION
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Weekly forecast/actual roll-up
# PURPOSE: Normalize reporting weeks and pivot budget entries per project
# CREATED: 19 OCT 2026
# ============================================================================
"""
Budget Aggregation

Weekly roll-up of forecast and actual entries:

    entries -> filter to week (and project) -> group by (project, type)
            -> pivot to one row per project -> sort by name -> totals

Stateless; the budget service fetches entries and project names and hands
them in.
"""

from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from core.contracts import BudgetEntryType, TaskStatus
from core.logging import ComponentType, get_logger
from core.models import (
    BudgetEntry,
    BudgetSummary,
    BudgetSummaryRow,
    BudgetTotals,
    Task,
    WeekWindow,
)

logger = get_logger(__name__, ComponentType.ENGINE)


def normalize_week(value: Union[date, datetime, WeekWindow]) -> WeekWindow:
    """
    Monday 00:00:00.000 through Sunday 23:59:59.999 of the given date's week.

    Idempotent: normalizing a window start yields the same window.
    """
    return WeekWindow.containing(value)


def _inside(entry: BudgetEntry, window: WeekWindow) -> bool:
    if (entry.week_start.tzinfo is None) != (window.week_start.tzinfo is None):
        # Mixed naive/aware: compare calendar days
        return (
            window.week_start.date() <= entry.week_start.date()
            and entry.week_end.date() <= window.week_end.date()
        )
    return window.week_start <= entry.week_start and entry.week_end <= window.week_end


def summarize_week(
    entries: Iterable[BudgetEntry],
    week_of: Union[date, datetime, WeekWindow],
    project_names: Mapping[str, str],
    project_id: Optional[str] = None,
) -> BudgetSummary:
    """
    Roll up one week of budget entries.

    Args:
        entries: Candidate entries (may span more than the week)
        week_of: Any moment inside the target week
        project_names: project_id -> display name; projects missing here
            are dropped from the result
        project_id: Restrict to one project

    Returns:
        BudgetSummary with rows sorted by project name
    """
    window = normalize_week(week_of)

    sums: Dict[Tuple[str, BudgetEntryType], float] = defaultdict(float)
    for entry in entries:
        if project_id is not None and entry.project_id != project_id:
            continue
        if not _inside(entry, window):
            continue
        sums[(entry.project_id, entry.type)] += entry.amount

    rows: Dict[str, BudgetSummaryRow] = {}
    for (pid, entry_type), amount in sums.items():
        name = project_names.get(pid)
        if name is None:
            logger.warning(f"Dropping budget entries for unknown project {pid}")
            continue
        row = rows.setdefault(pid, BudgetSummaryRow(project_id=pid, project_name=name))
        if entry_type == BudgetEntryType.FORECAST:
            row.forecast += amount
        else:
            row.actual += amount

    ordered = sorted(rows.values(), key=lambda r: (r.project_name, r.project_id))
    totals = BudgetTotals(
        forecast=sum(r.forecast for r in ordered),
        actual=sum(r.actual for r in ordered),
    )
    return BudgetSummary(
        week_start=window.week_start,
        week_end=window.week_end,
        rows=ordered,
        totals=totals,
    )


def count_tasks_due(
    tasks: Iterable[Task],
    week_of: Union[date, datetime, WeekWindow],
) -> Dict[str, int]:
    """Count tasks by status whose end date falls inside the week."""
    window = normalize_week(week_of)
    counts = {status.value: 0 for status in TaskStatus}
    for task in tasks:
        if window.contains(task.end_date):
            counts[task.status.value] += 1
    return counts


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "normalize_week",
    "summarize_week",
    "count_tasks_due",
]
