# ============================================================================
# BUDGET SERVICE
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Core - Budget bookkeeping and weekly roll-ups
# PURPOSE: Record budget entries and summarize a reporting week
# CREATED: 19 OCT 2026
# ============================================================================
"""
Budget Service

Reads entries for the normalized week, looks up project names and hands
both to the pure aggregation engine. The dashboard variant adds task
counts by status for tasks due that week.
"""

from datetime import date, datetime
from typing import Optional, Union

from core.logging import ComponentType, get_logger
from core.models import BudgetEntry, BudgetSummary, WeekWindow
from orchestrator.engine.budget import count_tasks_due, normalize_week, summarize_week
from repositories.interfaces import BudgetEntryRepository, ProjectRepository, TaskRepository

logger = get_logger(__name__, ComponentType.SERVICE)


class BudgetService:
    """Service for budget entries and weekly summaries."""

    def __init__(
        self,
        budget_repo: BudgetEntryRepository,
        project_repo: ProjectRepository,
        task_repo: Optional[TaskRepository] = None,
    ):
        """
        Initialize budget service.

        Args:
            budget_repo: Budget entry store
            project_repo: Project name lookup
            task_repo: Optional task store, needed for dashboard()
        """
        self.budget_repo = budget_repo
        self.project_repo = project_repo
        self.task_repo = task_repo

    async def record_entry(self, entry: BudgetEntry) -> BudgetEntry:
        """Persist an entry (already snapped to its week by validation)."""
        return await self.budget_repo.create(entry)

    async def weekly_summary(
        self,
        week_of: Union[date, datetime, WeekWindow],
        project_id: Optional[str] = None,
    ) -> BudgetSummary:
        """
        Forecast/actual/variance per project for the week containing week_of.

        Args:
            week_of: Any moment inside the target week
            project_id: Restrict to one project
        """
        window = normalize_week(week_of)
        entries = await self.budget_repo.list_in_range(
            window.week_start, window.week_end, project_id,
        )
        names = await self.project_repo.get_names({e.project_id for e in entries})
        summary = summarize_week(entries, window, names, project_id)
        logger.debug(
            f"Budget summary {window.week_start.date()}: {len(summary.rows)} projects, "
            f"forecast={summary.totals.forecast} actual={summary.totals.actual}"
        )
        return summary

    async def dashboard(self, week_of: Union[date, datetime, WeekWindow]) -> BudgetSummary:
        """Weekly summary across all projects plus task counts by status."""
        if self.task_repo is None:
            raise ValueError("dashboard() needs a task repository")

        window = normalize_week(week_of)
        summary = await self.weekly_summary(window)
        tasks = await self.task_repo.list_ending_between(
            window.week_start.date(), window.week_end.date(),
        )
        return summary.model_copy(update={"task_stats": count_tasks_due(tasks, window)})


__all__ = ["BudgetService"]
