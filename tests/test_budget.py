# ============================================================================
# BUDGET AGGREGATION TESTS
# ============================================================================
# EPOCH: 1 - TEMPLATE INSTANTIATION
# STATUS: Tests - Week normalization and weekly roll-up
# PURPOSE: Verify week windows, pivoting, totals and task counts
# CREATED: 19 OCT 2026
# ============================================================================
"""
Budget Aggregation Tests

Run with:
    pytest tests/test_budget.py -v
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from core.contracts import BudgetEntryType, TaskStatus
from core.models import BudgetEntry, Task
from orchestrator.engine.budget import count_tasks_due, normalize_week, summarize_week


# ============================================================================
# HELPERS
# ============================================================================

_counter = 0


def _entry(project_id, amount, entry_type, week_start=datetime(2024, 1, 1)):
    global _counter
    _counter += 1
    return BudgetEntry(
        entry_id=f"e-{_counter}",
        project_id=project_id,
        description="Weekly booking",
        amount=amount,
        type=entry_type,
        week_start=week_start,
    )


def _task(task_id, end, status=TaskStatus.NOT_STARTED):
    return Task(
        task_id=task_id,
        project_id="p",
        name=task_id,
        start_date=end - timedelta(days=3),
        end_date=end,
        status=status,
    )


# ============================================================================
# WEEK NORMALIZATION
# ============================================================================

class TestNormalizeWeek:

    @pytest.mark.parametrize("offset", range(7))
    def test_any_day_maps_to_its_monday(self, offset):
        window = normalize_week(date(2024, 1, 1) + timedelta(days=offset))
        assert window.week_start == datetime(2024, 1, 1, 0, 0, 0)
        assert window.week_end == datetime(2024, 1, 7, 23, 59, 59, 999000)

    def test_start_is_monday_and_end_six_days_later(self):
        for day in range(1, 29):
            window = normalize_week(datetime(2024, 2, day, 15, 30))
            assert window.week_start.weekday() == 0
            assert window.week_start.time() == time.min
            assert window.week_end - window.week_start == timedelta(
                days=6, hours=23, minutes=59, seconds=59, milliseconds=999,
            )

    def test_idempotent(self):
        once = normalize_week(datetime(2024, 3, 14, 9, 0))
        assert normalize_week(once.week_start) == once
        assert normalize_week(once) == once

    def test_timezone_preserved(self):
        tz = timezone(timedelta(hours=-5))
        window = normalize_week(datetime(2024, 1, 3, 12, 0, tzinfo=tz))
        assert window.week_start.tzinfo == tz
        assert window.week_end.tzinfo == tz

    def test_entry_snaps_to_week(self):
        entry = _entry("P", 10, BudgetEntryType.ACTUAL, week_start=datetime(2024, 1, 4, 8, 0))
        assert entry.week_start == datetime(2024, 1, 1)
        assert entry.week_end == datetime(2024, 1, 7, 23, 59, 59, 999000)


# ============================================================================
# WEEKLY SUMMARY
# ============================================================================

class TestSummarizeWeek:

    def test_forecast_and_actual_pivot(self):
        entries = [
            _entry("P", 1000, BudgetEntryType.FORECAST),
            _entry("P", 800, BudgetEntryType.ACTUAL),
        ]
        summary = summarize_week(entries, date(2024, 1, 1), {"P": "Project P"})

        assert len(summary.rows) == 1
        row = summary.rows[0]
        assert (row.forecast, row.actual, row.variance) == (1000, 800, 200)
        assert (summary.totals.forecast, summary.totals.actual) == (1000, 800)
        assert summary.totals.variance == 200

    def test_to_dict_shape(self):
        entries = [
            _entry("P", 1000, BudgetEntryType.FORECAST),
            _entry("P", 800, BudgetEntryType.ACTUAL),
        ]
        result = summarize_week(entries, date(2024, 1, 3), {"P": "Project P"}).to_dict()
        assert result["weekStart"] == "2024-01-01T00:00:00"
        assert result["rows"] == [{
            "projectId": "P",
            "projectName": "Project P",
            "forecast": 1000,
            "actual": 800,
            "variance": 200,
        }]
        assert result["totals"] == {"forecast": 1000, "actual": 800}
        assert "taskStats" not in result

    def test_multiple_entries_sum(self):
        entries = [
            _entry("P", 300, BudgetEntryType.FORECAST),
            _entry("P", 200, BudgetEntryType.FORECAST),
            _entry("P", 50, BudgetEntryType.ACTUAL),
        ]
        row = summarize_week(entries, date(2024, 1, 1), {"P": "P"}).rows[0]
        assert row.forecast == 500
        assert row.actual == 50

    def test_other_weeks_excluded(self):
        entries = [
            _entry("P", 1000, BudgetEntryType.FORECAST),
            _entry("P", 999, BudgetEntryType.FORECAST, week_start=datetime(2024, 1, 8)),
            _entry("P", 999, BudgetEntryType.ACTUAL, week_start=datetime(2023, 12, 31)),
        ]
        summary = summarize_week(entries, date(2024, 1, 5), {"P": "P"})
        assert summary.rows[0].forecast == 1000
        assert summary.rows[0].actual == 0

    def test_actual_only_project_has_zero_forecast(self):
        summary = summarize_week(
            [_entry("P", 75, BudgetEntryType.ACTUAL)], date(2024, 1, 1), {"P": "P"},
        )
        assert summary.rows[0].forecast == 0
        assert summary.rows[0].variance == -75

    def test_rows_sorted_by_project_name(self):
        entries = [
            _entry("p1", 10, BudgetEntryType.FORECAST),
            _entry("p2", 20, BudgetEntryType.FORECAST),
            _entry("p3", 30, BudgetEntryType.FORECAST),
        ]
        names = {"p1": "Willow Lane", "p2": "Aspen Court", "p3": "Maple Drive"}
        summary = summarize_week(entries, date(2024, 1, 1), names)
        assert [r.project_name for r in summary.rows] == ["Aspen Court", "Maple Drive", "Willow Lane"]
        assert summary.totals.forecast == 60

    def test_unknown_project_dropped(self):
        entries = [
            _entry("P", 100, BudgetEntryType.FORECAST),
            _entry("ghost", 500, BudgetEntryType.FORECAST),
        ]
        summary = summarize_week(entries, date(2024, 1, 1), {"P": "P"})
        assert [r.project_id for r in summary.rows] == ["P"]
        assert summary.totals.forecast == 100

    def test_project_filter(self):
        entries = [
            _entry("A", 100, BudgetEntryType.FORECAST),
            _entry("B", 200, BudgetEntryType.FORECAST),
        ]
        summary = summarize_week(entries, date(2024, 1, 1), {"A": "A", "B": "B"}, project_id="B")
        assert [r.project_id for r in summary.rows] == ["B"]
        assert summary.totals.forecast == 200

    def test_empty_week(self):
        summary = summarize_week([], date(2024, 1, 1), {})
        assert summary.rows == []
        assert summary.totals.variance == 0


# ============================================================================
# TASK COUNTS
# ============================================================================

class TestCountTasksDue:

    def test_counts_by_status_within_week(self):
        tasks = [
            _task("a", date(2024, 1, 2)),
            _task("b", date(2024, 1, 7), TaskStatus.COMPLETED),
            _task("c", date(2024, 1, 8)),
            _task("d", date(2024, 1, 5), TaskStatus.IN_PROGRESS),
        ]
        counts = count_tasks_due(tasks, date(2024, 1, 3))
        assert counts == {
            "not_started": 1,
            "in_progress": 1,
            "completed": 1,
            "on_hold": 0,
        }

    def test_no_tasks(self):
        assert set(count_tasks_due([], date(2024, 1, 1)).values()) == {0}
