"""
FILE: lumina/core/filters.py
PURPOSE: Derived read views over in-memory task and project lists
EXPORTS:
  - sort_by_order(tasks) -> List[Task]
  - by_category(tasks, category) -> List[Task]
  - by_project(tasks, project_id) -> List[Task]
  - by_status(projects, status) -> List[Project]
  - project_counts(tasks, project_id) -> (completed, total)
  - by_due_day(tasks) -> {"YYYY-MM-DD": [Task, ...]}
  - TaskFilter: project / priority / due-date-range filter
DEPENDENCIES:
  - dataclasses, datetime (stdlib)
  - lumina.core.models (Task, Project)
NOTES:
  - Pure functions; nothing here persists anything
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .constants import DATE_RANGES, PRIORITIES
from .exceptions import InvalidInputError
from .models import Task, Project


def sort_by_order(tasks: Iterable[Task]) -> List[Task]:
    """Stable sort by the order field."""
    return sorted(tasks, key=lambda t: t.order or 0)


def by_category(tasks: Iterable[Task], category: str) -> List[Task]:
    """Tasks in one category, in display order."""
    return sort_by_order(t for t in tasks if t.category == category)


def by_project(tasks: Iterable[Task], project_id: str) -> List[Task]:
    return [t for t in tasks if t.project_id == project_id]


def by_status(projects: Iterable[Project], status: str) -> List[Project]:
    return [p for p in projects if p.status == status]


def project_counts(tasks: Iterable[Task], project_id: str) -> Tuple[int, int]:
    """Return (completed, total) for the tasks linked to a project."""
    linked = by_project(tasks, project_id)
    return sum(1 for t in linked if t.completed), len(linked)


def by_due_day(tasks: Iterable[Task]) -> Dict[str, List[Task]]:
    """
    Group tasks under the day part of their due date, for a calendar view.

    The key is whatever precedes "T" in due_date, so date-only and full
    timestamps land on the same day. Undated tasks are left out. Days
    come out in ascending order, tasks in display order within a day.
    """
    days: Dict[str, List[Task]] = {}
    for task in sort_by_order(tasks):
        if not task.due_date:
            continue
        days.setdefault(task.due_date.split("T")[0], []).append(task)
    return {day: days[day] for day in sorted(days)}


def _parse_day(value: str) -> Optional[date]:
    """Calendar day of an ISO date or datetime string."""
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


@dataclass
class TaskFilter:
    """
    Filter applied on top of a task list.

    project:    only tasks linked to this project id (None = any)
    priority:   only tasks with this priority (None = any)
    date_range: all | overdue | today | week | no-date
    """

    project: Optional[str] = None
    priority: Optional[str] = None
    date_range: str = "all"

    def __post_init__(self):
        if self.priority is not None and self.priority not in PRIORITIES:
            raise InvalidInputError(
                f"Invalid priority '{self.priority}'. Must be one of: {', '.join(PRIORITIES)}"
            )
        if self.date_range not in DATE_RANGES:
            raise InvalidInputError(
                f"Invalid date range '{self.date_range}'. Must be one of: {', '.join(DATE_RANGES)}"
            )

    @property
    def is_active(self) -> bool:
        return (
            self.project is not None
            or self.priority is not None
            or self.date_range != "all"
        )

    def matches(self, task: Task, today: Optional[date] = None) -> bool:
        if self.project is not None and task.project_id != self.project:
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        if self.date_range == "all":
            return True

        if self.date_range == "no-date":
            return not task.due_date
        if not task.due_date:
            return False

        due = _parse_day(task.due_date)
        if due is None:
            return False
        diff_days = (due - (today or date.today())).days

        if self.date_range == "overdue":
            return diff_days < 0
        if self.date_range == "today":
            return diff_days == 0
        # week: due today or within the next seven days
        return 0 <= diff_days <= 7

    def apply(self, tasks: Iterable[Task], today: Optional[date] = None) -> List[Task]:
        return [t for t in tasks if self.matches(t, today)]
