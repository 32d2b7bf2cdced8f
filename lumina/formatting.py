"""
FILE: lumina/formatting.py
PURPOSE: Shared formatting utilities for CLI output
EXPORTS:
  - short_ref(entity_id) -> str
  - TaskFormatter: tables, JSON and plain lines for tasks
  - ProjectFormatter: tables, JSON and plain lines for projects
  - parse_refs(ref_string) -> List[str]
DEPENDENCIES:
  - rich (for table formatting)
  - json (for JSON serialization)
  - lumina.core.models (Task, Project)
NOTES:
  - Centralized formatting logic for consistency between commands
  - Generated ids end in a random suffix; tables show that suffix as a
    short reference the commands accept in place of the full id
"""

import json
from typing import Dict, List, Optional

from rich.markup import escape
from rich.table import Table

from .core.models import Task, Project

# Color code categories: backlog=dim, week=blue, today=bright_magenta
CATEGORY_STYLES = {
    "backlog": "dim",
    "week": "blue",
    "today": "bright_magenta",
}

PRIORITY_STYLES = {
    "low": "dim",
    "medium": "yellow",
    "high": "bold red",
}

STATUS_STYLES = {
    "active": "green",
    "on-hold": "yellow",
    "completed": "dim",
}

COLOR_STYLES = {
    "slate": "grey62",
    "sage": "dark_sea_green",
    "amber": "dark_orange",
    "rose": "pink3",
}


def short_ref(entity_id: str) -> str:
    """Random suffix of a generated id (whole id for anything else)."""
    return entity_id.rsplit("_", 1)[-1]


def parse_refs(ref_string: str) -> List[str]:
    """
    Parse comma-separated ids or short references.

    Args:
        ref_string: e.g. "k3j9x0a1b,task_1767225600000_p0o9i8u7y"

    Returns:
        List of non-empty references, in order
    """
    return [ref.strip() for ref in ref_string.split(",") if ref.strip()]


def _styled(value: str, styles: Dict[str, str]) -> str:
    style = styles.get(value, "white")
    return f"[{style}]{value}[/{style}]"


class TaskFormatter:
    """Centralized task display formatting."""

    @staticmethod
    def create_table(
        tasks: List[Task],
        title: str = "Tasks",
        projects: Optional[Dict[str, str]] = None,
        show_category: bool = True,
    ) -> Table:
        """
        Create Rich table for tasks.

        Args:
            tasks: Tasks to display, in display order
            title: Table title
            projects: Project id -> name, for the Project column
            show_category: Whether to show the category column

        Returns:
            Rich Table object ready for display
        """
        projects = projects or {}
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("Ref", style="cyan", no_wrap=True)
        table.add_column("", width=1)
        table.add_column("Title", style="white")
        if show_category:
            table.add_column("Category", width=8)
        table.add_column("Priority", width=8)
        table.add_column("Due", style="dim")
        table.add_column("Project", style="yellow")

        for task in tasks:
            mark = "[green]✓[/green]" if task.completed else "[yellow]○[/yellow]"
            if task.is_recurring:
                mark += "[dim]↻[/dim]"

            due = " ".join(part for part in (task.due_date, task.due_time) if part)

            if task.project_id:
                project_name = projects.get(task.project_id)
                project_cell = escape(project_name) if project_name else f"[dim]{escape(short_ref(task.project_id))}?[/dim]"
            else:
                project_cell = "-"

            row = [short_ref(task.id), mark, escape(task.title)]
            if show_category:
                row.append(_styled(task.category, CATEGORY_STYLES))
            row.extend([_styled(task.priority, PRIORITY_STYLES), due or "-", project_cell])
            table.add_row(*row)

        return table

    @staticmethod
    def to_json_dict(task: Task) -> Dict:
        return task.to_dict()

    @staticmethod
    def to_json_array(tasks: List[Task]) -> str:
        return json.dumps([t.to_dict() for t in tasks], indent=2)

    @staticmethod
    def to_raw_lines(tasks: List[Task]) -> List[str]:
        """Plain text, one task per line."""
        lines = []
        for task in tasks:
            status_marker = "x" if task.completed else " "
            lines.append(f"{task.id}: [{status_marker}] {task.title} ({task.category})")
        return lines


class ProjectFormatter:
    """Centralized project display formatting."""

    @staticmethod
    def create_table(projects: List[Project], title: str = "Projects") -> Table:
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("Ref", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Status")
        table.add_column("Progress", justify="right")
        table.add_column("Tasks", justify="right", style="dim")
        table.add_column("Deadline", style="dim")
        table.add_column("Tags", style="magenta")

        for project in projects:
            color = COLOR_STYLES.get(project.color, "white")
            deadline = project.deadline.split("T")[0] if project.deadline else "-"
            table.add_row(
                short_ref(project.id),
                f"[{color}]●[/{color}] {escape(project.name)}",
                _styled(project.status, STATUS_STYLES),
                f"{project.progress}%",
                f"{project.completed_tasks}/{project.total_tasks}",
                deadline,
                escape(", ".join(project.tags)) or "-",
            )

        return table

    @staticmethod
    def to_json_array(projects: List[Project]) -> str:
        return json.dumps([p.to_dict() for p in projects], indent=2)

    @staticmethod
    def to_raw_lines(projects: List[Project]) -> List[str]:
        return [
            f"{p.id}: {p.name} [{p.status}] {p.progress}%"
            for p in projects
        ]
