"""
FILE: lumina/cli/commands/tasks.py
PURPOSE: Task management commands (add, ls, done, rm, edit, mv, order, link)
"""

import json
from typing import List, Optional

import typer
from rich.markup import escape

from ..main import app, console, error_console, get_workspace
from ..lookup import find_project, find_task
from ...core.constants import CATEGORIES, CATEGORY_BACKLOG
from ...core.exceptions import (
    LuminaError,
    TaskNotFoundError,
    InvalidInputError,
)
from ...core.filters import TaskFilter
from ...formatting import TaskFormatter, parse_refs, short_ref


def project_names() -> dict:
    """Project id -> name for table display."""
    return {p.id: p.name for p in get_workspace().projects.projects}


def print_tasks(tasks, title: str, json_output: bool, raw: bool, show_category: bool = True) -> None:
    """Render a task list as JSON, plain lines or a rich table."""
    if json_output:
        typer.echo(TaskFormatter.to_json_array(tasks))
    elif raw:
        for line in TaskFormatter.to_raw_lines(tasks):
            typer.echo(line)
    elif not tasks:
        console.print("[dim]No tasks found[/dim]")
    else:
        console.print(
            TaskFormatter.create_table(
                tasks, title=title, projects=project_names(), show_category=show_category
            )
        )
        console.print(f"\n[dim]Total: {len(tasks)} task(s)[/dim]")


@app.command()
def add(
    title: str = typer.Argument(..., help="Task title"),
    category: str = typer.Option(CATEGORY_BACKLOG, "--category", "-c", help="today, week or backlog"),
    priority: Optional[str] = typer.Option(None, "--priority", "-P", help="low, medium or high"),
    project_ref: Optional[str] = typer.Option(None, "--project", "-p", help="Project name or id"),
    due_date: Optional[str] = typer.Option(None, "--due", help="Due date (YYYY-MM-DD)"),
    due_time: Optional[str] = typer.Option(None, "--at", help="Due time (HH:MM)"),
    recurring: bool = typer.Option(False, "--daily", help="Reset to not done every day"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Create a new task.

    Example:
        lumina add "Write documentation"
        lumina add "Stand-up" --category today --daily --at 09:30
        lumina add "Fix bug" --project "Work" --priority high
    """
    try:
        ws = get_workspace()

        project_id = None
        if project_ref:
            project_id = find_project(ws.projects, project_ref).id

        task = ws.tasks.add(
            title,
            category,
            priority=priority,
            project_id=project_id,
            due_date=due_date,
            due_time=due_time,
            is_recurring=recurring,
        )

        if json_output:
            typer.echo(json.dumps(TaskFormatter.to_json_dict(task), indent=2))
        elif raw:
            typer.echo(f"{task.id}: {task.title}")
        else:
            console.print(
                f"[green]✓ Created task [bold]{short_ref(task.id)}[/bold] in {task.category}:[/green] {escape(task.title)}",
                highlight=False,
            )

    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def ls(
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Only one category"),
    project_ref: Optional[str] = typer.Option(None, "--project", "-p", help="Filter by project name or id"),
    priority: Optional[str] = typer.Option(None, "--priority", "-P", help="Filter by priority"),
    due: str = typer.Option("all", "--due", help="all, overdue, today, week or no-date"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List tasks, grouped by category and in display order.

    Example:
        lumina ls
        lumina ls --category week --priority high
        lumina ls --due overdue --json
    """
    try:
        ws = get_workspace()

        project_id = None
        if project_ref:
            project_id = find_project(ws.projects, project_ref).id

        task_filter = TaskFilter(project=project_id, priority=priority, date_range=due)

        if category:
            if category not in CATEGORIES:
                raise InvalidInputError(
                    f"Invalid category '{category}'. Must be one of: {', '.join(CATEGORIES)}"
                )
            tasks = ws.tasks.filtered(task_filter, category=category)
        else:
            tasks = []
            for cat in CATEGORIES:
                tasks.extend(ws.tasks.filtered(task_filter, category=cat))

        title = "Tasks (filtered)" if task_filter.is_active else "Tasks"
        print_tasks(tasks, title, json_output, raw)

    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def done(
    task_refs: str = typer.Argument(..., help="Task ref(s) to toggle (comma-separated)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Toggle completion of one or more tasks.

    Running it again on a completed task marks it not done.

    Example:
        lumina done k3j9x0a1b
        lumina done k3j9x0a1b,p0o9i8u7y
    """
    ws = get_workspace()
    toggled = []
    errors = []

    for ref in parse_refs(task_refs):
        try:
            task = find_task(ws.tasks, ref)
            toggled.append(ws.tasks.toggle(task.id))
        except (TaskNotFoundError, InvalidInputError) as e:
            errors.append(str(e))

    if json_output:
        typer.echo(TaskFormatter.to_json_array(toggled))
    elif raw:
        for task in toggled:
            typer.echo(f"{'Completed' if task.completed else 'Reopened'}: {task.title}")
    else:
        for task in toggled:
            if task.completed:
                console.print(f"[green]✓[/green] Completed: {escape(task.title)}", highlight=False)
            else:
                console.print(f"[yellow]○[/yellow] Reopened: {escape(task.title)}", highlight=False)

    if errors:
        for error in errors:
            error_console.print(f"[red]Error:[/red] {error}")
        if not toggled:
            raise typer.Exit(1)


@app.command()
def rm(
    task_refs: str = typer.Argument(..., help="Task ref(s) to delete (comma-separated)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
):
    """
    Delete one or more tasks permanently.

    Project progress is not recalculated; run `lumina project sync`.

    Example:
        lumina rm k3j9x0a1b
        lumina rm k3j9x0a1b,p0o9i8u7y --yes
    """
    ws = get_workspace()
    targets = []
    errors = []

    for ref in parse_refs(task_refs):
        try:
            targets.append(find_task(ws.tasks, ref))
        except (TaskNotFoundError, InvalidInputError) as e:
            errors.append(str(e))

    if targets and not yes and len(targets) > 1:
        console.print(f"[yellow]About to delete {len(targets)} task(s)[/yellow]")
        if not typer.confirm("Continue?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    for task in targets:
        ws.tasks.remove(task.id)

    if json_output:
        typer.echo(json.dumps([{"id": t.id, "title": t.title} for t in targets], indent=2))
    elif raw:
        for task in targets:
            typer.echo(f"Deleted task {task.id}: {task.title}")
    else:
        for task in targets:
            console.print(f"[red]✗[/red] Deleted task {short_ref(task.id)}: {escape(task.title)}", highlight=False)

    if errors:
        for error in errors:
            error_console.print(f"[red]Error:[/red] {error}")
        if not targets:
            raise typer.Exit(1)


@app.command()
def edit(
    task_ref: str = typer.Argument(..., help="Task ref"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    priority: Optional[str] = typer.Option(None, "--priority", "-P", help="low, medium or high"),
    due_date: Optional[str] = typer.Option(None, "--due", help="Due date (YYYY-MM-DD, '' to clear)"),
    due_time: Optional[str] = typer.Option(None, "--at", help="Due time (HH:MM, '' to clear)"),
    recurring: Optional[bool] = typer.Option(None, "--daily/--once", help="Recurring daily or not"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Update fields of a task; unspecified fields are left alone.

    Example:
        lumina edit k3j9x0a1b --title "Updated title"
        lumina edit k3j9x0a1b --due 2026-11-01 --at 14:00
        lumina edit k3j9x0a1b --due ""
    """
    try:
        ws = get_workspace()
        task = find_task(ws.tasks, task_ref)

        changes = {}
        if title is not None:
            changes["title"] = title
        if priority is not None:
            changes["priority"] = priority
        if due_date is not None:
            changes["due_date"] = due_date or None
        if due_time is not None:
            changes["due_time"] = due_time or None
        if recurring is not None:
            changes["is_recurring"] = recurring

        if not changes:
            raise InvalidInputError("Nothing to change; pass at least one option")

        updated = ws.tasks.update(task.id, **changes)

        if json_output:
            typer.echo(json.dumps(TaskFormatter.to_json_dict(updated), indent=2))
        else:
            console.print(f"[green]✓[/green] Updated task {short_ref(updated.id)}: {escape(updated.title)}", highlight=False)

    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def mv(
    task_refs: str = typer.Argument(..., help="Task ref(s) to move (comma-separated)"),
    category: str = typer.Argument(..., help="Target category (today, week, backlog)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Move tasks to the end of another category.

    Example:
        lumina mv k3j9x0a1b today
        lumina mv k3j9x0a1b,p0o9i8u7y week
    """
    ws = get_workspace()
    moved = []
    errors = []

    for ref in parse_refs(task_refs):
        try:
            task = find_task(ws.tasks, ref)
            moved.append(ws.tasks.move(task.id, category))
        except LuminaError as e:
            errors.append(str(e))

    if json_output:
        typer.echo(TaskFormatter.to_json_array(moved))
    else:
        for task in moved:
            console.print(f"[green]→[/green] {escape(task.title)} [dim]now in[/dim] {task.category}", highlight=False)

    if errors:
        for error in errors:
            error_console.print(f"[red]Error:[/red] {error}")
        if not moved:
            raise typer.Exit(1)


@app.command()
def order(
    category: str = typer.Argument(..., help="Category to reorder"),
    task_refs: List[str] = typer.Argument(..., help="Task refs in their new order"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Set the order of a category.

    List every task of the category; tasks from other categories are
    moved in.

    Example:
        lumina order today p0o9i8u7y k3j9x0a1b
    """
    try:
        ws = get_workspace()
        refs = [ref for arg in task_refs for ref in parse_refs(arg)]
        tasks = [find_task(ws.tasks, ref) for ref in refs]
        ws.tasks.reorder(category, tasks)
        print_tasks(ws.tasks.by_category(category), category.title(), json_output, raw, show_category=False)

    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def link(
    task_ref: str = typer.Argument(..., help="Task ref"),
    project_ref: Optional[str] = typer.Argument(None, help="Project name or id (omit to unlink)"),
):
    """
    Link a task to a project, or unlink it.

    Example:
        lumina link k3j9x0a1b "Work"
        lumina link k3j9x0a1b
    """
    try:
        ws = get_workspace()
        task = find_task(ws.tasks, task_ref)

        if project_ref:
            project = find_project(ws.projects, project_ref)
            ws.tasks.link_to_project(task.id, project.id)
            console.print(f"[green]✓[/green] Linked '{escape(task.title)}' to project {escape(project.name)}", highlight=False)
        else:
            ws.tasks.link_to_project(task.id, None)
            console.print(f"[green]✓[/green] Unlinked '{escape(task.title)}'", highlight=False)

    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
