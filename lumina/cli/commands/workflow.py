"""
FILE: lumina/cli/commands/workflow.py
PURPOSE: Category views (today, week, backlog), calendar and the dashboard
"""

import json

import typer

from ..main import app, console, get_workspace
from .tasks import print_tasks
from ...core.filters import by_due_day
from ...formatting import ProjectFormatter, TaskFormatter


def show_dashboard() -> None:
    """Today's tasks plus active projects; shown when no command is given."""
    ws = get_workspace()

    print_tasks(ws.tasks.today, "Today", json_output=False, raw=False, show_category=False)

    week_open = [t for t in ws.tasks.week if not t.completed]
    console.print(f"[dim]{len(week_open)} open task(s) this week, {len(ws.tasks.backlog)} in backlog[/dim]\n")

    active = ws.projects.active
    if active:
        console.print(ProjectFormatter.create_table(active, title="Active projects"))


@app.command()
def today(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List today's tasks (your daily focus list), in order.

    Example:
        lumina today
        lumina today --json
    """
    print_tasks(get_workspace().tasks.today, "Today", json_output, raw, show_category=False)


@app.command()
def week(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List this week's tasks, in order.

    Example:
        lumina week
    """
    print_tasks(get_workspace().tasks.week, "This week", json_output, raw, show_category=False)


@app.command()
def backlog(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List backlog tasks, in order.

    Example:
        lumina backlog
    """
    print_tasks(get_workspace().tasks.backlog, "Backlog", json_output, raw, show_category=False)


@app.command()
def calendar(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List dated tasks grouped by due day; undated tasks are left out.

    Example:
        lumina calendar
        lumina calendar --json
    """
    days = by_due_day(get_workspace().tasks.tasks)

    if json_output:
        grouped = {
            day: [TaskFormatter.to_json_dict(t) for t in tasks]
            for day, tasks in days.items()
        }
        typer.echo(json.dumps(grouped, indent=2))
        return

    if not days and not raw:
        console.print("[dim]No dated tasks[/dim]")

    for day, tasks in days.items():
        if raw:
            for line in TaskFormatter.to_raw_lines(tasks):
                typer.echo(f"{day} {line}")
        else:
            print_tasks(tasks, day, json_output=False, raw=False)
