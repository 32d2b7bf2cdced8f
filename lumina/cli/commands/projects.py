"""
FILE: lumina/cli/commands/projects.py
PURPOSE: Project management commands (add, ls, rm, status, sync)
"""

import json
from typing import List, Optional

import typer
from rich.markup import escape

from ..main import console, error_console, get_workspace, project_app
from ..lookup import find_project
from ...core.constants import PROJECT_STATUSES
from ...core.exceptions import (
    LuminaError,
    ProjectNotFoundError,
    InvalidInputError,
)
from ...formatting import ProjectFormatter, parse_refs, short_ref


@project_app.command("add")
def project_add(
    name: str = typer.Argument(..., help="Project name"),
    description: str = typer.Option("", "--description", "-d", help="What the project is about"),
    color: Optional[str] = typer.Option(None, "--color", help="slate, sage, amber or rose"),
    deadline: Optional[str] = typer.Option(None, "--deadline", help="Deadline (ISO date)"),
    tags: List[str] = typer.Option([], "--tag", "-t", help="Tag (repeatable)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Create a new project.

    Example:
        lumina project add "Website" -d "Relaunch" --color sage -t web -t q4
    """
    try:
        project = get_workspace().projects.add(
            name, description, color=color, deadline=deadline, tags=tags
        )

        if json_output:
            typer.echo(json.dumps(project.to_dict(), indent=2))
        elif raw:
            typer.echo(f"{project.id}: {project.name}")
        else:
            console.print(
                f"[green]✓[/green] Created project {short_ref(project.id)}: {escape(project.name)}",
                highlight=False,
            )

    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@project_app.command("ls")
def project_ls(
    status: Optional[str] = typer.Option(None, "--status", "-s", help="active, on-hold or completed"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List projects.

    Example:
        lumina project ls
        lumina project ls --status on-hold --json
    """
    try:
        manager = get_workspace().projects
        if status is None:
            projects = manager.projects
        elif status in PROJECT_STATUSES:
            projects = {
                "active": manager.active,
                "on-hold": manager.on_hold,
                "completed": manager.completed,
            }[status]
        else:
            raise InvalidInputError(
                f"Invalid status '{status}'. Must be one of: {', '.join(PROJECT_STATUSES)}"
            )

        if json_output:
            typer.echo(ProjectFormatter.to_json_array(projects))
        elif raw:
            for line in ProjectFormatter.to_raw_lines(projects):
                typer.echo(line)
        elif not projects:
            console.print("[dim]No projects found[/dim]")
        else:
            console.print(ProjectFormatter.create_table(projects))
            console.print(f"\n[dim]Total: {len(projects)} project(s)[/dim]")

    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@project_app.command("rm")
def project_rm(
    project_refs: str = typer.Argument(..., help="Project ref(s) or name(s) to delete (comma-separated)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
):
    """
    Delete one or more projects permanently.

    Linked tasks are kept and still point at the deleted project.

    Example:
        lumina project rm Website
        lumina project rm k3j9x0a1b,p0o9i8u7y --yes
    """
    ws = get_workspace()
    targets = []
    errors = []

    for ref in parse_refs(project_refs):
        try:
            targets.append(find_project(ws.projects, ref))
        except (ProjectNotFoundError, InvalidInputError) as e:
            errors.append(str(e))

    if targets and not yes and len(targets) > 1:
        console.print(f"[yellow]About to delete {len(targets)} project(s)[/yellow]")
        if not typer.confirm("Continue?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    for project in targets:
        ws.projects.remove(project.id)

    if json_output:
        typer.echo(json.dumps([{"id": p.id, "name": p.name} for p in targets], indent=2))
    else:
        for project in targets:
            console.print(
                f"[red]✗[/red] Deleted project {short_ref(project.id)}: {escape(project.name)}",
                highlight=False,
            )

    if errors:
        for error in errors:
            error_console.print(f"[red]Error:[/red] {error}")
        if not targets:
            raise typer.Exit(1)


@project_app.command("status")
def project_status(
    project_ref: str = typer.Argument(..., help="Project ref or name"),
    status: str = typer.Argument(..., help="active, on-hold or completed"),
):
    """
    Set a project's status directly.

    Example:
        lumina project status Website on-hold
    """
    try:
        ws = get_workspace()
        project = find_project(ws.projects, project_ref)
        updated = ws.projects.change_status(project.id, status)
        console.print(
            f"[green]✓[/green] {escape(updated.name)} is now {updated.status}",
            highlight=False,
        )

    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@project_app.command("sync")
def project_sync(
    project_ref: Optional[str] = typer.Argument(None, help="Project ref or name (omit for all)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Recalculate progress from linked tasks.

    Reaching 100% marks a project completed; anything less makes it
    active again, including projects that were on hold.

    Example:
        lumina project sync
        lumina project sync Website
    """
    try:
        ws = get_workspace()
        if project_ref:
            targets = [find_project(ws.projects, project_ref)]
        else:
            targets = ws.projects.projects

        synced = [ws.sync_project_progress(p.id) for p in targets]

        if json_output:
            typer.echo(ProjectFormatter.to_json_array(synced))
        else:
            for project in synced:
                console.print(
                    f"[cyan]{short_ref(project.id)}[/cyan] {escape(project.name)}: "
                    f"{project.completed_tasks}/{project.total_tasks} done, "
                    f"{project.progress}% ({project.status})",
                    highlight=False,
                )

    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
