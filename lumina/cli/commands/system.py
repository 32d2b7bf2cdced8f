"""
FILE: lumina/cli/commands/system.py
PURPOSE: System commands (version, db export/import/info)
"""

from pathlib import Path

import typer

# Import shared objects from main module
# These will be available after main.py imports this module
from ..main import app, console, db_app, error_console, get_workspace, __version__
from ...core.exceptions import LuminaError


@app.command()
def version():
    """Show Lumina version."""
    console.print(f"Lumina v{__version__}")


@db_app.command("export")
def db_export(
    path: Path = typer.Argument(..., help="File to write the database image to"),
):
    """
    Write a backup of the whole database to a file.

    Example:
        lumina db export backup.sqlite
    """
    ws = get_workspace()
    data = ws.db.export_bytes()
    if data is None:
        error_console.print("[red]Error:[/red] Database is not available")
        raise typer.Exit(1)

    try:
        path.write_bytes(data)
    except OSError as e:
        error_console.print(f"[red]Error:[/red] Could not write {path}: {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Exported {len(data)} bytes to {path}", highlight=False)


@db_app.command("import")
def db_import(
    path: Path = typer.Argument(..., help="Database image written by `lumina db export`"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
):
    """
    Replace all tasks and projects with a backup.

    Example:
        lumina db import backup.sqlite --yes
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        error_console.print(f"[red]Error:[/red] Could not read {path}: {e}")
        raise typer.Exit(1)

    if not yes:
        console.print("[yellow]This replaces every task and project currently stored[/yellow]")
        if not typer.confirm("Continue?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    try:
        ws = get_workspace()
        ws.import_database(data, source=str(path))
    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(
        f"[green]✓[/green] Imported {len(ws.tasks.tasks)} task(s) and "
        f"{len(ws.projects.projects)} project(s)",
        highlight=False,
    )


@db_app.command("info")
def db_info():
    """Show where data lives and which backend is in use."""
    ws = get_workspace()
    console.print(f"[bold]Data directory:[/bold] {ws.data_dir}")
    console.print(f"[bold]Tasks backend:[/bold] {ws.tasks.state.value}")
    console.print(f"[bold]Projects backend:[/bold] {ws.projects.state.value}")

    if ws.db.is_ready:
        total, completed = ws.tasks.backend.repository.count() if ws.tasks.is_relational else (0, 0)
        console.print(f"[bold]Tasks stored:[/bold] {total} ({completed} completed)")
        console.print(f"[bold]Database size:[/bold] {len(ws.db.export_bytes() or b'')} bytes")

        settings = ws.settings.all()
        if settings:
            console.print("[bold]Settings:[/bold]")
            for key, value in settings.items():
                console.print(f"  {key} = {value!r}", highlight=False, markup=False, soft_wrap=True)
