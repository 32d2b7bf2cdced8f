"""
FILE: lumina/cli/main.py
PURPOSE: Typer-based CLI for one-shot task and project commands
EXPORTS:
  - app (Typer application)
  - project_app, db_app, wheel_app, timer_app (sub-command groups)
  - console, error_console (rich consoles)
  - get_workspace() -> Workspace
  - main() (entry point)
DEPENDENCIES:
  - typer (CLI framework)
  - rich (formatted output)
  - lumina.core.workspace (Workspace)
  - lumina.logging_setup (setup_logging)
NOTES:
  - Running `lumina` with no command shows the dashboard
  - All listing commands support --json and --raw flags
  - Error messages go to stderr
  - Exit codes: 0=success, 1=error
  - The data directory is ~/.lumina unless LUMINA_HOME is set
  - `lumina --demo ...` starts a fresh data directory with sample projects
"""

import sys
from typing import Optional

# Fix Windows console encoding for Unicode characters
if sys.platform == "win32":
    import io
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

import typer
from rich.console import Console

from ..core.config import get_data_dir, get_log_level
from ..core.workspace import Workspace
from ..logging_setup import setup_logging

# Typer app setup
app = typer.Typer(
    name="lumina",
    help="Personal productivity dashboard: tasks, projects and progress",
    add_completion=False,
)

# Project sub-command group
project_app = typer.Typer(
    name="project",
    help="Project management commands",
)
app.add_typer(project_app, name="project")

# Database sub-command group
db_app = typer.Typer(
    name="db",
    help="Backup, restore and inspect the database",
)
app.add_typer(db_app, name="db")

# Decision wheel sub-command group
wheel_app = typer.Typer(
    name="wheel",
    help="Edit the decision wheel options",
)
app.add_typer(wheel_app, name="wheel")

# Focus timer sub-command group
timer_app = typer.Typer(
    name="timer",
    help="Focus and break timer",
)
app.add_typer(timer_app, name="timer")

# Rich console for formatted output
console = Console()
error_console = Console(stderr=True)

# Version
__version__ = "0.1.0"

_workspace: Optional[Workspace] = None
_seed_demo = False


def get_workspace() -> Workspace:
    """
    Open the session workspace on first use.

    Logging is configured here so commands that never touch data
    (version, help) don't create the data directory.
    """
    global _workspace
    if _workspace is None:
        data_dir = get_data_dir()
        setup_logging(data_dir, console_level=get_log_level())
        _workspace = Workspace(data_dir, seed_demo=_seed_demo)
        _workspace.open()
    return _workspace


def close_workspace() -> None:
    global _workspace
    if _workspace is not None:
        _workspace.close()
        _workspace = None


@app.callback(invoke_without_command=True)
def default_command(
    ctx: typer.Context,
    demo: bool = typer.Option(
        False, "--demo", help="Seed sample projects when none are stored yet"
    ),
):
    """
    Default callback - shows the dashboard when no command is specified.
    """
    global _seed_demo
    _seed_demo = demo
    ctx.call_on_close(close_workspace)
    if ctx.invoked_subcommand is None:
        from .commands.workflow import show_dashboard
        show_dashboard()


# Import command modules to register commands with app
# Commands are decorated with @app.command() in their modules
from .commands import (  # noqa: E402
    # System commands
    version,
    db_export,
    db_import,
    db_info,
    # Task commands
    add,
    ls,
    done,
    rm,
    edit,
    mv,
    order,
    link,
    # Workflow commands
    today,
    week,
    backlog,
    calendar,
    # Preference commands
    theme,
    wheel_ls,
    wheel_rename,
    wheel_reset,
    timer_show,
    timer_start,
    timer_pause,
    timer_reset,
    timer_skip,
    timer_done,
    # Project commands
    project_add,
    project_ls,
    project_rm,
    project_status,
    project_sync,
)


def main():
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
