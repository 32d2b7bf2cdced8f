"""
FILE: lumina/cli/commands/preferences.py
PURPOSE: Theme, decision wheel and focus timer commands
"""

import json
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from ..main import app, console, error_console, get_workspace, timer_app, wheel_app
from ...core.exceptions import LuminaError
from ...core.preferences import TimerState


@app.command()
def theme(
    value: Optional[str] = typer.Argument(None, help="light, dark or toggle; omit to show"),
):
    """
    Show or change the display theme.

    Example:
        lumina theme
        lumina theme dark
        lumina theme toggle
    """
    prefs = get_workspace().theme
    try:
        if value is None:
            current = prefs.theme
        elif value == "toggle":
            current = prefs.toggle()
        else:
            current = prefs.set_theme(value)
    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    typer.echo(current)


# --- Decision wheel ---


def print_wheel(options, json_output: bool) -> None:
    if json_output:
        typer.echo(json.dumps([o.to_dict() for o in options], indent=2))
        return

    table = Table(title="Decision wheel", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Label", style="white")
    table.add_column("Color", style="dim")
    for option in options:
        table.add_row(option.id, escape(option.label), option.color)
    console.print(table)


@wheel_app.command("ls")
def wheel_ls(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List the wheel options."""
    print_wheel(get_workspace().wheel.options, json_output)


@wheel_app.command("rename")
def wheel_rename(
    option_id: str = typer.Argument(..., help="Option id (opt-1 ... opt-6)"),
    label: str = typer.Argument(..., help="New label"),
):
    """
    Change the label of one wheel option.

    Example:
        lumina wheel rename opt-2 "Go for a walk"
    """
    try:
        option = get_workspace().wheel.update_label(option_id, label)
    except LuminaError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {option.id}: {escape(option.label)}", highlight=False)


@wheel_app.command("reset")
def wheel_reset(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Restore the default wheel labels."""
    print_wheel(get_workspace().wheel.reset(), json_output)


# --- Focus timer ---


def print_timer(state: TimerState, json_output: bool) -> None:
    if json_output:
        typer.echo(json.dumps(state.to_dict(), indent=2))
        return

    running = "running" if state.is_running else "paused"
    console.print(
        f"[bold]{state.mode.title()}[/bold] {state.formatted} ({running}), "
        f"{state.sessions} session(s) completed",
        highlight=False,
    )


@timer_app.command("show")
def timer_show(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the timer mode, time left and completed sessions."""
    print_timer(get_workspace().timer.state, json_output)


@timer_app.command("start")
def timer_start(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Mark the timer as running."""
    print_timer(get_workspace().timer.start(), json_output)


@timer_app.command("pause")
def timer_pause(
    remaining: Optional[int] = typer.Option(None, "--remaining", help="Seconds left to keep"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Pause the timer, optionally recording the seconds left.

    Example:
        lumina timer pause --remaining 900
    """
    print_timer(get_workspace().timer.pause(remaining), json_output)


@timer_app.command("reset")
def timer_reset(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Restart the current mode from its full length."""
    print_timer(get_workspace().timer.reset(), json_output)


@timer_app.command("skip")
def timer_skip(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Switch between focus and break without counting a session."""
    print_timer(get_workspace().timer.skip(), json_output)


@timer_app.command("done")
def timer_done(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Finish the current session; finished focus sessions are counted."""
    print_timer(get_workspace().timer.complete_session(), json_output)
