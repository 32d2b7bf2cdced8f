"""
FILE: lumina/cli/commands/__init__.py
PURPOSE: CLI command modules
"""

# Export all command handlers for easy importing
from .tasks import (
    add,
    ls,
    done,
    rm,
    edit,
    mv,
    order,
    link,
)
from .workflow import (
    today,
    week,
    backlog,
    calendar,
)
from .preferences import (
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
)
from .projects import (
    project_add,
    project_ls,
    project_rm,
    project_status,
    project_sync,
)
from .system import (
    version,
    db_export,
    db_import,
    db_info,
)

__all__ = [
    "add",
    "ls",
    "done",
    "rm",
    "edit",
    "mv",
    "order",
    "link",
    "today",
    "week",
    "backlog",
    "calendar",
    "theme",
    "wheel_ls",
    "wheel_rename",
    "wheel_reset",
    "timer_show",
    "timer_start",
    "timer_pause",
    "timer_reset",
    "timer_skip",
    "timer_done",
    "project_add",
    "project_ls",
    "project_rm",
    "project_status",
    "project_sync",
    "version",
    "db_export",
    "db_import",
    "db_info",
]
