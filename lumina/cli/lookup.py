"""
FILE: lumina/cli/lookup.py
PURPOSE: Resolve ids, short references and names typed on the command line
EXPORTS:
  - find_task(manager, ref) -> Task
  - find_project(manager, ref) -> Project
DEPENDENCIES:
  - lumina.core.service (TaskManager, ProjectManager)
  - lumina.core.exceptions
  - lumina.formatting (short_ref)
NOTES:
  - Accepts the full id or the short reference shown in tables
  - Projects can also be named (case-insensitive)
"""

from ..core.exceptions import InvalidInputError, ProjectNotFoundError, TaskNotFoundError
from ..core.models import Project, Task
from ..core.service import ProjectManager, TaskManager
from ..formatting import short_ref


def _match(items, ref: str):
    exact = [item for item in items if item.id == ref]
    if exact:
        return exact[0]
    by_ref = [item for item in items if short_ref(item.id) == ref]
    if len(by_ref) > 1:
        raise InvalidInputError(f"Reference '{ref}' is ambiguous; use the full id")
    return by_ref[0] if by_ref else None


def find_task(manager: TaskManager, ref: str) -> Task:
    """
    Raises:
        TaskNotFoundError: If nothing matches ref
        InvalidInputError: If ref matches more than one task
    """
    task = _match(manager.tasks, ref.strip())
    if task is None:
        raise TaskNotFoundError(ref)
    return task


def find_project(manager: ProjectManager, ref: str) -> Project:
    """
    Raises:
        ProjectNotFoundError: If nothing matches ref
        InvalidInputError: If ref matches more than one project
    """
    ref = ref.strip()
    project = _match(manager.projects, ref)
    if project is not None:
        return project

    named = [p for p in manager.projects if p.name.lower() == ref.lower()]
    if len(named) > 1:
        raise InvalidInputError(f"Several projects are named '{ref}'; use the id")
    if not named:
        raise ProjectNotFoundError(ref)
    return named[0]
