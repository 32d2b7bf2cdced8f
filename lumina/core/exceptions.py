"""
FILE: lumina/core/exceptions.py
PURPOSE: Custom exception classes for error handling
EXPORTS:
  - LuminaError (base exception)
  - TaskNotFoundError
  - ProjectNotFoundError
  - WheelOptionNotFoundError
  - InvalidInputError
  - DatabaseNotReadyError
  - DatabaseInitError
  - DatabaseImportError
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - All exceptions inherit from LuminaError for easy catching
  - Persistence failures are logged, not raised, by the state managers;
    only input validation errors cross the manager API
  - CLI layer catches these and displays them
"""


class LuminaError(Exception):
    """Base exception for all Lumina errors."""
    pass


class TaskNotFoundError(LuminaError):
    """Task with given ID doesn't exist."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class ProjectNotFoundError(LuminaError):
    """Project with given ID doesn't exist."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class WheelOptionNotFoundError(LuminaError):
    """Decision wheel has no option with given ID."""

    def __init__(self, option_id: str):
        self.option_id = option_id
        super().__init__(f"Wheel option {option_id} not found")


class InvalidInputError(LuminaError):
    """Input validation failed."""

    def __init__(self, message: str):
        super().__init__(message)


class DatabaseNotReadyError(LuminaError):
    """The relational store was used before initialize() completed."""

    def __init__(self):
        super().__init__("Database not initialized. Call initialize() first.")


class DatabaseInitError(LuminaError):
    """Relational store initialization failed."""
    pass


class DatabaseImportError(LuminaError):
    """An imported blob is not a readable database."""
    pass
