"""
FILE: lumina/core/repository.py
PURPOSE: Table-level operations over the embedded SQLite database
EXPORTS:
  - TaskRepository: CRUD + ordering over the tasks table
  - ProjectRepository: CRUD over the projects table
  - SettingsRepository: key/value access to the settings table
DEPENDENCIES:
  - json, logging (stdlib)
  - lumina.core.database (Database)
  - lumina.core.models (Task, Project)
NOTES:
  - Each operation is one statement (reorder: one per id, persisted once)
  - Returns domain objects (Task, Project), never raw rows
  - Booleans are stored as 0/1, project tags as JSON text
  - Columns are snake_case; the mapping to model fields lives here and in
    the models' from_row()
  - No existence checks: updating or deleting a missing id changes nothing
"""

import json
import logging
from typing import Any, List, Optional, Sequence, Tuple

from .database import Database
from .models import Task, Project

logger = logging.getLogger(__name__)


class TaskRepository:
    """Operations on the tasks table."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def get_all(self) -> List[Task]:
        """All tasks, ordered by their position within a category."""
        rows = self.db.query("SELECT * FROM tasks ORDER BY task_order ASC")
        return [Task.from_row(row) for row in rows]

    def get_by_id(self, task_id: str) -> Optional[Task]:
        rows = self.db.query("SELECT * FROM tasks WHERE id = ?", (task_id,))
        return Task.from_row(rows[0]) if rows else None

    def get_by_category(self, category: str) -> List[Task]:
        rows = self.db.query(
            "SELECT * FROM tasks WHERE category = ? ORDER BY task_order ASC",
            (category,),
        )
        return [Task.from_row(row) for row in rows]

    def insert(self, task: Task) -> None:
        """Insert a new task row (id must be unique)."""
        self.db.execute(
            """
            INSERT INTO tasks (id, title, completed, category, priority, created_at,
                               project_id, due_date, due_time, is_recurring,
                               last_completed_at, task_order)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.id,
                task.title,
                1 if task.completed else 0,
                task.category,
                task.priority,
                task.created_at,
                task.project_id,
                task.due_date,
                task.due_time,
                1 if task.is_recurring else 0,
                task.last_completed_at,
                task.order or 0,
            ),
        )

    def update(self, task: Task) -> None:
        """
        Overwrite every mutable column of an existing task.

        Note:
            id and created_at are never changed.
        """
        self.db.execute(
            """
            UPDATE tasks
            SET title = ?,
                completed = ?,
                category = ?,
                priority = ?,
                project_id = ?,
                due_date = ?,
                due_time = ?,
                is_recurring = ?,
                last_completed_at = ?,
                task_order = ?
            WHERE id = ?
            """,
            (
                task.title,
                1 if task.completed else 0,
                task.category,
                task.priority,
                task.project_id,
                task.due_date,
                task.due_time,
                1 if task.is_recurring else 0,
                task.last_completed_at,
                task.order or 0,
                task.id,
            ),
        )

    def delete(self, task_id: str) -> None:
        self.db.execute("DELETE FROM tasks WHERE id = ?", (task_id,))

    def toggle_completion(self, task_id: str) -> None:
        """Flip the completed flag in place."""
        self.db.execute(
            "UPDATE tasks SET completed = NOT completed WHERE id = ?", (task_id,)
        )

    def reorder(self, category: str, ordered_ids: Sequence[str]) -> None:
        """
        Set task_order to each id's position in ordered_ids.

        Note:
            The list is trusted to be the complete set for the category;
            ids left out keep their old position.
        """
        self.db.execute_batch(
            "UPDATE tasks SET task_order = ? WHERE id = ?",
            [(index, task_id) for index, task_id in enumerate(ordered_ids)],
        )

    def count(self) -> Tuple[int, int]:
        """Return (total, completed) task counts."""
        total = self.db.query("SELECT COUNT(*) FROM tasks")[0][0]
        completed = self.db.query("SELECT COUNT(*) FROM tasks WHERE completed = 1")[0][0]
        return int(total), int(completed)


class ProjectRepository:
    """Operations on the projects table."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def get_all(self) -> List[Project]:
        """All projects, newest first."""
        rows = self.db.query("SELECT * FROM projects ORDER BY created_at DESC")
        return [Project.from_row(row) for row in rows]

    def get_by_id(self, project_id: str) -> Optional[Project]:
        rows = self.db.query("SELECT * FROM projects WHERE id = ?", (project_id,))
        return Project.from_row(rows[0]) if rows else None

    def get_by_status(self, status: str) -> List[Project]:
        rows = self.db.query(
            "SELECT * FROM projects WHERE status = ? ORDER BY created_at DESC",
            (status,),
        )
        return [Project.from_row(row) for row in rows]

    def insert(self, project: Project) -> None:
        self.db.execute(
            """
            INSERT INTO projects (id, name, description, progress, total_tasks,
                                  completed_tasks, color, status, created_at,
                                  deadline, tags)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                project.id,
                project.name,
                project.description,
                project.progress,
                project.total_tasks,
                project.completed_tasks,
                project.color,
                project.status,
                project.created_at,
                project.deadline,
                json.dumps(list(project.tags)),
            ),
        )

    def update(self, project: Project) -> None:
        self.db.execute(
            """
            UPDATE projects
            SET name = ?,
                description = ?,
                progress = ?,
                total_tasks = ?,
                completed_tasks = ?,
                color = ?,
                status = ?,
                deadline = ?,
                tags = ?
            WHERE id = ?
            """,
            (
                project.name,
                project.description,
                project.progress,
                project.total_tasks,
                project.completed_tasks,
                project.color,
                project.status,
                project.deadline,
                json.dumps(list(project.tags)),
                project.id,
            ),
        )

    def delete(self, project_id: str) -> None:
        """
        Delete a project row.

        Note:
            Tasks referencing the project keep their project_id.
        """
        self.db.execute("DELETE FROM projects WHERE id = ?", (project_id,))


class SettingsRepository:
    """JSON values stored in the settings table."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def get(self, key: str, default: Any = None) -> Any:
        rows = self.db.query("SELECT value FROM settings WHERE key = ?", (key,))
        if not rows or rows[0]["value"] is None:
            return default
        try:
            return json.loads(rows[0]["value"])
        except ValueError:
            logger.warning("Ignoring unparsable setting %r", key)
            return default

    def set(self, key: str, value: Any) -> None:
        self.db.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
            (key, json.dumps(value)),
        )

    def all(self) -> dict:
        rows = self.db.query("SELECT key, value FROM settings ORDER BY key")
        result = {}
        for row in rows:
            try:
                result[row["key"]] = json.loads(row["value"]) if row["value"] is not None else None
            except ValueError:
                result[row["key"]] = row["value"]
        return result
