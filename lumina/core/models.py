"""
FILE: lumina/core/models.py
PURPOSE: Domain models for tasks and projects
EXPORTS:
  - Task (dataclass)
  - Project (dataclass)
DEPENDENCIES:
  - dataclasses (stdlib)
  - json (stdlib)
  - typing (stdlib)
NOTES:
  - All models have from_row() for SQLite row conversion
  - All models have to_dict()/from_dict() for the durable JSON store,
    which keeps the camelCase field names of the stored documents
  - Optional fields use None as default
  - Timestamps stored as ISO-8601 strings
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional
import json

from .constants import DEFAULT_COLOR, DEFAULT_PRIORITY, DEFAULT_STATUS


def _row_value(row, name: str, default=None):
    """Read a column from a sqlite3.Row, tolerating columns an old schema lacks."""
    try:
        value = row[name]
    except (KeyError, IndexError):
        return default
    return default if value is None else value


@dataclass
class Task:
    """A unit of work living in one of the today/week/backlog buckets."""

    id: str
    title: str
    category: str
    completed: bool = False
    priority: str = DEFAULT_PRIORITY
    created_at: Optional[str] = None
    project_id: Optional[str] = None
    due_date: Optional[str] = None
    due_time: Optional[str] = None
    is_recurring: bool = False
    last_completed_at: Optional[str] = None
    order: int = 0

    # Python attribute -> stored document key
    JSON_KEYS = {
        "id": "id",
        "title": "title",
        "category": "category",
        "completed": "completed",
        "priority": "priority",
        "created_at": "createdAt",
        "project_id": "projectId",
        "due_date": "dueDate",
        "due_time": "dueTime",
        "is_recurring": "isRecurring",
        "last_completed_at": "lastCompletedAt",
        "order": "order",
    }

    @classmethod
    def from_row(cls, row) -> "Task":
        """Convert SQLite row to Task object."""
        return cls(
            id=row["id"],
            title=row["title"],
            completed=bool(row["completed"]),
            category=row["category"],
            priority=_row_value(row, "priority", DEFAULT_PRIORITY),
            created_at=row["created_at"],
            project_id=row["project_id"],
            due_date=row["due_date"],
            # Columns added after the first schema; old blobs are upgraded
            # on load, but stay tolerant here anyway
            due_time=_row_value(row, "due_time"),
            is_recurring=bool(_row_value(row, "is_recurring", 0)),
            last_completed_at=_row_value(row, "last_completed_at"),
            order=int(_row_value(row, "task_order", 0)),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Build a Task from a stored JSON document (camelCase keys)."""
        values = {}
        for attr, key in cls.JSON_KEYS.items():
            if key in data and data[key] is not None:
                values[attr] = data[key]
        values["completed"] = bool(values.get("completed", False))
        values["is_recurring"] = bool(values.get("is_recurring", False))
        values["order"] = int(values.get("order", 0) or 0)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON document with camelCase keys, omitting unset optionals."""
        data = {}
        for attr, key in self.JSON_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            data[key] = value
        return data


@dataclass
class Project:
    """A named body of work that aggregates tasks via Task.project_id."""

    id: str
    name: str
    description: str = ""
    progress: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0
    color: str = DEFAULT_COLOR
    status: str = DEFAULT_STATUS
    created_at: Optional[str] = None
    deadline: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    JSON_KEYS = {
        "id": "id",
        "name": "name",
        "description": "description",
        "progress": "progress",
        "total_tasks": "totalTasks",
        "completed_tasks": "completedTasks",
        "color": "color",
        "status": "status",
        "created_at": "createdAt",
        "deadline": "deadline",
        "tags": "tags",
    }

    @classmethod
    def from_row(cls, row) -> "Project":
        """Convert SQLite row to Project object."""
        raw_tags = row["tags"]
        try:
            tags = json.loads(raw_tags) if raw_tags else []
        except ValueError:
            tags = []

        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            progress=int(row["progress"] or 0),
            total_tasks=int(row["total_tasks"] or 0),
            completed_tasks=int(row["completed_tasks"] or 0),
            color=row["color"],
            status=row["status"],
            created_at=row["created_at"],
            deadline=row["deadline"],
            tags=list(tags) if isinstance(tags, list) else [],
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        """Build a Project from a stored JSON document (camelCase keys)."""
        values = {}
        for attr, key in cls.JSON_KEYS.items():
            if key in data and data[key] is not None:
                values[attr] = data[key]
        values["tags"] = list(values.get("tags", []))
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON document with camelCase keys, omitting unset optionals."""
        data = {}
        for attr, key in self.JSON_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            data[key] = list(value) if attr == "tags" else value
        return data


def field_names(model) -> List[str]:
    """Dataclass field names of a model class, in declaration order."""
    return [f.name for f in fields(model)]
