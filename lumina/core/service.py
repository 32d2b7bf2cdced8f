"""
FILE: lumina/core/service.py
PURPOSE: Stateful task and project managers over a switchable backend
EXPORTS:
  - BackendState: uninitialized -> migrating -> relational-active
  - BackendSelector: compare-and-transition holder for BackendState
  - StateManager: shared collection/persistence/migration logic
  - TaskManager: add, update, remove, toggle, reorder, move,
                 link_to_project, reset_recurring + category views
  - ProjectManager: add, update, remove, update_progress, change_status
                    + status views
  - generate_id(prefix) -> str
DEPENDENCIES:
  - lumina.core.backends (durable and relational backends)
  - lumina.core.repository (TaskRepository, ProjectRepository)
  - lumina.core.filters (derived views)
  - lumina.core.exceptions (InvalidInputError)
NOTES:
  - The manager's in-memory list is the source of truth for the session
  - Every mutation changes memory first, then persists best-effort through
    _persist(); persistence errors are logged, never raised
  - Until the database signals readiness everything goes to the durable
    JSON store; on readiness the manager migrates once (only when the
    table is empty) and then uses the database for the rest of the session
  - Unknown ids on update/remove/toggle are silent no-ops
  - A task changes category or order only through move() and reorder()
  - Deleting a project never touches tasks that reference it
"""

import logging
import math
import random
import string
import time
from dataclasses import replace
from datetime import date, datetime
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Union

from .backends import (
    DurableBackend,
    DurableTaskBackend,
    EntityBackend,
    RelationalBackend,
    RelationalTaskBackend,
)
from .constants import (
    CATEGORIES,
    CATEGORY_BACKLOG,
    CATEGORY_TODAY,
    CATEGORY_WEEK,
    DEFAULT_COLOR,
    DEFAULT_PRIORITY,
    PRIORITIES,
    PROJECT_COLORS,
    PROJECT_ID_PREFIX,
    PROJECT_STATUSES,
    PROJECTS_KEY,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_ON_HOLD,
    TASK_ID_PREFIX,
    TASKS_KEY,
)
from .database import Database
from .exceptions import InvalidInputError
from .filters import TaskFilter, by_category, by_project, by_status
from .models import Task, Project, field_names
from .repository import TaskRepository, ProjectRepository
from .storage import JsonStore

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str) -> str:
    """
    Build an id like task_1767225600000_k3j9x0a1b.

    Millisecond timestamp plus a random suffix; collisions are unlikely
    but not impossible.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}_{millis}_{suffix}"


def _now() -> str:
    return datetime.now().isoformat()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _require_choice(kind: str, value: str, choices: Sequence[str]) -> str:
    if value not in choices:
        raise InvalidInputError(
            f"Invalid {kind} '{value}'. Must be one of: {', '.join(choices)}"
        )
    return value


def _require_text(kind: str, value: Optional[str]) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidInputError(f"{kind} cannot be empty")
    return value


def _local_day(timestamp: Optional[str]) -> Optional[date]:
    """Local calendar day of an ISO timestamp, None if absent or unreadable."""
    if not timestamp:
        return None
    try:
        moment = datetime.fromisoformat(timestamp)
    except ValueError:
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date()


# --- Backend selection ---


class BackendState(Enum):
    UNINITIALIZED = "uninitialized"
    MIGRATING = "migrating"
    RELATIONAL_ACTIVE = "relational-active"


_ALLOWED_TRANSITIONS = {
    (BackendState.UNINITIALIZED, BackendState.MIGRATING),
    (BackendState.MIGRATING, BackendState.RELATIONAL_ACTIVE),
}


class BackendSelector:
    """Holds the backend state; transitions only move forward."""

    def __init__(self) -> None:
        self._state = BackendState.UNINITIALIZED

    @property
    def state(self) -> BackendState:
        return self._state

    def transition(self, expected: BackendState, new: BackendState) -> bool:
        """
        Move to new if currently in expected.

        Returns:
            True if the transition happened, False if the state had
            already moved on (or the edge is not allowed).
        """
        if self._state is not expected:
            return False
        if (expected, new) not in _ALLOWED_TRANSITIONS:
            return False
        logger.debug("Backend state %s -> %s", expected.value, new.value)
        self._state = new
        return True


# --- Managers ---


class StateManager:
    """
    In-memory collection of one entity type reconciled with a backend.

    Subclasses set entity_name and immutable_fields and add their
    domain operations on top of the shared helpers here.
    """

    entity_name = "entity"
    model = None
    immutable_fields = ("id", "created_at")
    internal_fields = ()

    def __init__(self, durable: DurableBackend, relational: RelationalBackend) -> None:
        self._selector = BackendSelector()
        self._durable = durable
        self._relational = relational
        self._items: List = durable.get_all()
        self._unsubscribe = durable.subscribe(self._on_durable_change)

    # --- Backend state ---

    @property
    def state(self) -> BackendState:
        return self._selector.state

    @property
    def is_relational(self) -> bool:
        return self._selector.state is BackendState.RELATIONAL_ACTIVE

    @property
    def backend(self) -> EntityBackend:
        if self.is_relational:
            return self._relational
        return self._durable

    def on_store_ready(self) -> None:
        """
        Switch to the database once it is open, migrating if needed.

        Runs at most once per manager. Rows already in the table win;
        otherwise every entity from the durable store is inserted.
        """
        if not self._selector.transition(BackendState.UNINITIALIZED, BackendState.MIGRATING):
            return

        try:
            existing = self._relational.get_all()
            if existing:
                self._items = existing
                logger.info("Loaded %d %ss from database", len(existing), self.entity_name)
            else:
                local = self._durable.get_all()
                for entity in local:
                    self._relational.insert(entity)
                self._items = local
                if local:
                    logger.info(
                        "Migrated %d %ss from durable store to database",
                        len(local), self.entity_name,
                    )
        except Exception as e:
            # Stay on the database anyway; memory keeps whatever it held
            logger.error("Database error while switching %ss to database: %s", self.entity_name, e)
        finally:
            self._selector.transition(BackendState.MIGRATING, BackendState.RELATIONAL_ACTIVE)

    def _on_durable_change(self, entities: List) -> None:
        # Another process replaced the durable list; only relevant before
        # the database takes over
        if self.state is BackendState.UNINITIALIZED:
            logger.info("Reloaded %ss changed by another process", self.entity_name)
            self._items = entities

    def refresh(self) -> None:
        """Reload the in-memory collection from the active backend."""
        try:
            self._items = self.backend.get_all()
        except Exception as e:
            logger.error("Failed to load %ss: %s", self.entity_name, e)

    def close(self) -> None:
        self._unsubscribe()

    # --- Shared helpers ---

    def _persist(self, action: str, operation: Callable[[EntityBackend], None]) -> bool:
        """Run operation against the active backend, logging any failure."""
        backend = self.backend
        try:
            operation(backend)
        except Exception as e:
            logger.error("Failed to %s %s (%s backend): %s", action, self.entity_name, backend.name, e)
            return False
        return True

    def find(self, entity_id: str):
        return next((item for item in self._items if item.id == entity_id), None)

    def _check_fields(self, changes: dict) -> None:
        allowed = (
            set(field_names(self.model))
            - set(self.immutable_fields)
            - set(self.internal_fields)
        )
        unknown = sorted(set(changes) - allowed)
        if unknown:
            raise InvalidInputError(
                f"Cannot update {self.entity_name} field(s): {', '.join(unknown)}"
            )

    def _validate_changes(self, changes: dict) -> dict:
        return changes

    def update(self, entity_id: str, **changes):
        """
        Merge changes onto an entity and persist the merged result.

        Returns:
            The updated entity, or None if entity_id is unknown

        Raises:
            InvalidInputError: For unknown, immutable or internally managed
                fields, or invalid values
        """
        self._check_fields(changes)
        return self._apply(entity_id, self._validate_changes(changes))

    def _apply(self, entity_id: str, changes: dict):
        updated = None
        items = []
        for item in self._items:
            if item.id == entity_id:
                item = replace(item, **changes)
                updated = item
            items.append(item)
        self._items = items

        if updated is not None:
            self._persist("update", lambda backend: backend.update(updated))
        return updated

    def remove(self, entity_id: str) -> None:
        """Delete from the backend and from memory (unknown ids are ignored)."""
        self._persist("delete", lambda backend: backend.delete(entity_id))
        self._items = [item for item in self._items if item.id != entity_id]

    def _insert(self, entity) -> None:
        self._persist("insert", lambda backend: backend.insert(entity))
        self._items = self._items + [entity]


class TaskManager(StateManager):
    """Tasks grouped into today/week/backlog, with recurring-task resets."""

    entity_name = "task"
    model = Task
    internal_fields = ("category", "order")

    @classmethod
    def create(cls, store: JsonStore, db: Database) -> "TaskManager":
        """Build a manager over the default store key and the given database."""
        manager = cls(
            DurableTaskBackend(store, TASKS_KEY, Task),
            RelationalTaskBackend(TaskRepository(db)),
        )
        db.add_ready_listener(manager.on_store_ready)
        return manager

    # --- Views ---

    @property
    def tasks(self) -> List[Task]:
        """All tasks, after resetting recurring tasks completed on an earlier day."""
        self.reset_recurring()
        return list(self._items)

    def by_category(self, category: str) -> List[Task]:
        return by_category(self.tasks, category)

    def by_project(self, project_id: str) -> List[Task]:
        return by_project(self.tasks, project_id)

    def filtered(self, task_filter: TaskFilter, category: Optional[str] = None) -> List[Task]:
        tasks = self.by_category(category) if category else self.tasks
        return task_filter.apply(tasks)

    @property
    def today(self) -> List[Task]:
        return self.by_category(CATEGORY_TODAY)

    @property
    def week(self) -> List[Task]:
        return self.by_category(CATEGORY_WEEK)

    @property
    def backlog(self) -> List[Task]:
        return self.by_category(CATEGORY_BACKLOG)

    # --- Operations ---

    def _validate_changes(self, changes: dict) -> dict:
        if "title" in changes:
            changes["title"] = _require_text("Task title", changes["title"])
        if "priority" in changes:
            _require_choice("priority", changes["priority"], PRIORITIES)
        return changes

    def add(
        self,
        title: str,
        category: str,
        priority: Optional[str] = None,
        project_id: Optional[str] = None,
        due_date: Optional[str] = None,
        due_time: Optional[str] = None,
        is_recurring: bool = False,
    ) -> Task:
        """
        Create a task at the end of its category.

        Raises:
            InvalidInputError: If title is empty or category/priority is invalid

        Notes:
            - order is the current number of tasks in the category, so it can
              repeat an existing value after deletions
        """
        title = _require_text("Task title", title)
        _require_choice("category", category, CATEGORIES)
        priority = _require_choice("priority", priority or DEFAULT_PRIORITY, PRIORITIES)

        task = Task(
            id=generate_id(TASK_ID_PREFIX),
            title=title,
            category=category,
            completed=False,
            priority=priority,
            created_at=_now(),
            project_id=project_id,
            due_date=due_date,
            due_time=due_time,
            is_recurring=bool(is_recurring),
            order=sum(1 for t in self._items if t.category == category),
        )
        self._insert(task)
        return task

    def toggle(self, task_id: str) -> Optional[Task]:
        """
        Flip completion.

        A recurring task that becomes complete records last_completed_at;
        un-completing leaves it as it was.
        """
        self.reset_recurring()
        task = self.find(task_id)
        if task is None:
            return None

        completed = not task.completed
        changes = {"completed": completed}
        if task.is_recurring and completed:
            changes["last_completed_at"] = _now()
        return self.update(task_id, **changes)

    def reorder(self, category: str, ordered: Sequence[Union[Task, str]]) -> List[Task]:
        """
        Make ordered the new sequence of category, numbering it 0..n-1.

        Args:
            category: Target category
            ordered: Tasks (or task ids) in their new order; a task from
                another category is moved into this one

        Returns:
            The reordered tasks

        Notes:
            The list is trusted to be complete for the category. A size
            mismatch is logged but still applied. A task listed twice keeps
            its first position.
        """
        _require_choice("category", category, CATEGORIES)
        ids = []
        for item in ordered:
            task_id = item.id if isinstance(item, Task) else item
            if task_id in ids:
                logger.warning("Ignoring duplicate task %s in reorder", task_id)
                continue
            ids.append(task_id)

        current = sum(1 for t in self._items if t.category == category)
        if current != len(ids):
            logger.warning(
                "Reordering %s with %d tasks but it holds %d", category, len(ids), current
            )

        by_id = {t.id: t for t in self._items}
        moved = []
        reordered = []
        for task_id in ids:
            task = by_id.get(task_id)
            if task is None:
                logger.warning("Ignoring unknown task %s in reorder", task_id)
                continue
            if task.category != category:
                moved.append(task_id)
            reordered.append(replace(task, category=category, order=len(reordered)))

        placed = {t.id for t in reordered}
        others = [t for t in self._items if t.id not in placed]
        self._items = others + reordered

        def persist(backend):
            for task in reordered:
                if task.id in moved:
                    backend.update(task)
            backend.reorder(category, [t.id for t in reordered])

        self._persist("reorder", persist)
        return reordered

    def move(self, task_id: str, category: str) -> Optional[Task]:
        """Move a task to the end of another category."""
        _require_choice("category", category, CATEGORIES)
        task = self.find(task_id)
        if task is None or task.category == category:
            return task
        order = sum(1 for t in self._items if t.category == category)
        return self._apply(task_id, {"category": category, "order": order})

    def link_to_project(self, task_id: str, project_id: Optional[str]) -> Optional[Task]:
        """Link a task to a project, or unlink it with None."""
        return self.update(task_id, project_id=project_id)

    def reset_recurring(self, today: Optional[date] = None) -> int:
        """
        Mark recurring tasks completed on an earlier day as not completed.

        Returns:
            Number of tasks reset (0 on a second run the same day)
        """
        today = today or date.today()
        due = {
            t.id for t in self._items
            if t.is_recurring and t.completed and _local_day(t.last_completed_at) != today
        }
        if not due:
            return 0

        self._items = [replace(t, completed=False) if t.id in due else t for t in self._items]
        for task in self._items:
            if task.id in due:
                self._persist("reset", lambda backend, task=task: backend.update(task))

        logger.info("Reset %d recurring task(s)", len(due))
        return len(due)


def demo_projects() -> List[Project]:
    """Sample projects shown to first-time users."""
    return [
        Project(
            id="demo-1",
            name="App Redesign",
            description="Modernize the user interface with a fresh, minimal look.",
            progress=65,
            total_tasks=12,
            completed_tasks=8,
            color="slate",
            status=STATUS_ACTIVE,
            created_at="2025-12-15T10:00:00Z",
            deadline="2026-01-15T23:59:59Z",
            tags=["design", "frontend"],
        ),
        Project(
            id="demo-2",
            name="Documentation",
            description="Write comprehensive documentation for the API.",
            progress=30,
            total_tasks=10,
            completed_tasks=3,
            color="sage",
            status=STATUS_ACTIVE,
            created_at="2025-12-20T14:30:00Z",
            deadline="2026-01-31T23:59:59Z",
            tags=["docs"],
        ),
    ]


class ProjectManager(StateManager):
    """Projects with cached progress derived from linked task counts."""

    entity_name = "project"
    model = Project

    @classmethod
    def create(cls, store: JsonStore, db: Database, seed_demo: bool = False) -> "ProjectManager":
        """Build a manager over the default store key and the given database."""
        default = demo_projects() if seed_demo else []
        manager = cls(
            DurableBackend(store, PROJECTS_KEY, Project, default=default),
            RelationalBackend(ProjectRepository(db)),
        )
        db.add_ready_listener(manager.on_store_ready)
        return manager

    # --- Views ---

    @property
    def projects(self) -> List[Project]:
        return list(self._items)

    @property
    def active(self) -> List[Project]:
        return by_status(self._items, STATUS_ACTIVE)

    @property
    def on_hold(self) -> List[Project]:
        return by_status(self._items, STATUS_ON_HOLD)

    @property
    def completed(self) -> List[Project]:
        return by_status(self._items, STATUS_COMPLETED)

    # --- Operations ---

    def _validate_changes(self, changes: dict) -> dict:
        if "name" in changes:
            changes["name"] = _require_text("Project name", changes["name"])
        if "status" in changes:
            _require_choice("status", changes["status"], PROJECT_STATUSES)
        if "color" in changes:
            _require_choice("color", changes["color"], PROJECT_COLORS)
        if "tags" in changes:
            changes["tags"] = list(changes["tags"] or [])
        return changes

    def add(
        self,
        name: str,
        description: str = "",
        color: Optional[str] = None,
        deadline: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> Project:
        """
        Create an active project with no progress.

        Raises:
            InvalidInputError: If name is empty or color is invalid
        """
        name = _require_text("Project name", name)
        color = _require_choice("color", color or DEFAULT_COLOR, PROJECT_COLORS)

        project = Project(
            id=generate_id(PROJECT_ID_PREFIX),
            name=name,
            description=(description or "").strip(),
            color=color,
            status=STATUS_ACTIVE,
            created_at=_now(),
            deadline=deadline,
            tags=list(tags or []),
        )
        self._insert(project)
        return project

    def update_progress(self, project_id: str, completed_tasks: int, total_tasks: int) -> Optional[Project]:
        """
        Snapshot task counts into the project's cached progress.

        progress is round(completed / total * 100), or 0 with no tasks.
        status becomes completed at 100 and active otherwise, so an
        on-hold project is reactivated by this call.
        """
        if total_tasks > 0:
            progress = _round_half_up(completed_tasks / total_tasks * 100)
        else:
            progress = 0
        status = STATUS_COMPLETED if progress == 100 else STATUS_ACTIVE
        return self.update(
            project_id,
            completed_tasks=completed_tasks,
            total_tasks=total_tasks,
            progress=progress,
            status=status,
        )

    def change_status(self, project_id: str, status: str) -> Optional[Project]:
        """Set any status directly, regardless of progress."""
        return self.update(project_id, status=status)
