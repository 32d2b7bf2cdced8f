"""
Tests for the table-level repositories.

Covers:
- Read-after-write equality for tasks and projects
- Ordering of get_all() results
- toggle_completion() and reorder()
- Deleting projects leaves linked tasks alone
- The settings key/value table
"""

import pytest

from lumina.core.models import Task, Project
from lumina.core.repository import TaskRepository, ProjectRepository, SettingsRepository


@pytest.fixture
def tasks(ready_db):
    return TaskRepository(ready_db)


@pytest.fixture
def projects(ready_db):
    return ProjectRepository(ready_db)


def make_task(task_id, category="today", order=0, **kwargs):
    return Task(
        id=task_id,
        title=kwargs.pop("title", f"Task {task_id}"),
        category=category,
        created_at=kwargs.pop("created_at", "2026-03-01T10:00:00"),
        order=order,
        **kwargs,
    )


def make_project(project_id, created_at="2026-03-01T10:00:00", **kwargs):
    return Project(
        id=project_id,
        name=kwargs.pop("name", f"Project {project_id}"),
        created_at=created_at,
        **kwargs,
    )


# --- Tasks ---


def test_task_round_trip_keeps_every_field(tasks):
    """Test that get_by_id returns exactly what was inserted."""
    task = make_task(
        "task_1_full",
        category="week",
        completed=True,
        priority="high",
        project_id="project_1_x",
        due_date="2026-03-05",
        due_time="14:30",
        is_recurring=True,
        last_completed_at="2026-03-01T18:00:00",
        order=4,
    )
    tasks.insert(task)

    assert tasks.get_by_id(task.id) == task


def test_get_by_id_missing_returns_none(tasks):
    """Test that an unknown id gives None rather than raising."""
    assert tasks.get_by_id("task_nope") is None


def test_get_all_sorted_by_order(tasks):
    """Test that tasks come back by their order value."""
    tasks.insert(make_task("c", order=2))
    tasks.insert(make_task("a", order=0))
    tasks.insert(make_task("b", order=1))

    assert [t.id for t in tasks.get_all()] == ["a", "b", "c"]


def test_get_by_category(tasks):
    """Test that category queries only return that category, in order."""
    tasks.insert(make_task("t2", "today", order=1))
    tasks.insert(make_task("w1", "week", order=0))
    tasks.insert(make_task("t1", "today", order=0))

    assert [t.id for t in tasks.get_by_category("today")] == ["t1", "t2"]
    assert [t.id for t in tasks.get_by_category("backlog")] == []


def test_update_overwrites_mutable_fields(tasks):
    """Test that update writes the new values but keeps created_at."""
    task = make_task("t1")
    tasks.insert(task)

    changed = make_task(
        "t1",
        category="backlog",
        title="Renamed",
        priority="low",
        created_at="1999-01-01T00:00:00",
        order=3,
    )
    tasks.update(changed)

    stored = tasks.get_by_id("t1")
    assert stored.title == "Renamed"
    assert stored.category == "backlog"
    assert stored.priority == "low"
    assert stored.order == 3
    assert stored.created_at == task.created_at


def test_update_and_delete_missing_ids_are_noops(tasks):
    """Test that writes to unknown ids change nothing and don't raise."""
    tasks.update(make_task("ghost"))
    tasks.delete("ghost")

    assert tasks.get_all() == []


def test_delete_task(tasks):
    """Test that a deleted task is gone."""
    tasks.insert(make_task("t1"))
    tasks.delete("t1")

    assert tasks.get_by_id("t1") is None


def test_toggle_completion_flips_flag(tasks):
    """Test that toggle_completion inverts completed each time."""
    tasks.insert(make_task("t1"))

    tasks.toggle_completion("t1")
    assert tasks.get_by_id("t1").completed is True

    tasks.toggle_completion("t1")
    assert tasks.get_by_id("t1").completed is False


def test_reorder_assigns_positions(tasks):
    """Test that reorder stores each id's index as its order."""
    for index, task_id in enumerate(["a", "b", "c"]):
        tasks.insert(make_task(task_id, order=index))

    tasks.reorder("today", ["c", "a", "b"])

    assert [t.id for t in tasks.get_by_category("today")] == ["c", "a", "b"]
    assert [t.order for t in tasks.get_by_category("today")] == [0, 1, 2]


def test_count(tasks):
    """Test total and completed counts."""
    tasks.insert(make_task("a"))
    tasks.insert(make_task("b", completed=True))

    assert tasks.count() == (2, 1)


# --- Projects ---


def test_project_round_trip_keeps_every_field(projects):
    """Test that tags and all numeric fields survive storage."""
    project = make_project(
        "project_1_full",
        description="Everything set",
        progress=40,
        total_tasks=5,
        completed_tasks=2,
        color="rose",
        status="on-hold",
        deadline="2026-06-30T23:59:59Z",
        tags=["home", "garden"],
    )
    projects.insert(project)

    assert projects.get_by_id(project.id) == project


def test_projects_newest_first(projects):
    """Test that get_all orders by creation time, newest first."""
    projects.insert(make_project("old", created_at="2026-01-01T00:00:00"))
    projects.insert(make_project("new", created_at="2026-02-01T00:00:00"))

    assert [p.id for p in projects.get_all()] == ["new", "old"]


def test_get_by_status(projects):
    """Test that status queries filter projects."""
    projects.insert(make_project("a", status="active"))
    projects.insert(make_project("h", status="on-hold"))

    assert [p.id for p in projects.get_by_status("on-hold")] == ["h"]


def test_project_update(projects):
    """Test that update rewrites progress, status and tags."""
    projects.insert(make_project("p1"))
    projects.update(make_project("p1", progress=100, status="completed", tags=["done"]))

    stored = projects.get_by_id("p1")
    assert stored.progress == 100
    assert stored.status == "completed"
    assert stored.tags == ["done"]


def test_deleting_project_keeps_linked_tasks(tasks, projects):
    """Test that tasks still reference a deleted project."""
    projects.insert(make_project("project_1_gone"))
    tasks.insert(make_task("t1", project_id="project_1_gone"))

    projects.delete("project_1_gone")

    assert projects.get_by_id("project_1_gone") is None
    remaining = tasks.get_by_id("t1")
    assert remaining is not None
    assert remaining.project_id == "project_1_gone"


# --- Settings ---


def test_settings_round_trip(ready_db):
    """Test that settings store JSON values by key."""
    settings = SettingsRepository(ready_db)
    settings.set("theme", "dark")
    settings.set("wheel", ["a", "b"])
    settings.set("theme", "light")

    assert settings.get("theme") == "light"
    assert settings.get("wheel") == ["a", "b"]
    assert settings.get("missing", 5) == 5
    assert settings.all() == {"theme": "light", "wheel": ["a", "b"]}
