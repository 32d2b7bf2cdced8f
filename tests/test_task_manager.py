"""
Tests for TaskManager.

Covers:
- Adding, updating, toggling and removing tasks on both backends
- Dense ordering after reorder() and move()
- Migration from the durable store when the database becomes ready
- Recurring task resets
- Persistence failures never reaching the caller
"""

import asyncio
import logging
import sqlite3
from datetime import date, datetime, timedelta

import pytest

from lumina.core.constants import TASKS_KEY
from lumina.core.database import Database
from lumina.core.exceptions import InvalidInputError
from lumina.core.models import Task
from lumina.core.repository import TaskRepository
from lumina.core.service import BackendState, TaskManager, generate_id
from lumina.core.storage import JsonStore


@pytest.fixture
def manager(store, database):
    """TaskManager still running on the durable store."""
    tm = TaskManager.create(store, database)
    yield tm
    tm.close()


def start(database):
    asyncio.run(database.initialize())


def orders(manager, category):
    return {t.title: t.order for t in manager.by_category(category)}


# --- Ids ---


def test_generate_id_format():
    """Test that ids are prefix, millisecond timestamp and random suffix."""
    prefix, millis, suffix = generate_id("task").split("_")

    assert prefix == "task"
    assert millis.isdigit() and len(millis) >= 13
    assert len(suffix) == 9
    assert suffix.isalnum() and suffix == suffix.lower()


def test_generated_ids_differ():
    """Test that consecutive ids are not reused."""
    assert len({generate_id("task") for _ in range(50)}) == 50


# --- Adding ---


def test_add_defaults(manager):
    """Test that a new task starts open, medium priority, with a timestamp."""
    task = manager.add("Buy milk", "today")

    assert task.id.startswith("task_")
    assert task.completed is False
    assert task.priority == "medium"
    assert task.is_recurring is False
    assert datetime.fromisoformat(task.created_at)
    assert manager.tasks == [task]


@pytest.mark.parametrize("relational", [False, True])
def test_add_then_reorder_scenario(manager, database, relational):
    """Test the add/add/reorder sequence on either backend."""
    if relational:
        start(database)

    milk = manager.add("Buy milk", "today")
    eggs = manager.add("Buy eggs", "today")
    assert milk.order == 0
    assert eggs.order == 1

    manager.reorder("today", [eggs, milk])

    assert orders(manager, "today") == {"Buy eggs": 0, "Buy milk": 1}
    assert [t.title for t in manager.today] == ["Buy eggs", "Buy milk"]


def test_add_order_counts_per_category(manager):
    """Test that order is the count of tasks already in the category."""
    manager.add("A", "today")
    manager.add("B", "week")
    third = manager.add("C", "today")

    assert third.order == 1


def test_add_validates_input(manager):
    """Test that bad titles, categories and priorities are rejected."""
    with pytest.raises(InvalidInputError):
        manager.add("   ", "today")
    with pytest.raises(InvalidInputError):
        manager.add("Task", "someday")
    with pytest.raises(InvalidInputError):
        manager.add("Task", "today", priority="urgent")

    assert manager.tasks == []


def test_add_writes_durable_document(manager, store):
    """Test that durable documents use camelCase keys and skip unset fields."""
    task = manager.add("Stand-up", "today", due_time="09:30", is_recurring=True)

    docs = JsonStore(store.directory).read(TASKS_KEY)
    assert docs == [{
        "id": task.id,
        "title": "Stand-up",
        "category": "today",
        "completed": False,
        "priority": "medium",
        "createdAt": task.created_at,
        "dueTime": "09:30",
        "isRecurring": True,
        "order": 0,
    }]


# --- Updating ---


def test_update_merges_changes(manager):
    """Test that update changes only the given fields."""
    task = manager.add("Draft", "week", priority="low")

    updated = manager.update(task.id, title="Final", priority="high")

    assert updated.title == "Final"
    assert updated.priority == "high"
    assert updated.category == "week"
    assert manager.find(task.id) == updated


def test_update_unknown_id_is_noop(manager):
    """Test that updating a missing task returns None and changes nothing."""
    manager.add("Keep", "today")
    before = manager.tasks

    assert manager.update("task_missing", title="x") is None
    assert manager.tasks == before


def test_update_rejects_immutable_and_unknown_fields(manager):
    """Test that id, created_at and made-up fields can't be updated."""
    task = manager.add("Fixed", "today")

    with pytest.raises(InvalidInputError):
        manager.update(task.id, id="task_other")
    with pytest.raises(InvalidInputError):
        manager.update(task.id, created_at="2000-01-01T00:00:00")
    with pytest.raises(InvalidInputError):
        manager.update(task.id, colour="red")


def test_update_rejects_category_and_order(manager):
    """Test that placement changes must go through move() or reorder()."""
    task = manager.add("Placed", "today")
    manager.add("Neighbour", "today")

    with pytest.raises(InvalidInputError):
        manager.update(task.id, category="week")
    with pytest.raises(InvalidInputError):
        manager.update(task.id, order=3)

    assert manager.find(task.id).category == "today"
    assert orders(manager, "today") == {"Placed": 0, "Neighbour": 1}


def test_remove(manager):
    """Test that remove deletes and ignores unknown ids."""
    keep = manager.add("Keep", "today")
    drop = manager.add("Drop", "today")

    manager.remove(drop.id)
    manager.remove("task_missing")

    assert manager.tasks == [keep]


def test_toggle(manager):
    """Test that toggle flips completion back and forth."""
    task = manager.add("Flip", "today")

    assert manager.toggle(task.id).completed is True
    assert manager.toggle(task.id).completed is False
    assert manager.toggle("task_missing") is None


def test_toggle_recurring_records_completion_time(manager):
    """Test that completing a recurring task stamps last_completed_at."""
    task = manager.add("Water plants", "today", is_recurring=True)

    done = manager.toggle(task.id)
    assert done.last_completed_at is not None

    undone = manager.toggle(task.id)
    assert undone.completed is False
    assert undone.last_completed_at == done.last_completed_at


def test_toggle_plain_task_leaves_completion_time_unset(manager):
    """Test that non-recurring tasks never get last_completed_at."""
    task = manager.add("Once", "today")
    assert manager.toggle(task.id).last_completed_at is None


# --- Ordering ---


@pytest.mark.parametrize("relational", [False, True])
def test_reorder_produces_dense_orders(manager, database, relational):
    """Test that orders are exactly 0..n-1 after reorder, even after deletions."""
    if relational:
        start(database)

    created = [manager.add(f"T{i}", "week") for i in range(5)]
    manager.remove(created[1].id)
    manager.remove(created[3].id)

    remaining = manager.week
    manager.reorder("week", list(reversed(remaining)))

    assert sorted(t.order for t in manager.week) == [0, 1, 2]
    assert [t.title for t in manager.week] == ["T4", "T2", "T0"]

    if relational:
        stored = TaskRepository(database).get_by_category("week")
        assert [(t.title, t.order) for t in stored] == [("T4", 0), ("T2", 1), ("T0", 2)]


def test_reorder_accepts_ids(manager):
    """Test that reorder takes task ids as well as tasks."""
    a = manager.add("A", "today")
    b = manager.add("B", "today")

    manager.reorder("today", [b.id, a.id])

    assert [t.title for t in manager.today] == ["B", "A"]


def test_reorder_moves_tasks_from_other_categories(manager, database):
    """Test that a task dropped into a category is moved there."""
    start(database)
    a = manager.add("A", "today")
    w = manager.add("W", "week")

    manager.reorder("today", [w, a])

    assert [t.title for t in manager.today] == ["W", "A"]
    assert manager.week == []
    assert TaskRepository(database).get_by_id(w.id).category == "today"


def test_reorder_size_mismatch_is_logged_and_applied(manager, caplog):
    """Test that a partial list still reorders what it names."""
    a = manager.add("A", "today")
    manager.add("B", "today")

    with caplog.at_level(logging.WARNING):
        manager.reorder("today", [a])

    assert "Reordering today with 1 tasks but it holds 2" in caplog.text
    assert manager.find(a.id).order == 0
    assert [t.title for t in manager.today] == ["A", "B"]


def test_reorder_skips_unknown_ids(manager, caplog):
    """Test that unknown ids in a reorder are ignored."""
    a = manager.add("A", "today")

    with caplog.at_level(logging.WARNING):
        result = manager.reorder("today", ["task_ghost", a.id])

    assert result == [manager.find(a.id)]
    assert manager.find(a.id).order == 0
    assert "Ignoring unknown task task_ghost" in caplog.text


@pytest.mark.parametrize("relational", [False, True])
def test_reorder_keeps_first_position_of_repeated_task(manager, database, caplog, relational):
    """Test that a task listed twice is placed once, at its first position."""
    if relational:
        start(database)
    a = manager.add("A", "today")
    b = manager.add("B", "today")

    with caplog.at_level(logging.WARNING):
        result = manager.reorder("today", [a.id, a.id, b.id])

    assert [(t.title, t.order) for t in result] == [("A", 0), ("B", 1)]
    assert [(t.title, t.order) for t in manager.today] == [("A", 0), ("B", 1)]
    assert len(manager.tasks) == 2
    assert "Ignoring duplicate task" in caplog.text
    if relational:
        stored = TaskRepository(database).get_by_category("today")
        assert [(t.title, t.order) for t in stored] == [("A", 0), ("B", 1)]


def test_move_appends_to_target(manager):
    """Test that move puts the task at the end of the new category."""
    manager.add("Existing", "today")
    task = manager.add("Mover", "backlog")

    moved = manager.move(task.id, "today")

    assert moved.category == "today"
    assert moved.order == 1
    assert manager.backlog == []


def test_move_persists_to_database(manager, database):
    """Test that move writes the new category and position."""
    start(database)
    manager.add("Existing", "week")
    task = manager.add("Mover", "today")

    manager.move(task.id, "week")

    stored = TaskRepository(database).get_by_id(task.id)
    assert (stored.category, stored.order) == ("week", 1)


def test_move_validates_category(manager):
    """Test that move rejects unknown categories."""
    task = manager.add("Stay", "today")
    with pytest.raises(InvalidInputError):
        manager.move(task.id, "later")


def test_link_and_unlink_project(manager):
    """Test that link_to_project sets and clears project_id."""
    task = manager.add("Linked", "week")

    assert manager.link_to_project(task.id, "project_1_abc").project_id == "project_1_abc"
    assert manager.by_project("project_1_abc") == [manager.find(task.id)]
    assert manager.link_to_project(task.id, None).project_id is None


# --- Migration ---


def test_starts_on_durable_store(manager):
    """Test that a new manager uses the durable store."""
    assert manager.state is BackendState.UNINITIALIZED
    assert manager.backend.name == "durable"


def test_migrates_durable_tasks_into_empty_database(manager, database):
    """Test that tasks saved before the database opened are copied over."""
    first = manager.add("First", "today")
    second = manager.add("Second", "week")

    start(database)

    assert manager.state is BackendState.RELATIONAL_ACTIVE
    assert manager.backend.name == "relational"
    stored = TaskRepository(database).get_all()
    assert sorted(t.id for t in stored) == sorted([first.id, second.id])

    manager.refresh()
    assert sorted(t.title for t in manager.tasks) == ["First", "Second"]


def test_existing_database_rows_win_over_durable_store(store):
    """Test that migration is skipped when the database already has tasks."""
    earlier = Database(store)
    asyncio.run(earlier.initialize())
    TaskRepository(earlier).insert(
        Task(id="task_1_db", title="From database", category="today", created_at="2026-01-01T00:00:00")
    )
    earlier.close()

    db = Database(store)
    manager = TaskManager.create(store, db)
    manager.add("Only durable", "today")

    asyncio.run(db.initialize())
    manager.on_store_ready()

    assert [t.title for t in manager.tasks] == ["From database"]
    assert TaskRepository(db).count() == (1, 0)
    manager.close()
    db.close()


def test_migration_runs_once(manager, database):
    """Test that repeating the ready signal adds no duplicate rows."""
    manager.add("Only once", "today")
    start(database)

    manager.on_store_ready()
    manager.on_store_ready()

    assert TaskRepository(database).count() == (1, 0)


def test_writes_after_migration_go_to_database(manager, database, store):
    """Test that the durable list stops changing once the database is active."""
    manager.add("Before", "today")
    start(database)

    manager.add("After", "today")

    durable_titles = [d["title"] for d in JsonStore(store.directory).read(TASKS_KEY)]
    assert durable_titles == ["Before"]
    assert TaskRepository(database).count() == (2, 0)


def test_migration_error_still_switches_backend(manager, database, monkeypatch, caplog):
    """Test that a failing migration is logged and the database is used anyway."""
    task = manager.add("Survivor", "today")

    def broken():
        raise sqlite3.OperationalError("no such table: tasks")

    monkeypatch.setattr(manager._relational, "get_all", broken)
    with caplog.at_level(logging.ERROR):
        start(database)

    assert manager.state is BackendState.RELATIONAL_ACTIVE
    assert manager.tasks == [task]
    assert "while switching tasks to database" in caplog.text


def test_durable_changes_from_another_process(manager, store):
    """Test that another writer's task list replaces memory before migration."""
    foreign = Task(id="task_1_other", title="Written elsewhere", category="week", created_at="2026-01-01T00:00:00")
    JsonStore(store.directory).write(TASKS_KEY, [foreign.to_dict()])

    store.poll()

    assert manager.tasks == [foreign]


def test_durable_changes_ignored_after_migration(manager, database, store):
    """Test that the durable list no longer drives memory once on the database."""
    manager.add("Mine", "today")
    start(database)

    JsonStore(store.directory).write(TASKS_KEY, [])
    store.poll()

    assert [t.title for t in manager.tasks] == ["Mine"]


def test_unreadable_durable_entries_are_skipped(store, database, caplog):
    """Test that a bad document doesn't prevent loading the rest."""
    good = Task(id="task_1_ok", title="Fine", category="today", created_at="2026-01-01T00:00:00")
    store.write(TASKS_KEY, [good.to_dict(), "garbage", {"title": "no id"}])

    with caplog.at_level(logging.WARNING):
        manager = TaskManager.create(store, database)

    assert manager.tasks == [good]
    manager.close()


# --- Persistence failures ---


def test_persistence_failure_does_not_raise(manager, monkeypatch, caplog):
    """Test that memory changes even when the backend write fails."""
    def broken(entity):
        raise OSError("read-only file system")

    monkeypatch.setattr(manager.backend, "insert", broken)

    with caplog.at_level(logging.ERROR):
        task = manager.add("Still here", "today")

    assert manager.tasks == [task]
    assert "Failed to insert task" in caplog.text


def test_database_failure_does_not_raise(manager, database, monkeypatch, caplog):
    """Test that a failing database write is logged, not raised."""
    start(database)
    task = manager.add("Stored", "today")

    def broken(entity):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(manager.backend, "update", broken)

    with caplog.at_level(logging.ERROR):
        updated = manager.update(task.id, title="Renamed")

    assert updated.title == "Renamed"
    assert manager.find(task.id).title == "Renamed"
    assert TaskRepository(database).get_by_id(task.id).title == "Stored"
    assert "Failed to update task (relational backend)" in caplog.text


# --- Recurring tasks ---


def complete_on(manager, task, day):
    manager.toggle(task.id)
    stamp = datetime.combine(day, datetime.min.time()).replace(hour=18).isoformat()
    return manager.update(task.id, last_completed_at=stamp)


@pytest.mark.parametrize("relational", [False, True])
def test_recurring_task_completed_yesterday_is_reset(manager, database, relational):
    """Test that yesterday's recurring completion is cleared today."""
    if relational:
        start(database)
    today = date.today()

    daily = manager.add("Stretch", "today", is_recurring=True)
    once = manager.add("File taxes", "today")
    manager.toggle(once.id)
    complete_on(manager, daily, today - timedelta(days=1))

    assert manager.reset_recurring(today) == 1

    assert manager.find(daily.id).completed is False
    assert manager.find(once.id).completed is True
    if relational:
        assert TaskRepository(database).get_by_id(daily.id).completed is False


def test_recurring_task_completed_today_is_kept(manager):
    """Test that a recurring task done today stays done."""
    daily = manager.add("Stretch", "today", is_recurring=True)
    manager.toggle(daily.id)

    assert manager.reset_recurring() == 0
    assert manager.find(daily.id).completed is True


def test_recurring_reset_is_idempotent(manager):
    """Test that a second sweep on the same day changes nothing."""
    today = date.today()
    daily = manager.add("Stretch", "today", is_recurring=True)
    complete_on(manager, daily, today - timedelta(days=3))

    assert manager.reset_recurring(today) == 1
    snapshot = manager.tasks
    assert manager.reset_recurring(today) == 0
    assert manager.tasks == snapshot


def test_recurring_task_without_timestamp_is_reset(manager):
    """Test that a completed recurring task with no completion time is reset."""
    daily = manager.add("Stretch", "today", is_recurring=True)
    manager.update(daily.id, completed=True)

    assert manager.reset_recurring() == 1
    assert manager.find(daily.id).completed is False


def test_reading_tasks_runs_the_sweep(manager):
    """Test that listing tasks resets stale recurring completions."""
    daily = manager.add("Stretch", "today", is_recurring=True)
    complete_on(manager, daily, date.today() - timedelta(days=1))

    assert [t.completed for t in manager.today] == [False]


@pytest.mark.parametrize("relational", [False, True])
def test_toggle_completes_recurring_task_left_done_yesterday(manager, database, relational):
    """Test that toggling a stale recurring completion completes it for today."""
    if relational:
        start(database)
    daily = manager.add("Stretch", "today", is_recurring=True)
    complete_on(manager, daily, date.today() - timedelta(days=1))

    toggled = manager.toggle(daily.id)

    assert toggled.completed is True
    assert toggled.last_completed_at.startswith(date.today().isoformat())
    assert manager.reset_recurring() == 0
    if relational:
        assert TaskRepository(database).get_by_id(daily.id).completed is True


def test_toggle_sweeps_durable_tasks_from_an_earlier_session(store, database):
    """Test that a new session toggling yesterday's recurring task marks it done."""
    earlier = TaskManager.create(store, database)
    daily = earlier.add("Stretch", "today", is_recurring=True)
    complete_on(earlier, daily, date.today() - timedelta(days=1))
    earlier.close()

    later = TaskManager.create(store, database)
    toggled = later.toggle(daily.id)

    assert toggled.completed is True
    assert [t.completed for t in later.today] == [True]
    later.close()


def test_import_before_initialize_switches_to_database(manager, database, tmp_path):
    """Test that a manager follows a database made ready by an import."""
    source = Database(JsonStore(tmp_path / "source"))
    asyncio.run(source.initialize())
    TaskRepository(source).insert(
        Task(id="task_imported", title="From backup", category="week",
             created_at="2026-01-05T09:00:00")
    )

    database.import_bytes(source.export_bytes())
    source.close()

    assert manager.state is BackendState.RELATIONAL_ACTIVE
    assert [t.title for t in manager.week] == ["From backup"]

    manager.add("After import", "week")
    assert len(TaskRepository(database).get_by_category("week")) == 2
