"""
Tests for the durable key/value store.

Covers:
- Reading defaults for missing and corrupt keys
- Write failures being logged instead of raised
- Change notification between two stores on the same directory
- PersistentValue write-through behavior
"""

import logging

from lumina.core.storage import JsonStore, PersistentValue


def test_read_missing_key_returns_default(store):
    """Test that an absent key gives back the caller's default."""
    assert store.read("nothing-here") is None
    assert store.read("nothing-here", []) == []


def test_write_then_read(store):
    """Test that written values come back unchanged."""
    assert store.write("numbers", [1, 2, {"a": "b"}]) is True
    assert store.read("numbers") == [1, 2, {"a": "b"}]


def test_values_survive_a_new_store_instance(store):
    """Test that values are on disk, not just in memory."""
    store.write("greeting", "hello")

    other = JsonStore(store.directory)
    assert other.read("greeting") == "hello"


def test_corrupt_file_returns_default(store, caplog):
    """Test that unparsable content is treated as absent."""
    store.write("broken", {"ok": True})
    store.path_for("broken").write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        assert store.read("broken", "fallback") == "fallback"
    assert "Error parsing store key" in caplog.text


def test_write_failure_is_logged_not_raised(tmp_path, caplog):
    """Test that a store that cannot write reports False and logs."""
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where the directory should be")
    broken = JsonStore(blocker)

    with caplog.at_level(logging.ERROR):
        assert broken.write("key", [1]) is False
    assert "Error writing store key" in caplog.text


def test_unserializable_value_is_rejected(store):
    """Test that values JSON can't encode are not written."""
    assert store.write("bad", {"when": object()}) is False
    assert store.read("bad") is None


def test_remove_key(store):
    """Test that removed keys read as absent."""
    store.write("gone", 1)
    store.remove("gone")
    store.remove("never-existed")

    assert store.read("gone") is None


def test_key_with_unsafe_characters(store):
    """Test that keys are mapped to safe file names."""
    store.write("a/b c", 5)

    assert store.path_for("a/b c").parent == store.directory
    assert store.read("a/b c") == 5


# --- Change notification ---


def test_poll_delivers_changes_from_another_writer(store):
    """Test that a subscriber sees values written by another store."""
    received = []
    store.subscribe("shared", received.append)

    other = JsonStore(store.directory)
    other.write("shared", ["from", "elsewhere"])

    assert store.poll() == ["shared"]
    assert received == [["from", "elsewhere"]]


def test_poll_ignores_own_writes(store):
    """Test that an instance is not notified of its own writes."""
    received = []
    store.subscribe("mine", received.append)
    store.write("mine", [1])

    assert store.poll() == []
    assert received == []


def test_poll_reports_each_change_once(store):
    """Test that the same external value is delivered only once."""
    received = []
    store.subscribe("shared", received.append)
    JsonStore(store.directory).write("shared", 1)

    store.poll()
    store.poll()

    assert received == [1]


def test_unsubscribe_stops_notifications(store):
    """Test that the returned function removes the subscription."""
    received = []
    unsubscribe = store.subscribe("shared", received.append)
    unsubscribe()

    JsonStore(store.directory).write("shared", 1)

    assert store.poll() == []
    assert received == []


def test_external_removal_is_not_delivered(store):
    """Test that a deleted key does not produce a notification."""
    store.write("shared", 1)
    received = []
    store.subscribe("shared", received.append)

    JsonStore(store.directory).remove("shared")

    assert store.poll() == []
    assert received == []


# --- PersistentValue ---


def test_persistent_value_uses_default_when_missing(store):
    """Test that a fresh key starts from the default."""
    value = PersistentValue(store, "theme", "dark")
    assert value.value == "dark"


def test_persistent_value_loads_stored_value(store):
    """Test that an existing stored value wins over the default."""
    store.write("theme", "light")
    value = PersistentValue(store, "theme", "dark")
    assert value.value == "light"


def test_persistent_value_set_writes_through(store):
    """Test that set() updates memory and the store."""
    value = PersistentValue(store, "count", 0)
    value.set(3)
    value.set(lambda prev: prev + 1)

    assert value.value == 4
    assert JsonStore(store.directory).read("count") == 4


def test_persistent_value_keeps_memory_when_write_fails(store, monkeypatch):
    """Test that a failed write leaves the new in-memory value in place."""
    value = PersistentValue(store, "count", 0)
    monkeypatch.setattr(store, "write", lambda key, val: False)

    value.set(7)

    assert value.value == 7
    assert store.read("count") is None


def test_persistent_value_replaced_by_external_change(store):
    """Test that another writer's value replaces the in-memory one on poll."""
    value = PersistentValue(store, "list", [])
    value.set(["local"])

    JsonStore(store.directory).write("list", ["remote"])
    store.poll()

    assert value.value == ["remote"]
