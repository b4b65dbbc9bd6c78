# tests/test_state_store.py

from __future__ import annotations

import json
from datetime import datetime

import pytest

from its_done.core.models import PomodoroDurations, Priority, Source
from its_done.storage.local_storage import LocalStorage
from its_done.storage.state_store import (
    DEFAULT_NOTES,
    FOCUS_KEY,
    TASKS_KEY,
    StateStore,
)


def test_ids_unique_within_same_millisecond(store: StateStore, monkeypatch) -> None:
    monkeypatch.setattr("its_done.storage.state_store.time.time", lambda: 1_700_000_000.0)
    ids = [store.add_task(f"t{i}").id for i in range(5)]
    assert len(set(ids)) == 5
    assert ids == sorted(ids)


def test_empty_text_rejected(store: StateStore) -> None:
    with pytest.raises(ValueError):
        store.add_task("   ")


def test_records_survive_reload(storage: LocalStorage) -> None:
    s1 = StateStore(storage)
    task = s1.add_task("Persist me", priority=Priority.LOW, due_date=datetime(2030, 1, 1, 12, 0))
    s1.set_focus("Deep work")
    s1.upsert_journal_entry("2030-01-01", "Good day")
    s1.set_research_mode(True)
    s1.pin_item("q", "a", [Source(uri="https://example.com", title="Ex")])
    s1.update_pomodoro_settings(PomodoroDurations(work=50, short=10, long=20))

    s2 = StateStore(storage)
    assert s2.get_task(task.id) == task
    assert s2.focus == "Deep work"
    assert s2.journal_entry_for("2030-01-01").content == "Good day"
    assert s2.research_mode is True
    assert s2.pinned_items[0].sources == (Source(uri="https://example.com", title="Ex"),)
    assert s2.pomodoro.durations == PomodoroDurations(work=50, short=10, long=20)

    # camelCase layout on disk
    raw = json.loads(storage.get_item(TASKS_KEY))
    assert raw[0]["dueDate"] == "2030-01-01T12:00:00"
    assert raw[0]["priority"] == "Low"


def test_defaults_on_first_run_and_corrupt_records(storage: LocalStorage) -> None:
    storage.set_item(TASKS_KEY, "{not json")
    storage.set_item(FOCUS_KEY, json.dumps(123))
    s = StateStore(storage)
    assert s.tasks == []
    assert s.focus == ""
    assert s.notes == DEFAULT_NOTES


def test_update_task_merges_fields(store: StateStore) -> None:
    task = store.add_task("Draft", category="Work")
    updated = store.update_task(task.id, text="Final", priority=Priority.HIGH)
    assert updated.text == "Final"
    assert updated.priority is Priority.HIGH
    assert updated.category == "Work"

    cleared = store.update_task(task.id, category=None)
    assert cleared.category is None
    assert store.update_task(12345, text="x") is None


def test_list_tasks_filters_and_sorts(store: StateStore) -> None:
    a = store.add_task("b task", priority=Priority.LOW, category="Home", due_date=datetime(2030, 1, 3))
    b = store.add_task("a task", priority=Priority.HIGH, category="Work", due_date=datetime(2030, 1, 1))
    c = store.add_task("c task", category="Home")

    assert [t.id for t in store.list_tasks(category="Home")] == [a.id, c.id]
    assert [t.id for t in store.list_tasks(sort="alpha")] == [b.id, a.id, c.id]
    assert [t.id for t in store.list_tasks(sort="priority")] == [b.id, c.id, a.id]
    assert [t.id for t in store.list_tasks(sort="due-asc")] == [b.id, a.id, c.id]
    assert [t.id for t in store.list_tasks(sort="due-desc")] == [a.id, b.id, c.id]
    assert store.categories() == ["Home", "Work"]
    with pytest.raises(ValueError):
        store.list_tasks(sort="random")


def test_task_listeners_get_snapshots(store: StateStore) -> None:
    seen: list[list[str]] = []
    store.subscribe_tasks(lambda tasks: seen.append([t.text for t in tasks]))
    t = store.add_task("one")
    store.toggle_task(t.id)
    store.delete_task(t.id)
    assert seen == [["one"], ["one"], []]


def test_journal_upsert_is_unique_per_day(store: StateStore) -> None:
    store.upsert_journal_entry("2030-01-01", "a")
    store.upsert_journal_entry("2030-01-02", "b")
    store.upsert_journal_entry("2030-01-01", "c")
    assert [(e.date, e.content) for e in store.journal_entries] == [("2030-01-01", "c"), ("2030-01-02", "b")]


def test_pin_and_unpin(store: StateStore) -> None:
    item = store.pin_item("q", "a")
    assert store.unpin_item(item.id) is True
    assert store.unpin_item(item.id) is False
    assert store.pinned_items == []


def test_agent_context_snapshot(store: StateStore) -> None:
    store.add_task("x")
    ctx = store.agent_context()
    store.add_task("y")
    assert [t.text for t in ctx.tasks] == ["x"]


def test_local_storage_upserts_records(tmp_path) -> None:
    storage = LocalStorage(tmp_path / "nested" / "records.sqlite3")
    assert storage.get_item("missing") is None

    storage.set_item("b", "1")
    storage.set_item("a", "2")
    storage.set_item("b", "3")

    reopened = LocalStorage(tmp_path / "nested" / "records.sqlite3")
    assert reopened.keys() == ["a", "b"]
    assert reopened.get_item("b") == "3"
