import threading
from datetime import date, time

import pytest
from pydantic import ValidationError

from simpledo.exceptions import DuplicateTaskError, StorageUnavailableError
from simpledo.models import Priority, Task
from simpledo.services.todo_store import STORAGE_KEY


def make_task(title, **kwargs):
    kwargs.setdefault("due_date", date(2026, 10, 20))
    kwargs.setdefault("due_time", time(9, 30))
    return Task(title=title, **kwargs)


def test_empty_storage_lists_nothing(store):
    assert store.list_all() == []


def test_add_then_list_has_one_new_incomplete_task(store):
    task = make_task("Buy milk", priority=Priority.HIGH)
    store.add(task)

    tasks = store.list_all()
    assert len(tasks) == 1
    stored = tasks[0]
    assert stored.id == task.id
    assert stored.title == "Buy milk"
    assert stored.priority == Priority.HIGH
    assert stored.due_date == date(2026, 10, 20)
    assert stored.due_time == time(9, 30)
    assert stored.completed is False


def test_tasks_keep_insertion_order(store):
    titles = ["first", "second", "third"]
    for title in titles:
        store.add(make_task(title))
    assert [t.title for t in store.list_all()] == titles


def test_update_missing_id_changes_nothing(store):
    store.add(make_task("keep me"))
    before = store.list_all()

    assert store.update(make_task("ghost", id="does-not-exist")) is False
    assert store.list_all() == before


def test_update_replaces_only_matching_task(store):
    a, b, c = make_task("a"), make_task("b"), make_task("c")
    for task in (a, b, c):
        store.add(task)

    store.update(b.model_copy(update={"title": "b2", "completed": True}))

    tasks = store.list_all()
    assert [t.id for t in tasks] == [a.id, b.id, c.id]
    assert tasks[0] == a
    assert tasks[1].title == "b2" and tasks[1].completed is True
    assert tasks[2] == c


def test_remove_is_idempotent(store):
    a, b = make_task("a"), make_task("b")
    store.add(a)
    store.add(b)

    store.remove(a.id)
    store.remove(a.id)

    assert [t.id for t in store.list_all()] == [b.id]


def test_save_all_round_trip(store):
    for title in ("x", "y", "z"):
        store.add(make_task(title))
    before = store.list_all()

    store.save_all(store.list_all())

    assert store.list_all() == before


def test_snapshot_only_changes_on_refresh(store):
    assert store.snapshot == ()
    task = make_task("later")
    store.add(task)
    assert store.snapshot == ()

    snapshot = store.refresh()
    assert isinstance(snapshot, tuple)
    assert snapshot == (task,)
    assert store.snapshot is snapshot


def test_tasks_are_immutable():
    task = make_task("frozen")
    with pytest.raises(ValidationError):
        task.title = "changed"


def test_blank_title_rejected():
    with pytest.raises(ValidationError):
        make_task("   ")


def test_records_persist_under_single_key(store, storage):
    store.add(make_task("persisted"))
    assert '"persisted"' in storage.get_item(STORAGE_KEY)


def test_corrupt_storage_is_reported(store, storage):
    storage.set_item(STORAGE_KEY, "not json")
    with pytest.raises(StorageUnavailableError):
        store.list_all()


def test_unreadable_storage_file(tmp_path, store):
    store.storage.file_path.write_text("{broken")
    with pytest.raises(StorageUnavailableError):
        store.add(make_task("nope"))


def test_add_rejects_duplicate_id(store):
    store.add(make_task("original", id="dup"))

    with pytest.raises(DuplicateTaskError):
        store.add(make_task("copy", id="dup"))

    tasks = store.list_all()
    assert [t.id for t in tasks] == ["dup"]
    assert tasks[0].title == "original"


def test_set_completed(store):
    a, b = make_task("a"), make_task("b")
    store.add(a)
    store.add(b)

    changed = store.set_completed(b.id, True)

    assert changed.id == b.id and changed.completed is True
    assert [t.completed for t in store.list_all()] == [False, True]


def test_set_completed_missing_task(store):
    store.add(make_task("a"))
    before = store.list_all()

    assert store.set_completed("gone", True) is None
    assert store.list_all() == before


def test_set_completed_blocks_concurrent_remove(store, monkeypatch):
    task = make_task("race")
    store.add(task)
    read_all = store.list_all
    remover = {}

    def read_then_remove_elsewhere():
        tasks = read_all()
        if "thread" not in remover:
            # a delete arriving between the read and the write must wait
            thread = threading.Thread(target=store.remove, args=(task.id,))
            remover["thread"] = thread
            thread.start()
            thread.join(timeout=0.2)
            remover["blocked"] = thread.is_alive()
        return tasks

    monkeypatch.setattr(store, "list_all", read_then_remove_elsewhere)
    changed = store.set_completed(task.id, True)
    remover["thread"].join()

    assert remover["blocked"] is True
    assert changed.completed is True
    assert read_all() == []
