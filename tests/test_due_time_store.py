"""Tests for local due-time bookkeeping."""

import json
from datetime import date, datetime

import pytest

from strata.reminder import TaskDueTimeStore, TaskItem, resolve_due, restore_due_times


@pytest.fixture
def path(tmp_path):
    return tmp_path / "task_due_times.json"


@pytest.fixture
def store(path):
    return TaskDueTimeStore(str(path))


class TestTaskDueTimeStore:
    def test_missing_file_reads_none(self, store):
        assert store.read("t1") is None

    def test_save_persists_across_instances(self, store, path):
        due = datetime(2025, 1, 6, 9, 30)
        store.save("t1", due)

        assert json.loads(path.read_text()) == {"t1": "2025-01-06T09:30:00"}
        assert TaskDueTimeStore(str(path)).read("t1") == due

    def test_save_none_removes_and_deletes_empty_file(self, store, path):
        store.save("t1", datetime(2025, 1, 6, 9, 30))
        store.save("t1", None)
        assert store.read("t1") is None
        assert not path.exists()

    def test_prune_drops_unknown_ids(self, store):
        store.save("t1", datetime(2025, 1, 6, 9, 30))
        store.save("t2", datetime(2025, 1, 7, 10, 0))
        store.prune({"t2"})
        assert store.read("t1") is None
        assert store.read("t2") == datetime(2025, 1, 7, 10, 0)

    def test_prune_with_empty_set_is_noop(self, store):
        store.save("t1", datetime(2025, 1, 6, 9, 30))
        store.prune(set())
        assert store.read("t1") is not None

    def test_corrupt_file_treated_as_empty(self, path):
        path.write_text("{not json")
        assert TaskDueTimeStore(str(path)).read("t1") is None


class TestResolveDue:
    def test_remote_with_time_wins(self):
        remote = datetime(2025, 1, 6, 14, 0)
        assert resolve_due(remote, datetime(2025, 1, 6, 9, 30)) == remote

    def test_date_only_remote_gets_stored_time(self):
        assert resolve_due(date(2025, 1, 6), datetime(2025, 1, 6, 9, 30)) == datetime(2025, 1, 6, 9, 30)

    def test_moved_date_keeps_time_of_day(self):
        assert resolve_due(date(2025, 1, 8), datetime(2025, 1, 6, 9, 30)) == datetime(2025, 1, 8, 9, 30)

    def test_midnight_remote_counts_as_date_only(self):
        remote = datetime(2025, 1, 6, 0, 0)
        assert resolve_due(remote, datetime(2025, 1, 6, 9, 30)) == datetime(2025, 1, 6, 9, 30)

    def test_no_remote_due(self):
        assert resolve_due(None, datetime(2025, 1, 6, 9, 30)) is None

    def test_nothing_stored(self):
        assert resolve_due(date(2025, 1, 6), None) == date(2025, 1, 6)


class TestRestoreDueTimes:
    def test_restores_and_records(self, store):
        store.save("t1", datetime(2025, 1, 6, 9, 30))
        tasks = [
            TaskItem("t1", "Call mom", due=date(2025, 1, 6)),
            TaskItem("t2", "Pay rent", due=datetime(2025, 1, 7, 18, 0)),
            TaskItem("t3", "Someday"),
        ]

        restored = restore_due_times(tasks, store)

        assert [t.due for t in restored] == [
            datetime(2025, 1, 6, 9, 30),
            datetime(2025, 1, 7, 18, 0),
            None,
        ]
        assert store.read("t2") == datetime(2025, 1, 7, 18, 0)

    def test_due_removed_remotely_forgets_time(self, store):
        store.save("t1", datetime(2025, 1, 6, 9, 30))
        restore_due_times([TaskItem("t1", "Call mom")], store)
        assert store.read("t1") is None

    def test_deleted_tasks_pruned(self, store):
        store.save("gone", datetime(2025, 1, 6, 9, 30))
        restore_due_times([TaskItem("t2", "Pay rent", due=datetime(2025, 1, 7, 18, 0))], store)
        assert store.read("gone") is None
