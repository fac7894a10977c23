"""Local record of reminder due times.

The task service drops the time of day for some reminders and hands them
back as bare dates. Times set through Strata are kept here so they can be
restored when the task list is refreshed.
"""

import json
import logging
import threading
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from strata.config import get_data_dir
from .models import Due, TaskItem, has_explicit_time, is_date_only

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = get_data_dir() / "task_due_times.json"


class TaskDueTimeStore:
    """JSON-file map of task id -> ISO local due datetime."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else DEFAULT_STORE_PATH
        self._lock = threading.Lock()
        self._cache: Optional[Dict[str, str]] = None

    def read(self, task_id: str) -> Optional[datetime]:
        with self._lock:
            stored = self._ensure_loaded().get(task_id)
        if not stored:
            return None
        try:
            return datetime.fromisoformat(stored)
        except ValueError:
            logger.debug("Ignoring unparseable due time for %s: %r", task_id, stored)
            return None

    def save(self, task_id: str, due: Optional[datetime]) -> None:
        """Persist ``due`` for ``task_id``. Passing None removes any stored value."""
        with self._lock:
            data = self._ensure_loaded()
            new_value = due.isoformat() if due is not None else None
            if data.get(task_id) == new_value:
                return
            if new_value is None:
                data.pop(task_id, None)
            else:
                data[task_id] = new_value
            self._persist(data)

    def prune(self, valid_task_ids: Set[str]) -> None:
        """Drop entries for tasks that no longer exist. An empty set is ignored."""
        if not valid_task_ids:
            return
        with self._lock:
            data = self._ensure_loaded()
            stale = [k for k in data if k not in valid_task_ids]
            if not stale:
                return
            for key in stale:
                del data[key]
            self._persist(data)

    def _ensure_loaded(self) -> Dict[str, str]:
        if self._cache is None:
            self._cache = self._load()
        return self._cache

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Could not load due time store %s: %s", self.path, e)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def _persist(self, data: Dict[str, str]) -> None:
        self._cache = data
        try:
            if not data:
                if self.path.exists():
                    self.path.unlink()
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as e:
            logger.error("Failed to save due time store %s: %s", self.path, e)


def resolve_due(remote: Optional[Due], stored: Optional[datetime]) -> Optional[Due]:
    """Prefer the remote due time unless it is date-only and a stored time of day exists."""
    if remote is None:
        return None
    if not is_date_only(remote) or not has_explicit_time(stored):
        return remote
    remote_date = remote.date() if isinstance(remote, datetime) else remote
    if stored.date() == remote_date:
        return stored
    return datetime.combine(remote_date, stored.time())


def restore_due_times(tasks: Iterable[TaskItem], store: TaskDueTimeStore) -> List[TaskItem]:
    """Apply stored times of day to a freshly fetched task list and refresh the store."""
    restored = []
    seen: Set[str] = set()
    for task in tasks:
        stored = store.read(task.id)
        due = resolve_due(task.due, stored)
        if isinstance(due, datetime) and has_explicit_time(due):
            store.save(task.id, due)
        elif stored is not None and due is None:
            store.save(task.id, None)
        restored.append(task if due == task.due else replace(task, due=due))
        seen.add(task.id)
    store.prune(seen)
    return restored
