# simpledo/services/todo_store.py

import json
import threading
from typing import Iterable, List, Optional, Tuple
from loguru import logger
from pydantic import ValidationError

from ..exceptions import DuplicateTaskError, StorageUnavailableError
from ..models import Task
from .storage_service import LocalStorageService

STORAGE_KEY = "simpleDo.todos"


class TodoStore:
    """
    The whole to-do list lives under one storage key and is always read and
    rewritten as a unit.

    Consumers get the store handed to them. The cached snapshot only
    changes when `refresh()` is called after a mutation.
    """

    def __init__(self, storage: LocalStorageService, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key
        self._lock = threading.Lock()
        self._snapshot: Tuple[Task, ...] = ()

    @property
    def snapshot(self) -> Tuple[Task, ...]:
        """Tuple from the last refresh(). Routes use refresh()'s return value; tests read this."""
        return self._snapshot

    def refresh(self) -> Tuple[Task, ...]:
        self._snapshot = tuple(self.list_all())
        return self._snapshot

    def list_all(self) -> List[Task]:
        raw = self.storage.get_item(self.key)
        if not raw:
            return []
        try:
            return [Task.model_validate(item) for item in json.loads(raw)]
        except (ValueError, TypeError, ValidationError) as e:
            logger.error(f"Stored to-do list under '{self.key}' is unreadable: {e}")
            raise StorageUnavailableError(f"Stored to-do list is unreadable: {e}") from e

    def save_all(self, tasks: Iterable[Task]) -> None:
        payload = [task.model_dump(mode="json") for task in tasks]
        self.storage.set_item(self.key, json.dumps(payload))

    def add(self, task: Task) -> None:
        with self._lock:
            tasks = self.list_all()
            if any(existing.id == task.id for existing in tasks):
                raise DuplicateTaskError(f"A task with id {task.id} already exists")
            tasks.append(task)
            self.save_all(tasks)
        logger.info(f"Added task {task.id} ('{task.title}')")

    def update(self, updated: Task) -> bool:
        """Replace the task with the same id. Returns False when it is absent."""
        with self._lock:
            tasks = self.list_all()
            found = any(task.id == updated.id for task in tasks)
            if not found:
                logger.info(f"Update skipped, no task with id {updated.id}")
                return False
            self.save_all(updated if task.id == updated.id else task for task in tasks)
        logger.info(f"Updated task {updated.id}")
        return True

    def remove(self, task_id: str) -> None:
        with self._lock:
            tasks = self.list_all()
            remaining = [task for task in tasks if task.id != task_id]
            if len(remaining) != len(tasks):
                self.save_all(remaining)
                logger.info(f"Removed task {task_id}")

    def set_completed(self, task_id: str, completed: bool) -> Optional[Task]:
        """Flip one task's completed flag. Returns the new record, or None when it is absent."""
        with self._lock:
            tasks = self.list_all()
            current = next((task for task in tasks if task.id == task_id), None)
            if current is None:
                logger.info(f"Completion change skipped, no task with id {task_id}")
                return None
            changed = current.model_copy(update={"completed": completed})
            self.save_all(changed if task.id == task_id else task for task in tasks)
        logger.info(f"Task {task_id} marked {'completed' if completed else 'not completed'}")
        return changed
