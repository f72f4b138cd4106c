"""
Task Store - the client's local to-do list

Holds tasks newest-first. All mutation goes through the store; disk I/O
happens only in ``load`` / ``save``.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from aistaff.errors import NotFoundError
from aistaff.services.task_extraction import Task, TaskPriority

logger = logging.getLogger(__name__)

# Fields a caller may change through update()
UPDATABLE_FIELDS = ("title", "description", "completed", "priority", "due_date")


class TaskStore:
    """In-memory task list with JSON persistence at a single boundary."""

    def __init__(self, tasks: Optional[Iterable[Task]] = None):
        self._tasks: List[Task] = list(tasks or [])

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: str) -> Task:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise NotFoundError("Task not found")

    def add(
        self,
        title: str,
        description: Optional[str] = None,
        priority: Union[TaskPriority, str] = TaskPriority.MEDIUM,
        due_date: Optional[datetime] = None,
    ) -> Task:
        """Add a user-created task at the top of the list."""
        task = Task(
            title=title,
            description=description,
            priority=TaskPriority(priority),
            due_date=due_date,
        )
        self._tasks.insert(0, task)
        return task

    def toggle(self, task_id: str) -> Task:
        task = self.get(task_id)
        task.completed = not task.completed
        return task

    def update(self, task_id: str, **changes: Any) -> Task:
        task = self.get(task_id)
        for key, value in changes.items():
            if key not in UPDATABLE_FIELDS:
                raise ValueError(f"Cannot update task field: {key}")
            if key == "priority":
                value = TaskPriority(value)
            setattr(task, key, value)
        return task

    def delete(self, task_id: str) -> None:
        task = self.get(task_id)
        self._tasks.remove(task)

    def merge_extracted(self, tasks: List[Task]) -> int:
        """
        Prepend a batch of extracted tasks, keeping their order.

        No deduplication against existing tasks. Returns the number added.
        """
        self._tasks[:0] = tasks
        if tasks:
            logger.info(f"Added {len(tasks)} extracted task(s)")
        return len(tasks)

    def pending(self) -> List[Task]:
        return [t for t in self._tasks if not t.completed]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_json(self) -> List[Dict[str, Any]]:
        return [task.to_dict() for task in self._tasks]

    @classmethod
    def from_json(cls, data: List[Dict[str, Any]]) -> "TaskStore":
        return cls(Task.from_dict(item) for item in data)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "TaskStore":
        """Load from ``path``; a missing file is an empty list."""
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable task file {path}: {e}")
            return cls()
        if not isinstance(data, list):
            logger.warning(f"Ignoring task file {path}: expected a list")
            return cls()
        return cls.from_json(data)

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_json(), indent=2), encoding="utf-8")
