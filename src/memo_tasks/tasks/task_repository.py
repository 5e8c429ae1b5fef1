# src/memo_tasks/tasks/task_repository.py

from __future__ import annotations

"""
Per-kind task repository.

Holds the working copy of one task table and keeps it in lockstep with the
LocalStore. Every mutation persists first, then replaces the in-memory list,
then publishes the new snapshot to subscribers, so observers never see memory
ahead of disk.

Calls are expected to come from one logical caller at a time; concurrent
toggle/update on the same id are not serialized here.
"""

import copy
import logging
from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

from ..core.ports import TaskRecord
from ..errors import TaskNotFoundError
from ..storage.local_store import LocalStore
from .task_models import CountdownTask, DeadlineTask

logger = logging.getLogger(__name__)

TaskT = TypeVar("TaskT", bound=TaskRecord)


class TaskRepository(Generic[TaskT]):
    def __init__(
        self,
        store: LocalStore,
        table_name: str,
        from_record: Callable[[Mapping[str, Any]], TaskT],
    ) -> None:
        self._store = store
        self._table = table_name
        self._from_record = from_record
        self._tasks: list[TaskT] = []
        self._listeners: list[Callable[[tuple[TaskT, ...]], None]] = []
        self._loaded = False

    @classmethod
    async def create(
        cls,
        store: LocalStore,
        table_name: str,
        from_record: Callable[[Mapping[str, Any]], TaskT],
    ) -> TaskRepository[TaskT]:
        """Build a repository and wait for the initial load."""
        repo = cls(store, table_name, from_record)
        await repo.load()
        return repo

    # ---- observation ----

    @property
    def table_name(self) -> str:
        return self._table

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def tasks(self) -> tuple[TaskT, ...]:
        return tuple(self._tasks)

    def get(self, task_id: str) -> TaskT:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(self._table, task_id)

    def subscribe(self, listener: Callable[[tuple[TaskT, ...]], None]) -> Callable[[], None]:
        """Register a listener for snapshots. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_tasks(self, tasks: list[TaskT]) -> None:
        self._tasks = tasks
        snapshot = tuple(tasks)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Task listener failed table=%s", self._table)

    # ---- loading ----

    async def load(self) -> None:
        rows = await self._store.query(self._table)
        self._set_tasks([self._from_record(r) for r in rows])
        self._loaded = True
        logger.debug("Loaded %d tasks from %s", len(self._tasks), self._table)

    async def reload_after_sync(self) -> None:
        """
        Drop the cached handle and reread the table.

        Call this after the database file was replaced by a sync download; the
        repository knows nothing about sync on its own.
        """
        await self._store.reopen()
        await self.load()
        logger.info("Reloaded %s after sync: %d tasks", self._table, len(self._tasks))

    # ---- mutations ----

    async def add(self, task: TaskT) -> None:
        await self._store.insert(self._table, task.to_record())
        self._set_tasks([*self._tasks, task])
        logger.debug("Task added table=%s id=%s", self._table, task.id)

    async def remove(self, task_id: str) -> None:
        """Delete by id. Unknown ids are a no-op."""
        await self._store.delete(self._table, where="id = ?", where_args=(task_id,))
        self._set_tasks([t for t in self._tasks if t.id != task_id])
        logger.debug("Task removed table=%s id=%s", self._table, task_id)

    async def toggle(self, task_id: str) -> TaskT:
        # Work on a copy so the cached entry only changes after the row is written.
        task = copy.copy(self.get(task_id))
        task.change_status()
        await self._persist(task_id, task)
        logger.debug(
            "Task toggled table=%s id=%s completed=%s", self._table, task_id, task.is_completed
        )
        return task

    async def update(self, task_id: str, task: TaskT) -> None:
        """Replace the stored task. Ids are immutable: `task.id` must equal `task_id`."""
        self.get(task_id)
        if task.id != task_id:
            raise ValueError(f"task id mismatch: {task.id!r} != {task_id!r}")
        await self._persist(task_id, task)
        logger.debug("Task updated table=%s id=%s", self._table, task_id)

    async def clear(self) -> None:
        n = await self._store.delete(self._table)
        self._set_tasks([])
        logger.info("Cleared %s: %d rows deleted", self._table, n)

    async def _persist(self, task_id: str, task: TaskT) -> None:
        await self._store.update(
            self._table, task.to_record(), where="id = ?", where_args=(task_id,)
        )
        self._set_tasks([task if t.id == task_id else t for t in self._tasks])


async def create_todo_repository(store: LocalStore) -> TaskRepository[DeadlineTask]:
    return await TaskRepository.create(store, DeadlineTask.TABLE_NAME, DeadlineTask.from_record)


async def create_countdown_repository(store: LocalStore) -> TaskRepository[CountdownTask]:
    return await TaskRepository.create(store, CountdownTask.TABLE_NAME, CountdownTask.from_record)
