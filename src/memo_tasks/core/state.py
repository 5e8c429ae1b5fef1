# src/memo_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..storage.local_store import LocalStore
from ..sync.credentials import CredentialStore
from ..sync.sync_client import SyncClient
from ..tasks.task_models import CountdownTask, DeadlineTask
from ..tasks.task_repository import TaskRepository


@dataclass
class AppState:
    # Settings object (config.Settings or a test stand-in with the same attributes).
    settings: object

    store: LocalStore
    todos: TaskRepository[DeadlineTask]
    countdowns: TaskRepository[CountdownTask]
    credentials: CredentialStore

    # Built from saved credentials; None until the remote is configured.
    sync: SyncClient | None = None

    # One transfer of each kind at a time (checked by sync_api).
    uploading: bool = False
    downloading: bool = False

    @property
    def repositories(self) -> tuple[TaskRepository[DeadlineTask], TaskRepository[CountdownTask]]:
        return (self.todos, self.countdowns)
