# tests/conftest.py

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from memo_tasks.core.state import AppState
from memo_tasks.storage.local_store import LocalStore
from memo_tasks.sync.credentials import CredentialStore
from memo_tasks.tasks.task_models import TASK_SCHEMAS
from memo_tasks.tasks.task_repository import create_countdown_repository, create_todo_repository

from .fakes import MemoryPreferences


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the sync helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="memo-test",
        data_dir=tmp_path,
        db_path=tmp_path / "memo.db",
        prefs_path=tmp_path / "prefs.json",
        remote_dir="memo",
        webdav_timeout_seconds=None,
        upload_chunk_size=1024,
    )


@pytest_asyncio.fixture()
async def store(settings: SimpleNamespace) -> AsyncIterator[LocalStore]:
    s = LocalStore(settings.db_path, TASK_SCHEMAS)
    yield s
    await s.close()


@pytest_asyncio.fixture()
async def state(settings: SimpleNamespace, store: LocalStore) -> AppState:
    """
    AppState wired with a real SQLite store and in-memory preferences.

    The sync client is left unset; tests attach one with a fake transport.
    """
    return AppState(
        settings=settings,
        store=store,
        todos=await create_todo_repository(store),
        countdowns=await create_countdown_repository(store),
        credentials=CredentialStore(MemoryPreferences()),
    )
