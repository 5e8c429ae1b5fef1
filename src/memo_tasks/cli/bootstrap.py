# src/memo_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- constructs the single LocalStore and injects it into both repositories
  and the sync client,
- owns shutdown (sync transport, database handle).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..storage.local_store import LocalStore
from ..sync.credentials import CredentialStore, JsonPreferences
from ..sync.sync_api import attach_sync_client
from ..tasks.task_models import TASK_SCHEMAS
from ..tasks.task_repository import create_countdown_repository, create_todo_repository

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.prefs_path.parent.mkdir(parents=True, exist_ok=True)


async def create_initial_state(*, settings=None) -> AppState:
    """
    Build AppState with fully loaded repositories.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = LocalStore(settings.db_path, TASK_SCHEMAS)
    todos = await create_todo_repository(store)
    countdowns = await create_countdown_repository(store)

    state = AppState(
        settings=settings,
        store=store,
        todos=todos,
        countdowns=countdowns,
        credentials=CredentialStore(JsonPreferences(settings.prefs_path)),
    )
    await attach_sync_client(state)

    logger.info(
        "State ready db=%s todos=%d countdowns=%d sync=%s",
        store.path,
        len(todos.tasks),
        len(countdowns.tasks),
        "on" if state.sync is not None else "off",
    )
    return state


async def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    if state.sync is not None:
        try:
            await state.sync.aclose()
        except Exception:
            logger.debug("Sync client close failed.", exc_info=True)
        state.sync = None

    try:
        await state.store.close()
    except Exception:
        logger.exception("Failed to close local store.")
