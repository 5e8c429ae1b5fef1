# src/memo_tasks/sync/sync_api.py

from __future__ import annotations

"""
Caller-side sync flow used by front ends.

SyncClient only moves bytes. This module adds what the caller owns:
- a busy flag per transfer kind (a second upload/download while one runs is ignored)
- reloading every repository after a successful download
- building/replacing the SyncClient when credentials change
"""

import logging
from typing import Any

from ..config import DEFAULT_REMOTE_DIR
from ..core.ports import ProgressCallback
from ..core.state import AppState
from .credentials import RemoteCredentials
from .sync_client import SyncClient
from .webdav_client import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)


def _remote_options(state: AppState) -> dict[str, Any]:
    settings = state.settings
    return {
        "remote_dir": getattr(settings, "remote_dir", DEFAULT_REMOTE_DIR),
        "timeout": getattr(settings, "webdav_timeout_seconds", None),
        "chunk_size": getattr(settings, "upload_chunk_size", DEFAULT_CHUNK_SIZE),
    }


async def check_connection(state: AppState, url: str, user: str, password: str) -> bool:
    """Probe a remote with the given credentials (nothing is saved). Never raises."""
    client = SyncClient.from_credentials(
        state.store,
        RemoteCredentials(url=url, user=user, password=password),
        **_remote_options(state),
    )
    try:
        return await client.test_connection()
    finally:
        await client.aclose()


async def attach_sync_client(state: AppState) -> SyncClient | None:
    """(Re)build state.sync from the saved credentials; None when unconfigured."""
    if state.sync is not None:
        await state.sync.aclose()
        state.sync = None

    creds = await state.credentials.load()
    if creds is None:
        logger.info("Remote sync not configured.")
        return None

    state.sync = SyncClient.from_credentials(state.store, creds, **_remote_options(state))
    return state.sync


async def configure_remote(state: AppState, url: str, user: str, password: str) -> bool:
    """Save credentials and rebuild the sync client. Returns whether they form a complete set."""
    await state.credentials.save(url, user, password)
    return await attach_sync_client(state) is not None


async def upload(state: AppState, progress: ProgressCallback | None = None) -> bool | None:
    """
    Upload the database. Returns None when ignored (busy or not configured).
    """
    if state.sync is None:
        logger.warning("Upload requested but remote sync is not configured.")
        return None
    if state.uploading:
        logger.info("Upload already in progress; ignoring.")
        return None

    state.uploading = True
    try:
        return await state.sync.upload_database(progress)
    finally:
        state.uploading = False


async def download(state: AppState, progress: ProgressCallback | None = None) -> bool | None:
    """
    Download the database, then reload every repository from the new file.

    Returns None when ignored (busy or not configured).
    """
    if state.sync is None:
        logger.warning("Download requested but remote sync is not configured.")
        return None
    if state.downloading:
        logger.info("Download already in progress; ignoring.")
        return None

    state.downloading = True
    try:
        ok = await state.sync.download_database(progress)
        if ok:
            for repo in state.repositories:
                await repo.reload_after_sync()
        return ok
    finally:
        state.downloading = False
