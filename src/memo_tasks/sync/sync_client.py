# src/memo_tasks/sync/sync_client.py

from __future__ import annotations

"""
Whole-file backup/restore of the local database against a remote file store.

The database travels as one opaque blob to /<remote_dir>/<db file name>.
Sync is last-writer-wins: upload replaces the remote copy, download replaces the
local file. Nothing is merged.

Every remote failure is caught here and reported as False (plus a log entry);
callers retry by invoking the operation again.
"""

import logging
from pathlib import Path

from ..config import DEFAULT_REMOTE_DIR
from ..core.ports import ProgressCallback, RemoteFileStore
from ..storage.local_store import LocalStore
from .credentials import RemoteCredentials
from .webdav_client import DEFAULT_CHUNK_SIZE, WebDavClient

logger = logging.getLogger(__name__)


class SyncClient:
    def __init__(
        self,
        store: LocalStore,
        remote: RemoteFileStore,
        *,
        remote_dir: str = DEFAULT_REMOTE_DIR,
    ) -> None:
        self._store = store
        self._remote = remote
        self._remote_dir = "/" + remote_dir.strip("/")

    @classmethod
    def from_credentials(
        cls,
        store: LocalStore,
        credentials: RemoteCredentials,
        *,
        remote_dir: str = DEFAULT_REMOTE_DIR,
        timeout: float | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> SyncClient:
        remote = WebDavClient(
            credentials.url,
            credentials.user,
            credentials.password,
            timeout=timeout,
            chunk_size=chunk_size,
        )
        return cls(store, remote, remote_dir=remote_dir)

    @property
    def remote_dir(self) -> str:
        return self._remote_dir

    @property
    def remote_db_path(self) -> str:
        return f"{self._remote_dir}/{self._store.path.name}"

    async def test_connection(self) -> bool:
        """Ping the remote and make sure the sync directory exists. Never raises."""
        try:
            await self._remote.ping()
            await self._remote.mkdir(self._remote_dir)
        except Exception:
            logger.exception("Remote connection test failed dir=%s", self._remote_dir)
            return False
        logger.info("Remote connection ok dir=%s", self._remote_dir)
        return True

    async def upload_database(self, progress: ProgressCallback | None = None) -> bool:
        """Read the local database file fully and write it to the remote path."""
        local: Path = self._store.path
        remote_path = self.remote_db_path
        try:
            data = local.read_bytes()
            await self._remote.write(data, remote_path, progress)
        except Exception:
            logger.exception("Upload failed %s -> %s", local, remote_path)
            return False
        logger.info("Uploaded %s -> %s (%d bytes)", local, remote_path, len(data))
        return True

    async def download_database(self, progress: ProgressCallback | None = None) -> bool:
        """
        Overwrite the local database file with the remote copy.

        Destructive, no backup is kept. Repositories still hold the old rows
        until the caller runs reload_after_sync() on them.
        """
        local: Path = self._store.path
        remote_path = self.remote_db_path
        try:
            await self._remote.read_to_file(remote_path, local, progress)
        except Exception:
            logger.exception("Download failed %s -> %s", remote_path, local)
            return False
        logger.info("Downloaded %s -> %s", remote_path, local)
        return True

    async def aclose(self) -> None:
        await self._remote.aclose()
