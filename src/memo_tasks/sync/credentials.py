# src/memo_tasks/sync/credentials.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

KEY_URL = "webdav_url"
KEY_USER = "webdav_user"
KEY_PASSWORD = "webdav_pwd"


@dataclass(frozen=True, slots=True)
class RemoteCredentials:
    url: str
    user: str
    password: str

    def __repr__(self) -> str:
        return f"RemoteCredentials(url={self.url!r}, user={self.user!r}, password='***')"


class JsonPreferences:
    """
    File-backed string preferences (one JSON object).

    Writes go to a temp file and are moved into place, then the file is made
    private (it holds the WebDAV password).
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except json.JSONDecodeError:
            logger.warning("Preferences file is not valid JSON, ignoring: %s", self._path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    async def get_string(self, key: str) -> str | None:
        return self._read_all().get(key)

    async def set_string(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)


class CredentialStore:
    """Remote endpoint + login, persisted under fixed keys."""

    def __init__(self, prefs: KeyValueStore) -> None:
        self._prefs = prefs

    async def save(self, url: str, user: str, password: str) -> None:
        await self._prefs.set_string(KEY_URL, url)
        await self._prefs.set_string(KEY_USER, user)
        await self._prefs.set_string(KEY_PASSWORD, password)
        logger.info("Saved WebDAV credentials url=%s user=%s", url, user)

    async def load(self) -> RemoteCredentials | None:
        """All three values, or None when any of them is missing or empty."""
        url = await self._prefs.get_string(KEY_URL) or ""
        user = await self._prefs.get_string(KEY_USER) or ""
        password = await self._prefs.get_string(KEY_PASSWORD) or ""
        if not url or not user or not password:
            return None
        return RemoteCredentials(url=url, user=user, password=password)

    async def is_configured(self) -> bool:
        return await self.load() is not None
