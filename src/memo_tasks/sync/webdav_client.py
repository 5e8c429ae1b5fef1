# src/memo_tasks/sync/webdav_client.py

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import httpx

from ..core.ports import ProgressCallback
from ..errors import WebDavError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

_PROPFIND_BODY = (
    b'<?xml version="1.0" encoding="utf-8"?>'
    b'<d:propfind xmlns:d="DAV:"><d:prop><d:resourcetype/></d:prop></d:propfind>'
)


def _report(on_progress: ProgressCallback | None, done: int, total: int) -> None:
    if on_progress is None:
        return
    try:
        on_progress(done, total)
    except Exception:
        logger.debug("Progress callback failed (%s/%s).", done, total, exc_info=True)


class WebDavClient:
    """
    Minimal WebDAV client over httpx.AsyncClient (basic auth).

    Only what whole-file sync needs: PROPFIND as a ping, MKCOL, PUT and GET.
    Paths are relative to the base URL; a leading "/" is accepted.
    Non-success statuses raise WebDavError; transport errors surface as httpx errors.
    """

    def __init__(
        self,
        base_url: str,
        user: str,
        password: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        kwargs: dict[str, Any] = {
            "base_url": base_url.rstrip("/") + "/",
            "auth": httpx.BasicAuth(user, password),
            "transport": transport,
        }
        if timeout is not None:
            kwargs["timeout"] = timeout
        self._client = httpx.AsyncClient(**kwargs)
        self._chunk_size = max(1, int(chunk_size))

    @staticmethod
    def _rel(path: str) -> str:
        return path.lstrip("/")

    @staticmethod
    def _check(resp: httpx.Response, method: str, path: str, *ok: int) -> None:
        if resp.status_code in ok or (not ok and resp.is_success):
            return
        raise WebDavError(method, path, resp.status_code)

    async def ping(self) -> None:
        resp = await self._client.request(
            "PROPFIND",
            "",
            headers={"Depth": "0", "Content-Type": "application/xml"},
            content=_PROPFIND_BODY,
        )
        self._check(resp, "PROPFIND", "/")
        logger.debug("WebDAV ping ok status=%s", resp.status_code)

    async def mkdir(self, path: str) -> None:
        """Create a collection. An existing collection (405) is fine."""
        rel = self._rel(path).rstrip("/") + "/"
        resp = await self._client.request("MKCOL", rel)
        if resp.status_code == 405:
            logger.debug("WebDAV collection already exists path=%s", path)
            return
        self._check(resp, "MKCOL", path)
        logger.info("WebDAV collection created path=%s", path)

    async def write(
        self,
        data: bytes,
        path: str,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        total = len(data)
        chunk_size = self._chunk_size

        async def body() -> AsyncIterator[bytes]:
            sent = 0
            for start in range(0, total, chunk_size):
                chunk = data[start:start + chunk_size]
                yield chunk
                sent += len(chunk)
                _report(on_progress, sent, total)

        resp = await self._client.put(
            self._rel(path),
            content=body(),
            headers={
                "Content-Length": str(total),
                "Content-Type": "application/octet-stream",
            },
        )
        self._check(resp, "PUT", path)
        if total == 0:
            _report(on_progress, 0, 0)
        logger.debug("WebDAV PUT ok path=%s bytes=%d status=%s", path, total, resp.status_code)

    async def read_to_file(
        self,
        path: str,
        local_path: str | Path,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """
        Stream a remote file to `local_path`.

        The body goes to a temporary sibling first and is moved over the target
        only once complete, so a failed transfer leaves the old file untouched.
        """
        target = Path(local_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.name + ".download")

        async with self._client.stream("GET", self._rel(path)) as resp:
            self._check(resp, "GET", path)
            # Content-Length counts encoded bytes; aiter_bytes yields decoded ones.
            encoding = resp.headers.get("Content-Encoding", "identity").strip().lower()
            try:
                total = int(resp.headers.get("Content-Length", "-1"))
            except ValueError:
                total = -1
            if encoding not in ("", "identity"):
                total = -1

            received = 0
            try:
                with tmp.open("wb") as fh:
                    async for chunk in resp.aiter_bytes(self._chunk_size):
                        fh.write(chunk)
                        received += len(chunk)
                        _report(on_progress, received, total)
                os.replace(tmp, target)
            except BaseException:
                with contextlib.suppress(OSError):
                    tmp.unlink()
                raise

        logger.debug("WebDAV GET ok path=%s bytes=%d -> %s", path, received, target)

    async def aclose(self) -> None:
        await self._client.aclose()
