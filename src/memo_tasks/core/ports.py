# src/memo_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

Task kinds share capabilities, not a base class: repositories depend on these
Protocols, and the sync client depends on RemoteFileStore instead of a concrete
WebDAV client. This keeps the transport swappable and makes testing easier.
"""

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol

Record = dict[str, Any]
# One persisted row: column name -> SQLite value (str / int / None).

ProgressCallback = Callable[[int, int], None]
# (bytes_done, bytes_total); total is -1 when the remote does not announce a size.


class Identifiable(Protocol):
    @property
    def id(self) -> str: ...


class Completable(Protocol):
    is_completed: bool

    def change_status(self) -> None: ...


class TaskRecord(Identifiable, Completable, Protocol):
    """What a repository needs from a task kind: identity, status, and a row form."""

    title: str

    def to_record(self) -> Record: ...


class RemoteFileStore(Protocol):
    """Remote file-store client (WebDAV in production, in-memory in tests)."""

    async def ping(self) -> None: ...

    async def mkdir(self, path: str) -> None: ...

    async def write(
            self,
            data: bytes,
            path: str,
            on_progress: ProgressCallback | None = None,
    ) -> None: ...

    async def read_to_file(
            self,
            path: str,
            local_path: str | Path,
            on_progress: ProgressCallback | None = None,
    ) -> None: ...

    async def aclose(self) -> None: ...


class KeyValueStore(Protocol):
    """Small persistent string store (preferences)."""

    async def get_string(self, key: str) -> str | None: ...

    async def set_string(self, key: str, value: str) -> None: ...


TableSchemas = Mapping[str, Mapping[str, str]]
# table name -> ordered {column name: column declaration}
