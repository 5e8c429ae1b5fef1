# src/memo_tasks/errors.py

from __future__ import annotations


class MemoError(Exception):
    """Base class for errors raised by memo_tasks itself."""


class TaskNotFoundError(MemoError, KeyError):
    """
    A task id was not found in a repository's working copy.

    Raised by toggle/update: the id must come from a snapshot the caller holds,
    so a miss is a caller bug, not a recoverable condition.
    """

    def __init__(self, table: str, task_id: str) -> None:
        super().__init__(f"{table}: no task with id={task_id!r}")
        self.table = table
        self.task_id = task_id

    def __str__(self) -> str:
        return str(self.args[0])


class WebDavError(MemoError):
    """Non-success HTTP status from the WebDAV server."""

    def __init__(self, method: str, path: str, status_code: int) -> None:
        super().__init__(f"WebDAV {method} {path} failed with HTTP {status_code}")
        self.method = method
        self.path = path
        self.status_code = status_code
