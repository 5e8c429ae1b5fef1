# src/memo_tasks/tasks/task_models.py

from __future__ import annotations

import json
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, ClassVar

from ..core.ports import Record
from .duration import Duration


def new_task_id() -> str:
    return str(uuid.uuid4())


def _bool_to_db(value: bool) -> int:
    return 1 if value else 0


def _bool_from_db(raw: Any) -> bool:
    return raw == 1


def _now() -> datetime:
    return datetime.now()


def to_local_naive(value: datetime) -> datetime:
    """All task times are naive local time; offset-aware values are converted."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_local_datetime(raw: str) -> datetime:
    return to_local_naive(datetime.fromisoformat(raw))


@dataclass(slots=True)
class DeadlineTask:
    """A one-shot obligation due at `deadline` ("todo")."""

    TABLE_NAME: ClassVar[str] = "todos"
    COLUMNS: ClassVar[dict[str, str]] = {
        "id": "TEXT PRIMARY KEY",
        "title": "TEXT NOT NULL",
        "deadline": "TEXT",
        "isCompleted": "INTEGER DEFAULT 0",
    }

    title: str
    deadline: datetime
    is_completed: bool = False
    id: str = field(default_factory=new_task_id)

    def change_status(self) -> None:
        self.is_completed = not self.is_completed

    def update(self, new_title: str, new_deadline: datetime) -> None:
        self.title = new_title
        self.deadline = new_deadline

    def time_left(self, now: datetime | None = None) -> timedelta:
        return self.deadline - (now or _now())

    def is_overdue(self, now: datetime | None = None) -> bool:
        """Derived display fact; never stored."""
        return not self.is_completed and self.deadline < (now or _now())

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "title": self.title,
            "deadline": self.deadline.isoformat(),
            "isCompleted": _bool_to_db(self.is_completed),
        }

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> DeadlineTask:
        return cls(
            id=str(row["id"]),
            title=str(row["title"]),
            deadline=parse_local_datetime(row["deadline"]),
            is_completed=_bool_from_db(row["isCompleted"]),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_record(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> DeadlineTask:
        return cls.from_record(json.loads(raw))


@dataclass(slots=True)
class CountdownTask:
    """
    A span [start_time, start_time + duration], optionally recurring.

    Invariant: a recurring countdown is never left completed. When change_status()
    moves it into the completed state it restarts on the spot (is_completed back to
    False, start_time = now). Non-recurring countdowns stay completed until toggled.
    """

    TABLE_NAME: ClassVar[str] = "countdowns"
    COLUMNS: ClassVar[dict[str, str]] = {
        "id": "TEXT PRIMARY KEY",
        "title": "TEXT NOT NULL",
        "startTime": "TEXT NOT NULL",
        "duration": "INTEGER NOT NULL",
        "isRecurring": "INTEGER DEFAULT 0",
        "isCompleted": "INTEGER DEFAULT 0",
    }

    title: str
    start_time: datetime
    duration: Duration
    is_recurring: bool = False
    is_completed: bool = False
    id: str = field(default_factory=new_task_id)

    def change_status(self) -> None:
        self.is_completed = not self.is_completed
        if self.is_completed and self.is_recurring:
            self.restart()

    def restart(self, now: datetime | None = None) -> None:
        self.is_completed = False
        self.start_time = now or _now()

    def update(
        self,
        new_title: str,
        new_start_time: datetime,
        new_duration: Duration,
        new_is_recurring: bool,
    ) -> None:
        self.title = new_title
        self.start_time = new_start_time
        self.duration = new_duration
        self.is_recurring = new_is_recurring

    @property
    def end_time(self) -> datetime:
        return self.start_time + self.duration.as_timedelta()

    def time_left(self, now: datetime | None = None) -> timedelta:
        return self.end_time - (now or _now())

    def is_overdue(self, now: datetime | None = None) -> bool:
        return not self.is_completed and self.end_time < (now or _now())

    def to_record(self) -> Record:
        return {
            "id": self.id,
            "title": self.title,
            "startTime": self.start_time.isoformat(),
            "duration": self.duration.total_days,
            "isRecurring": _bool_to_db(self.is_recurring),
            "isCompleted": _bool_to_db(self.is_completed),
        }

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> CountdownTask:
        return cls(
            id=str(row["id"]),
            title=str(row["title"]),
            start_time=parse_local_datetime(row["startTime"]),
            duration=Duration.from_total_days(int(row["duration"])),
            is_recurring=_bool_from_db(row["isRecurring"]),
            is_completed=_bool_from_db(row["isCompleted"]),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_record(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> CountdownTask:
        return cls.from_record(json.loads(raw))


TASK_SCHEMAS: dict[str, dict[str, str]] = {
    DeadlineTask.TABLE_NAME: DeadlineTask.COLUMNS,
    CountdownTask.TABLE_NAME: CountdownTask.COLUMNS,
}
