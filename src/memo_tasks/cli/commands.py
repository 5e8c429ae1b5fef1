# src/memo_tasks/cli/commands.py

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

from ..core.state import AppState
from ..sync import sync_api
from ..tasks.duration import Duration
from ..tasks.task_models import CountdownTask, DeadlineTask, parse_local_datetime
from ..tasks.task_repository import TaskRepository

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^(?:(\d+)y)?(?:(\d+)m)?(?:(\d+)d)?$", re.IGNORECASE)


class CommandRegistry:
    """Slash-command registry used by the console (/help, /todo, /sync, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args, emit)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing helpers ----

def parse_when(raw: str, *, now: datetime | None = None) -> datetime:
    """
    Accept ISO dates/datetimes ("2026-10-20", "2026-10-20T18:30") or a relative
    offset from now ("+3d", "+2h", "+45min"). A value with a UTC offset is
    converted to naive local time.
    """
    now = now or datetime.now()
    m = re.fullmatch(r"\+(\d+)(d|h|min)", raw.strip().lower())
    if m:
        n, unit = int(m.group(1)), m.group(2)
        if unit == "d":
            return now + timedelta(days=n)
        if unit == "h":
            return now + timedelta(hours=n)
        return now + timedelta(minutes=n)
    return parse_local_datetime(raw)


def parse_duration(raw: str) -> Duration:
    """Parse "1y2m3d", "7d" or "3m" into a Duration. A bare number means days."""
    s = raw.strip()
    if s.isdigit():
        return Duration(days=int(s))
    m = _DURATION_RE.fullmatch(s)
    if not m or not any(m.groups()):
        raise ValueError(f"bad duration: {raw!r} (use e.g. 7d, 1m, 1y2m3d)")
    years, months, days = (int(g) if g else 0 for g in m.groups())
    return Duration(years=years, months=months, days=days)


def _resolve_id(repo: TaskRepository[Any], token: str) -> str | None:
    """1-based list index, or a unique id prefix."""
    tasks = repo.tasks
    if token.isdigit():
        idx = int(token) - 1
        return tasks[idx].id if 0 <= idx < len(tasks) else None
    matches = [t.id for t in tasks if t.id.startswith(token)]
    return matches[0] if len(matches) == 1 else None


def _fmt_left(delta: timedelta) -> str:
    sign = "-" if delta.total_seconds() < 0 else ""
    secs = abs(int(delta.total_seconds()))
    days, rest = divmod(secs, 86400)
    hours, rest = divmod(rest, 3600)
    return f"{sign}{days}d {hours}h {rest // 60}m"


def format_todo(i: int, t: DeadlineTask, now: datetime) -> str:
    mark = "x" if t.is_completed else ("!" if t.is_overdue(now) else " ")
    return (
        f"{i}. [{mark}] {t.title}  due {t.deadline:%Y-%m-%d %H:%M}"
        f"  ({_fmt_left(t.time_left(now))})  #{t.id[:8]}"
    )


def format_countdown(i: int, t: CountdownTask, now: datetime) -> str:
    mark = "x" if t.is_completed else ("!" if t.is_overdue(now) else " ")
    rec = " every" if t.is_recurring else ""
    return (
        f"{i}. [{mark}] {t.title}  {t.duration}{rec} from {t.start_time:%Y-%m-%d %H:%M}"
        f"  ({_fmt_left(t.time_left(now))} left)  #{t.id[:8]}"
    )


def _progress_emitter(emit: CommandEmitter | None, label: str) -> Callable[[int, int], None] | None:
    if emit is None:
        return None
    last = {"pct": -1}

    def on_progress(done: int, total: int) -> None:
        if total <= 0:
            return
        pct = done * 100 // total
        if pct >= last["pct"] + 25 or pct == 100:
            last["pct"] = pct
            emit(f"[{label}] {pct}% ({done}/{total} bytes)")

    return on_progress


# ---- handlers ----

async def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    configured = await state.credentials.is_configured()
    return (
        "Status:\n"
        f"  Database: {state.store.path}\n"
        f"  Todos: {len(state.todos.tasks)}\n"
        f"  Countdowns: {len(state.countdowns.tasks)}\n"
        f"  WebDAV: {'configured' if configured else 'not configured'}"
    )


_TODO_USAGE = (
    "Usage:\n"
    "  /todo list\n"
    "  /todo add <when> <title...>     (when: 2026-10-20, 2026-10-20T18:00, +3d, +2h)\n"
    "  /todo edit <n> <when> <title...>\n"
    "  /todo done <n>\n"
    "  /todo rm <n>\n"
    "  /todo clear"
)


async def cmd_todo(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    repo = state.todos
    sub = args[0].lower() if args else "list"
    now = datetime.now()

    if sub in ("list", "ls"):
        if not repo.tasks:
            return "No todos."
        return "\n".join(format_todo(i, t, now) for i, t in enumerate(repo.tasks, start=1))

    if sub == "add" and len(args) >= 3:
        try:
            deadline = parse_when(args[1], now=now)
        except ValueError as e:
            return f"Bad date: {e}"
        task = DeadlineTask(title=" ".join(args[2:]), deadline=deadline)
        await repo.add(task)
        return f"Added todo #{task.id[:8]}: {task.title}"

    if sub == "edit" and len(args) >= 4:
        task_id = _resolve_id(repo, args[1])
        if task_id is None:
            return f"No todo matches {args[1]!r}."
        try:
            deadline = parse_when(args[2], now=now)
        except ValueError as e:
            return f"Bad date: {e}"
        task = copy.copy(repo.get(task_id))
        task.update(" ".join(args[3:]), deadline)
        await repo.update(task_id, task)
        return f"Updated todo #{task_id[:8]}."

    if sub in ("done", "toggle") and len(args) == 2:
        task_id = _resolve_id(repo, args[1])
        if task_id is None:
            return f"No todo matches {args[1]!r}."
        task = await repo.toggle(task_id)
        return f"Todo #{task_id[:8]} is now {'done' if task.is_completed else 'open'}."

    if sub in ("rm", "remove", "del") and len(args) == 2:
        task_id = _resolve_id(repo, args[1])
        if task_id is None:
            return f"No todo matches {args[1]!r}."
        await repo.remove(task_id)
        return f"Removed todo #{task_id[:8]}."

    if sub == "clear":
        await repo.clear()
        return "All todos removed."

    return _TODO_USAGE


_CD_USAGE = (
    "Usage:\n"
    "  /cd list\n"
    "  /cd add <duration> <title...>      (duration: 7d, 1m, 1y2m3d)\n"
    "  /cd every <duration> <title...>    (recurring: restarts when completed)\n"
    "  /cd edit <n> <duration> <title...>\n"
    "  /cd done <n>\n"
    "  /cd rm <n>\n"
    "  /cd clear"
)


async def cmd_countdown(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    repo = state.countdowns
    sub = args[0].lower() if args else "list"
    now = datetime.now()

    if sub in ("list", "ls"):
        if not repo.tasks:
            return "No countdowns."
        return "\n".join(format_countdown(i, t, now) for i, t in enumerate(repo.tasks, start=1))

    if sub in ("add", "every") and len(args) >= 3:
        try:
            duration = parse_duration(args[1])
        except ValueError as e:
            return str(e)
        task = CountdownTask(
            title=" ".join(args[2:]),
            start_time=now,
            duration=duration,
            is_recurring=(sub == "every"),
        )
        await repo.add(task)
        return f"Added countdown #{task.id[:8]}: {task.title} ({task.duration})"

    if sub == "edit" and len(args) >= 4:
        task_id = _resolve_id(repo, args[1])
        if task_id is None:
            return f"No countdown matches {args[1]!r}."
        try:
            duration = parse_duration(args[2])
        except ValueError as e:
            return str(e)
        task = copy.copy(repo.get(task_id))
        task.update(" ".join(args[3:]), task.start_time, duration, task.is_recurring)
        await repo.update(task_id, task)
        return f"Updated countdown #{task_id[:8]}."

    if sub in ("done", "toggle") and len(args) == 2:
        task_id = _resolve_id(repo, args[1])
        if task_id is None:
            return f"No countdown matches {args[1]!r}."
        task = await repo.toggle(task_id)
        if task.is_recurring:
            return f"Countdown #{task_id[:8]} restarted from {task.start_time:%Y-%m-%d %H:%M}."
        return f"Countdown #{task_id[:8]} is now {'done' if task.is_completed else 'open'}."

    if sub in ("rm", "remove", "del") and len(args) == 2:
        task_id = _resolve_id(repo, args[1])
        if task_id is None:
            return f"No countdown matches {args[1]!r}."
        await repo.remove(task_id)
        return f"Removed countdown #{task_id[:8]}."

    if sub == "clear":
        await repo.clear()
        return "All countdowns removed."

    return _CD_USAGE


async def cmd_webdav(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /webdav show                  -> show saved endpoint (password hidden)
    /webdav set <url> <user> <pwd>
    /webdav test [<url> <user> <pwd>]
    """
    sub = args[0].lower() if args else "show"

    if sub == "show":
        creds = await state.credentials.load()
        if creds is None:
            return "WebDAV is not configured. Use /webdav set <url> <user> <pwd>."
        return f"WebDAV: {creds.url} as {creds.user}"

    if sub == "set" and len(args) == 4:
        complete = await sync_api.configure_remote(state, args[1], args[2], args[3])
        return "WebDAV settings saved." if complete else "Saved, but the settings are incomplete."

    if sub == "test":
        if len(args) == 4:
            url, user, pwd = args[1], args[2], args[3]
        else:
            creds = await state.credentials.load()
            if creds is None:
                return "WebDAV is not configured."
            url, user, pwd = creds.url, creds.user, creds.password
        if emit:
            emit(f"[WebDAV] Connecting to {url}...")
        ok = await sync_api.check_connection(state, url, user, pwd)
        return "Connection OK." if ok else "Connection failed (see log)."

    return "Usage: /webdav show | /webdav set <url> <user> <pwd> | /webdav test [<url> <user> <pwd>]"


async def cmd_sync(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /sync up    -> upload local database (replaces the remote copy)
    /sync down  -> download remote database (replaces local data)
    """
    sub = args[0].lower() if args else ""

    if sub in ("up", "upload"):
        res = await sync_api.upload(state, _progress_emitter(emit, "upload"))
        if res is None:
            return "Upload skipped (not configured or already running)."
        return "Upload finished." if res else "Upload failed (see log)."

    if sub in ("down", "download"):
        res = await sync_api.download(state, _progress_emitter(emit, "download"))
        if res is None:
            return "Download skipped (not configured or already running)."
        if not res:
            return "Download failed (see log)."
        return (
            "Download finished: "
            f"{len(state.todos.tasks)} todos, {len(state.countdowns.tasks)} countdowns."
        )

    return "Usage: /sync up | /sync down"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database path, task counts and sync state.")
registry.register(
    "todo",
    cmd_todo,
    help_text="Deadline tasks: /todo list|add|edit|done|rm|clear.",
    aliases=["t"],
)
registry.register(
    "cd",
    cmd_countdown,
    help_text="Countdowns: /cd list|add|every|edit|done|rm|clear.",
    aliases=["countdown"],
)
registry.register("webdav", cmd_webdav, help_text="Remote settings: /webdav show|set|test.")
registry.register("sync", cmd_sync, help_text="Backup/restore the database: /sync up | /sync down.")
