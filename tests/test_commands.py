# tests/test_commands.py

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from memo_tasks.cli.commands import CommandRegistry, parse_duration, parse_when, registry
from memo_tasks.connectors import console_connector
from memo_tasks.core.state import AppState
from memo_tasks.sync.sync_client import SyncClient
from memo_tasks.tasks.duration import Duration
from memo_tasks.tasks.task_repository import create_todo_repository

from .fakes import FakeRemoteStore


@pytest.mark.asyncio
async def test_command_registry_routes_aliases_and_emit(state: AppState) -> None:
    reg = CommandRegistry()
    seen: list[list[str]] = []

    async def handler(state, args, emit=None):
        seen.append(args)
        if emit is not None:
            emit("note")
        return "ok"

    reg.register("a", handler, "first", aliases=["x"])
    notes: list[str] = []

    assert await reg.handle(state, "/a 1 2") == "ok"
    assert await reg.handle(state, "/X 3", emit=notes.append) == "ok"
    assert seen == [["1", "2"], ["3"]]
    assert notes == ["note"]
    assert "/a - first" in reg.build_help()
    assert "/x" not in reg.build_help()


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


def test_parse_when() -> None:
    now = datetime(2026, 10, 19, 12, 0)
    assert parse_when("+3d", now=now) == now + timedelta(days=3)
    assert parse_when("+2h", now=now) == now + timedelta(hours=2)
    assert parse_when("+45min", now=now) == now + timedelta(minutes=45)
    assert parse_when("2026-10-20T18:30", now=now) == datetime(2026, 10, 20, 18, 30)
    utc_noon = parse_when("2026-10-20T12:00+00:00", now=now)
    assert utc_noon.tzinfo is None
    assert utc_noon == datetime(2026, 10, 20, 12, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    with pytest.raises(ValueError):
        parse_when("tomorrow-ish", now=now)


def test_parse_duration() -> None:
    assert parse_duration("7") == Duration(days=7)
    assert parse_duration("7d") == Duration(days=7)
    assert parse_duration("1y2m3d") == Duration(years=1, months=2, days=3)
    assert parse_duration("3M") == Duration(months=3)
    for bad in ("", "d", "1w", "-3d"):
        with pytest.raises(ValueError):
            parse_duration(bad)


@pytest.mark.asyncio
async def test_todo_commands_flow(state: AppState) -> None:
    reply = await registry.handle(state, "/todo add +1d Buy milk")
    assert reply is not None and "Buy milk" in reply
    (task,) = state.todos.tasks
    assert task.title == "Buy milk"

    assert "[ ] Buy milk" in (await registry.handle(state, "/todo list") or "")

    assert "now done" in (await registry.handle(state, "/t done 1") or "")
    assert state.todos.tasks[0].is_completed is True
    assert "[x] Buy milk" in (await registry.handle(state, "/todo") or "")

    await registry.handle(state, f"/todo edit {task.id} 2030-01-01 Buy oat milk")
    edited = state.todos.get(task.id)
    assert (edited.title, edited.deadline) == ("Buy oat milk", datetime(2030, 1, 1))

    assert "No todo matches" in (await registry.handle(state, "/todo rm 9") or "")
    await registry.handle(state, "/todo rm 1")
    assert state.todos.tasks == ()
    assert await state.store.query("todos") == []
    assert await registry.handle(state, "/todo list") == "No todos."


@pytest.mark.asyncio
async def test_countdown_commands_flow(state: AppState) -> None:
    await registry.handle(state, "/cd every 7d Water plants")
    await registry.handle(state, "/countdown add 1m Dentist")
    plants, dentist = state.countdowns.tasks
    assert plants.is_recurring and not dentist.is_recurring
    assert dentist.duration == Duration(months=1)

    reply = await registry.handle(state, "/cd done 1")
    assert reply is not None and "restarted" in reply
    assert state.countdowns.tasks[0].is_completed is False

    await registry.handle(state, "/cd done 2")
    assert state.countdowns.tasks[1].is_completed is True

    assert "bad duration" in (await registry.handle(state, "/cd add soon Thing") or "")

    await registry.handle(state, "/cd clear")
    assert state.countdowns.tasks == ()


@pytest.mark.asyncio
async def test_webdav_and_sync_commands(state: AppState) -> None:
    assert "not configured" in (await registry.handle(state, "/webdav show") or "")
    assert "skipped" in (await registry.handle(state, "/sync up") or "")

    await registry.handle(state, "/todo add +1d backup me")
    state.sync = SyncClient(state.store, FakeRemoteStore())
    notes: list[str] = []

    assert await registry.handle(state, "/sync up", emit=notes.append) == "Upload finished."
    assert notes and notes[-1].startswith("[upload] 100%")

    reply = await registry.handle(state, "/sync down")
    assert reply == "Download finished: 1 todos, 0 countdowns."


@pytest.mark.asyncio
async def test_todo_with_utc_offset_is_stored_as_local_time(state: AppState) -> None:
    await registry.handle(state, "/todo add 2026-10-20T18:00+02:00 call mom")
    (task,) = state.todos.tasks
    expected = datetime(2026, 10, 20, 18, 0, tzinfo=timezone(timedelta(hours=2))).astimezone()
    assert task.deadline.tzinfo is None
    assert task.deadline == expected.replace(tzinfo=None)

    assert "call mom" in (await registry.handle(state, "/todo list") or "")
    reloaded = await create_todo_repository(state.store)
    assert reloaded.tasks == (task,)


@pytest.mark.asyncio
async def test_console_survives_a_crashing_command(
    state: AppState, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    async def boom(state, args, emit=None):
        raise TypeError("handler bug")

    reg = CommandRegistry()
    reg.register("boom", boom, "always fails")
    monkeypatch.setattr(console_connector, "command_registry", reg)

    with caplog.at_level(logging.ERROR, logger="memo_tasks.connectors.console_connector"):
        reply = await console_connector.handle_line(state, "/boom")

    assert reply == "Internal error while handling a command."
    assert "Command handler crashed." in caplog.text
    assert await console_connector.handle_line(state, "hello") is None
