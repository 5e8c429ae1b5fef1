# tests/test_task_repository.py

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from memo_tasks.errors import TaskNotFoundError
from memo_tasks.storage.local_store import LocalStore
from memo_tasks.tasks.duration import Duration
from memo_tasks.tasks.task_models import CountdownTask, DeadlineTask
from memo_tasks.tasks.task_repository import (
    TaskRepository,
    create_countdown_repository,
    create_todo_repository,
)


@pytest.mark.asyncio
async def test_create_returns_loaded_repository(store: LocalStore) -> None:
    existing = DeadlineTask(title="from disk", deadline=datetime(2026, 5, 1))
    await store.insert("todos", existing.to_record())

    repo = await create_todo_repository(store)
    assert repo.loaded
    assert repo.tasks == (existing,)

    lazy = TaskRepository(store, "todos", DeadlineTask.from_record)
    assert lazy.tasks == ()
    assert not lazy.loaded
    await lazy.load()
    assert lazy.tasks == (existing,)


@pytest.mark.asyncio
async def test_deadline_task_lifecycle(store: LocalStore) -> None:
    repo = await create_todo_repository(store)
    deadline = datetime.now() + timedelta(days=1)
    task = DeadlineTask(title="Buy milk", deadline=deadline)

    await repo.add(task)
    assert len(repo.tasks) == 1
    (only,) = repo.tasks
    assert (only.title, only.deadline, only.is_completed) == ("Buy milk", deadline, False)

    await repo.toggle(task.id)
    assert repo.tasks[0].is_completed is True
    rows = await store.query("todos", where="id = ?", where_args=[task.id])
    assert rows[0]["isCompleted"] == 1

    await repo.remove(task.id)
    assert repo.tasks == ()
    assert await store.query("todos") == []


@pytest.mark.asyncio
async def test_toggle_twice_restores_status(store: LocalStore) -> None:
    repo = await create_countdown_repository(store)
    start = datetime(2026, 1, 1, 7, 0)
    task = CountdownTask(title="once", start_time=start, duration=Duration(days=3))
    await repo.add(task)

    await repo.toggle(task.id)
    assert repo.get(task.id).is_completed is True
    await repo.toggle(task.id)

    again = repo.get(task.id)
    assert again.is_completed is False
    assert (again.title, again.start_time, again.duration) == ("once", start, Duration(days=3))


@pytest.mark.asyncio
async def test_recurring_countdown_never_observed_completed(store: LocalStore) -> None:
    repo = await create_countdown_repository(store)
    seen: list[bool] = []
    repo.subscribe(lambda tasks: seen.extend(t.is_completed for t in tasks))

    task = CountdownTask(
        title="Water plants",
        start_time=datetime.now(),
        duration=Duration(days=7),
        is_recurring=True,
    )
    await repo.add(task)

    await repo.toggle(task.id)
    before_second = datetime.now()
    await repo.toggle(task.id)
    after_second = datetime.now()

    current = repo.get(task.id)
    assert current.is_completed is False
    assert before_second <= current.start_time <= after_second
    assert True not in seen

    (row,) = await store.query("countdowns")
    assert row["isCompleted"] == 0
    assert datetime.fromisoformat(row["startTime"]) == current.start_time


@pytest.mark.asyncio
async def test_update_replaces_entry_and_row(store: LocalStore) -> None:
    repo = await create_todo_repository(store)
    task = DeadlineTask(title="draft", deadline=datetime(2026, 1, 1))
    await repo.add(task)

    edited = DeadlineTask(id=task.id, title="final", deadline=datetime(2026, 2, 2), is_completed=False)
    await repo.update(task.id, edited)

    assert repo.tasks == (edited,)
    reloaded = await create_todo_repository(store)
    assert reloaded.tasks == (edited,)


@pytest.mark.asyncio
async def test_lookup_miss_fails_fast(store: LocalStore) -> None:
    repo = await create_todo_repository(store)
    with pytest.raises(TaskNotFoundError):
        await repo.toggle("nope")
    with pytest.raises(KeyError):
        await repo.update("nope", DeadlineTask(title="x", deadline=datetime(2026, 1, 1)))
    assert await store.query("todos") == []


@pytest.mark.asyncio
async def test_remove_unknown_id_is_noop(store: LocalStore) -> None:
    repo = await create_todo_repository(store)
    task = DeadlineTask(title="keep", deadline=datetime(2026, 1, 1))
    await repo.add(task)
    await repo.remove("unknown")
    assert repo.tasks == (task,)


@pytest.mark.asyncio
async def test_clear_empties_only_its_table(store: LocalStore) -> None:
    todos = await create_todo_repository(store)
    countdowns = await create_countdown_repository(store)
    await todos.add(DeadlineTask(title="a", deadline=datetime(2026, 1, 1)))
    await todos.add(DeadlineTask(title="b", deadline=datetime(2026, 1, 2)))
    await countdowns.add(CountdownTask(title="c", start_time=datetime(2026, 1, 1), duration=Duration(days=1)))

    await todos.clear()

    assert todos.tasks == ()
    assert await store.query("todos") == []
    assert len(await store.query("countdowns")) == 1


@pytest.mark.asyncio
async def test_subscribers_get_snapshots_and_can_unsubscribe(store: LocalStore) -> None:
    repo = await create_todo_repository(store)
    snapshots: list[tuple[DeadlineTask, ...]] = []
    unsubscribe = repo.subscribe(snapshots.append)

    def broken(_tasks) -> None:
        raise RuntimeError("listener bug")

    repo.subscribe(broken)

    task = DeadlineTask(title="a", deadline=datetime(2026, 1, 1))
    await repo.add(task)
    await repo.toggle(task.id)
    unsubscribe()
    await repo.remove(task.id)

    assert len(snapshots) == 2
    assert snapshots[0][0].is_completed is False
    assert snapshots[1][0].is_completed is True
    assert repo.tasks == ()


@pytest.mark.asyncio
async def test_cache_is_untouched_when_persist_fails(store: LocalStore) -> None:
    repo = await create_todo_repository(store)
    task = DeadlineTask(title="a", deadline=datetime(2026, 1, 1))
    await repo.add(task)

    await store.close()
    store.path.unlink()
    store.path.mkdir()  # a directory where the database file should be: opening fails

    with pytest.raises(Exception):
        await repo.toggle(task.id)
    assert repo.get(task.id).is_completed is False


@pytest.mark.asyncio
async def test_reload_after_sync_replaces_list(store: LocalStore) -> None:
    repo = await create_todo_repository(store)
    await repo.add(DeadlineTask(title="stale", deadline=datetime(2026, 1, 1)))

    # Simulate another writer replacing the rows behind the repository's back.
    fresh = DeadlineTask(title="fresh", deadline=datetime(2026, 3, 1))
    await store.delete("todos")
    await store.insert("todos", fresh.to_record())

    await repo.reload_after_sync()
    assert repo.tasks == (fresh,)


@pytest.mark.asyncio
async def test_update_rejects_a_different_id(store: LocalStore) -> None:
    repo = await create_todo_repository(store)
    original = DeadlineTask(title="original", deadline=datetime(2026, 1, 1))
    await repo.add(original)
    other = DeadlineTask(title="other", deadline=datetime(2026, 2, 1))

    with pytest.raises(ValueError):
        await repo.update(original.id, other)

    assert repo.tasks == (original,)
    rows = await store.query("todos")
    assert [r["id"] for r in rows] == [original.id]
