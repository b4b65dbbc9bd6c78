# tests/test_commands.py

from __future__ import annotations

from datetime import datetime

import pytest

from its_done.cli.commands import CommandRegistry, parse_when, registry
from its_done.core.models import Priority


@pytest.mark.asyncio
async def test_command_registry_routes_sync_and_async(state) -> None:
    reg = CommandRegistry()
    called = {"sync": 0, "async": 0}

    def h_sync(state, args):
        called["sync"] += 1
        return "sync " + " ".join(args)

    async def h_async(state, args):
        called["async"] += 1
        return "async"

    reg.register("a", h_sync, "a")
    reg.register("b", h_async, "b", aliases=["bee"])

    assert await reg.handle(state, "/a x y") == "sync x y"
    assert await reg.handle(state, "/BEE") == "async"
    assert called == {"sync": 1, "async": 1}


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_add_edit_done_del(state) -> None:
    out = await registry.handle(state, "/add Pay rent !high #Home due=2030-03-01")
    assert out.startswith("Added:")
    task = state.store.tasks[0]
    assert (task.text, task.priority, task.category) == ("Pay rent", Priority.HIGH, "Home")
    assert task.due_date == datetime(2030, 3, 1)

    out = await registry.handle(state, f"/edit {task.id} Pay rent now #- due=-")
    edited = state.store.get_task(task.id)
    assert (edited.text, edited.category, edited.due_date) == ("Pay rent now", None, None)

    await registry.handle(state, f"/done {task.id}")
    assert state.store.get_task(task.id).completed is True

    assert await registry.handle(state, f"/del {task.id}") == f"Deleted task {task.id}."
    assert state.store.tasks == []
    assert "No task with id" in await registry.handle(state, f"/del {task.id}")


@pytest.mark.asyncio
async def test_add_usage_and_validation(state) -> None:
    assert (await registry.handle(state, "/add")).startswith("Usage")
    assert "Priority must be" in await registry.handle(state, "/add x !urgent")
    assert "due date" in await registry.handle(state, "/add x due=soon")


@pytest.mark.asyncio
async def test_tasks_listing_and_sort(state) -> None:
    await registry.handle(state, "/add b-task !low #Work")
    await registry.handle(state, "/add a-task !high")
    out = await registry.handle(state, "/tasks sort=alpha")
    assert out.index("a-task") < out.index("b-task")
    assert "Categories: Work" in out
    assert "Unknown sort order" in await registry.handle(state, "/tasks sort=zzz")


@pytest.mark.asyncio
async def test_remind_schedules_and_unremind(state) -> None:
    await registry.handle(state, "/add Stretch")
    task = state.store.tasks[0]
    out = await registry.handle(state, f"/remind {task.id} +30m")
    assert out.startswith("Reminder set for")
    assert state.store.get_task(task.id).reminder_time is not None

    await registry.handle(state, f"/unremind {task.id}")
    assert state.store.get_task(task.id).reminder_time is None


def test_parse_when() -> None:
    now = datetime(2030, 1, 1, 10, 0)
    assert parse_when("+15", now=now) == datetime(2030, 1, 1, 10, 15)
    assert parse_when("+2h", now=now) == datetime(2030, 1, 1, 12, 0)
    assert parse_when("2030-01-02T08:00", now=now) == datetime(2030, 1, 2, 8, 0)
    assert parse_when("+xh", now=now) is None


@pytest.mark.asyncio
async def test_focus_notes_journal(state) -> None:
    await registry.handle(state, "/focus Write chapter 2")
    assert state.store.focus == "Write chapter 2"

    await registry.handle(state, "/notes first line")
    await registry.handle(state, "/notes + second line")
    assert state.store.notes == "first line\nsecond line"

    await registry.handle(state, "/journal write Felt productive")
    assert "Felt productive" in await registry.handle(state, "/journal")
    assert "No journal entry" in await registry.handle(state, "/journal 1999-01-01")


@pytest.mark.asyncio
async def test_summarize_requires_enough_text(state) -> None:
    await registry.handle(state, "/notes tiny")
    assert await registry.handle(state, "/summarize") == "Please write a bit more before summarizing."


@pytest.mark.asyncio
async def test_timer_commands(state) -> None:
    out = await registry.handle(state, "/timer start")
    assert "running" in out
    await registry.handle(state, "/timer switch")
    assert state.store.pomodoro.snapshot().cycles == 1
    await registry.handle(state, "/timer set 50 10 20")
    assert state.store.pomodoro.durations.work == 50
    assert "Invalid input" in await registry.handle(state, "/timer set 0 5 15")


@pytest.mark.asyncio
async def test_chat_clear_research_and_pins(state, llm) -> None:
    llm.next_text = "**Tip**: take breaks."
    assert await registry.handle(state, "/chat any tips?") == "Tip: take breaks."
    assert await registry.handle(state, "/clear") == "History cleared. How can I help you?"

    await registry.handle(state, "/research on")
    assert state.store.research_mode is True

    llm.search_result = ("Result", [{"uri": "https://x.example", "title": "X"}])
    out = await registry.handle(state, "/research what is x?")
    assert "Result" in out and "https://x.example" in out

    assert (await registry.handle(state, "/pin")).startswith("Pinned #")
    item = state.store.pinned_items[0]
    assert "what is x?" in await registry.handle(state, "/pins")
    assert await registry.handle(state, f"/unpin {item.id}") == f"Unpinned #{item.id}."


@pytest.mark.asyncio
async def test_status_and_help(state) -> None:
    assert "Available commands" in await registry.handle(state, "/help")
    status = await registry.handle(state, "/status")
    assert "Research mode: OFF" in status
    assert "Timer: Work 25:00" in status
