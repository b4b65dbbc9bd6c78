# src/its_done/agent/executor.py

"""
Apply resolved agent actions to the State Store.

- actions run in order; one bad action never aborts the batch,
- task references without an id are inert (unresolved, ambiguous, or unknown),
- toggle/delete/reminder on a missing id is a silent no-op,
- breakdownTask makes a second model call; its failure is logged and skipped.

Returns the descriptions of the actions actually performed (the audit log
shown next to the agent's reply).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import date

from ..storage.state_store import StateStore, today_key
from .actions import (
    AddJournalEntry,
    AddTask,
    AgentAction,
    BreakdownTask,
    CancelReminder,
    DeleteTask,
    MalformedAction,
    PauseTimer,
    ResetTimer,
    SetFocus,
    SetReminder,
    StartTimer,
    ToggleTask,
)

logger = logging.getLogger(__name__)

Decomposer = Callable[[str], list[str]]


def _task_label(store: StateStore, text: str | None, task_id: int | None) -> str:
    if task_id is not None:
        task = store.get_task(task_id)
        if task is not None:
            return task.text
    return text or "?"


def describe_action(action: AgentAction, label: str | None = None) -> str:
    """Human-readable line for the audit log."""
    if isinstance(action, AddTask):
        return f'Added task: "{action.text}"'
    if isinstance(action, ToggleTask):
        return f'Toggled task: "{label or action.text}"'
    if isinstance(action, DeleteTask):
        return f'Deleted task: "{label or action.text}"'
    if isinstance(action, SetFocus):
        return f'Set focus to: "{action.text}"'
    if isinstance(action, StartTimer):
        return "Started timer."
    if isinstance(action, PauseTimer):
        return "Paused timer."
    if isinstance(action, ResetTimer):
        return "Reset timer."
    if isinstance(action, AddJournalEntry):
        return "Added journal entry."
    if isinstance(action, SetReminder):
        when = action.reminder_time.strftime("%Y-%m-%d %H:%M")
        return f'Set reminder for "{label or action.text}" at {when}'
    if isinstance(action, CancelReminder):
        return f'Cancelled reminder for "{label or action.text}"'
    if isinstance(action, BreakdownTask):
        return f'Broke down goal: "{action.goal}"'
    return f"Action: {action.tool_name}"


async def _apply_one(
        store: StateStore,
        action: AgentAction,
        decompose: Decomposer | None,
        today: date | None,
) -> str | None:
    if isinstance(action, MalformedAction):
        logger.info("Skipping malformed action tool=%r reason=%s", action.tool_name, action.reason)
        return None

    if isinstance(action, AddTask):
        store.add_task(
            action.text,
            priority=action.priority,
            category=action.category,
            due_date=action.due_date,
        )
        return describe_action(action)

    if isinstance(action, (ToggleTask, DeleteTask, SetReminder, CancelReminder)):
        if action.id is None:
            logger.info("Skipping unresolved %s text=%r", action.tool.value, action.text)
            return None

        label = _task_label(store, action.text, action.id)
        if isinstance(action, ToggleTask):
            done = store.toggle_task(action.id)
        elif isinstance(action, DeleteTask):
            done = store.delete_task(action.id)
        elif isinstance(action, SetReminder):
            done = store.set_reminder(action.id, action.reminder_time)
        else:
            done = store.cancel_reminder(action.id)

        if not done:
            logger.debug("%s: no task with id=%s (no-op)", action.tool.value, action.id)
            return None
        return describe_action(action, label)

    if isinstance(action, SetFocus):
        store.set_focus(action.text)
        return describe_action(action)

    if isinstance(action, AddJournalEntry):
        store.upsert_journal_entry(today_key(today), action.content)
        return describe_action(action)

    if isinstance(action, StartTimer):
        store.pomodoro_action("start")
        return describe_action(action)
    if isinstance(action, PauseTimer):
        store.pomodoro_action("pause")
        return describe_action(action)
    if isinstance(action, ResetTimer):
        store.pomodoro_action("reset")
        return describe_action(action)

    if isinstance(action, BreakdownTask):
        if decompose is None:
            logger.warning("breakdownTask requested but no decomposer is configured")
            return None
        try:
            sub_tasks = await asyncio.to_thread(decompose, action.goal)
        except Exception:
            logger.exception("Task breakdown failed goal=%r", action.goal)
            return None
        sub_tasks = [t for t in sub_tasks if t and t.strip()]
        for text in sub_tasks:
            store.add_task(text, category=action.goal)
        logger.info("Broke down goal=%r into %d tasks", action.goal, len(sub_tasks))
        return describe_action(action)

    logger.warning("Unknown action type %r", type(action).__name__)
    return None


async def apply_actions(
        store: StateStore,
        actions: Sequence[AgentAction],
        *,
        decompose: Decomposer | None = None,
        today: date | None = None,
) -> list[str]:
    performed: list[str] = []
    for action in actions:
        try:
            line = await _apply_one(store, action, decompose, today)
        except Exception:
            logger.exception("Failed to apply agent action=%r", action)
            continue
        if line:
            performed.append(line)
    return performed
