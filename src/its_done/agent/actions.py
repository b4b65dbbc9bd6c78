# src/its_done/agent/actions.py

"""
Typed agent actions.

The model returns loosely typed tool calls ({"toolName": ..., "args": {...}}).
They are validated exactly once, here, into one frozen dataclass per tool.
Anything that names an unknown tool or lacks required args becomes a
MalformedAction, which the executor skips without aborting the batch.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, ClassVar, Union

from ..core.models import Priority, parse_timestamp

logger = logging.getLogger(__name__)


class ToolName(StrEnum):
    ADD_TASK = "addTask"
    TOGGLE_TASK = "toggleTask"
    DELETE_TASK = "deleteTask"
    SET_FOCUS = "setFocus"
    ADD_JOURNAL_ENTRY = "addJournalEntry"
    START_TIMER = "startTimer"
    PAUSE_TIMER = "pauseTimer"
    RESET_TIMER = "resetTimer"
    SET_REMINDER = "setReminder"
    CANCEL_REMINDER = "cancelReminder"
    BREAKDOWN_TASK = "breakdownTask"


@dataclass(frozen=True, slots=True)
class AddTask:
    tool: ClassVar[ToolName] = ToolName.ADD_TASK
    text: str
    priority: Priority = Priority.MEDIUM
    category: str | None = None
    due_date: datetime | None = None


@dataclass(frozen=True, slots=True)
class ToggleTask:
    tool: ClassVar[ToolName] = ToolName.TOGGLE_TASK
    text: str | None = None
    id: int | None = None


@dataclass(frozen=True, slots=True)
class DeleteTask:
    tool: ClassVar[ToolName] = ToolName.DELETE_TASK
    text: str | None = None
    id: int | None = None


@dataclass(frozen=True, slots=True)
class SetFocus:
    tool: ClassVar[ToolName] = ToolName.SET_FOCUS
    text: str


@dataclass(frozen=True, slots=True)
class AddJournalEntry:
    tool: ClassVar[ToolName] = ToolName.ADD_JOURNAL_ENTRY
    content: str


@dataclass(frozen=True, slots=True)
class StartTimer:
    tool: ClassVar[ToolName] = ToolName.START_TIMER


@dataclass(frozen=True, slots=True)
class PauseTimer:
    tool: ClassVar[ToolName] = ToolName.PAUSE_TIMER


@dataclass(frozen=True, slots=True)
class ResetTimer:
    tool: ClassVar[ToolName] = ToolName.RESET_TIMER


@dataclass(frozen=True, slots=True)
class SetReminder:
    tool: ClassVar[ToolName] = ToolName.SET_REMINDER
    reminder_time: datetime
    text: str | None = None
    id: int | None = None


@dataclass(frozen=True, slots=True)
class CancelReminder:
    tool: ClassVar[ToolName] = ToolName.CANCEL_REMINDER
    text: str | None = None
    id: int | None = None


@dataclass(frozen=True, slots=True)
class BreakdownTask:
    tool: ClassVar[ToolName] = ToolName.BREAKDOWN_TASK
    goal: str


@dataclass(frozen=True, slots=True)
class MalformedAction:
    """A tool call that failed validation. Never executed."""

    tool_name: str
    reason: str
    args: dict[str, Any] = field(default_factory=dict)


AgentAction = Union[
    AddTask,
    ToggleTask,
    DeleteTask,
    SetFocus,
    AddJournalEntry,
    StartTimer,
    PauseTimer,
    ResetTimer,
    SetReminder,
    CancelReminder,
    BreakdownTask,
    MalformedAction,
]

# Actions that address an existing task and can be resolved by text.
TaskReference = Union[ToggleTask, DeleteTask, SetReminder, CancelReminder]
TASK_REFERENCE_TYPES: tuple[type, ...] = (ToggleTask, DeleteTask, SetReminder, CancelReminder)


@dataclass(frozen=True, slots=True)
class AgentResponse:
    actions: tuple[AgentAction, ...]
    response_text: str


_TOOL_ALIASES = {
    "add_task": ToolName.ADD_TASK,
    "task_add": ToolName.ADD_TASK,
    "toggle_task": ToolName.TOGGLE_TASK,
    "complete_task": ToolName.TOGGLE_TASK,
    "delete_task": ToolName.DELETE_TASK,
    "remove_task": ToolName.DELETE_TASK,
    "set_focus": ToolName.SET_FOCUS,
    "add_journal_entry": ToolName.ADD_JOURNAL_ENTRY,
    "start_timer": ToolName.START_TIMER,
    "pause_timer": ToolName.PAUSE_TIMER,
    "reset_timer": ToolName.RESET_TIMER,
    "set_reminder": ToolName.SET_REMINDER,
    "cancel_reminder": ToolName.CANCEL_REMINDER,
    "breakdown_task": ToolName.BREAKDOWN_TASK,
    "break_down_task": ToolName.BREAKDOWN_TASK,
}


def normalize_tool_name(raw: Any) -> ToolName | None:
    s = str(raw or "").strip()
    if not s:
        return None
    try:
        return ToolName(s)
    except ValueError:
        pass
    low = s.lower()
    for t in ToolName:
        if t.value.lower() == low:
            return t
    return _TOOL_ALIASES.get(low)


def _str_arg(args: dict[str, Any], name: str) -> str | None:
    v = args.get(name)
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _int_arg(args: dict[str, Any], name: str) -> int | None:
    v = args.get(name)
    if v is None or isinstance(v, bool):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def parse_action(raw: Any) -> AgentAction:
    """Validate one wire tool call into a typed action."""
    if not isinstance(raw, dict):
        return MalformedAction(tool_name="", reason="action is not an object")

    tool_raw = raw.get("toolName", raw.get("tool_name", raw.get("tool")))
    args = raw.get("args")
    if args is None:
        args = {}
    if not isinstance(args, dict):
        return MalformedAction(tool_name=str(tool_raw or ""), reason="args is not an object")

    tool = normalize_tool_name(tool_raw)
    if tool is None:
        return MalformedAction(tool_name=str(tool_raw or ""), reason="unknown tool", args=dict(args))

    def malformed(reason: str) -> MalformedAction:
        return MalformedAction(tool_name=tool.value, reason=reason, args=dict(args))

    text = _str_arg(args, "text")
    task_id = _int_arg(args, "id")

    if tool is ToolName.ADD_TASK:
        if not text:
            return malformed("missing text")
        raw_due = args.get("dueDate")
        due = parse_timestamp(raw_due)
        if raw_due and due is None:
            logger.debug("addTask: ignoring unparseable dueDate=%r", raw_due)
        return AddTask(
            text=text,
            priority=Priority.parse(args.get("priority"), Priority.MEDIUM) or Priority.MEDIUM,
            category=_str_arg(args, "category"),
            due_date=due,
        )

    if tool in (ToolName.TOGGLE_TASK, ToolName.DELETE_TASK, ToolName.CANCEL_REMINDER):
        if not text and task_id is None:
            return malformed("missing text or id")
        cls = {
            ToolName.TOGGLE_TASK: ToggleTask,
            ToolName.DELETE_TASK: DeleteTask,
            ToolName.CANCEL_REMINDER: CancelReminder,
        }[tool]
        return cls(text=text, id=task_id)

    if tool is ToolName.SET_REMINDER:
        if not text and task_id is None:
            return malformed("missing text or id")
        when = parse_timestamp(args.get("reminderTime"))
        if when is None:
            return malformed("missing or invalid reminderTime")
        return SetReminder(reminder_time=when, text=text, id=task_id)

    if tool is ToolName.SET_FOCUS:
        if not text:
            return malformed("missing text")
        return SetFocus(text=text)

    if tool is ToolName.ADD_JOURNAL_ENTRY:
        content = _str_arg(args, "content")
        if not content:
            return malformed("missing content")
        return AddJournalEntry(content=content)

    if tool is ToolName.BREAKDOWN_TASK:
        goal = _str_arg(args, "goal")
        if not goal:
            return malformed("missing goal")
        return BreakdownTask(goal=goal)

    if tool is ToolName.START_TIMER:
        return StartTimer()
    if tool is ToolName.PAUSE_TIMER:
        return PauseTimer()
    return ResetTimer()


def extract_json_object(raw: str) -> str:
    """Strip ```json fences / surrounding chatter and return the outermost {...}."""
    raw = raw.strip()
    if raw.startswith("```"):
        raw = raw.strip("`").strip()
        if raw.lower().startswith("json"):
            raw = raw[4:].strip()
    if raw.startswith("{") and raw.endswith("}"):
        return raw
    first = raw.find("{")
    last = raw.rfind("}")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    return raw


def parse_agent_response(raw: str) -> AgentResponse:
    """
    Parse the model's JSON payload into an AgentResponse.

    Raises ValueError if the payload is not a JSON object.
    """
    payload = json.loads(extract_json_object(raw))
    if not isinstance(payload, dict):
        raise ValueError("agent payload is not a JSON object")

    raw_actions = payload.get("actions") or []
    if not isinstance(raw_actions, list):
        logger.warning("Agent payload 'actions' is not a list; ignoring: %r", raw_actions)
        raw_actions = []

    actions = tuple(parse_action(a) for a in raw_actions)
    for a in actions:
        if isinstance(a, MalformedAction):
            logger.info("Malformed agent action tool=%r reason=%s", a.tool_name, a.reason)

    text = payload.get("responseText", payload.get("response_text", ""))
    return AgentResponse(actions=actions, response_text=str(text or ""))
