# src/its_done/storage/state_store.py

"""
Canonical in-memory dashboard state with write-through persistence.

Every collection lives under a stable key in a KeyValueStorage as JSON text.
Records are loaded once at construction and the affected record is rewritten
after every mutation. Persistence failures are logged and never raised: the
in-memory state stays authoritative for the session.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from ..core.models import (
    AgentContext,
    ChatMessage,
    JournalEntry,
    PinnedItem,
    PomodoroDurations,
    Priority,
    Source,
    Task,
)
from ..core.pomodoro import Pomodoro
from ..core.ports import KeyValueStorage

logger = logging.getLogger(__name__)

TASKS_KEY = "its_done_tasks"
NOTES_KEY = "its_done_notes"
FOCUS_KEY = "its_done_daily_focus"
POMODORO_SETTINGS_KEY = "its_done_pomodoro_settings"
JOURNAL_ENTRIES_KEY = "its_done_journal_entries"
RESEARCH_MODE_KEY = "its_done_research_mode"
PINNED_ITEMS_KEY = "its_done_pinned_items"
AI_CHAT_HISTORY_KEY = "its_done_ai_chat_history"
AGENT_HISTORY_KEY = "its_done_feel_good_agent_history"

DEFAULT_NOTES = (
    "Brainstorming session ideas:\n"
    "- Theming based on user mood.\n"
    "- Neo-brutalist UI components."
)

SORT_ORDERS = ("default", "due-asc", "due-desc", "alpha", "priority")

_PRIORITY_ORDER = {Priority.HIGH: 1, Priority.MEDIUM: 2, Priority.LOW: 3}

_UNSET: Any = object()

TaskListener = Callable[[list[Task]], None]


def today_key(today: date | None = None) -> str:
    """Local calendar day as YYYY-MM-DD."""
    return (today or date.today()).isoformat()


class StateStore:
    def __init__(
            self,
            storage: KeyValueStorage,
            *,
            default_durations: PomodoroDurations | None = None,
    ) -> None:
        self._storage = storage
        self._task_listeners: list[TaskListener] = []
        self._last_id = 0

        self._tasks: list[Task] = self._load_list(TASKS_KEY, Task.from_dict)
        self._notes: str = self._load_str(NOTES_KEY, DEFAULT_NOTES)
        self._focus: str = self._load_str(FOCUS_KEY, "")
        self._journal: list[JournalEntry] = self._load_list(JOURNAL_ENTRIES_KEY, JournalEntry.from_dict)
        self._pinned: list[PinnedItem] = self._load_list(PINNED_ITEMS_KEY, PinnedItem.from_dict)
        self._research_mode: bool = bool(self._load_json(RESEARCH_MODE_KEY, False))
        self._histories: dict[str, list[ChatMessage]] = {
            key: self._load_list(key, ChatMessage.from_dict)
            for key in (AI_CHAT_HISTORY_KEY, AGENT_HISTORY_KEY)
        }

        durations = default_durations or PomodoroDurations()
        raw_durations = self._load_json(POMODORO_SETTINGS_KEY, None)
        if isinstance(raw_durations, dict):
            try:
                durations = PomodoroDurations.from_dict(raw_durations)
            except (KeyError, TypeError, ValueError):
                logger.warning("Ignoring invalid pomodoro settings record: %r", raw_durations)
        self.pomodoro = Pomodoro(durations)

        known_ids = [t.id for t in self._tasks] + [p.id for p in self._pinned]
        self._last_id = max(known_ids, default=0)

        logger.info(
            "StateStore loaded tasks=%d journal=%d pinned=%d research_mode=%s",
            len(self._tasks),
            len(self._journal),
            len(self._pinned),
            self._research_mode,
        )

    # ---- persistence helpers ----

    def _load_json(self, key: str, default: Any) -> Any:
        try:
            raw = self._storage.get_item(key)
        except (sqlite3.Error, OSError):
            logger.exception("Failed to read record key=%s", key)
            return default
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.exception("Corrupt record key=%s; using default", key)
            return default

    def _load_str(self, key: str, default: str) -> str:
        val = self._load_json(key, default)
        return val if isinstance(val, str) else default

    def _load_list(self, key: str, parse: Callable[[dict[str, Any]], Any]) -> list[Any]:
        raw = self._load_json(key, [])
        if not isinstance(raw, list):
            logger.warning("Record key=%s is not a list; ignoring", key)
            return []
        out: list[Any] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                out.append(parse(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping invalid item in key=%s: %r", key, item)
        return out

    def _persist(self, key: str, value: Any) -> None:
        try:
            self._storage.set_item(key, json.dumps(value, ensure_ascii=False))
        except (sqlite3.Error, OSError, TypeError, ValueError):
            logger.exception("Failed to persist key=%s (in-memory state kept)", key)

    def _next_id(self) -> int:
        # Millisecond clock, bumped so ids created within the same ms stay unique.
        candidate = int(time.time() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return candidate

    def _tasks_changed(self) -> None:
        self._persist(TASKS_KEY, [t.to_dict() for t in self._tasks])
        snapshot = self.tasks
        for listener in list(self._task_listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Task listener failed")

    # ---- subscriptions ----

    def subscribe_tasks(self, listener: TaskListener) -> None:
        """Call `listener(tasks)` after every change of the task collection."""
        self._task_listeners.append(listener)

    # ---- tasks ----

    @property
    def tasks(self) -> list[Task]:
        """Copies of the current tasks, in insertion order."""
        return [replace(t) for t in self._tasks]

    def get_task(self, task_id: int) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return replace(t)
        return None

    def _find(self, task_id: int) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def categories(self) -> list[str]:
        seen: list[str] = []
        for t in self._tasks:
            if t.category and t.category not in seen:
                seen.append(t.category)
        return seen

    def list_tasks(self, *, category: str | None = None, sort: str = "default") -> list[Task]:
        if sort not in SORT_ORDERS:
            raise ValueError(f"unknown sort order: {sort!r} (expected one of {', '.join(SORT_ORDERS)})")

        items = self.tasks
        if category and category != "all":
            items = [t for t in items if t.category == category]

        if sort == "due-asc":
            with_due = sorted((t for t in items if t.due_date), key=lambda t: t.due_date.timestamp())
            items = with_due + [t for t in items if not t.due_date]
        elif sort == "due-desc":
            with_due = sorted(
                (t for t in items if t.due_date), key=lambda t: t.due_date.timestamp(), reverse=True
            )
            items = with_due + [t for t in items if not t.due_date]
        elif sort == "alpha":
            items.sort(key=lambda t: t.text.casefold())
        elif sort == "priority":
            items.sort(key=lambda t: _PRIORITY_ORDER.get(t.priority, 3))
        return items

    def add_task(
            self,
            text: str,
            *,
            priority: Priority | None = None,
            category: str | None = None,
            due_date: datetime | None = None,
            reminder_time: datetime | None = None,
    ) -> Task:
        text = (text or "").strip()
        if not text:
            raise ValueError("task text is required")

        task = Task(
            id=self._next_id(),
            text=text,
            completed=False,
            due_date=due_date,
            reminder_time=reminder_time,
            priority=priority or Priority.MEDIUM,
            category=(category or "").strip() or None,
        )
        self._tasks.append(task)
        logger.debug("Task added id=%s category=%s", task.id, task.category)
        self._tasks_changed()
        return replace(task)

    def update_task(
            self,
            task_id: int,
            *,
            text: str | None = None,
            priority: Priority | None = None,
            category: str | None = _UNSET,
            due_date: datetime | None = _UNSET,
            reminder_time: datetime | None = _UNSET,
    ) -> Task | None:
        """Merge the given fields into an existing task. Missing id -> None (no-op)."""
        task = self._find(task_id)
        if task is None:
            return None

        if text is not None:
            text = text.strip()
            if not text:
                raise ValueError("task text is required")
            task.text = text
        if priority is not None:
            task.priority = priority
        if category is not _UNSET:
            task.category = (category or "").strip() or None
        if due_date is not _UNSET:
            task.due_date = due_date
        if reminder_time is not _UNSET:
            task.reminder_time = reminder_time

        self._tasks_changed()
        return replace(task)

    def toggle_task(self, task_id: int) -> bool:
        task = self._find(task_id)
        if task is None:
            return False
        task.completed = not task.completed
        self._tasks_changed()
        return True

    def delete_task(self, task_id: int) -> bool:
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.id != task_id]
        if len(self._tasks) == before:
            return False
        self._tasks_changed()
        return True

    def set_reminder(self, task_id: int, reminder_time: datetime) -> bool:
        return self.update_task(task_id, reminder_time=reminder_time) is not None

    def cancel_reminder(self, task_id: int) -> bool:
        return self.update_task(task_id, reminder_time=None) is not None

    # ---- focus / notes ----

    @property
    def focus(self) -> str:
        return self._focus

    def set_focus(self, focus: str) -> None:
        self._focus = focus
        self._persist(FOCUS_KEY, self._focus)

    @property
    def notes(self) -> str:
        return self._notes

    def update_notes(self, notes: str) -> None:
        self._notes = notes
        self._persist(NOTES_KEY, self._notes)

    # ---- journal ----

    @property
    def journal_entries(self) -> list[JournalEntry]:
        return list(self._journal)

    def journal_entry_for(self, day: str) -> JournalEntry | None:
        for entry in self._journal:
            if entry.date == day:
                return entry
        return None

    def upsert_journal_entry(self, day: str, content: str) -> JournalEntry:
        """Replace the entry for `day` in place, or append a new one."""
        entry = JournalEntry(date=day, content=content)
        for i, existing in enumerate(self._journal):
            if existing.date == day:
                self._journal[i] = entry
                break
        else:
            self._journal.append(entry)
        self._persist(JOURNAL_ENTRIES_KEY, [e.to_dict() for e in self._journal])
        return entry

    # ---- research ----

    @property
    def research_mode(self) -> bool:
        return self._research_mode

    def set_research_mode(self, enabled: bool) -> None:
        self._research_mode = bool(enabled)
        self._persist(RESEARCH_MODE_KEY, self._research_mode)

    @property
    def pinned_items(self) -> list[PinnedItem]:
        return list(self._pinned)

    def pin_item(self, prompt: str, response: str, sources: Iterable[Source] = ()) -> PinnedItem:
        item = PinnedItem(id=self._next_id(), prompt=prompt, response=response, sources=tuple(sources))
        self._pinned.append(item)
        self._persist(PINNED_ITEMS_KEY, [p.to_dict() for p in self._pinned])
        return item

    def unpin_item(self, item_id: int) -> bool:
        before = len(self._pinned)
        self._pinned = [p for p in self._pinned if p.id != item_id]
        if len(self._pinned) == before:
            return False
        self._persist(PINNED_ITEMS_KEY, [p.to_dict() for p in self._pinned])
        return True

    # ---- pomodoro ----

    def pomodoro_action(self, action: str) -> None:
        self.pomodoro.apply(action)

    def update_pomodoro_settings(self, durations: PomodoroDurations) -> None:
        self.pomodoro.update_durations(durations)
        self._persist(POMODORO_SETTINGS_KEY, durations.to_dict())

    # ---- chat histories ----

    def history(self, key: str) -> list[ChatMessage]:
        return list(self._histories.get(key, []))

    def save_history(self, key: str, messages: Iterable[ChatMessage]) -> None:
        self._histories[key] = list(messages)
        self._persist(key, [m.to_dict() for m in self._histories[key]])

    # ---- agent ----

    def agent_context(self) -> AgentContext:
        return AgentContext(
            tasks=tuple(self.tasks),
            notes=self._notes,
            focus=self._focus,
            journal_entries=tuple(self._journal),
        )
