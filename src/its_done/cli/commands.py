# src/its_done/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from ..core.chat import journal_prompt, summarize_notes
from ..core.markup import render_markdown, to_plain_text
from ..core.models import ChatMessage, PomodoroDurations, Priority, Task, parse_timestamp
from ..core.state import AppState
from ..storage.state_store import SORT_ORDERS, today_key

CommandResult = str | Awaitable[str]
CommandHandler = Callable[[AppState, list[str]], CommandResult]

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Still working on your previous request. Please wait a moment."


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

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

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutines.
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

        try:
            result = handler(state, args)
            if inspect.isawaitable(result):
                result = await result
        except ValueError as e:
            # Domain validation (empty text, bad durations, unknown sort order).
            return f"Invalid input: {e}"
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  /exit - Quit.")
        lines.append("Anything else is sent to the feel_good agent (or to research when research mode is on).")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting helpers ----


def render(text: str) -> str:
    """LLM markdown -> console text."""
    return to_plain_text(render_markdown(text))


def _fmt_dt(ts: datetime | None) -> str:
    return ts.strftime("%Y-%m-%d %H:%M") if ts is not None else ""


def format_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    parts = [f"[{mark}] {task.id}  {task.text}", f"({task.priority.value})"]
    if task.category:
        parts.append(f"#{task.category}")
    if task.due_date:
        parts.append(f"due {_fmt_dt(task.due_date)}")
    if task.reminder_time:
        parts.append(f"reminder {_fmt_dt(task.reminder_time)}")
    return " ".join(parts)


def format_agent_message(message: ChatMessage) -> str:
    out = render(message.text)
    if message.actions:
        out += "\n" + "\n".join(f"  - {a}" for a in message.actions)
    return out


def _parse_task_id(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


def parse_when(raw: str, *, now: datetime | None = None) -> datetime | None:
    """ISO timestamp, or "+N" / "+Nm" / "+Nh" relative to now."""
    raw = raw.strip()
    if raw.startswith("+"):
        body = raw[1:].lower()
        unit = "m"
        if body.endswith(("m", "h")):
            unit, body = body[-1], body[:-1]
        try:
            amount = int(body)
        except ValueError:
            return None
        delta = timedelta(hours=amount) if unit == "h" else timedelta(minutes=amount)
        return (now or datetime.now()).replace(microsecond=0) + delta
    return parse_timestamp(raw)


def _split_task_options(args: list[str]) -> tuple[str, dict[str, str]]:
    """Split "!priority", "#category" and "due=..." tokens from the task text."""
    words: list[str] = []
    opts: dict[str, str] = {}
    for token in args:
        if token.startswith("!") and len(token) > 1:
            opts["priority"] = token[1:]
        elif token.startswith("#") and len(token) > 1:
            opts["category"] = token[1:]
        elif token.lower().startswith("due="):
            opts["due"] = token[4:]
        else:
            words.append(token)
    return " ".join(words), opts


# ---- general ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.store
    pomo = store.pomodoro.snapshot()
    open_tasks = sum(1 for t in store.tasks if not t.completed)
    llm = "OFFLINE (demo)" if state.offline else "online"
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    return (
        "Status:\n"
        f"  LLM: {llm}\n"
        f"  Models (priority -> fallback): {models}\n"
        f"  Research mode: {'ON' if store.research_mode else 'OFF'}\n"
        f"  Focus: {store.focus or '-'}\n"
        f"  Tasks: {open_tasks} open / {len(store.tasks)} total\n"
        f"  Timer: {pomo.mode.label} {store.pomodoro.format_remaining()} "
        f"({'running' if pomo.is_active else 'paused'}, cycles={pomo.cycles})\n"
        f"  Reminders pending: {len(state.reminders.pending_ids)}"
    )


# ---- tasks ----


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks                       -> all tasks, insertion order
    /tasks #work                 -> filter by category
    /tasks sort=priority         -> sort (default|due-asc|due-desc|alpha|priority)
    """
    category = None
    sort = "default"
    for a in args:
        if a.startswith("#"):
            category = a[1:]
        elif a.lower().startswith("sort="):
            sort = a[5:].lower()
    if sort not in SORT_ORDERS:
        return f"Unknown sort order. Use one of: {', '.join(SORT_ORDERS)}"

    tasks = state.store.list_tasks(category=category, sort=sort)
    if not tasks:
        return "No tasks yet."
    lines = ["Tasks:", *(f"  {format_task(t)}" for t in tasks)]
    cats = state.store.categories()
    if cats:
        lines.append(f"Categories: {', '.join(cats)}")
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    text, opts = _split_task_options(args)
    if not text:
        return "Usage: /add <text> [!Low|!Medium|!High] [#category] [due=YYYY-MM-DD[THH:MM]]"

    priority = Priority.parse(opts["priority"]) if "priority" in opts else None
    if "priority" in opts and priority is None:
        return "Priority must be Low, Medium or High."
    due = None
    if "due" in opts:
        due = parse_timestamp(opts["due"])
        if due is None:
            return "Could not parse the due date (use ISO format, e.g. 2025-01-31 or 2025-01-31T17:00)."

    task = state.store.add_task(text, priority=priority, category=opts.get("category"), due_date=due)
    return f"Added: {format_task(task)}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> [new text] [!priority] [#category|#-] [due=...|due=-]"""
    if not args or _parse_task_id(args[0]) is None:
        return "Usage: /edit <id> [new text] [!priority] [#category|#-] [due=ISO|due=-]"
    task_id = int(args[0])
    text, opts = _split_task_options(args[1:])

    changes: dict[str, object] = {}
    if text:
        changes["text"] = text
    if "priority" in opts:
        priority = Priority.parse(opts["priority"])
        if priority is None:
            return "Priority must be Low, Medium or High."
        changes["priority"] = priority
    if "category" in opts:
        changes["category"] = None if opts["category"] == "-" else opts["category"]
    if "due" in opts:
        if opts["due"] == "-":
            changes["due_date"] = None
        else:
            due = parse_timestamp(opts["due"])
            if due is None:
                return "Could not parse the due date."
            changes["due_date"] = due
    if not changes:
        return "Nothing to change."

    task = state.store.update_task(task_id, **changes)  # type: ignore[arg-type]
    if task is None:
        return f"No task with id {task_id}."
    return f"Updated: {format_task(task)}"


def cmd_done(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args[0]) if args else None
    if task_id is None:
        return "Usage: /done <id>"
    if not state.store.toggle_task(task_id):
        return f"No task with id {task_id}."
    task = state.store.get_task(task_id)
    return f"Toggled: {format_task(task)}" if task else "Toggled."


def cmd_del(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args[0]) if args else None
    if task_id is None:
        return "Usage: /del <id>"
    if not state.store.delete_task(task_id):
        return f"No task with id {task_id}."
    return f"Deleted task {task_id}."


def cmd_remind(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args[0]) if args else None
    if task_id is None or len(args) < 2:
        return "Usage: /remind <id> <YYYY-MM-DDTHH:MM | +30m | +2h>"
    when = parse_when(" ".join(args[1:]))
    if when is None:
        return "Could not parse the reminder time."
    if not state.store.set_reminder(task_id, when):
        return f"No task with id {task_id}."
    return f"Reminder set for {_fmt_dt(when)}."


def cmd_unremind(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args[0]) if args else None
    if task_id is None:
        return "Usage: /unremind <id>"
    if not state.store.cancel_reminder(task_id):
        return f"No task with id {task_id}."
    return "Reminder cancelled."


# ---- focus / notes / journal ----


def cmd_focus(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Today's focus: {state.store.focus or '(not set)'}"
    state.store.set_focus(" ".join(args))
    return f"Focus set: {state.store.focus}"


def cmd_notes(state: AppState, args: list[str]) -> str:
    """
    /notes            -> show notes
    /notes + <text>   -> append a line
    /notes <text>     -> replace notes
    """
    if not args:
        return f"Notes:\n{state.store.notes}"
    if args[0] == "+":
        addition = " ".join(args[1:])
        current = state.store.notes
        state.store.update_notes(f"{current}\n{addition}" if current else addition)
        return "Note appended."
    state.store.update_notes(" ".join(args))
    return "Notes replaced."


async def cmd_summarize(state: AppState, args: list[str]) -> str:
    summary = await summarize_notes(state.gateway, state.store.notes)
    return render(summary)


def cmd_journal(state: AppState, args: list[str]) -> str:
    """
    /journal                 -> today's entry
    /journal YYYY-MM-DD      -> entry for that day
    /journal list            -> days with entries
    /journal write <text>    -> add/replace today's entry
    """
    if args and args[0].lower() == "write":
        content = " ".join(args[1:]).strip()
        if not content:
            return "Usage: /journal write <text>"
        entry = state.store.upsert_journal_entry(today_key(), content)
        return f"Journal entry saved for {entry.date}."

    if args and args[0].lower() == "list":
        days = [e.date for e in state.store.journal_entries]
        return "Journal days: " + (", ".join(days) if days else "(none)")

    day = args[0] if args else today_key()
    entry = state.store.journal_entry_for(day)
    if entry is None:
        return f"No journal entry for {day}."
    return f"{entry.date}:\n{entry.content}"


async def cmd_prompt(state: AppState, args: list[str]) -> str:
    return await journal_prompt(state.gateway)


# ---- pomodoro ----


def cmd_timer(state: AppState, args: list[str]) -> str:
    """
    /timer                        -> show status
    /timer start|pause|reset|switch
    /timer set <work> <short> <long>   (minutes)
    """
    pomo = state.store.pomodoro
    if args:
        sub = args[0].lower()
        if sub == "set":
            if len(args) != 4:
                return "Usage: /timer set <work> <short> <long>"
            try:
                work, short, long_ = (int(a) for a in args[1:4])
            except ValueError:
                return "Durations must be whole minutes."
            state.store.update_pomodoro_settings(PomodoroDurations(work=work, short=short, long=long_))
        elif sub in ("start", "pause", "reset", "switch"):
            state.store.pomodoro_action(sub)
        else:
            return "Usage: /timer [start|pause|reset|switch|set <work> <short> <long>]"

    snap = pomo.snapshot()
    d = snap.durations
    return (
        f"{snap.mode.label} {pomo.format_remaining()} "
        f"({'running' if snap.is_active else 'paused'}, cycles={snap.cycles}; "
        f"work/short/long={d.work}/{d.short}/{d.long} min)"
    )


# ---- assistant chat ----


async def cmd_chat(state: AppState, args: list[str]) -> str:
    if not args:
        lines = []
        for m in state.assistant.messages:
            who = "You" if m.sender == "user" else "AI"
            lines.append(f"{who}: {render(m.text)}")
        return "\n".join(lines) or "(empty)"
    reply = await state.assistant.submit(" ".join(args))
    if reply is None:
        return BUSY_MESSAGE
    return render(reply.text)


def cmd_clear(state: AppState, args: list[str]) -> str:
    state.assistant.clear()
    return state.assistant.messages[-1].text


# ---- research / pins ----


def format_research(text: str, sources) -> str:
    out = render(text)
    if sources:
        out += "\nSources:\n" + "\n".join(f"  - {s.title or s.uri}: {s.uri}" for s in sources)
    return out


async def cmd_research(state: AppState, args: list[str]) -> str:
    """
    /research              -> show mode
    /research on|off       -> toggle research mode (plain text goes to research)
    /research <question>   -> one-off research question
    """
    if not args:
        return f"Research mode is {'ON' if state.store.research_mode else 'OFF'}. Use /research on|off."
    sub = args[0].lower()
    if len(args) == 1 and sub in ("on", "off"):
        state.store.set_research_mode(sub == "on")
        return f"Research mode {'enabled' if sub == 'on' else 'disabled'}."

    result = await state.research.submit(" ".join(args))
    if result is None:
        return BUSY_MESSAGE
    return format_research(result.text, result.sources)


def cmd_pin(state: AppState, args: list[str]) -> str:
    item = state.research.pin_last()
    if item is None:
        return "Nothing to pin yet. Ask a research question first."
    return f"Pinned #{item.id}: {item.prompt}"


def cmd_unpin(state: AppState, args: list[str]) -> str:
    item_id = _parse_task_id(args[0]) if args else None
    if item_id is None:
        return "Usage: /unpin <id>"
    if not state.store.unpin_item(item_id):
        return f"No pinned item with id {item_id}."
    return f"Unpinned #{item_id}."


def cmd_pins(state: AppState, args: list[str]) -> str:
    items = state.store.pinned_items
    if not items:
        return "No pinned research."
    if args:
        item_id = _parse_task_id(args[0])
        for item in items:
            if item.id == item_id:
                return f"#{item.id} {item.prompt}\n{format_research(item.response, item.sources)}"
        return f"No pinned item with id {args[0]}."
    return "Pinned research:\n" + "\n".join(f"  #{p.id} {p.prompt}" for p in items)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show LLM mode, focus, tasks and timer.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [#category] [sort=priority|alpha|due-asc|due-desc].")
registry.register("add", cmd_add, help_text="Add a task: /add <text> [!High] [#category] [due=2025-01-31].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> [text] [!priority] [#category|#-] [due=...|due=-].")
registry.register("done", cmd_done, help_text="Toggle a task complete/incomplete: /done <id>.")
registry.register("del", cmd_del, help_text="Delete a task: /del <id>.", aliases=["rm"])
registry.register("remind", cmd_remind, help_text="Set a reminder: /remind <id> <ISO time | +30m | +2h>.")
registry.register("unremind", cmd_unremind, help_text="Cancel a reminder: /unremind <id>.")
registry.register("focus", cmd_focus, help_text="Show or set today's focus: /focus [text].")
registry.register("notes", cmd_notes, help_text="Show, replace or append notes: /notes [+] [text].")
registry.register("summarize", cmd_summarize, help_text="Summarize your notes with the LLM.")
registry.register("journal", cmd_journal, help_text="Journal: /journal [YYYY-MM-DD | list | write <text>].")
registry.register("prompt", cmd_prompt, help_text="Get a journal prompt.")
registry.register("timer", cmd_timer, help_text="Pomodoro: /timer [start|pause|reset|switch|set W S L].")
registry.register("chat", cmd_chat, help_text="Ask the assistant: /chat <text> (no text shows history).")
registry.register("clear", cmd_clear, help_text="Clear the assistant chat history.")
registry.register("research", cmd_research, help_text="Research: /research on|off | /research <question>.")
registry.register("pin", cmd_pin, help_text="Pin the last research answer.")
registry.register("unpin", cmd_unpin, help_text="Unpin research: /unpin <id>.")
registry.register("pins", cmd_pins, help_text="List pinned research, or show one: /pins [id].")
