# src/its_done/core/models.py

"""
Dashboard data model.

Serialization follows the persisted JSON layout (camelCase keys, ISO-8601
timestamps) so stored records stay readable by older dashboard builds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, raw: Any, default: Priority | None = None) -> Priority | None:
        """Case-insensitive lookup; unknown values map to `default`."""
        if isinstance(raw, Priority):
            return raw
        s = str(raw or "").strip().lower()
        for p in cls:
            if p.value.lower() == s:
                return p
        return default


class PomodoroMode(StrEnum):
    WORK = "work"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @property
    def label(self) -> str:
        if self is PomodoroMode.WORK:
            return "Work"
        if self is PomodoroMode.SHORT_BREAK:
            return "Short Break"
        return "Long Break"


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse an ISO-8601 string (a trailing "Z" is accepted). Returns None if unparseable."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    s = str(raw).strip()
    if not s:
        return None
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        logger.debug("Unparseable timestamp %r", s)
        return None


def format_timestamp(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


@dataclass(slots=True)
class Task:
    id: int
    text: str
    completed: bool = False
    due_date: datetime | None = None
    reminder_time: datetime | None = None
    priority: Priority = Priority.MEDIUM
    category: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "priority": self.priority.value,
        }
        if self.due_date is not None:
            out["dueDate"] = format_timestamp(self.due_date)
        if self.reminder_time is not None:
            out["reminderTime"] = format_timestamp(self.reminder_time)
        if self.category:
            out["category"] = self.category
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=int(data["id"]),
            text=str(data.get("text") or ""),
            completed=bool(data.get("completed", False)),
            due_date=parse_timestamp(data.get("dueDate")),
            reminder_time=parse_timestamp(data.get("reminderTime")),
            priority=Priority.parse(data.get("priority"), Priority.MEDIUM) or Priority.MEDIUM,
            category=(str(data["category"]).strip() or None) if data.get("category") else None,
        )


@dataclass(frozen=True, slots=True)
class JournalEntry:
    date: str  # YYYY-MM-DD, local calendar day
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JournalEntry:
        return cls(date=str(data["date"]), content=str(data.get("content") or ""))


@dataclass(frozen=True, slots=True)
class Source:
    uri: str
    title: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"uri": self.uri, "title": self.title}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Source:
        # Older records nest the link under "web" ({"web": {"uri", "title"}}).
        web = data.get("web")
        if isinstance(web, dict):
            data = web
        return cls(uri=str(data.get("uri") or data.get("url") or ""), title=str(data.get("title") or ""))


@dataclass(frozen=True, slots=True)
class PinnedItem:
    id: int
    prompt: str
    response: str
    sources: tuple[Source, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "prompt": self.prompt,
            "response": self.response,
            "sources": [s.to_dict() for s in self.sources],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PinnedItem:
        raw_sources = data.get("sources") or []
        sources = tuple(Source.from_dict(s) for s in raw_sources if isinstance(s, dict))
        return cls(
            id=int(data["id"]),
            prompt=str(data.get("prompt") or ""),
            response=str(data.get("response") or ""),
            sources=sources,
        )


@dataclass(frozen=True, slots=True)
class PomodoroDurations:
    """Interval lengths in minutes."""

    work: int = 25
    short: int = 5
    long: int = 15

    def __post_init__(self) -> None:
        for name in ("work", "short", "long"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"pomodoro duration {name!r} must be a positive integer, got {value!r}")

    def minutes_for(self, mode: PomodoroMode) -> int:
        if mode is PomodoroMode.WORK:
            return self.work
        if mode is PomodoroMode.SHORT_BREAK:
            return self.short
        return self.long

    def to_dict(self) -> dict[str, int]:
        return {"work": self.work, "short": self.short, "long": self.long}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PomodoroDurations:
        return cls(work=int(data["work"]), short=int(data["short"]), long=int(data["long"]))


@dataclass(slots=True)
class ChatMessage:
    """A message in a persisted conversation. `actions` holds performed-action descriptions."""

    sender: str  # "user" | "ai"
    text: str
    actions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"sender": self.sender, "text": self.text}
        if self.actions:
            out["actions"] = list(self.actions)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatMessage:
        sender = str(data.get("sender") or "ai")
        if sender not in ("user", "ai"):
            sender = "ai"
        raw_actions = data.get("actions") or []
        actions = [str(a) for a in raw_actions if isinstance(a, str)]
        return cls(sender=sender, text=str(data.get("text") or ""), actions=actions)


@dataclass(frozen=True, slots=True)
class AgentContext:
    """Snapshot of the state the agent sees on a turn."""

    tasks: tuple[Task, ...]
    notes: str
    focus: str
    journal_entries: tuple[JournalEntry, ...]
