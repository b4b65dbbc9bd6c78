# src/its_done/tasks/reminders.py

from __future__ import annotations

"""
Task reminder scheduler.

One loop.call_later handle per task with a pending reminder:
- on every change of the task collection ALL handles are cancelled and the set
  is rebuilt from the current tasks (no incremental diffing),
- only incomplete tasks with a reminder time in the future are scheduled,
- a fired reminder notifies through the injected Notifier port.

Delivery (console line, desktop popup, ...) belongs to the notifier, not here.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from ..core.models import Task
from ..core.ports import Notifier

logger = logging.getLogger(__name__)

REMINDER_TITLE = "it's_done. Reminder"


def _now_for(ts: datetime) -> datetime:
    # Compare aware with aware, naive with naive (local time).
    if ts.tzinfo is not None:
        return datetime.now(ts.tzinfo)
    return datetime.now()


class ReminderScheduler:
    def __init__(
            self,
            notifier: Notifier,
            *,
            loop: asyncio.AbstractEventLoop | None = None,
            clock: Callable[[datetime], datetime] = _now_for,
    ) -> None:
        self._notifier = notifier
        self._loop = loop
        self._clock = clock
        self._handles: dict[int, asyncio.TimerHandle] = {}

    @property
    def pending_ids(self) -> list[int]:
        return sorted(self._handles)

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach the running loop (the store may change before the loop starts)."""
        self._loop = loop

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def reschedule(self, tasks: Iterable[Task]) -> None:
        """Cancel every pending reminder and schedule the current ones."""
        self.cancel_all()

        if self._loop is None:
            logger.debug("Reminder reschedule skipped: no event loop bound yet")
            return

        for task in tasks:
            when = task.reminder_time
            if task.completed or when is None:
                continue
            delay = (when - self._clock(when)).total_seconds()
            if delay <= 0:
                continue
            self._handles[task.id] = self._loop.call_later(delay, self._fire, task.id, task.text)

        logger.info("Reminders scheduled: %d", len(self._handles))

    def _fire(self, task_id: int, text: str) -> None:
        self._handles.pop(task_id, None)
        logger.info("Reminder fired task_id=%s", task_id)
        try:
            self._notifier.notify(REMINDER_TITLE, text)
        except Exception:
            logger.exception("Reminder notification failed task_id=%s", task_id)
