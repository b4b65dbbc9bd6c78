# src/its_done/core/pomodoro.py

from __future__ import annotations

"""
Pomodoro timer.

State machine:
- work -> shortBreak / longBreak (every 4th completed work interval), cycles += 1
- shortBreak / longBreak -> work, cycles unchanged
- reset -> inactive work, cycles = 0

The countdown length is read from `durations` every time a mode is entered.
"""

import asyncio
import logging
from dataclasses import dataclass

from .models import PomodoroDurations, PomodoroMode
from .ports import Notifier

logger = logging.getLogger(__name__)

LONG_BREAK_EVERY = 4


@dataclass(frozen=True, slots=True)
class PomodoroState:
    durations: PomodoroDurations
    mode: PomodoroMode
    is_active: bool
    cycles: int
    remaining_seconds: int


def next_mode(mode: PomodoroMode, cycles: int) -> tuple[PomodoroMode, int]:
    """Return (next mode, cycles after the transition)."""
    if mode is PomodoroMode.WORK:
        cycles += 1
        if cycles > 0 and cycles % LONG_BREAK_EVERY == 0:
            return PomodoroMode.LONG_BREAK, cycles
        return PomodoroMode.SHORT_BREAK, cycles
    return PomodoroMode.WORK, cycles


class Pomodoro:
    def __init__(
            self,
            durations: PomodoroDurations | None = None,
            *,
            mode: PomodoroMode = PomodoroMode.WORK,
            cycles: int = 0,
            is_active: bool = False,
    ) -> None:
        if cycles < 0:
            raise ValueError("cycles must be non-negative")
        self.durations = durations or PomodoroDurations()
        self.mode = mode
        self.cycles = cycles
        self.is_active = is_active
        self.remaining_seconds = self._mode_seconds()

    def _mode_seconds(self) -> int:
        return self.durations.minutes_for(self.mode) * 60

    def snapshot(self) -> PomodoroState:
        return PomodoroState(
            durations=self.durations,
            mode=self.mode,
            is_active=self.is_active,
            cycles=self.cycles,
            remaining_seconds=self.remaining_seconds,
        )

    # ---- actions ----

    def start(self) -> None:
        self.is_active = True

    def pause(self) -> None:
        self.is_active = False

    def reset(self) -> None:
        self.is_active = False
        self.mode = PomodoroMode.WORK
        self.cycles = 0
        self.remaining_seconds = self._mode_seconds()

    def switch(self) -> PomodoroMode:
        """Move to the next mode. The new interval waits for an explicit start."""
        self.mode, self.cycles = next_mode(self.mode, self.cycles)
        self.is_active = False
        self.remaining_seconds = self._mode_seconds()
        logger.debug("Pomodoro switched mode=%s cycles=%s", self.mode.value, self.cycles)
        return self.mode

    def apply(self, action: str) -> None:
        """Dispatch a named action: start | pause | reset | switch."""
        handlers = {
            "start": self.start,
            "pause": self.pause,
            "reset": self.reset,
            "switch": self.switch,
        }
        handler = handlers.get(action)
        if handler is None:
            raise ValueError(f"unknown pomodoro action: {action!r}")
        handler()

    def update_durations(self, durations: PomodoroDurations) -> None:
        self.durations = durations
        # A running interval keeps its countdown; the new length applies on the next mode entry.
        if not self.is_active:
            self.remaining_seconds = self._mode_seconds()

    def tick(self, seconds: int = 1) -> PomodoroMode | None:
        """
        Advance the countdown. Returns the mode that just completed, or None.
        """
        if not self.is_active:
            return None
        self.remaining_seconds = max(0, self.remaining_seconds - int(seconds))
        if self.remaining_seconds > 0:
            return None
        completed = self.mode
        self.switch()
        return completed

    def format_remaining(self) -> str:
        mins, secs = divmod(self.remaining_seconds, 60)
        return f"{mins:02d}:{secs:02d}"


async def run_pomodoro_clock(
        pomodoro: Pomodoro,
        notifier: Notifier,
        *,
        interval_seconds: float = 1.0,
) -> None:
    """
    Tick the pomodoro once per interval and notify when an interval completes.

    To stop the clock, cancel the coroutine/task.
    """
    sleep_s = max(0.001, float(interval_seconds))

    while True:
        await asyncio.sleep(sleep_s)
        completed = pomodoro.tick(1)
        if completed is None:
            continue

        logger.info("Pomodoro %s session complete (cycles=%s)", completed.value, pomodoro.cycles)
        try:
            notifier.notify("it's_done. Timer", f"{completed.label} session complete!")
        except Exception:
            logger.exception("Pomodoro notification failed")
