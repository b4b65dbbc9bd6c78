# src/its_done/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs everything on one asyncio loop:
- pomodoro clock (1s ticks),
- task reminders (call_later handles, rebuilt on every task change),
- console REPL.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..core.pomodoro import run_pomodoro_clock
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def run_app(state: AppState) -> None:
    state.reminders.bind_loop(asyncio.get_running_loop())
    state.reminders.reschedule(state.store.tasks)

    clock = asyncio.create_task(run_pomodoro_clock(state.store.pomodoro, ConsoleNotifier()))
    try:
        await run_console_loop(state)
    finally:
        clock.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await clock
        state.reminders.cancel_all()


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)
    logger.info("Starting %s (log file: %s)", settings.app_name, log_file)

    state = create_initial_state(settings=settings, notifier=ConsoleNotifier())

    try:
        asyncio.run(run_app(state))
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
