# src/its_done/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import BUSY_MESSAGE, format_agent_message, format_research
from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleNotifier:
    """Notifier port for the console: timers print a timestamped line."""

    def notify(self, title: str, body: str) -> None:
        _print_ts(f"[{title}] {body}")


async def _submit_free_text(state: AppState, text: str, app_name: str) -> None:
    """Plain text goes to research (when research mode is on) or to the agent."""
    try:
        if state.store.research_mode:
            result = await state.research.submit(text)
            if result is None:
                _print_ts(BUSY_MESSAGE)
                return
            _print_ts(f"<<< research:\n{format_research(result.text, result.sources)}")
            return

        reply = await state.agent.submit(text)
        if reply is None:
            _print_ts(BUSY_MESSAGE)
            return
        _print_ts(f"<<< {app_name}:\n{format_agent_message(reply)}")
    except Exception:
        logger.exception("Console free-text handler crashed.")
        _print_ts("Internal error while generating a reply.")


async def run_console_loop(state: AppState) -> None:
    """
    Async REPL. input() runs in a worker thread so timers keep firing while the
    prompt waits. Agent/research turns run as background tasks: the user can keep
    issuing commands (e.g. /timer) while the model is thinking.
    """
    logger.info("Console connector started (offline=%s).", state.offline)
    _print_ts("[CONSOLE] Type your messages. Use /help for commands. Use /exit to quit.\n")

    app_name = str(getattr(state.settings, "app_name", "it's_done."))
    pending: set[asyncio.Task[None]] = set()

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> You: ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        # Commands (/help, /tasks, ...)
        try:
            cmd_response = await command_registry.handle(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)
            continue

        task = asyncio.create_task(_submit_free_text(state, user_input, app_name))
        pending.add(task)
        task.add_done_callback(pending.discard)

    if pending:
        # Let in-flight replies finish so their history gets persisted.
        await asyncio.gather(*pending, return_exceptions=True)

    logger.info("Console connector finished.")
