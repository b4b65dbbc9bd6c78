# src/its_done/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "its_done.log"

# Loggers that fire between prompts (1s clock ticks, reminder handles).
_BACKGROUND_LOGGERS = ("its_done.core.pomodoro", "its_done.tasks.reminders")
_THIRD_PARTY_LOGGERS = ("httpx", "httpcore", "openai")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console prompt readable:
    - its_done logs pass (background timers only at WARNING+),
    - everything else, captured py.warnings included, only at ERROR+.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("its_done."):
            return record.levelno >= logging.ERROR
        if name.startswith(_BACKGROUND_LOGGERS):
            return record.levelno >= logging.WARNING
        return True


def resolve_level(name: str | int | None, default: int = logging.INFO) -> int:
    """Map "debug" / "WARNING" / 10 to a logging level; unknown names -> default."""
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name or "").strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/its_done",
    console_level: int | str = logging.WARNING,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backups: int = 3,
) -> Path:
    """
    Console: short, filtered lines on stderr (they share the terminal with the REPL).
    File: everything at `file_level`, rotated, under `log_dir`.

    Safe to call more than once; previous root handlers are replaced.
    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(resolve_level(console_level, logging.WARNING))
    console.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s [%(threadName)s]: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    for noisy in _THIRD_PARTY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log_file
