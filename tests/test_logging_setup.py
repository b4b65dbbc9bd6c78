# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from its_done.logging_setup import _ConsoleNoiseFilter, resolve_level, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter() -> None:
    f = _ConsoleNoiseFilter()
    assert f.filter(_record("its_done.core.chat", logging.INFO))
    assert not f.filter(_record("its_done.core.pomodoro", logging.INFO))
    assert f.filter(_record("its_done.tasks.reminders", logging.WARNING))
    assert not f.filter(_record("httpx", logging.WARNING))
    assert f.filter(_record("openai", logging.ERROR))


def test_resolve_level() -> None:
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(" Warning ") == logging.WARNING
    assert resolve_level("chatty") == logging.INFO
    assert resolve_level(None, logging.ERROR) == logging.ERROR


@pytest.fixture()
def restore_root():
    root = logging.getLogger()
    saved, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in saved:
        root.addHandler(h)
    root.setLevel(level)


def test_setup_logging_writes_file(tmp_path: Path, restore_root) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs", console_level="ERROR")
    logging.getLogger("its_done.test").debug("hello file")
    for h in logging.getLogger().handlers:
        h.flush()
    assert log_file == tmp_path / "logs" / "its_done.log"
    assert "hello file" in log_file.read_text(encoding="utf-8")
