# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from its_done.cli.bootstrap import create_initial_state
from its_done.core.state import AppState
from its_done.storage.local_storage import LocalStorage
from its_done.storage.state_store import StateStore

from .fakes import FakeLLMClient, FakeNotifier


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the composition root.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment (.env, ITS_DONE_* vars).
    """
    return SimpleNamespace(
        app_name="it's_done.",
        log_level="INFO",
        openrouter_api_key=None,
        openrouter_base_url="https://openrouter.ai/api/v1",
        llm_models=["test/model"],
        extra_headers={},
        # Paths (tmp per test run)
        data_dir=tmp_path / "data",
        state_db_path=tmp_path / "data" / "state.sqlite3",
        # Agent
        task_match_strategy="substring",
        fuzzy_match_threshold=0.8,
        agent_clarify_ambiguous=True,
        chat_history_limit=50,
        # Pomodoro
        pomodoro_work_minutes=25,
        pomodoro_short_minutes=5,
        pomodoro_long_minutes=15,
    )


@pytest.fixture()
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(tmp_path / "records.sqlite3")


@pytest.fixture()
def store(storage: LocalStorage) -> StateStore:
    """A real State Store on a tmp SQLite file (persistence is part of what we test)."""
    return StateStore(storage)


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def state(settings: SimpleNamespace, llm: FakeLLMClient, notifier: FakeNotifier) -> AppState:
    """AppState wired by the real composition root, with a fake LLM client."""
    return create_initial_state(settings=settings, notifier=notifier, llm_client=llm)
