# src/its_done/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage/LLM/sessions/reminders).
"""

from __future__ import annotations

import logging

from ..agent.matching import get_matcher
from ..config import get_settings
from ..core.chat import AgentSession, AssistantChat, ResearchSession
from ..core.models import PomodoroDurations
from ..core.ports import LLMClient, Notifier
from ..core.state import AppState
from ..llm.client import OpenRouterLLMClient
from ..llm.gateway import LLMGateway
from ..llm.offline import OfflineLLMClient
from ..storage.local_storage import LocalStorage
from ..storage.state_store import StateStore
from ..tasks.reminders import ReminderScheduler

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.state_db_path.parent.mkdir(parents=True, exist_ok=True)


def _default_durations(settings) -> PomodoroDurations:
    try:
        return PomodoroDurations(
            work=settings.pomodoro_work_minutes,
            short=settings.pomodoro_short_minutes,
            long=settings.pomodoro_long_minutes,
        )
    except ValueError:
        logger.warning("Invalid pomodoro defaults in settings; using 25/5/15")
        return PomodoroDurations()


def _build_llm_client(settings) -> tuple[LLMClient, bool]:
    api_key = getattr(settings, "openrouter_api_key", None)
    if not api_key or not str(api_key).strip():
        # Fallback for demos / local runs without external services.
        logger.info("No LLM API key configured; using offline demo client")
        return OfflineLLMClient(), True
    return OpenRouterLLMClient(settings), False


def create_initial_state(*, settings=None, notifier: Notifier, llm_client: LLMClient | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the LLM client) injectable makes the app easier to test
    and avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    offline = False
    if llm_client is None:
        llm_client, offline = _build_llm_client(settings)

    try:
        matcher = get_matcher(settings.task_match_strategy, fuzzy_threshold=settings.fuzzy_match_threshold)
    except ValueError:
        logger.warning("Unknown task match strategy %r; using substring", settings.task_match_strategy)
        matcher = get_matcher("substring")

    store = StateStore(LocalStorage(settings.state_db_path), default_durations=_default_durations(settings))
    gateway = LLMGateway(llm_client, matcher=matcher, clarify_ambiguous=settings.agent_clarify_ambiguous)

    reminders = ReminderScheduler(notifier)
    store.subscribe_tasks(reminders.reschedule)

    history_limit = settings.chat_history_limit
    return AppState(
        settings=settings,
        store=store,
        gateway=gateway,
        agent=AgentSession(store, gateway, history_limit=history_limit),
        assistant=AssistantChat(store, gateway, history_limit=history_limit),
        research=ResearchSession(store, gateway),
        reminders=reminders,
        offline=offline,
    )
