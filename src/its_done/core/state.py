# src/its_done/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .chat import AgentSession, AssistantChat, ResearchSession

if TYPE_CHECKING:
    from ..llm.gateway import LLMGateway
    from ..storage.state_store import StateStore
    from ..tasks.reminders import ReminderScheduler


@dataclass
class AppState:
    """
    Runtime application state shared across connectors and commands.

    Settings is typed as Any to avoid import cycles with config/bootstrap.
    """

    settings: Any
    store: StateStore
    gateway: LLMGateway
    agent: AgentSession
    assistant: AssistantChat
    research: ResearchSession
    reminders: ReminderScheduler
    offline: bool = False
