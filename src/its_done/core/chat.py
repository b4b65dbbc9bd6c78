# src/its_done/core/chat.py

"""
Conversation sessions: the feel_good agent, the assistant chat and research.

This module is transport-agnostic:
- connectors hand over user text and render the returned messages,
- LLM calls are blocking and run in a worker thread (asyncio.to_thread), so the
  event loop keeps serving the pomodoro clock and reminders meanwhile,
- state mutations happen on the event loop only (executor.apply_actions).

Key invariants:
- one request in flight per session: a second submit while the first is still
  running is rejected (returns None) instead of queued,
- a failed call never mutates state; the user sees a fixed apology,
- histories are persisted after every completed exchange.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from ..agent.executor import apply_actions
from ..llm.gateway import (
    CHAT_FALLBACK,
    MIN_SUMMARY_CHARS,
    PROMPT_FALLBACK,
    SUMMARY_FALLBACK,
    SUMMARY_TOO_SHORT,
    GatewayError,
    ResearchResult,
)
from ..storage.state_store import AGENT_HISTORY_KEY, AI_CHAT_HISTORY_KEY
from .models import ChatMessage, PinnedItem

if TYPE_CHECKING:
    from ..llm.gateway import LLMGateway
    from ..storage.state_store import StateStore

logger = logging.getLogger(__name__)

AGENT_ERROR_MESSAGE = "Oops, my circuits are a bit fuzzy right now. Please try again in a moment."
CHAT_GREETING = "Hello! How can I help you be more productive today?"
CHAT_CLEARED = "History cleared. How can I help you?"


class _InFlight:
    """Single-request guard shared by the sessions."""

    def __init__(self) -> None:
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def acquire(self, name: str) -> bool:
        if self._busy:
            logger.info("%s: request already in flight; rejecting new submission", name)
            return False
        self._busy = True
        return True

    def release(self) -> None:
        self._busy = False


class _HistorySession:
    def __init__(self, store: StateStore, key: str, *, history_limit: int) -> None:
        self._store = store
        self._key = key
        self._history_limit = max(1, int(history_limit))
        self._guard = _InFlight()

    @property
    def busy(self) -> bool:
        return self._guard.busy

    @property
    def messages(self) -> list[ChatMessage]:
        return self._store.history(self._key)

    def _append(self, message: ChatMessage) -> None:
        history = self._store.history(self._key)
        history.append(message)
        self._store.save_history(self._key, history[-self._history_limit :])


class AgentSession(_HistorySession):
    """The feel_good agent: free text in, resolved + applied actions out."""

    def __init__(
            self,
            store: StateStore,
            gateway: LLMGateway,
            *,
            history_limit: int = 100,
    ) -> None:
        super().__init__(store, AGENT_HISTORY_KEY, history_limit=history_limit)
        self._gateway = gateway

    async def submit(self, text: str, *, today: date | None = None) -> ChatMessage | None:
        text = (text or "").strip()
        if not text:
            return None
        if not self._guard.acquire("agent"):
            return None

        try:
            self._append(ChatMessage(sender="user", text=text))
            context = self._store.agent_context()
            try:
                response = await asyncio.to_thread(self._gateway.agent_turn, text, context)
                performed = await apply_actions(
                    self._store,
                    response.actions,
                    decompose=self._gateway.decompose,
                    today=today,
                )
                reply = ChatMessage(sender="ai", text=response.response_text, actions=performed)
            except Exception:
                logger.exception("Agent turn crashed")
                reply = ChatMessage(sender="ai", text=AGENT_ERROR_MESSAGE)

            self._append(reply)
            logger.info("Agent reply chars=%d actions=%d", len(reply.text), len(reply.actions))
            return reply
        finally:
            self._guard.release()


class AssistantChat(_HistorySession):
    """Plain productivity assistant chat (no tools)."""

    def __init__(
            self,
            store: StateStore,
            gateway: LLMGateway,
            *,
            history_limit: int = 100,
    ) -> None:
        super().__init__(store, AI_CHAT_HISTORY_KEY, history_limit=history_limit)
        self._gateway = gateway
        if not self._store.history(self._key):
            self._store.save_history(self._key, [ChatMessage(sender="ai", text=CHAT_GREETING)])

    async def submit(self, text: str) -> ChatMessage | None:
        text = (text or "").strip()
        if not text:
            return None
        if not self._guard.acquire("chat"):
            return None

        try:
            self._append(ChatMessage(sender="user", text=text))
            try:
                answer = await asyncio.to_thread(self._gateway.chat, text)
            except GatewayError as e:
                logger.warning("Assistant chat failed: %s", e)
                answer = CHAT_FALLBACK
            reply = ChatMessage(sender="ai", text=answer)
            self._append(reply)
            return reply
        finally:
            self._guard.release()

    def clear(self) -> None:
        self._store.save_history(self._key, [ChatMessage(sender="ai", text=CHAT_CLEARED)])


@dataclass(frozen=True, slots=True)
class ResearchExchange:
    prompt: str
    result: ResearchResult


class ResearchSession:
    """Web-grounded Q&A. Exchanges live in memory; only pinned items are persisted."""

    def __init__(self, store: StateStore, gateway: LLMGateway) -> None:
        self._store = store
        self._gateway = gateway
        self._guard = _InFlight()
        self.exchanges: list[ResearchExchange] = []

    @property
    def busy(self) -> bool:
        return self._guard.busy

    @property
    def last(self) -> ResearchExchange | None:
        return self.exchanges[-1] if self.exchanges else None

    async def submit(self, prompt: str) -> ResearchResult | None:
        prompt = (prompt or "").strip()
        if not prompt:
            return None
        if not self._guard.acquire("research"):
            return None
        try:
            result = await asyncio.to_thread(self._gateway.research, prompt)
            self.exchanges.append(ResearchExchange(prompt=prompt, result=result))
            logger.info("Research answer chars=%d sources=%d", len(result.text), len(result.sources))
            return result
        finally:
            self._guard.release()

    def pin_last(self) -> PinnedItem | None:
        last = self.last
        if last is None:
            return None
        return self._store.pin_item(last.prompt, last.result.text, last.result.sources)


async def summarize_notes(gateway: LLMGateway, notes: str) -> str:
    """Summary of the notes, or a fixed message when too short / on failure."""
    if len(notes.strip()) < MIN_SUMMARY_CHARS:
        return SUMMARY_TOO_SHORT
    try:
        return await asyncio.to_thread(gateway.summarize, notes)
    except GatewayError as e:
        logger.warning("Summarize failed: %s", e)
        return SUMMARY_FALLBACK


async def journal_prompt(gateway: LLMGateway) -> str:
    try:
        return await asyncio.to_thread(gateway.get_prompt)
    except GatewayError as e:
        logger.warning("Journal prompt failed: %s", e)
        return PROMPT_FALLBACK
