# tests/fakes.py

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from its_done.agent.actions import AgentResponse
from its_done.core.models import AgentContext
from its_done.core.ports import LLMMessage
from its_done.llm.gateway import ResearchResult


class FakeLLMClient:
    """
    Deterministic LLM client for unit tests.

    - Captures calls for assertions
    - Yields a predefined text as a single chunk (or raises `error` if set)
    """

    def __init__(self, next_text: str = "ok") -> None:
        self.next_text = next_text
        self.error: Exception | None = None
        self.search_result: tuple[str, list[dict[str, Any]]] = ("answer", [])
        self.calls: list[dict[str, Any]] = []

    def reply_with_agent(self, actions: list[dict[str, Any]], text: str = "Done!") -> None:
        self.next_text = json.dumps({"actions": actions, "responseText": text})

    def stream_chat(
            self,
            messages: list[LLMMessage],
            system_prompt: str,
            *,
            temperature: float | None = None,
            max_tokens: int | None = None,
            json_mode: bool = False,
    ) -> Iterable[str]:
        self.calls.append(
            {
                "messages": messages,
                "system_prompt": system_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "json_mode": json_mode,
            }
        )
        if self.error is not None:
            raise self.error
        yield self.next_text

    def search_chat(self, messages: list[LLMMessage], system_prompt: str) -> tuple[str, list[dict[str, Any]]]:
        self.calls.append({"messages": messages, "system_prompt": system_prompt, "search": True})
        if self.error is not None:
            raise self.error
        return self.search_result


class BlockingGateway:
    """
    Gateway whose agent turn blocks (in its worker thread) until released.
    Used to hold a session "in flight".
    """

    def __init__(self, response: AgentResponse) -> None:
        self.response = response
        self.started = asyncio.Event()
        self._loop = asyncio.get_running_loop()
        self._release = threading.Event()
        self.turns = 0

    def release(self) -> None:
        self._release.set()

    def agent_turn(self, prompt: str, context: AgentContext) -> AgentResponse:
        self.turns += 1
        self._loop.call_soon_threadsafe(self.started.set)
        self._release.wait(timeout=5)
        return self.response

    def decompose(self, goal: str) -> list[str]:
        return []

    def research(self, prompt: str) -> ResearchResult:
        self._loop.call_soon_threadsafe(self.started.set)
        self._release.wait(timeout=5)
        return ResearchResult(text="answer")


@dataclass(slots=True)
class FakeNotifier:
    """Notifier port that records (title, body) pairs."""

    sent: list[tuple[str, str]] = field(default_factory=list)

    def notify(self, title: str, body: str) -> None:
        self.sent.append((title, body))
