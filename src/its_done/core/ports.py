# src/its_done/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/LLM providers/notification sinks swappable and makes testing easier.
"""

from typing import Any, Iterable, Protocol

LLMMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class LLMClient(Protocol):
    """Chat completion client (OpenAI/OpenRouter-compatible)."""

    def stream_chat(
            self,
            messages: list[LLMMessage],
            system_prompt: str,
            *,
            temperature: float | None = None,
            max_tokens: int | None = None,
            json_mode: bool = False,
    ) -> Iterable[str]: ...

    def search_chat(
            self,
            messages: list[LLMMessage],
            system_prompt: str,
    ) -> tuple[str, list[dict[str, Any]]]:
        """Web-grounded completion. Returns (text, citations as {"uri", "title"} dicts)."""
        ...


class KeyValueStorage(Protocol):
    """Durable string records keyed by a stable key (the local-storage contract)."""

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...


class Notifier(Protocol):
    """Where timers (reminders, pomodoro) deliver user-visible notifications."""

    def notify(self, title: str, body: str) -> None: ...
