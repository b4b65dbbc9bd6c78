# src/its_done/llm/offline.py

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from ..core.ports import LLMMessage
from .prompts import AGENT_PROMPT_MARKER, DECOMPOSE_PROMPT_MARKER, JOURNAL_PROMPT_REQUEST

OFFLINE_NOTICE = (
    "Offline demo mode: no external LLM is configured.\n"
    "Set ITS_DONE_OPENROUTER_API_KEY (and ITS_DONE_LLM_MODELS) to enable real responses."
)


def _last_user_text(messages: list[LLMMessage]) -> str:
    for m in reversed(messages):
        if m.get("role") == "user":
            return m.get("content", "")
    return ""


class OfflineLLMClient:
    """
    Offline deterministic LLM client used for demos when no external API is configured.

    Behavior:
    - Agent prompts -> {"actions": [], "responseText": <notice>}
    - Decomposition requests -> []
    - Journal prompt requests -> a fixed question
    - Normal chat / summaries -> a friendly offline demo response
    """

    def stream_chat(
            self,
            messages: list[LLMMessage],
            system_prompt: str,
            *,
            temperature: float | None = None,
            max_tokens: int | None = None,
            json_mode: bool = False,
    ) -> Iterable[str]:
        sp = system_prompt or ""
        user_text = _last_user_text(messages)

        # The agent must get JSON the action parser can read safely.
        if AGENT_PROMPT_MARKER in sp:
            yield json.dumps({"actions": [], "responseText": f"{OFFLINE_NOTICE}\n\nYou said: {user_text}"})
            return

        if DECOMPOSE_PROMPT_MARKER in user_text:
            yield "[]"
            return

        if user_text == JOURNAL_PROMPT_REQUEST:
            yield '"What is one small thing that went well today?"'
            return

        yield f"{OFFLINE_NOTICE}\n\nYou said: {user_text}"

    def search_chat(
            self,
            messages: list[LLMMessage],
            system_prompt: str,
    ) -> tuple[str, list[dict[str, Any]]]:
        return f"{OFFLINE_NOTICE}\n\nWeb search is unavailable offline.", []
