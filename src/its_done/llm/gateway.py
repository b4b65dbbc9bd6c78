# src/its_done/llm/gateway.py

"""
LLM Gateway: the six natural-language operations of the dashboard.

Failure contract:
- summarize / get_prompt / chat / decompose raise GatewayError; the caller
  shows the matching fixed fallback string,
- agent_turn / research never raise: they return the fixed fallback themselves.

No operation here touches the State Store. agent_turn only reads the context
snapshot it is given, so a failed call can never leave state half-mutated.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import httpx
import openai

from ..agent.actions import AgentResponse, parse_agent_response
from ..agent.matching import TaskMatcher
from ..agent.resolver import resolve
from ..core.models import AgentContext, Source
from ..core.ports import LLMClient
from . import prompts
from .client import friendly_llm_error_message

logger = logging.getLogger(__name__)

AGENT_FALLBACK = "Sorry, I'm having a little trouble connecting right now. Please try again in a moment."
RESEARCH_FALLBACK = "Sorry, I couldn't complete that search. Please check your API key and network connection."
CHAT_FALLBACK = "Sorry, I encountered an error. Please ensure your API key is set up correctly."
SUMMARY_FALLBACK = "Failed to get summary. Please check your API key and try again."
PROMPT_FALLBACK = "Could not get a prompt. Try again?"

MIN_SUMMARY_CHARS = 20
SUMMARY_TOO_SHORT = "Please write a bit more before summarizing."

_CLIENT_FAILURES = (RuntimeError, ValueError, TypeError, OSError, openai.OpenAIError, httpx.HTTPError)


class GatewayError(RuntimeError):
    """An LLM operation failed; the message is safe to log, not to show."""


@dataclass(frozen=True, slots=True)
class ResearchResult:
    text: str
    sources: tuple[Source, ...] = ()


def _collect(chunks: Iterable[str]) -> str:
    return "".join(chunks).strip()


def _strip_fences(raw: str) -> str:
    s = raw.strip()
    if s.startswith("```"):
        s = s.strip("`").strip()
        if s.lower().startswith("json"):
            s = s[4:].strip()
    return s


def parse_task_list(raw: str) -> list[str]:
    """Parse a JSON array of task strings; empty items are dropped."""
    data = json.loads(_strip_fences(raw))
    if not isinstance(data, list):
        raise ValueError("decomposition is not a JSON array")
    return [str(item).strip() for item in data if isinstance(item, str) and item.strip()]


class LLMGateway:
    def __init__(
            self,
            client: LLMClient,
            *,
            matcher: TaskMatcher | None = None,
            clarify_ambiguous: bool = True,
    ) -> None:
        self._client = client
        self._matcher = matcher
        self._clarify_ambiguous = clarify_ambiguous

    def _complete(self, user_text: str, system_prompt: str, **params: Any) -> str:
        messages = [{"role": "user", "content": user_text}]
        try:
            text = _collect(self._client.stream_chat(messages, system_prompt, **params))
        except _CLIENT_FAILURES as e:
            raise GatewayError(friendly_llm_error_message(e)) from e
        if not text:
            raise GatewayError("empty completion")
        return text

    def summarize(self, text: str) -> str:
        logger.info("Summarize notes chars=%d", len(text))
        return self._complete(
            prompts.summarize_request(text),
            prompts.SUMMARY_SYSTEM_PROMPT,
            temperature=0.3,
            max_tokens=150,
        )

    def get_prompt(self) -> str:
        raw = self._complete(
            prompts.JOURNAL_PROMPT_REQUEST,
            prompts.JOURNAL_PROMPT_SYSTEM_PROMPT,
            temperature=0.8,
            max_tokens=50,
        )
        return raw.replace('"', "").strip()

    def chat(self, text: str) -> str:
        return self._complete(
            text,
            prompts.CHAT_SYSTEM_PROMPT,
            temperature=0.7,
            max_tokens=500,
        )

    def decompose(self, goal: str) -> list[str]:
        raw = self._complete(
            prompts.decompose_request(goal),
            prompts.DECOMPOSE_SYSTEM_PROMPT,
            temperature=0.2,
        )
        try:
            tasks = parse_task_list(raw)
        except ValueError as e:
            raise GatewayError(f"unparseable decomposition: {e}") from e
        logger.info("Decomposed goal=%r into %d items", goal, len(tasks))
        return tasks

    def agent_turn(self, prompt: str, context: AgentContext) -> AgentResponse:
        """
        One agent turn: prompt + context snapshot -> resolved AgentResponse.

        The returned actions already carry task ids wherever the text reference
        resolved to exactly one task; the duplicate-add guard has been applied.
        """
        system_prompt = prompts.build_agent_system_prompt(context)
        try:
            raw = self._complete(prompt, system_prompt, temperature=0.5, json_mode=True)
            response = parse_agent_response(raw)
        except (GatewayError, ValueError) as e:
            logger.warning("Agent turn failed: %s", e)
            return AgentResponse(actions=(), response_text=AGENT_FALLBACK)

        resolution = resolve(
            response,
            context.tasks,
            matcher=self._matcher,
            clarify_ambiguous=self._clarify_ambiguous,
        )
        logger.info(
            "Agent turn actions=%d duplicate=%s ambiguous=%d unmatched=%d",
            len(resolution.actions),
            resolution.duplicate is not None,
            len(resolution.ambiguous),
            len(resolution.unmatched),
        )
        return resolution.response

    def research(self, prompt: str) -> ResearchResult:
        messages = [{"role": "user", "content": prompt}]
        try:
            text, raw_sources = self._client.search_chat(messages, prompts.RESEARCH_SYSTEM_PROMPT)
        except _CLIENT_FAILURES as e:
            logger.warning("Research failed: %s", friendly_llm_error_message(e))
            return ResearchResult(text=RESEARCH_FALLBACK)

        sources: list[Source] = []
        for raw in raw_sources or []:
            if not isinstance(raw, dict):
                continue
            src = Source.from_dict(raw)
            if src.uri:
                sources.append(src)
        return ResearchResult(text=text.strip() or RESEARCH_FALLBACK, sources=tuple(sources))
