# tests/test_sessions.py

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from its_done.agent.actions import AgentResponse, SetFocus
from its_done.core.chat import (
    AGENT_ERROR_MESSAGE,
    CHAT_CLEARED,
    CHAT_GREETING,
    AgentSession,
    AssistantChat,
    ResearchSession,
    journal_prompt,
    summarize_notes,
)
from its_done.llm.gateway import (
    CHAT_FALLBACK,
    PROMPT_FALLBACK,
    SUMMARY_FALLBACK,
    SUMMARY_TOO_SHORT,
    LLMGateway,
)
from its_done.storage.state_store import AGENT_HISTORY_KEY, StateStore

from .fakes import BlockingGateway, FakeLLMClient


@pytest.mark.asyncio
async def test_agent_submit_applies_actions_and_persists_history(store: StateStore) -> None:
    llm = FakeLLMClient()
    llm.reply_with_agent(
        [
            {"toolName": "addTask", "args": {"text": "Water plants"}},
            {"toolName": "addJournalEntry", "args": {"content": "Calm morning"}},
        ],
        "All set!",
    )
    session = AgentSession(store, LLMGateway(llm))

    reply = await session.submit("add water plants and journal calm morning", today=date(2030, 2, 1))

    assert reply.text == "All set!"
    assert reply.actions == ['Added task: "Water plants"', "Added journal entry."]
    assert [t.text for t in store.tasks] == ["Water plants"]
    assert store.journal_entry_for("2030-02-01").content == "Calm morning"

    history = store.history(AGENT_HISTORY_KEY)
    assert [(m.sender, m.text) for m in history] == [
        ("user", "add water plants and journal calm morning"),
        ("ai", "All set!"),
    ]
    assert history[1].actions == reply.actions


@pytest.mark.asyncio
async def test_agent_rejects_second_submission_while_in_flight(store: StateStore) -> None:
    gateway = BlockingGateway(AgentResponse(actions=(SetFocus(text="One thing"),), response_text="ok"))
    session = AgentSession(store, gateway)

    first = asyncio.create_task(session.submit("first"))
    await asyncio.wait_for(gateway.started.wait(), timeout=5)

    assert session.busy is True
    assert await session.submit("second") is None

    gateway.release()
    reply = await first
    assert reply.text == "ok"
    assert gateway.turns == 1
    assert store.focus == "One thing"
    assert session.busy is False


@pytest.mark.asyncio
async def test_agent_crash_becomes_friendly_message(store: StateStore) -> None:
    class ExplodingGateway:
        def agent_turn(self, prompt, context):
            raise KeyError("boom")

        def decompose(self, goal):
            return []

    session = AgentSession(store, ExplodingGateway())
    reply = await session.submit("hi")
    assert reply.text == AGENT_ERROR_MESSAGE
    assert session.busy is False


@pytest.mark.asyncio
async def test_agent_ignores_blank_input(store: StateStore) -> None:
    session = AgentSession(store, LLMGateway(FakeLLMClient()))
    assert await session.submit("   ") is None
    assert store.history(AGENT_HISTORY_KEY) == []


@pytest.mark.asyncio
async def test_history_is_capped(store: StateStore) -> None:
    llm = FakeLLMClient()
    llm.reply_with_agent([], "ok")
    session = AgentSession(store, LLMGateway(llm), history_limit=4)
    for i in range(5):
        await session.submit(f"msg {i}")
    msgs = session.messages
    assert len(msgs) == 4
    assert msgs[-2].text == "msg 4"


@pytest.mark.asyncio
async def test_assistant_chat_greeting_fallback_and_clear(store: StateStore) -> None:
    llm = FakeLLMClient("Try time-blocking.")
    chat = AssistantChat(store, LLMGateway(llm))
    assert chat.messages[0].text == CHAT_GREETING

    reply = await chat.submit("How do I focus?")
    assert reply.text == "Try time-blocking."

    llm.error = RuntimeError("network")
    reply = await chat.submit("again?")
    assert reply.text == CHAT_FALLBACK

    chat.clear()
    assert [m.text for m in chat.messages] == [CHAT_CLEARED]


@pytest.mark.asyncio
async def test_research_pin_last(store: StateStore) -> None:
    llm = FakeLLMClient()
    llm.search_result = ("Python 3.13 is out.", [{"uri": "https://python.org", "title": "Python"}])
    research = ResearchSession(store, LLMGateway(llm))

    assert research.pin_last() is None
    await research.submit("latest python?")
    item = research.pin_last()

    assert item.prompt == "latest python?"
    assert item.response == "Python 3.13 is out."
    assert store.pinned_items == [item]


@pytest.mark.asyncio
async def test_summarize_and_prompt_fallbacks() -> None:
    llm = FakeLLMClient("Summary.")
    gw = LLMGateway(llm)

    assert await summarize_notes(gw, "too short") == SUMMARY_TOO_SHORT
    assert llm.calls == []
    assert await summarize_notes(gw, "These notes are definitely long enough.") == "Summary."

    llm.error = RuntimeError("down")
    assert await summarize_notes(gw, "These notes are definitely long enough.") == SUMMARY_FALLBACK
    assert await journal_prompt(gw) == PROMPT_FALLBACK
