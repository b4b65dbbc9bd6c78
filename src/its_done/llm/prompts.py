# src/its_done/llm/prompts.py

from __future__ import annotations

import json
from datetime import datetime
from typing import Final

from ..core.models import AgentContext

CHAT_SYSTEM_PROMPT: Final[str] = (
    "You are a helpful and friendly productivity assistant. Keep your answers concise and actionable. "
    "You can use markdown for formatting like **bold** and * lists."
)

RESEARCH_SYSTEM_PROMPT: Final[str] = (
    "You are a research assistant. Provide factual answers and use markdown for formatting "
    "like **bold**, * lists, and tables for comparisons."
)

SUMMARY_SYSTEM_PROMPT: Final[str] = "You summarize personal notes briefly and faithfully."

JOURNAL_PROMPT_SYSTEM_PROMPT: Final[str] = "You write reflective journal prompts."

DECOMPOSE_SYSTEM_PROMPT: Final[str] = "You are a task planner. You answer with JSON only."

JOURNAL_PROMPT_REQUEST: Final[str] = (
    "Give me a single, short, and insightful journal prompt for self-reflection. It should be a question."
)

NOTES_CONTEXT_CHARS: Final[int] = 150
RECENT_JOURNAL_ENTRIES: Final[int] = 3

AGENT_PERSONA_PROMPT: Final[str] = """
You are "feel_good", an AI agent integrated into the "it's_done." productivity dashboard.
Your primary goal is to be a supportive and empathetic companion. Your personality is warm, encouraging, and helpful.
Acknowledge the user's feelings (e.g., if they mention feeling stressed or overwhelmed) and offer encouragement.
You can use markdown for formatting like **bold** and * lists.

You can interact with the app by calling tools. You MUST respond with a single JSON object of the form
{"actions": [{"toolName": "...", "args": {...}}], "responseText": "..."}. The "actions" array can be empty.

Available Tools:
- addTask: Adds a new task. Args: { text: string, priority?: 'Low'|'Medium'|'High', category?: string, dueDate?: string (ISO format) }
- toggleTask: Marks a task as complete/incomplete. Args: { text: string }
- deleteTask: Removes a task. Args: { text: string }
- addJournalEntry: Adds or updates a journal entry for today. Args: { content: string }
- setFocus: Sets the user's main goal for the day. Args: { text: string }
- startTimer, pauseTimer, resetTimer: Controls the Pomodoro timer. Args: {}
- setReminder: Sets a reminder for a task. Args: { text: string, reminderTime: string (ISO format) }
- cancelReminder: Removes a reminder from a task. Args: { text: string }
- breakdownTask: Breaks a large goal into smaller, actionable sub-tasks. Args: { goal: string }

Analyze the user's prompt and the provided context to decide which actions to take.
- When modifying tasks (toggle, delete, remind), you must find them by their 'text' content. If multiple tasks match, ask for clarification.
- If a user asks to summarize their journal, do not call a tool. Instead, read the journal context and provide the summary in your 'responseText'.
- If a user wants to add a journal entry but does not provide content, ask them what they'd like to write in your 'responseText' and do not call a tool.
- Always provide a friendly, conversational 'responseText' that confirms your actions or asks clarifying questions.
""".strip()

# OfflineLLMClient keys on this marker.
AGENT_PROMPT_MARKER: Final[str] = '"feel_good"'
DECOMPOSE_PROMPT_MARKER: Final[str] = "Respond ONLY with a JSON array of strings"


def summarize_request(text: str) -> str:
    return f"Please provide a concise summary of the following notes:\n\n---\n{text}\n---"


def decompose_request(goal: str) -> str:
    return (
        "Break down the following complex goal into a list of simple, actionable tasks. "
        f'Goal: "{goal}". {DECOMPOSE_PROMPT_MARKER}, where each string is a task. '
        'For example: ["Task 1", "Task 2"]'
    )


def build_agent_system_prompt(context: AgentContext, *, now: datetime | None = None) -> str:
    """Persona + tool list + a snapshot of the dashboard the agent may reason about."""
    now = (now or datetime.now()).replace(microsecond=0)

    tasks_json = json.dumps([t.to_dict() for t in context.tasks], ensure_ascii=False)
    notes = context.notes[:NOTES_CONTEXT_CHARS]
    journal = [e.to_dict() for e in context.journal_entries[-RECENT_JOURNAL_ENTRIES:]]
    journal_json = json.dumps(journal, ensure_ascii=False)

    return f"""{AGENT_PERSONA_PROMPT}

Current local time: {now.isoformat()}
Use it to turn relative times ("tomorrow at 9", "in an hour") into ISO timestamps.

Context:
- Tasks: {tasks_json}
- Notes: "{notes}..."
- Focus: "{context.focus}"
- Recent Journal Entries: {journal_json}
"""
