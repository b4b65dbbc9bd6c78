# src/its_done/agent/resolver.py

"""
Agent action resolution.

resolve() is a pure function of (response, current tasks): it never touches the
State Store or the network, so it can be tested without any harness.

Order matters:
1. duplicate-add guard (single shot: only the first matching addTask is dropped),
2. text -> id resolution for task references (exactly one match or nothing),
3. execution happens later, in executor.apply_actions().
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

from ..core.models import Task
from .actions import (
    TASK_REFERENCE_TYPES,
    AddTask,
    AgentAction,
    AgentResponse,
    TaskReference,
)
from .matching import SubstringMatcher, TaskMatcher

logger = logging.getLogger(__name__)

DUPLICATE_TASK_MESSAGE = (
    "You already have a task with that exact name. "
    "Would you like to add it anyway, or perhaps edit the existing one?"
)


@dataclass(frozen=True, slots=True)
class AmbiguousReference:
    action: TaskReference
    candidates: tuple[Task, ...]


@dataclass(frozen=True, slots=True)
class Resolution:
    actions: tuple[AgentAction, ...]  # what the executor should apply, in order
    response: AgentResponse  # annotated response (clarifications applied)
    duplicate: AddTask | None = None
    ambiguous: tuple[AmbiguousReference, ...] = ()
    unmatched: tuple[TaskReference, ...] = ()


def _find_duplicate_add(actions: Sequence[AgentAction], tasks: Sequence[Task]) -> AddTask | None:
    existing = {t.text.casefold() for t in tasks}
    for action in actions:
        if isinstance(action, AddTask) and action.text.casefold() in existing:
            return action
    return None


def ambiguity_message(ambiguous: Sequence[AmbiguousReference]) -> str:
    lines: list[str] = []
    for amb in ambiguous:
        names = ", ".join(f'"{t.text}"' for t in amb.candidates)
        lines.append(f'I found more than one task matching "{amb.action.text}": {names}.')
    lines.append("Which one did you mean?")
    return " ".join(lines)


def resolve(
        response: AgentResponse,
        current_tasks: Sequence[Task],
        *,
        matcher: TaskMatcher | None = None,
        clarify_ambiguous: bool = True,
) -> Resolution:
    matcher = matcher or SubstringMatcher()
    actions = list(response.actions)
    response_text = response.response_text

    duplicate = _find_duplicate_add(actions, current_tasks)
    if duplicate is not None:
        # Identity, not equality: a second identical addTask stays in the batch.
        actions = [a for a in actions if a is not duplicate]
        response_text = DUPLICATE_TASK_MESSAGE
        logger.info("Dropped duplicate addTask text=%r", duplicate.text)

    ambiguous: list[AmbiguousReference] = []
    unmatched: list[TaskReference] = []
    resolved: list[AgentAction] = []

    for action in actions:
        if not isinstance(action, TASK_REFERENCE_TYPES) or action.id is not None or not action.text:
            resolved.append(action)
            continue

        matches = matcher.match(action.text, current_tasks)
        if len(matches) == 1:
            resolved.append(replace(action, id=matches[0].id))
            continue

        if matches:
            logger.warning(
                "Ambiguous task reference tool=%s text=%r candidates=%s",
                action.tool.value,
                action.text,
                [t.id for t in matches],
            )
            ambiguous.append(AmbiguousReference(action=action, candidates=tuple(matches)))
        else:
            logger.info("No task matches tool=%s text=%r", action.tool.value, action.text)
            unmatched.append(action)
        # Left unresolved: the executor treats a missing id as inert.
        resolved.append(action)

    if ambiguous and clarify_ambiguous:
        note = ambiguity_message(ambiguous)
        response_text = f"{response_text.rstrip()}\n\n{note}" if response_text.strip() else note

    return Resolution(
        actions=tuple(resolved),
        response=AgentResponse(actions=tuple(resolved), response_text=response_text),
        duplicate=duplicate,
        ambiguous=tuple(ambiguous),
        unmatched=tuple(unmatched),
    )
