# tests/test_resolver.py

from __future__ import annotations

from datetime import datetime

from its_done.agent.actions import (
    AddTask,
    AgentResponse,
    DeleteTask,
    SetFocus,
    SetReminder,
    ToggleTask,
)
from its_done.agent.matching import ExactMatcher
from its_done.agent.resolver import DUPLICATE_TASK_MESSAGE, resolve
from its_done.core.models import Task


def _tasks() -> list[Task]:
    return [
        Task(id=1, text="Buy milk"),
        Task(id=2, text="Call mom"),
        Task(id=3, text="Call the dentist"),
    ]


def test_toggle_resolves_single_substring_match() -> None:
    resp = AgentResponse(actions=(ToggleTask(text="milk"),), response_text="Marked it done!")
    res = resolve(resp, _tasks())

    assert res.actions == (ToggleTask(text="milk", id=1),)
    assert res.response.response_text == "Marked it done!"
    assert not res.ambiguous
    assert not res.unmatched


def test_match_is_case_insensitive() -> None:
    resp = AgentResponse(actions=(DeleteTask(text="BUY MILK"),), response_text="ok")
    res = resolve(resp, _tasks())
    assert res.actions[0].id == 1


def test_ambiguous_reference_stays_unresolved_and_asks() -> None:
    resp = AgentResponse(actions=(DeleteTask(text="call"),), response_text="Deleted.")
    res = resolve(resp, _tasks())

    assert res.actions == (DeleteTask(text="call", id=None),)
    assert len(res.ambiguous) == 1
    assert {t.id for t in res.ambiguous[0].candidates} == {2, 3}
    assert '"Call mom"' in res.response.response_text
    assert "Which one did you mean?" in res.response.response_text


def test_ambiguity_note_can_be_disabled() -> None:
    resp = AgentResponse(actions=(DeleteTask(text="call"),), response_text="Deleted.")
    res = resolve(resp, _tasks(), clarify_ambiguous=False)
    assert res.response.response_text == "Deleted."
    assert res.actions[0].id is None


def test_no_match_stays_unresolved() -> None:
    resp = AgentResponse(actions=(ToggleTask(text="walk the dog"),), response_text="ok")
    res = resolve(resp, _tasks())
    assert res.actions[0].id is None
    assert len(res.unmatched) == 1


def test_explicit_id_is_kept() -> None:
    resp = AgentResponse(actions=(ToggleTask(text="call", id=3),), response_text="ok")
    res = resolve(resp, _tasks())
    assert res.actions == (ToggleTask(text="call", id=3),)
    assert not res.ambiguous


def test_duplicate_add_is_dropped_and_text_replaced() -> None:
    resp = AgentResponse(
        actions=(AddTask(text="buy MILK"), SetFocus(text="Groceries")),
        response_text="Added!",
    )
    res = resolve(resp, _tasks())

    assert res.actions == (SetFocus(text="Groceries"),)
    assert res.response.response_text == DUPLICATE_TASK_MESSAGE
    assert res.duplicate == AddTask(text="buy MILK")


def test_duplicate_guard_removes_only_first_match() -> None:
    first = AddTask(text="Buy milk")
    second = AddTask(text="Call mom")
    resp = AgentResponse(actions=(first, second), response_text="Added both!")
    res = resolve(resp, _tasks())

    assert res.actions == (second,)
    assert res.response.response_text == DUPLICATE_TASK_MESSAGE


def test_new_task_is_not_a_duplicate() -> None:
    resp = AgentResponse(actions=(AddTask(text="Buy milk and eggs"),), response_text="Added!")
    res = resolve(resp, _tasks())
    assert res.actions == (AddTask(text="Buy milk and eggs"),)
    assert res.duplicate is None
    assert res.response.response_text == "Added!"


def test_set_reminder_resolution_keeps_time() -> None:
    when = datetime(2030, 1, 2, 9, 0)
    resp = AgentResponse(actions=(SetReminder(reminder_time=when, text="dentist"),), response_text="ok")
    res = resolve(resp, _tasks())
    assert res.actions == (SetReminder(reminder_time=when, text="dentist", id=3),)


def test_custom_matcher_is_used() -> None:
    resp = AgentResponse(actions=(ToggleTask(text="milk"),), response_text="ok")
    res = resolve(resp, _tasks(), matcher=ExactMatcher())
    assert res.actions[0].id is None


def test_resolve_does_not_mutate_input() -> None:
    tasks = _tasks()
    resp = AgentResponse(actions=(ToggleTask(text="milk"),), response_text="ok")
    resolve(resp, tasks)
    assert resp.actions == (ToggleTask(text="milk"),)
    assert [t.completed for t in tasks] == [False, False, False]
