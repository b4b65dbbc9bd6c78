# src/its_done/agent/matching.py

"""
Task lookup by free text.

The agent only knows tasks by their text, so references are resolved with a
deliberately lossy text match. Callers must treat anything other than exactly
one candidate as "no match": zero or several candidates never mutate state.
"""

from __future__ import annotations

from collections.abc import Sequence
from difflib import SequenceMatcher
from typing import Protocol

from ..core.models import Task

MATCH_STRATEGIES = ("substring", "exact", "prefix", "fuzzy")


class TaskMatcher(Protocol):
    def match(self, query: str, tasks: Sequence[Task]) -> list[Task]: ...


def _norm(s: str) -> str:
    return " ".join(s.casefold().split())


class SubstringMatcher:
    """Case-insensitive containment (the default)."""

    def match(self, query: str, tasks: Sequence[Task]) -> list[Task]:
        q = query.casefold()
        if not q:
            return []
        return [t for t in tasks if q in t.text.casefold()]


class ExactMatcher:
    def match(self, query: str, tasks: Sequence[Task]) -> list[Task]:
        q = _norm(query)
        if not q:
            return []
        return [t for t in tasks if _norm(t.text) == q]


class PrefixMatcher:
    def match(self, query: str, tasks: Sequence[Task]) -> list[Task]:
        q = _norm(query)
        if not q:
            return []
        return [t for t in tasks if _norm(t.text).startswith(q)]


class FuzzyMatcher:
    """Similarity ratio at or above `threshold`."""

    def __init__(self, threshold: float = 0.8) -> None:
        if not 0.0 < threshold <= 1.0:
            raise ValueError("threshold must be in (0, 1]")
        self.threshold = threshold

    def match(self, query: str, tasks: Sequence[Task]) -> list[Task]:
        q = _norm(query)
        if not q:
            return []
        return [t for t in tasks if SequenceMatcher(None, q, _norm(t.text)).ratio() >= self.threshold]


def get_matcher(name: str = "substring", *, fuzzy_threshold: float = 0.8) -> TaskMatcher:
    key = (name or "substring").strip().lower()
    if key == "substring":
        return SubstringMatcher()
    if key == "exact":
        return ExactMatcher()
    if key == "prefix":
        return PrefixMatcher()
    if key == "fuzzy":
        return FuzzyMatcher(fuzzy_threshold)
    raise ValueError(f"unknown match strategy: {name!r} (expected one of {', '.join(MATCH_STRATEGIES)})")
