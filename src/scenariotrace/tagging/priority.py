"""Keyword-based priority classification."""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from scenariotrace.domain.models import Priority, Scenario

# Order matters: the first rule whose keywords appear wins.
PRIORITY_RULES: Tuple[Tuple[Priority, Tuple[str, ...]], ...] = (
    (Priority.P0, ("critical", "security", "auth")),
    (Priority.P1, ("error", "invalid", "fail")),
    (Priority.P2, ("edge", "boundary")),
)
DEFAULT_PRIORITY = Priority.P3


def classify_priority(text: Optional[str]) -> Priority:
    text_lower = (text or "").lower()
    for priority, keywords in PRIORITY_RULES:
        if any(keyword in text_lower for keyword in keywords):
            return priority
    return DEFAULT_PRIORITY


def scenario_priority(scenario: Scenario) -> Priority:
    """Explicit priority from the baseline wins; otherwise infer it from the text."""
    if scenario.priority is not None:
        return scenario.priority
    return classify_priority(scenario.text)


def most_urgent(priorities: Iterable[Optional[Priority]], default: Priority) -> Priority:
    ranked = [priority for priority in priorities if priority is not None]
    if not ranked:
        return default
    return min(ranked, key=lambda priority: priority.rank)
