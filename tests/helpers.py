from __future__ import annotations

import threading
from typing import Dict, List, Optional, Sequence, Tuple

from scenariotrace.domain.models import Api, Scenario, ScenarioSource, UnitTest
from scenariotrace.domain.ports import MatchCandidate
from scenariotrace.errors import MatcherUnavailable

CUSTOMERS = "POST /v1/customers"
CUSTOMER_BY_ID = "GET /v1/customers/{id}"


class ScriptedMatcher:
    """Scores come from a ``(text, candidate) -> score`` table; anything else gets ``default``."""

    def __init__(self, scores: Optional[Dict[Tuple[str, str], float]] = None, default: float = 0.0):
        self.scores = dict(scores or {})
        self.default = default
        self.calls: List[Tuple[str, List[str]]] = []
        self._lock = threading.Lock()

    def compare(self, text: str, candidates: Sequence[str]) -> List[MatchCandidate]:
        with self._lock:
            self.calls.append((text, list(candidates)))
        ranked = [
            MatchCandidate(index=index, score=self.scores.get((text, candidate), self.default))
            for index, candidate in enumerate(candidates)
        ]
        ranked.sort(key=lambda item: (-item.score, item.index))
        return ranked


class FailingMatcher:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error or MatcherUnavailable("matcher is down")
        self.calls = 0

    def compare(self, text: str, candidates: Sequence[str]) -> List[MatchCandidate]:
        self.calls += 1
        raise self.error


class FlakyMatcher:
    """Fails ``failures`` times, then answers like ``inner``."""

    def __init__(self, inner, failures: int = 1):
        self.inner = inner
        self.failures = failures
        self.calls = 0

    def compare(self, text: str, candidates: Sequence[str]) -> List[MatchCandidate]:
        self.calls += 1
        if self.calls <= self.failures:
            raise MatcherUnavailable("transient failure")
        return self.inner.compare(text, candidates)


def make_api(key: str) -> Api:
    method, path = key.split(" ", 1)
    return Api(key=key, method=method, path=path)


def make_scenario(
    scenario_id: str,
    text: str,
    api_key: str = CUSTOMERS,
    *,
    source: ScenarioSource = ScenarioSource.baseline,
    **extra,
) -> Scenario:
    return Scenario(id=scenario_id, api_key=api_key, text=text, source=source, **extra)


def make_suggestion(scenario_id: str, text: str, api_key: str = CUSTOMERS, **extra) -> Scenario:
    return make_scenario(scenario_id, text, api_key, source=ScenarioSource.ai_suggested, **extra)


def make_test(
    test_id: str,
    display_text: str,
    api_key: str = CUSTOMERS,
    *,
    line_number: int = 1,
    **extra,
) -> UnitTest:
    extra.setdefault("file_path", "src/test/java/com/acme/CustomerFlowTest.java")
    return UnitTest(
        id=test_id,
        display_text=display_text,
        api_key=api_key,
        line_number=line_number,
        **extra,
    )
